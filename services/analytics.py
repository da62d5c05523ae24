"""
Analytics Service - read-only order statistics

Per-user and system-wide aggregations over orders. CANCELLED orders are
counted in the status breakdown but excluded from spend and revenue.
"""

import logging

from sqlalchemy.ext.asyncio import AsyncSession

from enums.order_status import OrderStatus
from models.statistics import OrderStatsDTO, AdminOrderStatsDTO
from repositories.order import OrderRepository
from utils.permission_utils import is_admin_user, require_admin, require_authenticated
from utils.token_validator import Identity


class AnalyticsService:
    """Service for order statistics"""

    @staticmethod
    def _breakdown(counts: dict[OrderStatus, int]) -> dict[str, int]:
        # Every status is reported, zero counts included
        return {status.value: counts.get(status, 0) for status in OrderStatus}

    @staticmethod
    async def get_user_stats(user_id: int, session: AsyncSession) -> OrderStatsDTO:
        counts = await OrderRepository.count_by_status(session, user_id=user_id)
        total_spent = await OrderRepository.sum_total_amount(session, user_id=user_id)
        return OrderStatsDTO(
            total_orders=sum(counts.values()),
            total_spent=total_spent,
            status_breakdown=AnalyticsService._breakdown(counts),
        )

    @staticmethod
    async def get_admin_stats(identity: Identity | None, session: AsyncSession) -> AdminOrderStatsDTO:
        require_admin(identity, "view order statistics")
        counts = await OrderRepository.count_by_status(session)
        total_revenue = await OrderRepository.sum_total_amount(session)
        stats = AdminOrderStatsDTO(
            total_orders=sum(counts.values()),
            pending_orders=counts.get(OrderStatus.PENDING, 0),
            total_revenue=total_revenue,
            status_breakdown=AnalyticsService._breakdown(counts),
        )
        logging.info(f"[Analytics] Admin stats: orders={stats.total_orders}, pending={stats.pending_orders}")
        return stats

    @staticmethod
    async def get_stats_for_caller(identity: Identity | None,
                                   session: AsyncSession) -> OrderStatsDTO | AdminOrderStatsDTO:
        """Admins get system-wide statistics, everyone else their own."""
        identity = require_authenticated(identity)
        if is_admin_user(identity):
            return await AnalyticsService.get_admin_stats(identity, session)
        return await AnalyticsService.get_user_stats(identity.user_id, session)
