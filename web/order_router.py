"""
Orders API: checkout, order history, statistics and the admin status workflow.
"""

import logging
from datetime import datetime

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

import config
from enums.order_status import OrderStatus
from models.order import OrderDetailDTO, OrderQueryDTO
from models.pagination import OrderPageDTO
from models.statistics import AdminOrderStatsDTO, OrderStatsDTO
from services.analytics import AnalyticsService
from services.order import OrderService
from utils.token_validator import Identity
from web.dependencies import get_admin_identity, get_guest_token, get_identity, get_session

logger = logging.getLogger(__name__)

order_router = APIRouter(prefix="/api/orders", tags=["orders"])


class CreateOrderPayload(BaseModel):
    """Checkout payload. Items always come from the caller's cart."""
    shipping_address: str = Field(..., min_length=5, max_length=1000)
    phone_number: str = Field(..., min_length=5, max_length=32, pattern=r"^\+?[0-9 ()\-]+$")
    notes: str | None = Field(default=None, max_length=2000)


class UpdateOrderStatusPayload(BaseModel):
    status: OrderStatus
    notes: str | None = Field(default=None, max_length=2000)


@order_router.post("", response_model=OrderDetailDTO, status_code=201)
async def create_order(payload: CreateOrderPayload,
                       identity: Identity = Depends(get_identity),
                       guest_token: str | None = Depends(get_guest_token),
                       session: AsyncSession = Depends(get_session)):
    """
    Checkout the caller's cart.

    If X-Guest-Token is presented, that guest cart is merged into the user's
    cart before the order is created.
    """
    return await OrderService.create_order(identity, payload.shipping_address, payload.phone_number,
                                           payload.notes, guest_token, session)


@order_router.get("", response_model=OrderPageDTO)
async def list_orders(status: OrderStatus | None = None,
                      user_id: int | None = Query(default=None, gt=0),
                      from_date: datetime | None = None,
                      to_date: datetime | None = None,
                      page: int = Query(default=1, ge=1),
                      limit: int = Query(default=config.PAGE_DEFAULT_LIMIT, ge=1, le=config.PAGE_MAX_LIMIT),
                      identity: Identity = Depends(get_identity),
                      session: AsyncSession = Depends(get_session)):
    query = OrderQueryDTO(user_id=user_id, status=status, from_date=from_date, to_date=to_date,
                          page=page, limit=limit)
    return await OrderService.list_orders(identity, query, session)


@order_router.get("/stats", response_model=AdminOrderStatsDTO | OrderStatsDTO)
async def get_order_stats(identity: Identity = Depends(get_identity),
                          session: AsyncSession = Depends(get_session)):
    return await AnalyticsService.get_stats_for_caller(identity, session)


@order_router.get("/{order_id}", response_model=OrderDetailDTO)
async def get_order(order_id: int,
                    identity: Identity = Depends(get_identity),
                    session: AsyncSession = Depends(get_session)):
    return await OrderService.get_order(order_id, identity, session)


@order_router.patch("/{order_id}/status", response_model=OrderDetailDTO)
async def update_order_status(order_id: int,
                              payload: UpdateOrderStatusPayload,
                              identity: Identity = Depends(get_admin_identity),
                              session: AsyncSession = Depends(get_session)):
    return await OrderService.update_status(order_id, payload.status, payload.notes, identity, session)
