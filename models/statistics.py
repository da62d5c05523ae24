from decimal import Decimal

from pydantic import BaseModel, Field

class OrderStatsDTO(BaseModel):
    """Per-user order statistics keyed by OrderStatus value. total_spent excludes CANCELLED orders."""
    total_orders: int = 0
    total_spent: Decimal = Decimal("0")
    status_breakdown: dict[str, int] = Field(default_factory=dict)

class AdminOrderStatsDTO(BaseModel):
    """System-wide order statistics. total_revenue excludes CANCELLED orders."""
    total_orders: int = 0
    pending_orders: int = 0
    total_revenue: Decimal = Decimal("0")
    status_breakdown: dict[str, int] = Field(default_factory=dict)
