from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, Field
from sqlalchemy import Column, Integer, Numeric, DateTime, ForeignKey, String, Text, CheckConstraint, Index
from sqlalchemy import Enum as SQLEnum
from sqlalchemy.orm import relationship

from enums.order_status import OrderStatus
from models.base import Base, utcnow
from models.orderItem import OrderItemDetailDTO
from models.user import UserSummaryDTO


class Order(Base):
    __tablename__ = 'orders'

    id = Column(Integer, primary_key=True, unique=True)
    user_id = Column(Integer, ForeignKey('users.id'), nullable=False)
    status = Column(SQLEnum(OrderStatus), nullable=False, default=OrderStatus.PENDING)
    # Snapshot of the cart total at checkout
    total_amount = Column(Numeric(10, 2, asdecimal=True), nullable=False)
    shipping_address = Column(Text, nullable=False)
    phone_number = Column(String(32), nullable=False)
    # Free text, appended to on status changes (never replaced)
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    # Relations
    user = relationship('User')
    items = relationship('OrderItem', back_populates='order', cascade='all, delete-orphan',
                         order_by='OrderItem.id')

    __table_args__ = (
        CheckConstraint('total_amount > 0', name='check_order_total_amount_positive'),
        Index('ix_orders_user_id', 'user_id'),
        Index('ix_orders_status', 'status'),
    )


class OrderDTO(BaseModel):
    id: int | None = None
    user_id: int | None = None
    status: OrderStatus | None = None
    total_amount: Decimal | None = None
    shipping_address: str | None = None
    phone_number: str | None = None
    notes: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


class OrderDetailDTO(OrderDTO):
    user: UserSummaryDTO | None = None
    items: list[OrderItemDetailDTO] = Field(default_factory=list)


class OrderQueryDTO(BaseModel):
    # user_id is forced to the caller for non-admins by OrderService
    user_id: int | None = None
    status: OrderStatus | None = None
    from_date: datetime | None = None
    to_date: datetime | None = None
    page: int = 1
    limit: int = 10
