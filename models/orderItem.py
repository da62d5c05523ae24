from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel
from sqlalchemy import Column, Integer, DateTime, Numeric, ForeignKey, CheckConstraint, Index
from sqlalchemy.orm import relationship

from models.base import Base, utcnow
from models.product import ProductDetailDTO


class OrderItem(Base):
    __tablename__ = 'order_items'

    __table_args__ = (
        CheckConstraint('price > 0', name='ck_order_item_positive_price'),
        CheckConstraint('quantity > 0', name='ck_order_item_positive_quantity'),

        Index('ix_order_items_order_id', 'order_id'),
        Index('ix_order_items_product_id', 'product_id'),
    )

    id = Column(Integer, primary_key=True)
    order_id = Column(Integer, ForeignKey('orders.id', ondelete='CASCADE'), nullable=False)
    # RESTRICT: a product that was sold cannot disappear from order history
    product_id = Column(Integer, ForeignKey('products.id', ondelete='RESTRICT'), nullable=False)
    quantity = Column(Integer, nullable=False)
    # Unit price at the moment of checkout, never recomputed
    price = Column(Numeric(10, 2, asdecimal=True), nullable=False)
    created_at = Column(DateTime, default=utcnow, nullable=False)

    # Relationships
    order = relationship("Order", back_populates="items")
    product = relationship("Product")


class OrderItemDTO(BaseModel):
    id: int | None = None
    order_id: int | None = None
    product_id: int | None = None
    quantity: int | None = None
    price: Decimal | None = None
    created_at: datetime | None = None


class OrderItemDetailDTO(OrderItemDTO):
    product: ProductDetailDTO | None = None
