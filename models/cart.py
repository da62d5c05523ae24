# A cart belongs to exactly one owner: a registered user or an anonymous guest
# identified by an opaque token. Items are NOT reserved, stock is checked again
# at checkout (services/order.py).
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, Field
from sqlalchemy import Column, Integer, String, ForeignKey, DateTime, CheckConstraint
from sqlalchemy.orm import relationship

from models.base import Base, utcnow
from models.product import ProductDetailDTO


class Cart(Base):
    __tablename__ = "carts"

    id = Column(Integer, primary_key=True)
    user_id = Column(Integer, ForeignKey('users.id', ondelete='CASCADE'), nullable=True, unique=True)
    guest_token = Column(String(36), nullable=True, unique=True)
    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    # Relationships
    items = relationship("CartItem", back_populates="cart", passive_deletes=True, order_by="CartItem.id")

    __table_args__ = (
        CheckConstraint(
            '(user_id IS NULL AND guest_token IS NOT NULL) OR (user_id IS NOT NULL AND guest_token IS NULL)',
            name='check_cart_single_owner'
        ),
    )


@dataclass(frozen=True)
class UserOwner:
    user_id: int

    def owns(self, cart: "Cart | CartDTO") -> bool:
        return cart.user_id is not None and cart.user_id == self.user_id

    def __str__(self):
        return f"user:{self.user_id}"


@dataclass(frozen=True)
class GuestOwner:
    guest_token: str

    def owns(self, cart: "Cart | CartDTO") -> bool:
        return cart.guest_token is not None and cart.guest_token == self.guest_token

    def __str__(self):
        # Never log the full token
        return f"guest:{self.guest_token[:8]}..."


CartOwner = UserOwner | GuestOwner


class CartDTO(BaseModel):
    id: int | None = None
    user_id: int | None = None
    guest_token: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


class CartLineDTO(BaseModel):
    id: int
    product_id: int
    quantity: int
    product: ProductDetailDTO
    subtotal: Decimal


class CartDetailDTO(CartDTO):
    """
    Cart with lines and computed totals.

    total_amount and total_items are derived on every read and never persisted,
    so they always reflect current product prices.
    """
    items: list[CartLineDTO] = Field(default_factory=list)
    total_amount: Decimal = Decimal("0")
    total_items: int = 0

    @classmethod
    def from_cart(cls, cart: Cart) -> "CartDetailDTO":
        lines = []
        for item in cart.items:
            subtotal = Decimal(item.product.price) * item.quantity
            lines.append(CartLineDTO(
                id=item.id,
                product_id=item.product_id,
                quantity=item.quantity,
                product=ProductDetailDTO.model_validate(item.product, from_attributes=True),
                subtotal=subtotal,
            ))
        return cls(
            id=cart.id,
            user_id=cart.user_id,
            guest_token=cart.guest_token,
            created_at=cart.created_at,
            updated_at=cart.updated_at,
            items=lines,
            total_amount=sum((line.subtotal for line in lines), Decimal("0")),
            total_items=sum(line.quantity for line in lines),
        )
