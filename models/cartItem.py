from pydantic import BaseModel
from sqlalchemy import Column, Integer, ForeignKey, CheckConstraint, UniqueConstraint
from sqlalchemy.orm import relationship

from models.base import Base


class CartItem(Base):
    __tablename__ = "cart_items"

    id = Column(Integer, primary_key=True)
    cart_id = Column(Integer, ForeignKey("carts.id", ondelete="CASCADE"), nullable=False)
    product_id = Column(Integer, ForeignKey("products.id", ondelete="CASCADE"), nullable=False)
    quantity = Column(Integer, nullable=False)

    # Relationships
    cart = relationship("Cart", back_populates="items")
    product = relationship("Product")

    __table_args__ = (
        CheckConstraint('quantity > 0', name='check_quantity_positive'),
        # One line per product per cart; repeated adds increase the quantity
        UniqueConstraint('cart_id', 'product_id', name='uq_cart_items_cart_product'),
    )


class CartItemDTO(BaseModel):
    id: int | None = None
    cart_id: int | None = None
    product_id: int | None = None
    quantity: int | None = None
