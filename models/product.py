from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, Field
from sqlalchemy import Column, Integer, String, Text, Numeric, DateTime, ForeignKey, CheckConstraint, JSON, Index
from sqlalchemy.orm import relationship

from enums.product_sort import ProductSortField, SortOrder
from models.base import Base, utcnow
from models.category import CategoryDTO


class Product(Base):
    __tablename__ = 'products'

    id = Column(Integer, primary_key=True, unique=True)
    name = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    slug = Column(String, nullable=False, unique=True)
    price = Column(Numeric(10, 2, asdecimal=True), nullable=False)
    # Only ever decremented through ProductRepository.decrement_stock (guarded UPDATE)
    stock = Column(Integer, nullable=False, default=0)
    category_id = Column(Integer, ForeignKey("categories.id", ondelete="RESTRICT"), nullable=False)
    # Ordered list of public image URLs
    image_urls = Column(JSON, nullable=False, default=list)
    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    # Relationships
    category = relationship("Category", back_populates="products")

    __table_args__ = (
        CheckConstraint('price > 0', name='check_product_price_positive'),
        CheckConstraint('stock >= 0', name='check_product_stock_non_negative'),
        Index('ix_products_category_id', 'category_id'),
    )


class ProductDTO(BaseModel):
    id: int | None = None
    name: str | None = None
    description: str | None = None
    slug: str | None = None
    price: Decimal | None = None
    stock: int | None = None
    category_id: int | None = None
    image_urls: list[str] = Field(default_factory=list)
    created_at: datetime | None = None
    updated_at: datetime | None = None


class ProductDetailDTO(ProductDTO):
    """Product with its category, as returned by the catalog and embedded in carts/orders."""
    category: CategoryDTO | None = None


class ProductQueryDTO(BaseModel):
    """Listing filters. Bounds on page/limit are enforced by ProductService."""
    q: str | None = None
    category_id: int | None = None
    min_price: Decimal | None = None
    max_price: Decimal | None = None
    page: int = 1
    limit: int = 10
    sort_by: ProductSortField = ProductSortField.CREATED_AT
    sort_order: SortOrder = SortOrder.DESC
