from datetime import datetime

from pydantic import BaseModel
from sqlalchemy import Integer, Column, String, Text, DateTime
from sqlalchemy.orm import relationship

from models.base import Base, utcnow


class Category(Base):
    __tablename__ = 'categories'

    id = Column(Integer, primary_key=True, unique=True)
    # Case-insensitive uniqueness is checked in CategoryService, the index catches exact duplicates
    name = Column(String, nullable=False, unique=True)
    description = Column(Text, nullable=True)
    slug = Column(String, nullable=False, unique=True)
    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    # Relationships
    products = relationship("Product", back_populates="category", passive_deletes="all")


class CategoryDTO(BaseModel):
    id: int | None = None
    name: str | None = None
    description: str | None = None
    slug: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


class CategoryWithCountDTO(CategoryDTO):
    product_count: int = 0
