import math

from pydantic import BaseModel, Field

from models.order import OrderDetailDTO
from models.product import ProductDetailDTO
from models.user import UserDTO


class PageMeta(BaseModel):
    page: int
    limit: int
    total: int
    total_pages: int
    has_next_page: bool
    has_prev_page: bool

    @classmethod
    def build(cls, page: int, limit: int, total: int) -> "PageMeta":
        total_pages = math.ceil(total / limit) if limit > 0 else 0
        return cls(
            page=page,
            limit=limit,
            total=total,
            total_pages=total_pages,
            has_next_page=page < total_pages,
            has_prev_page=page > 1,
        )


class ProductPageDTO(BaseModel):
    data: list[ProductDetailDTO] = Field(default_factory=list)
    meta: PageMeta


class OrderPageDTO(BaseModel):
    data: list[OrderDetailDTO] = Field(default_factory=list)
    meta: PageMeta


class UserPageDTO(BaseModel):
    data: list[UserDTO] = Field(default_factory=list)
    meta: PageMeta
