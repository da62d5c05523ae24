from enum import Enum


class ProductSortField(Enum):
    NAME = "name"
    PRICE = "price"
    CREATED_AT = "created_at"
    UPDATED_AT = "updated_at"


class SortOrder(Enum):
    ASC = "asc"
    DESC = "desc"
