from enum import Enum


class UserRole(Enum):
    USER = "USER"
    ADMIN = "ADMIN"
