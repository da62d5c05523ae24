from datetime import datetime

from pydantic import BaseModel
from sqlalchemy import Column, Integer, DateTime, String
from sqlalchemy import Enum as SQLEnum

from enums.user_role import UserRole
from models.base import Base, utcnow


# Credentials live in the external auth service. This service keeps the user
# records that orders hang off, managed by admins and by the users themselves.
class User(Base):
    __tablename__ = 'users'

    id = Column(Integer, primary_key=True)
    email = Column(String, nullable=False, unique=True)
    username = Column(String, nullable=False, unique=True)
    name = Column(String, nullable=True)
    role = Column(SQLEnum(UserRole), nullable=False, default=UserRole.USER)
    created_at = Column(DateTime, nullable=False, default=utcnow)


class UserDTO(BaseModel):
    id: int | None = None
    email: str | None = None
    username: str | None = None
    name: str | None = None
    role: UserRole | None = None
    created_at: datetime | None = None


class UserSummaryDTO(BaseModel):
    """Public part of a user embedded in order responses."""
    id: int
    email: str
    username: str
    name: str | None = None
