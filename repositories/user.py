from sqlalchemy import select, update, delete, func
from sqlalchemy.ext.asyncio import AsyncSession

from db import session_execute, session_flush
from models.order import Order
from models.user import UserDTO, User


class UserRepository:
    @staticmethod
    async def get_by_id(user_id: int, session: AsyncSession) -> UserDTO | None:
        stmt = select(User).where(User.id == user_id).execution_options(populate_existing=True)
        user = await session_execute(stmt, session)
        user = user.scalar()
        if user is not None:
            return UserDTO.model_validate(user, from_attributes=True)
        else:
            return user

    @staticmethod
    async def get_by_email(email: str, session: AsyncSession) -> UserDTO | None:
        stmt = select(User).where(User.email == email)
        user = await session_execute(stmt, session)
        user = user.scalar()
        if user is not None:
            return UserDTO.model_validate(user, from_attributes=True)
        else:
            return user

    @staticmethod
    async def get_by_username(username: str, session: AsyncSession) -> UserDTO | None:
        stmt = select(User).where(User.username == username)
        user = await session_execute(stmt, session)
        user = user.scalar()
        if user is not None:
            return UserDTO.model_validate(user, from_attributes=True)
        else:
            return user

    @staticmethod
    async def get_all(page: int, limit: int, session: AsyncSession) -> tuple[list[UserDTO], int]:
        users_stmt = (select(User)
                      .order_by(User.id)
                      .limit(limit)
                      .offset(limit * (page - 1)))
        users_count_stmt = select(func.count(User.id))
        users = await session_execute(users_stmt, session)
        users_count = await session_execute(users_count_stmt, session)
        return ([UserDTO.model_validate(user, from_attributes=True) for user in users.scalars().all()],
                users_count.scalar_one())

    @staticmethod
    async def create(user_dto: UserDTO, session: AsyncSession) -> int:
        user = User(**user_dto.model_dump(exclude_none=True))
        session.add(user)
        await session_flush(session)
        return user.id

    @staticmethod
    async def update(user_id: int, values: dict, session: AsyncSession) -> None:
        stmt = (update(User)
                .where(User.id == user_id)
                .values(**values)
                .execution_options(synchronize_session=False))
        await session_execute(stmt, session)

    @staticmethod
    async def delete(user_id: int, session: AsyncSession) -> None:
        """Delete a user. The user's cart and its lines go with it (ON DELETE CASCADE)."""
        await session_execute(delete(User).where(User.id == user_id), session)

    @staticmethod
    async def count_orders(user_id: int, session: AsyncSession) -> int:
        stmt = select(func.count(Order.id)).where(Order.user_id == user_id)
        result = await session_execute(stmt, session)
        return result.scalar_one()
