import logging

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

import config
from db import session_commit, session_rollback
from enums.user_role import UserRole
from exceptions.user import (
    InvalidUserDataException,
    UserAlreadyExistsException,
    UserHasOrdersException,
    UserNotFoundException,
)
from models.pagination import PageMeta, UserPageDTO
from models.user import UserDTO
from repositories.user import UserRepository
from utils.permission_utils import require_admin, require_authenticated
from utils.token_validator import Identity

# Fields a user may change on their own profile; admins may also change the role
PROFILE_FIELDS = ("email", "username", "name")
ADMIN_FIELDS = (*PROFILE_FIELDS, "role")


class UserService:
    """
    User records. Credentials and token issuance live outside this service.

    Admins manage every user; any authenticated caller reads and edits their own profile.
    """

    @staticmethod
    def _normalize(values: dict, user_id: int | None = None) -> dict:
        normalized = dict(values)
        if "email" in normalized:
            email = (normalized["email"] or "").strip().lower()
            if not email:
                raise InvalidUserDataException("Email cannot be empty", user_id)
            normalized["email"] = email
        if "username" in normalized:
            username = (normalized["username"] or "").strip()
            if not username:
                raise InvalidUserDataException("Username cannot be empty", user_id)
            normalized["username"] = username
        if "name" in normalized:
            normalized["name"] = (normalized["name"] or "").strip() or None
        if "role" in normalized and normalized["role"] is None:
            raise InvalidUserDataException("Role cannot be null", user_id)
        return normalized

    @staticmethod
    async def _ensure_unique(values: dict, session: AsyncSession, user_id: int | None = None) -> None:
        if "email" in values:
            holder = await UserRepository.get_by_email(values["email"], session)
            if holder is not None and holder.id != user_id:
                raise UserAlreadyExistsException("email", values["email"])
        if "username" in values:
            holder = await UserRepository.get_by_username(values["username"], session)
            if holder is not None and holder.id != user_id:
                raise UserAlreadyExistsException("username", values["username"])

    @staticmethod
    async def _commit_or_conflict(values: dict, session: AsyncSession) -> None:
        try:
            await session_commit(session)
        except IntegrityError as e:
            await session_rollback(session)
            logging.warning(f"User write hit unique constraint: {e.orig}")
            field = "email" if "email" in str(e.orig) else "username"
            raise UserAlreadyExistsException(field, values.get(field) or "")

    @staticmethod
    async def _apply_changes(user_id: int, changes: dict, allowed: tuple[str, ...],
                             session: AsyncSession) -> UserDTO:
        if await UserRepository.get_by_id(user_id, session) is None:
            raise UserNotFoundException(user_id=user_id)

        values = {field: value for field, value in changes.items() if field in allowed}
        if not values:
            raise InvalidUserDataException(f"At least one field ({', '.join(allowed)}) must be provided", user_id)
        values = UserService._normalize(values, user_id)
        await UserService._ensure_unique(values, session, user_id)

        await UserRepository.update(user_id, values, session)
        await UserService._commit_or_conflict(values, session)
        logging.info(f"👤 User {user_id} updated: {sorted(values)}")
        return await UserRepository.get_by_id(user_id, session)

    @staticmethod
    async def create_user(email: str, username: str, name: str | None, role: UserRole | None,
                          identity: Identity | None, session: AsyncSession) -> UserDTO:
        """
        Create a user record.

        Raises:
            InvalidUserDataException: blank email or username
            UserAlreadyExistsException: email or username taken
        """
        admin = require_admin(identity, "create users")
        values = UserService._normalize({"email": email, "username": username, "name": name})
        await UserService._ensure_unique(values, session)

        user_id = await UserRepository.create(UserDTO(**values, role=role or UserRole.USER), session)
        await UserService._commit_or_conflict(values, session)
        logging.info(f"👤 User {user_id} created by admin {admin.user_id}")
        return await UserRepository.get_by_id(user_id, session)

    @staticmethod
    async def list_users(identity: Identity | None, page: int, limit: int, session: AsyncSession) -> UserPageDTO:
        require_admin(identity, "list users")
        page = max(page, 1)
        limit = min(max(limit, 1), config.PAGE_MAX_LIMIT)
        users, total = await UserRepository.get_all(page, limit, session)
        return UserPageDTO(data=users, meta=PageMeta.build(page, limit, total))

    @staticmethod
    async def get_user(user_id: int, identity: Identity | None, session: AsyncSession) -> UserDTO:
        require_admin(identity, "view users")
        user = await UserRepository.get_by_id(user_id, session)
        if user is None:
            raise UserNotFoundException(user_id=user_id)
        return user

    @staticmethod
    async def update_user(user_id: int, changes: dict, identity: Identity | None,
                          session: AsyncSession) -> UserDTO:
        """Admin partial update. `changes` holds only the fields the client sent."""
        require_admin(identity, "update users")
        return await UserService._apply_changes(user_id, changes, ADMIN_FIELDS, session)

    @staticmethod
    async def delete_user(user_id: int, identity: Identity | None, session: AsyncSession) -> None:
        """
        Delete a user and their cart.

        Users with orders are kept (UserHasOrdersException), order history is never dropped.
        """
        admin = require_admin(identity, "delete users")
        if await UserRepository.get_by_id(user_id, session) is None:
            raise UserNotFoundException(user_id=user_id)

        order_count = await UserRepository.count_orders(user_id, session)
        if order_count > 0:
            raise UserHasOrdersException(user_id, order_count)

        await UserRepository.delete(user_id, session)
        await session_commit(session)
        logging.info(f"👤 User {user_id} deleted by admin {admin.user_id}")

    @staticmethod
    async def get_profile(identity: Identity | None, session: AsyncSession) -> UserDTO:
        identity = require_authenticated(identity)
        user = await UserRepository.get_by_id(identity.user_id, session)
        if user is None:
            raise UserNotFoundException(user_id=identity.user_id)
        return user

    @staticmethod
    async def update_profile(identity: Identity | None, changes: dict, session: AsyncSession) -> UserDTO:
        """The caller edits their own email, username or name. The role is never self-assigned."""
        identity = require_authenticated(identity)
        return await UserService._apply_changes(identity.user_id, changes, PROFILE_FIELDS, session)
