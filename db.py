from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any, AsyncIterator
import logging

from sqlalchemy import event, Result, CursorResult
from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncSession, AsyncEngine

import config
from models.base import Base

"""
Imports of these models are needed to correctly create tables in the database.
For more information see https://stackoverflow.com/questions/7478403/sqlalchemy-classes-across-files
"""
from models.user import User
from models.category import Category
from models.product import Product
from models.cart import Cart
from models.cartItem import CartItem
from models.order import Order
from models.orderItem import OrderItem

logger = logging.getLogger(__name__)

# SQL echo is off unless DB_ECHO=true; statement logging floods the rotating log otherwise
sql_echo = config.DB_ECHO

url = make_url(config.DB_URL)

if url.get_backend_name() == "sqlite" and url.database and url.database != ":memory:":
    data_folder = Path(url.database).parent
    if not data_folder.exists():
        data_folder.mkdir(parents=True)


def register_sqlite_pragmas(async_engine: AsyncEngine) -> None:
    """
    Enable foreign key enforcement on every new SQLite connection.

    SQLite ships with FK checks disabled; without them ON DELETE RESTRICT/CASCADE
    on order_items and cart_items is silently ignored.
    """
    if async_engine.dialect.name != "sqlite":
        return

    @event.listens_for(async_engine.sync_engine, "connect")
    def set_sqlite_pragma(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


engine = create_async_engine(config.DB_URL, echo=sql_echo)
register_sqlite_pragmas(engine)
session_maker = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@asynccontextmanager
async def get_db_session() -> AsyncIterator[AsyncSession]:
    async with session_maker() as session:
        try:
            yield session
        finally:
            await session.close()


async def session_execute(stmt, session: AsyncSession) -> Result[Any] | CursorResult[Any]:
    query_result = await session.execute(stmt)
    return query_result


async def session_flush(session: AsyncSession) -> None:
    await session.flush()


async def session_commit(session: AsyncSession) -> None:
    await session.commit()


async def session_rollback(session: AsyncSession) -> None:
    await session.rollback()


async def session_refresh(instance, session: AsyncSession) -> None:
    await session.refresh(instance)


async def create_db_and_tables(bind: AsyncEngine | None = None):
    """Create missing tables. Existing tables and their data are left untouched."""
    bind = bind or engine
    async with bind.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info(f"[DB] Schema ready ({len(Base.metadata.tables)} tables, backend={bind.dialect.name})")
