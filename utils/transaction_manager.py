import logging
from contextlib import asynccontextmanager
import time
from typing import AsyncGenerator

from sqlalchemy.ext.asyncio import AsyncSession

from db import get_db_session, session_commit, session_rollback

logger = logging.getLogger(__name__)


class TransactionManager:
    """
    Utility class for running a unit of work as one database transaction.

    All writes issued inside the block are committed together or rolled back
    together. Stock safety relies on the guarded UPDATEs issued inside the block
    plus the CHECK constraints, there is no application-level locking.
    """

    # Transactions slower than this are logged as a warning
    SLOW_TRANSACTION_SECONDS = 5

    @staticmethod
    @asynccontextmanager
    async def atomic(session: AsyncSession, label: str = "transaction") -> AsyncGenerator[AsyncSession, None]:
        """
        Context manager committing on success and rolling back on any exception.

        Usage:
            async with TransactionManager.atomic(session, "checkout"):
                await OrderRepository.create(order_dto, session)
                await ProductRepository.decrement_stock(product_id, quantity, session)
        """
        transaction_start = time.monotonic()
        logger.debug(f"[TX] {label} started")
        try:
            yield session
            await session_commit(session)
        except Exception as e:
            try:
                await session_rollback(session)
                logger.info(f"[TX] {label} rolled back due to error: {type(e).__name__}: {e}")
            except Exception as rollback_error:
                logger.critical(f"[TX] {label} failed to rollback: {rollback_error}")
            raise

        duration = time.monotonic() - transaction_start
        if duration > TransactionManager.SLOW_TRANSACTION_SECONDS:
            logger.warning(f"[TX] {label} slow commit: {duration:.2f}s")
        else:
            logger.debug(f"[TX] {label} committed in {duration:.2f}s")

    @staticmethod
    @asynccontextmanager
    async def atomic_transaction(label: str = "transaction") -> AsyncGenerator[AsyncSession, None]:
        """Open a fresh session and run the block atomically (scripts and tools)."""
        async with get_db_session() as session:
            async with TransactionManager.atomic(session, label):
                yield session
