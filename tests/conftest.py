"""
Pytest configuration and fixtures for tests.

This file is automatically loaded by pytest and provides shared fixtures
and configuration for all tests.
"""

import os
import sys
import tempfile
from decimal import Decimal

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

# Add parent directory to Python path so tests can import modules
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

# Test configuration must be in the environment before config is imported
os.environ.setdefault("RUNTIME_ENVIRONMENT", "TEST")
os.environ.setdefault("JWT_SECRET", "test-secret-key-for-unit-tests-only-0123456789")
os.environ.setdefault("DB_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("IMAGE_STORAGE_DIR", tempfile.mkdtemp(prefix="shop-test-images-"))
os.environ.setdefault("LOG_DIR", tempfile.mkdtemp(prefix="shop-test-logs-"))

from db import register_sqlite_pragmas
from enums.user_role import UserRole
from models.base import Base
from models.category import CategoryDTO
from models.product import ProductDTO
from models.user import UserDTO
from repositories.category import CategoryRepository
from repositories.product import ProductRepository
from repositories.user import UserRepository
from storage import reset_storage, set_storage
from storage.fake_adapter import FakeImageStorage
from utils.token_validator import Identity


# ============================================================================
# Database Fixtures
# ============================================================================

@pytest_asyncio.fixture
async def test_engine():
    """Create test database engine (in-memory SQLite, one shared connection)."""
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        echo=False,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    register_sqlite_pragmas(engine)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    # Cleanup
    await engine.dispose()


@pytest_asyncio.fixture
async def test_session_maker(test_engine):
    return async_sessionmaker(test_engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def test_session(test_session_maker):
    """Create test database session."""
    async with test_session_maker() as session:
        yield session


# ============================================================================
# Data Fixtures
# ============================================================================

@pytest_asyncio.fixture
async def admin_user(test_session) -> UserDTO:
    user_id = await UserRepository.create(UserDTO(
        email="admin@example.com", username="admin", name="Admin", role=UserRole.ADMIN
    ), test_session)
    await test_session.commit()
    return await UserRepository.get_by_id(user_id, test_session)


@pytest_asyncio.fixture
async def customer(test_session) -> UserDTO:
    user_id = await UserRepository.create(UserDTO(
        email="jane@example.com", username="jane", name="Jane", role=UserRole.USER
    ), test_session)
    await test_session.commit()
    return await UserRepository.get_by_id(user_id, test_session)


@pytest_asyncio.fixture
async def other_customer(test_session) -> UserDTO:
    user_id = await UserRepository.create(UserDTO(
        email="bob@example.com", username="bob", name="Bob", role=UserRole.USER
    ), test_session)
    await test_session.commit()
    return await UserRepository.get_by_id(user_id, test_session)


@pytest.fixture
def admin_identity(admin_user) -> Identity:
    return Identity(user_id=admin_user.id, role=UserRole.ADMIN)


@pytest.fixture
def customer_identity(customer) -> Identity:
    return Identity(user_id=customer.id, role=UserRole.USER)


@pytest.fixture
def other_identity(other_customer) -> Identity:
    return Identity(user_id=other_customer.id, role=UserRole.USER)


@pytest_asyncio.fixture
async def category(test_session) -> CategoryDTO:
    category_id = await CategoryRepository.create(CategoryDTO(
        name="Electronics", description="Gadgets", slug="electronics"
    ), test_session)
    await test_session.commit()
    return await CategoryRepository.get_by_id(category_id, test_session)


@pytest.fixture
def make_product(test_session, category):
    """Factory creating committed products in the default category."""
    counter = {"n": 0}

    async def _make(name: str | None = None, price: str = "10.00", stock: int = 5,
                    category_id: int | None = None) -> ProductDTO:
        counter["n"] += 1
        name = name or f"Product {counter['n']}"
        product_id = await ProductRepository.create(ProductDTO(
            name=name,
            description=f"{name} description",
            slug=f"product-{counter['n']}",
            price=Decimal(price),
            stock=stock,
            category_id=category_id or category.id,
            image_urls=[],
        ), test_session)
        await test_session.commit()
        return await ProductRepository.get_by_id(product_id, test_session)

    return _make


# ============================================================================
# Storage Fixtures
# ============================================================================

@pytest.fixture
def fake_storage():
    """Install a FakeImageStorage for the duration of a test."""
    storage = FakeImageStorage()
    set_storage(storage)
    yield storage
    reset_storage()
