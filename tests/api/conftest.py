import jwt
import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

import config
from app import app
from web.dependencies import get_session


def bearer(user_id: int, role: str = "USER") -> dict:
    token = jwt.encode({"sub": str(user_id), "role": role}, config.JWT_SECRET, algorithm=config.JWT_ALGORITHM)
    return {"Authorization": f"Bearer {token}"}


@pytest_asyncio.fixture
async def client(test_session_maker, fake_storage):
    """HTTP client against the app, wired to the in-memory test database."""
    async def override_get_session():
        async with test_session_maker() as session:
            yield session

    app.dependency_overrides[get_session] = override_get_session
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as http_client:
        yield http_client
    app.dependency_overrides.clear()


@pytest.fixture
def admin_headers(admin_user) -> dict:
    return bearer(admin_user.id, "ADMIN")


@pytest.fixture
def customer_headers(customer) -> dict:
    return bearer(customer.id)


@pytest.fixture
def auth():
    """Factory for Authorization headers: auth(user_id, role="USER")."""
    return bearer
