
import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from unittest.mock import AsyncMock, MagicMock
from modcatalog.main import app
from modcatalog.core.principals import AdminPrincipal, UserPrincipal
from modcatalog.db import get_db_pool, state
from modcatalog.dependencies import require_admin, require_user
from modcatalog.limiter import limiter


def async_context(value=None):
    """MagicMock usable as ``async with``; exceptions inside are not swallowed."""
    ctx = MagicMock()
    ctx.__aenter__ = AsyncMock(return_value=value)
    ctx.__aexit__ = AsyncMock(return_value=False)
    return ctx


@pytest.fixture
def mock_conn():
    conn = AsyncMock()
    conn.transaction = MagicMock(return_value=async_context())
    return conn


@pytest.fixture
def mock_db_pool(mock_conn):
    pool = AsyncMock()
    # Mock connection context manager
    pool.acquire = MagicMock(return_value=async_context(mock_conn))
    return pool


@pytest.fixture
def admin():
    return AdminPrincipal(id=1, username="admin")


@pytest.fixture
def user():
    return UserPrincipal(id=7, username="steve", email="steve@example.com")


@pytest_asyncio.fixture
async def client(mock_db_pool):
    # Override dependencies
    app.dependency_overrides[get_db_pool] = lambda: mock_db_pool

    transport = ASGITransport(app=app, raise_app_exceptions=False)
    limiter.enabled = False
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
    limiter.enabled = True

    app.dependency_overrides = {}
    state.pg_pool = None


@pytest.fixture
def as_admin(admin):
    app.dependency_overrides[require_admin] = lambda: admin
    return admin


@pytest.fixture
def as_user(user):
    app.dependency_overrides[require_user] = lambda: user
    return user
