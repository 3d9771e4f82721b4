"""
Pytest configuration and shared test fixtures.

Every test gets its own in-memory SQLite database holding the sample
catalog and a staff allow-list (one ADMIN, one STAFF, one inactive member).
HTTP tests drive the FastAPI application through httpx's ASGI transport on
the test's event loop, with the request-scoped session bound to that
database.
"""

import os

os.environ["APP_ENVIRONMENT"] = "test"
os.environ["APP_DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["APP_ADMIN_EMAILS"] = "admin@example.com"
os.environ["APP_RATE_LIMIT_DEVICES"] = "1000/minute"
os.environ["APP_RATE_LIMIT_QUOTES"] = "1000/minute"
os.environ["APP_RATE_LIMIT_TRADE_IN"] = "1000/minute"
os.environ["APP_RATE_LIMIT_STAFF"] = "1000/minute"

from typing import Any, AsyncGenerator, Callable, Optional

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy import select
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import StaticPool

from src.core.rate_limit import limiter
from src.core.security import create_access_token
from src.database.base import Base
from src.database.connection import get_db
from src.database.models import (
    Brand,
    Category,
    DeviceCondition,
    DeviceModel,
    StaffMember,
    StaffRole,
    StorageOption,
)
from src.database.seed import seed_catalog, seed_staff
from src.main import app

ADMIN_EMAIL = "admin@example.com"
STAFF_EMAIL = "staff@example.com"
INACTIVE_STAFF_EMAIL = "former@example.com"
CUSTOMER_EMAIL = "jane.doe@example.com"


@pytest_asyncio.fixture
async def engine() -> AsyncGenerator[AsyncEngine, None]:
    """In-memory database shared by every session of one test."""
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
def session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


@pytest_asyncio.fixture
async def catalog(session_factory: async_sessionmaker[AsyncSession]) -> dict[str, Any]:
    """
    Seed the sample catalog and staff allow-list.

    Returns plain identifiers only, so tests never touch ORM instances
    owned by another session:

        catalog["models"]["iPhone 15 Pro"]          -> model id
        catalog["storage"]["iPhone 15 Pro"]["256GB"] -> storage option id
        catalog["conditions"]["Excellent"]          -> condition id
    """
    async with session_factory() as session:
        await seed_catalog(session)
        await seed_staff(session, [ADMIN_EMAIL])
        await seed_staff(session, [STAFF_EMAIL], role=StaffRole.STAFF)
        session.add(
            StaffMember(
                email=INACTIVE_STAFF_EMAIL,
                full_name="Former",
                role=StaffRole.ADMIN,
                is_active=False,
            )
        )
        await session.commit()

        models = {
            name: model_id
            for model_id, name in (await session.execute(select(DeviceModel.id, DeviceModel.name))).all()
        }
        storage: dict[str, dict[str, Any]] = {}
        rows = await session.execute(
            select(DeviceModel.name, StorageOption.storage, StorageOption.id).join(
                StorageOption, StorageOption.device_model_id == DeviceModel.id
            )
        )
        for model_name, label, option_id in rows.all():
            storage.setdefault(model_name, {})[label] = option_id

        conditions = {
            name: condition_id
            for condition_id, name in (
                await session.execute(select(DeviceCondition.id, DeviceCondition.name))
            ).all()
        }
        categories = {
            name: category_id
            for category_id, name in (await session.execute(select(Category.id, Category.name))).all()
        }
        brands = {
            name: brand_id
            for brand_id, name in (await session.execute(select(Brand.id, Brand.name))).all()
        }

    return {
        "models": models,
        "storage": storage,
        "conditions": conditions,
        "categories": categories,
        "brands": brands,
    }


@pytest_asyncio.fixture
async def db_session(
    session_factory: async_sessionmaker[AsyncSession], catalog: dict[str, Any]
) -> AsyncGenerator[AsyncSession, None]:
    """Session for service and repository tests, on a seeded database."""
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture
async def client(
    session_factory: async_sessionmaker[AsyncSession], catalog: dict[str, Any]
) -> AsyncGenerator[AsyncClient, None]:
    """
    Asynchronous client for the FastAPI application.

    The database dependency commits on success and rolls back on error,
    exactly like the production session dependency.

    Example:
        async def test_health(client):
            response = await client.get("/health")
            assert response.status_code == 200
    """

    async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
        session = session_factory()
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()

    app.dependency_overrides[get_db] = override_get_db
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as async_client:
        yield async_client
    app.dependency_overrides.clear()


@pytest.fixture(autouse=True)
def reset_rate_limits():
    """Start every test with empty rate limit counters."""
    limiter.reset()
    yield
    limiter.reset()


@pytest.fixture
def auth_headers() -> Callable[[str], dict[str, str]]:
    """
    Build bearer headers for an identity.

    Example:
        response = await client.get("/api/v1/staff/me", headers=auth_headers(STAFF_EMAIL))
    """

    def _headers(email: str, token: Optional[str] = None) -> dict[str, str]:
        token = token or create_access_token(subject=f"idp|{email}", email=email)
        return {"Authorization": f"Bearer {token}"}

    return _headers


@pytest.fixture
def submission(catalog: dict[str, Any]) -> Callable[..., dict[str, Any]]:
    """Factory for trade-in submission bodies (iPhone 15 Pro, 256GB, Excellent)."""

    def _submission(**overrides: Any) -> dict[str, Any]:
        body = {
            "first_name": "Jane",
            "last_name": "Doe",
            "email": CUSTOMER_EMAIL,
            "phone": "+1 416 555 0100",
            "address_line1": "1 King St W",
            "city": "Toronto",
            "province": "ON",
            "postal_code": "M5H 1A1",
            "device_model_id": str(catalog["models"]["iPhone 15 Pro"]),
            "storage_option_id": str(catalog["storage"]["iPhone 15 Pro"]["256GB"]),
            "condition_id": str(catalog["conditions"]["Excellent"]),
            "quoted_amount": "1350.00",
            "payment_method": "E_TRANSFER",
        }
        body.update(overrides)
        return body

    return _submission
