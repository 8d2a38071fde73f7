"""Shared fixtures: a throwaway SQLite database per test plus HTTP clients
wired to it through FastAPI dependency overrides."""

import os

# Must be set before any service module is imported
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("JWT_SECRET_KEY", "test-secret-key")
os.environ.setdefault("INTERNAL_API_KEY", "test-internal-key")
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["TRACING_ENABLED"] = "false"
os.environ["METRICS_ENABLED"] = "false"

from decimal import Decimal

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine

from shared.config.database import create_tables, get_db
from services.order_service.main import order_app
from services.order_service.models import Order, OrderItem  # noqa: F401
from services.payment_service.models import Transaction  # noqa: F401
from services.product_service.main import product_app
from services.product_service.models import Product, ProductStatus


@pytest.fixture
async def engine(tmp_path):
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'marketplace.db'}")
    await create_tables(engine)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(engine, expire_on_commit=False)


@pytest.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
def make_product(session_factory):
    """Insert a product in its own committed transaction."""

    async def _make(title="Desk Lamp", price="12.50", stock=5, status=None, seller_id=99):
        if status is None:
            status = ProductStatus.SOLD.value if stock == 0 else ProductStatus.ACTIVE.value
        async with session_factory() as session:
            product = Product(
                title=title,
                price=Decimal(price),
                stock=stock,
                status=status,
                seller_id=seller_id,
            )
            session.add(product)
            await session.commit()
            return product

    return _make


@pytest.fixture
def read_product(session_factory):
    """Fetch the committed state of a product from a fresh session."""

    async def _read(product_id):
        async with session_factory() as session:
            return await session.get(Product, product_id)

    return _read


def _override_db(session_factory):
    async def override_get_db():
        async with session_factory() as session:
            yield session

    return override_get_db


@pytest.fixture
async def order_client(session_factory):
    order_app.dependency_overrides[get_db] = _override_db(session_factory)
    async with AsyncClient(transport=ASGITransport(app=order_app), base_url="http://test") as client:
        yield client
    order_app.dependency_overrides.clear()


@pytest.fixture
async def product_client(session_factory):
    product_app.dependency_overrides[get_db] = _override_db(session_factory)
    async with AsyncClient(transport=ASGITransport(app=product_app), base_url="http://test") as client:
        yield client
    product_app.dependency_overrides.clear()
