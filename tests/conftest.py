import os

os.environ.setdefault("JWT_SECRET", "test-secret")

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from marketplace.config import Settings
from marketplace.database import Base, get_session
from marketplace.models.auth import User
from marketplace.models.offers import CounterOffer
from marketplace.models.product import Product
from marketplace.models.transactions import Transaction
from marketplace.utils.tokens import create_access_token

Settings.JWT_SECRET = Settings.JWT_SECRET or "test-secret"


@pytest.fixture
async def engine(tmp_path):
    # a file, not :memory:, so concurrent sessions get their own connections
    engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'marketplace.db'}",
        connect_args={"timeout": 30},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(engine, expire_on_commit=False, class_=AsyncSession)


@pytest.fixture
async def session(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
def make_user(session_factory):
    counter = {"n": 0}

    async def _make(name: str = "User", email: str | None = None, id: int | None = None) -> User:
        counter["n"] += 1
        user = User(
            id=id,
            name=name,
            email=email or f"user{counter['n']}-{id or 'x'}@test.com",
            password_hash="not-a-real-hash",
        )
        async with session_factory() as s:
            s.add(user)
            await s.commit()
        return user

    return _make


@pytest.fixture
def make_product(session_factory):
    async def _make(seller_id: int, name: str = "Widget", price: int = 10000, id: int | None = None, **extra) -> Product:
        product = Product(id=id, seller_id=seller_id, name=name, price=price, **extra)
        async with session_factory() as s:
            s.add(product)
            await s.commit()
        return product

    return _make


@pytest.fixture
def fetch(session_factory):
    """Fresh reads straight from the store, bypassing the sessions under test."""

    class Fetch:
        async def product(self, product_id: int) -> Product:
            async with session_factory() as s:
                return await s.get(Product, product_id)

        async def offer(self, offer_id: int) -> CounterOffer:
            async with session_factory() as s:
                return await s.get(CounterOffer, offer_id)

        async def pending_count(self, product_id: int, buyer_id: int | None = None) -> int:
            stmt = select(func.count(CounterOffer.id)).where(
                CounterOffer.product_id == product_id, CounterOffer.status == "pending"
            )
            if buyer_id is not None:
                stmt = stmt.where(CounterOffer.buyer_id == buyer_id)
            async with session_factory() as s:
                return await s.scalar(stmt)

        async def transactions(self, product_id: int) -> list[Transaction]:
            async with session_factory() as s:
                result = await s.scalars(select(Transaction).where(Transaction.product_id == product_id))
                return result.all()

    return Fetch()


@pytest.fixture
async def client(session_factory):
    from marketplace.main import app

    async def _override_session():
        async with session_factory() as s:
            yield s

    app.dependency_overrides[get_session] = _override_session
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture
def auth_header():
    def _header(user: User) -> dict:
        return {"Authorization": f"Bearer {create_access_token(user.email, user.id, user.name)}"}

    return _header
