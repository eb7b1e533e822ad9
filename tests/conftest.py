"""Pytest configuration: a fresh SQLite database file per test."""

import os

# Set test settings BEFORE any imports from treasury
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///./test_treasury.db")
os.environ.setdefault("LOCALE", "id_ID")
os.environ.setdefault("DEFAULT_DUES_AMOUNT", "50000")

import pytest  # noqa: E402
from datetime import datetime, timezone  # noqa: E402

from httpx import ASGITransport, AsyncClient  # noqa: E402

from treasury.api.app import app  # noqa: E402
from treasury.models import Dues, Member, Payment  # noqa: E402
from treasury.models.dues import DuesStatus  # noqa: E402
from treasury.models.payment import PaymentMethod  # noqa: E402
from treasury.services.db import (  # noqa: E402
    create_engine_for_url,
    create_session_factory,
    get_async_session,
    get_session_factory,
    init_models,
)

ORG_ID = "org-1"


@pytest.fixture
async def engine(tmp_path):
    """Async engine over a per-test database file (shared by many sessions)."""
    engine = create_engine_for_url(f"sqlite+aiosqlite:///{tmp_path}/test.db")
    await init_models(engine)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return create_session_factory(engine)


@pytest.fixture
async def session(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
async def member(session):
    """An active member of ORG_ID."""
    member = Member(organization_id=ORG_ID, full_name="Ayu Lestari", email="ayu@example.org")
    session.add(member)
    await session.commit()
    return member


@pytest.fixture
async def other_member(session):
    """A second active member of ORG_ID."""
    member = Member(organization_id=ORG_ID, full_name="Budi Santoso")
    session.add(member)
    await session.commit()
    return member


@pytest.fixture
def make_dues(session):
    """Factory inserting a dues row with payments of the given amounts."""

    async def make(member, month, year=2024, amount=50000, paid=()):
        dues = Dues(
            organization_id=member.organization_id,
            member_id=member.id,
            month=month,
            year=year,
            amount=amount,
            status=DuesStatus.PENDING,
            payments=[
                Payment(
                    member_id=member.id,
                    amount=p,
                    method=PaymentMethod.CASH,
                    paid_at=datetime(year, month, 15, tzinfo=timezone.utc),
                )
                for p in paid
            ],
        )
        session.add(dues)
        await session.commit()
        return dues

    return make


@pytest.fixture
def headers():
    """Factory for forwarded principal headers."""

    def make(role="TREASURER", user_id="user-1", organization_id=ORG_ID):
        return {"X-User-Id": user_id, "X-Organization-Id": organization_id, "X-Role": role}

    return make


@pytest.fixture
async def client(session_factory):
    """HTTP client for the app bound to the per-test database."""

    async def override_session():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_async_session] = override_session
    app.dependency_overrides[get_session_factory] = lambda: session_factory
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
    app.dependency_overrides.clear()
