"""Pytest configuration and fixtures."""

import base64
import os
import uuid

# Settings are read at import time
os.environ.setdefault("ENVIRONMENT", "testing")
os.environ.setdefault("SECRET_KEY", "test-secret-key-for-pumpflix")
os.environ.setdefault("ENCRYPTION_KEY", base64.b64encode(os.urandom(32)).decode("utf-8"))
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("REDIS_URL", "redis://localhost:6379/15")
os.environ.setdefault("CELERY_BROKER_URL", "memory://")
os.environ.setdefault("CELERY_RESULT_BACKEND", "cache+memory://")
os.environ.setdefault("STRIPE_WEBHOOK_SECRET", "whsec_test")

from decimal import Decimal
from typing import Optional
from unittest.mock import AsyncMock, MagicMock

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from pumpflix.ai.generator import get_workflow_generator
from pumpflix.auth.models import User, UserRole
from pumpflix.auth.security import password_manager
from pumpflix.billing.models import Subscription, SubscriptionPlan, SubscriptionStatus
from pumpflix.billing.stripe_client import get_stripe_client
from pumpflix.database import Base, get_postgres_session, get_redis
from pumpflix.db_types import utcnow
from pumpflix.jobs.queue import get_job_queue
from pumpflix.main import app
from pumpflix.realtime.manager import StatusRelay, get_status_relay

API = "/api/v1"


@pytest_asyncio.fixture
async def test_engine():
    """In-memory database shared by every connection of a test."""
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest_asyncio.fixture
async def test_session(test_engine):
    """Create test database session."""
    session_maker = async_sessionmaker(test_engine, class_=AsyncSession, expire_on_commit=False)
    async with session_maker() as session:
        yield session


@pytest.fixture
def job_queue():
    """Job queue that records enqueued jobs instead of sending them."""
    queue = MagicMock()
    queue.enqueue.return_value = "job-1"
    return queue


@pytest.fixture
def stripe_client():
    """Payment provider double."""
    client = MagicMock()
    client.create_customer = AsyncMock(return_value={"id": "cus_test"})
    client.create_subscription = AsyncMock(
        return_value={
            "id": "sub_test",
            "status": "trialing",
            "current_period_end": 1893456000,
            "latest_invoice": {"payment_intent": {"client_secret": "pi_secret_test"}},
        }
    )
    client.cancel_subscription = AsyncMock(return_value={"id": "sub_test", "status": "canceled"})
    client.create_portal_session = AsyncMock(return_value="https://billing.example.com/session")
    return client


@pytest.fixture
def workflow_generator():
    """Workflow generator double."""
    generator = MagicMock()
    generator.generate = AsyncMock(
        return_value={
            "nodes": [{"id": "1", "type": "trigger"}, {"id": "2", "type": "slack"}],
            "edges": [{"source": "1", "target": "2"}],
        }
    )
    return generator


@pytest.fixture
def relay():
    """Fresh status relay per test."""
    return StatusRelay()


@pytest_asyncio.fixture
async def test_app(test_session, job_queue, stripe_client, workflow_generator, relay):
    """Create test FastAPI app with overridden dependencies."""

    async def override_get_postgres_session():
        yield test_session

    app.dependency_overrides[get_postgres_session] = override_get_postgres_session
    app.dependency_overrides[get_redis] = lambda: None
    app.dependency_overrides[get_job_queue] = lambda: job_queue
    app.dependency_overrides[get_stripe_client] = lambda: stripe_client
    app.dependency_overrides[get_workflow_generator] = lambda: workflow_generator
    app.dependency_overrides[get_status_relay] = lambda: relay

    yield app

    app.dependency_overrides.clear()


@pytest_asyncio.fixture
async def async_client(test_app):
    """Async client bound to the app without a network."""
    async with AsyncClient(transport=ASGITransport(app=test_app), base_url="http://test") as ac:
        yield ac


class TestHelpers:
    """Helper functions for tests."""

    @staticmethod
    def auth_headers(token: str):
        """Get authorization headers."""
        return {"Authorization": f"Bearer {token}"}

    @staticmethod
    async def register(
        client: AsyncClient,
        email: str = "owner@example.com",
        password: str = "Secret12345",
        name: str = "Owner",
        organization_name: Optional[str] = "Acme",
    ) -> dict:
        """Register a user and return its tokens, profile and auth headers."""
        response = await client.post(
            f"{API}/auth/register",
            json={
                "email": email,
                "password": password,
                "name": name,
                "organization_name": organization_name,
            },
        )
        assert response.status_code == 201, response.text
        body = response.json()
        body["headers"] = TestHelpers.auth_headers(body["access_token"])
        return body

    @staticmethod
    async def create_workflow(client: AsyncClient, headers: dict, **overrides) -> dict:
        """Create a workflow through the API."""
        data = {
            "name": "Lead sync",
            "description": "Copy new leads to a sheet",
            "config": {"nodes": [{"id": "1", "type": "trigger"}], "edges": []},
            "tags": ["sales"],
        }
        data.update(overrides)
        response = await client.post(f"{API}/workflows", json=data, headers=headers)
        assert response.status_code == 201, response.text
        return response.json()

    @staticmethod
    async def add_member(
        client: AsyncClient,
        session: AsyncSession,
        owner: dict,
        email: str = "member@example.com",
        password: str = "Member12345",
    ) -> dict:
        """Add a non-admin user to the owner's organization and log them in."""
        session.add(
            User(
                email=email,
                password_hash=password_manager.hash_password(password),
                name="Member",
                role=UserRole.USER,
                org_id=owner["user"]["org_id"],
                tenant_id=owner["user"]["tenant_id"],
                uuid=uuid.uuid4(),
            )
        )
        await session.commit()

        response = await client.post(
            f"{API}/auth/login", json={"email": email, "password": password}
        )
        assert response.status_code == 200, response.text
        body = response.json()
        body["headers"] = TestHelpers.auth_headers(body["access_token"])
        return body

    @staticmethod
    async def create_plan(session: AsyncSession, **overrides) -> SubscriptionPlan:
        """Create a subscription plan in the database."""
        data = {
            "name": "Pro",
            "price": Decimal("99.00"),
            "execution_limit": 100,
            "features": ["priority support"],
            "stripe_price_id": "price_pro",
        }
        data.update(overrides)
        plan = SubscriptionPlan(**data)
        session.add(plan)
        await session.commit()
        return plan

    @staticmethod
    async def subscribe(
        session: AsyncSession,
        user: dict,
        plan: SubscriptionPlan,
        status: SubscriptionStatus = SubscriptionStatus.ACTIVE,
        current_executions: int = 0,
    ) -> Subscription:
        """Give the user's organization a subscription."""
        subscription = Subscription(
            org_id=user["user"]["org_id"],
            user_id=user["user"]["id"],
            plan_id=plan.id,
            stripe_customer_id="cus_test",
            status=status,
            started_at=utcnow(),
            current_executions=current_executions,
        )
        session.add(subscription)
        await session.commit()
        return subscription


@pytest.fixture
def helpers():
    """Provide test helpers."""
    return TestHelpers


@pytest_asyncio.fixture
async def owner(async_client, helpers):
    """Registered organization admin."""
    return await helpers.register(async_client)


@pytest_asyncio.fixture
async def subscribed_owner(async_client, test_session, helpers, owner):
    """Organization admin with an active subscription."""
    plan = await helpers.create_plan(test_session)
    owner["plan"] = plan
    owner["subscription"] = await helpers.subscribe(test_session, owner, plan)
    return owner
