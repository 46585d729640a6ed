# Shared pytest configuration and fixtures for all test types
from datetime import datetime, timezone
from typing import Any
from unittest.mock import AsyncMock

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker

from api.main import app
from common.db.base import Base
from common.providers.locking.memory_lock import MemoryLock
from packages.billing.models.database.billing_event import BillingEventEntity  # noqa
from packages.billing.models.domain.enums import SubscriptionStatus
from packages.billing.providers.payment.interface import PaymentProviderInterface
from packages.billing.routes.billing import get_billing_sync_service
from packages.billing.services.billing_sync_service import BillingSyncService
from packages.content.models.database.knowledge_item import KnowledgeItemEntity
from packages.content.providers.sql_content_store import SqlContentStore
from packages.metering.engine import MeteringEngine, get_metering_engine
from packages.metering.routes.metering import get_tenant_repository
from packages.notifications.providers.interface import NotificationDispatcherInterface
from packages.notifications.templates import TemplateKind, render
from packages.tenants.models.database.tenant import TenantEntity
from packages.tenants.repositories.tenant_repository import TenantRepository

# Test database URL
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

PERIOD_START = datetime(2026, 10, 1, tzinfo=timezone.utc)
PERIOD_END = datetime(2026, 11, 1, tzinfo=timezone.utc)


class RecordingDispatcher(NotificationDispatcherInterface):
    """Keeps rendered messages in memory instead of sending them."""

    def __init__(self):
        self.sent: list[dict[str, Any]] = []
        self.fail = False

    async def send(
        self, recipient_ref: str, template_kind: TemplateKind, data: dict[str, Any]
    ) -> bool:
        if self.fail:
            return False
        subject, body = render(template_kind, data)
        self.sent.append(
            {
                "recipient": recipient_ref,
                "template_kind": TemplateKind(template_kind),
                "data": data,
                "subject": subject,
                "body": body,
            }
        )
        return True


@pytest_asyncio.fixture(scope="function")
async def test_engine():
    """Create test database engine and initialize schema."""
    engine = create_async_engine(TEST_DATABASE_URL, echo=False)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture(scope="function")
async def test_connection(test_engine):
    """Create test connection with outer transaction for rollback isolation."""
    async with test_engine.connect() as connection:
        trans = await connection.begin()
        yield connection
        await trans.rollback()


@pytest_asyncio.fixture(scope="function")
async def test_session_factory(test_connection):
    """Create session factory bound to test connection.

    Using join_transaction_mode="create_savepoint" so nested transaction()
    calls create savepoints instead of real nested transactions.
    """
    return async_sessionmaker(
        bind=test_connection,
        class_=AsyncSession,
        expire_on_commit=False,
        join_transaction_mode="create_savepoint",
    )


@pytest_asyncio.fixture(scope="function")
async def test_db(test_session_factory):
    """Create a test database session."""
    async with test_session_factory() as session:
        yield session


@pytest_asyncio.fixture(scope="function", autouse=True)
async def patch_lazy_sessions(test_session_factory, monkeypatch):
    """
    Patch session factories to use test database.

    This allows real transaction() and get_session() to run with proper
    commit/rollback/ContextVar semantics while using the test database.
    """
    monkeypatch.setattr("common.db.scoped.AsyncSessionLocal", test_session_factory)
    monkeypatch.setattr(
        "common.db.scoped.AsyncSessionLocalReadonly", test_session_factory
    )


@pytest.fixture(autouse=True)
def memory_lock(monkeypatch):
    """Process-local lock in place of Redis."""
    lock = MemoryLock()
    monkeypatch.setattr("common.providers.locking.factory._lock_provider", lock)
    return lock


@pytest.fixture
def recording_dispatcher():
    return RecordingDispatcher()


@pytest.fixture
def mock_payment_provider():
    """Payment provider double; tests set return values per call."""
    return AsyncMock(spec=PaymentProviderInterface)


@pytest.fixture
def tenant_repo():
    return TenantRepository()


@pytest.fixture
def metering_engine(mock_payment_provider, recording_dispatcher, memory_lock):
    return MeteringEngine(
        content_store=SqlContentStore(),
        tenant_repo=TenantRepository(),
        payment=mock_payment_provider,
        dispatcher=recording_dispatcher,
        lock_provider=memory_lock,
        max_concurrency=1,
    )


@pytest_asyncio.fixture(scope="function")
async def client(metering_engine, mock_payment_provider):
    """Create a test client."""
    app.dependency_overrides[get_metering_engine] = lambda: metering_engine
    app.dependency_overrides[get_billing_sync_service] = lambda: BillingSyncService(
        payment=mock_payment_provider
    )
    app.dependency_overrides[get_tenant_repository] = TenantRepository

    try:
        async with AsyncClient(
            transport=ASGITransport(app=app), base_url="http://test"
        ) as ac:
            yield ac
    finally:
        app.dependency_overrides.clear()


@pytest_asyncio.fixture(scope="function")
async def sample_tenant(test_db: AsyncSession):
    """A starter tenant with no subscription."""
    tenant = TenantEntity(
        name="Acme Research",
        billing_email="billing@acme.test",
        tier="starter",
        subscription_status="inactive",
    )
    test_db.add(tenant)
    await test_db.commit()
    await test_db.refresh(tenant)
    return tenant


@pytest_asyncio.fixture(scope="function")
async def growth_tenant(test_db: AsyncSession):
    """A growth tenant with a live Stripe subscription."""
    tenant = TenantEntity(
        name="Globex",
        billing_email="finance@globex.test",
        tier="growth",
        stripe_customer_id="cus_globex",
        stripe_subscription_id="sub_globex",
        subscription_status=SubscriptionStatus.ACTIVE.value,
        current_period_start=PERIOD_START,
        current_period_end=PERIOD_END,
    )
    test_db.add(tenant)
    await test_db.commit()
    await test_db.refresh(tenant)
    return tenant


@pytest_asyncio.fixture(scope="function")
async def sample_knowledge_items(test_db: AsyncSession, sample_tenant):
    """Three stored items for the sample tenant, one with non-ASCII text."""
    items = [
        KnowledgeItemEntity(
            tenant_id=sample_tenant.id,
            title="Kickoff",
            content="hello",
            transcription_text="hello world",
            analysis_summary="greeting",
            analysis_key_points=["a", "b"],
            duration_seconds=90.0,
            created_at=datetime(2026, 10, 5, tzinfo=timezone.utc),
        ),
        KnowledgeItemEntity(
            tenant_id=sample_tenant.id,
            title="Café",
            content="café",
            transcription_text=None,
            analysis_summary=None,
            analysis_key_points=None,
            duration_seconds=None,
            created_at=datetime(2026, 10, 6, tzinfo=timezone.utc),
        ),
        KnowledgeItemEntity(
            tenant_id=sample_tenant.id,
            title="Old call",
            content="",
            transcription_text="日本",
            analysis_summary="",
            analysis_key_points=[],
            duration_seconds=600.0,
            created_at=datetime(2026, 9, 20, tzinfo=timezone.utc),
        ),
    ]
    test_db.add_all(items)
    await test_db.commit()
    return items
