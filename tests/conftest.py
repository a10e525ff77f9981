"""Pytest fixtures for Storeguard tests."""

from collections.abc import AsyncGenerator
from datetime import UTC, datetime, timedelta
from decimal import Decimal
from typing import Any

import pytest
import pytest_asyncio
import structlog
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from storeguard.config.settings import Settings
from storeguard.db.models.audit import AuditEntry
from storeguard.db.models.base import Base
from storeguard.db.models.commerce import CartItem, Customer, Order

FIXED_NOW = datetime(2026, 6, 15, 12, 0, tzinfo=UTC)


# =============================================================================
# Structlog Configuration Fixture
# =============================================================================


@pytest.fixture(scope="function", autouse=True)
def reset_structlog_after_test():
    """Reset structlog configuration after each test.

    This ensures tests that modify structlog global state
    don't affect other tests.
    """
    yield
    structlog.reset_defaults()
    structlog.configure(
        processors=[
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.dev.ConsoleRenderer(),
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=False,
    )


@pytest.fixture
def now() -> datetime:
    """Fixed reference time for retention arithmetic."""
    return FIXED_NOW


@pytest.fixture
def test_settings() -> Settings:
    """Settings for tests: no notifications, short excerpt."""
    return Settings(
        ENVIRONMENT="test",
        DATABASE_URL="sqlite+aiosqlite://",
        log_level="DEBUG",
        site_name="Test Store",
        admin_email="admin@test.example",
        deletion_confirm_url="https://shop.test/privacy/confirm",
        cleanup_notifications_enabled=False,
    )


# =============================================================================
# Database fixtures
# =============================================================================


@pytest_asyncio.fixture
async def test_engine():
    """Create a fresh in-memory database for each test."""
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        echo=False,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest_asyncio.fixture
async def db_session(test_engine) -> AsyncGenerator[AsyncSession, None]:
    """Create a test database session."""
    async_session = async_sessionmaker(
        test_engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )

    async with async_session() as session:
        yield session
        await session.rollback()


# =============================================================================
# Collaborator fakes
# =============================================================================


class FakeCRM:
    """In-memory CRM; set ``fail`` to make every call raise."""

    def __init__(self, contacts: dict[str, dict[str, Any]] | None = None):
        self.contacts = contacts or {}
        self.subscriptions: dict[str, list[dict[str, Any]]] = {}
        self.deleted: list[str] = []
        self.fail: Exception | None = None

    async def get_contact(self, contact_id: str) -> dict[str, Any]:
        if self.fail:
            raise self.fail
        return self.contacts[contact_id]

    async def delete_contact(self, contact_id: str) -> None:
        if self.fail:
            raise self.fail
        self.deleted.append(contact_id)
        self.contacts.pop(contact_id, None)

    async def list_subscriptions(self, contact_id: str) -> list[dict[str, Any]]:
        if self.fail:
            raise self.fail
        return self.subscriptions.get(contact_id, [])


class FakeNotifier:
    """Records sent messages; set ``fail`` to make delivery raise."""

    def __init__(self):
        self.sent: list[dict[str, Any]] = []
        self.fail: Exception | None = None

    async def send(self, recipient: str, subject: str, body: str, *, html: bool = False) -> None:
        if self.fail:
            raise self.fail
        self.sent.append({"recipient": recipient, "subject": subject, "body": body, "html": html})


@pytest.fixture
def crm() -> FakeCRM:
    return FakeCRM({"crm-77": {"properties": {"email": "ada@example.com", "lifecycle": "lead"}}})


@pytest.fixture
def notifier() -> FakeNotifier:
    return FakeNotifier()


# =============================================================================
# Seeding
# =============================================================================


class StoreSeeder:
    """Inserts store records with explicit ``created_at`` values."""

    def __init__(self, session: AsyncSession, now: datetime):
        self.session = session
        self.now = now
        self._orders = 0

    def ago(self, days: float) -> datetime:
        return self.now - timedelta(days=days)

    async def customer(self, **overrides: Any) -> Customer:
        values: dict[str, Any] = {
            "username": "ada",
            "email": "ada@example.com",
            "first_name": "Ada",
            "last_name": "Lovelace",
            "display_name": "Ada L.",
            "billing_address": "12 Analytical Row",
            "billing_city": "London",
            "billing_zip": "N1 9GU",
            "billing_country": "GB",
            "phone": "+44 20 7946 0000",
            "created_at": self.ago(400),
        }
        values.update(overrides)
        customer = Customer(**values)
        self.session.add(customer)
        await self.session.commit()
        return customer

    async def order(self, customer_id: int | None, age_days: float = 10, **overrides: Any) -> Order:
        self._orders += 1
        values: dict[str, Any] = {
            "customer_id": customer_id,
            "order_number": f"SG-{self._orders:05d}",
            "total": Decimal("49.90"),
            "items": [{"sku": "BOOK-1", "qty": 1}],
            "billing_details": {"name": "Ada Lovelace"},
            "created_at": self.ago(age_days),
        }
        values.update(overrides)
        order = Order(**values)
        self.session.add(order)
        await self.session.commit()
        return order

    async def cart_item(
        self,
        customer_id: int | None,
        age_days: float = 1,
        session_id: str = "sess-1",
        **overrides: Any,
    ) -> CartItem:
        values: dict[str, Any] = {
            "session_id": session_id,
            "customer_id": customer_id,
            "product_id": 501,
            "quantity": 2,
            "price": Decimal("12.50"),
            "created_at": self.ago(age_days),
        }
        values.update(overrides)
        item = CartItem(**values)
        self.session.add(item)
        await self.session.commit()
        return item

    async def audit_entry(
        self,
        actor_id: int,
        age_days: float = 1,
        action: str = "data_export",
        source_address: str = "198.51.100.7",
    ) -> AuditEntry:
        entry = AuditEntry(
            actor_id=actor_id,
            action=action,
            object_type="gdpr",
            detail={"kind": "data_export", "format": "structured", "found": True},
            source_address=source_address,
            created_at=self.ago(age_days),
        )
        self.session.add(entry)
        await self.session.commit()
        return entry


@pytest.fixture
def seed(db_session: AsyncSession, now: datetime) -> StoreSeeder:
    return StoreSeeder(db_session, now)
