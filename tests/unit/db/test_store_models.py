"""Tests for store models, repositories and engine configuration."""

from decimal import Decimal

import pytest
from sqlalchemy import inspect
from sqlalchemy.pool import NullPool

from storeguard.config.settings import Settings
from storeguard.core.exceptions import InvalidStateTransitionError, NotFoundError
from storeguard.db.config import (
    close_db,
    create_engine_from_settings,
    create_session_factory,
    init_db,
    session_scope,
)
from storeguard.db.models.commerce import Customer, Order, OrderPaymentStatus
from storeguard.db.repositories.customer import CustomerRepository


class TestOrderPaymentStatus:
    """Tests for the payment status transition table."""

    def _order(self, status: OrderPaymentStatus) -> Order:
        return Order(order_number="SG-1", total=Decimal("1.00"), payment_status=status.value)

    def test_pending_to_paid(self) -> None:
        order = self._order(OrderPaymentStatus.PENDING)

        order.transition_payment(OrderPaymentStatus.PAID)

        assert order.payment_status == "paid"

    def test_failed_can_be_retried(self) -> None:
        order = self._order(OrderPaymentStatus.FAILED)

        order.transition_payment(OrderPaymentStatus.PENDING)

        assert order.payment_status == "pending"

    def test_paid_is_final(self) -> None:
        order = self._order(OrderPaymentStatus.PAID)

        with pytest.raises(InvalidStateTransitionError) as exc_info:
            order.transition_payment(OrderPaymentStatus.PENDING)

        assert exc_info.value.current == "paid"
        assert exc_info.value.target == "pending"


class TestCustomerRepository:
    """Tests for subject-scoped reads and writes."""

    async def test_orders_and_carts(self, seed, db_session) -> None:
        customer = await seed.customer()
        other = await seed.customer(username="bob", email="bob@example.com")
        old = await seed.order(customer.id, age_days=20)
        new = await seed.order(customer.id, age_days=2)
        await seed.order(other.id)
        await seed.cart_item(customer.id)
        await seed.cart_item(other.id)
        repo = CustomerRepository(db_session)

        assert [o.id for o in await repo.get_orders(customer.id)] == [new.id, old.id]
        assert await repo.count_orders(customer.id) == 2
        assert (await repo.require(customer.id)).email == "ada@example.com"
        assert len(await repo.get_cart_items(customer.id)) == 1

    async def test_delete_cart_items(self, seed, db_session) -> None:
        customer = await seed.customer()
        await seed.cart_item(customer.id)
        await seed.cart_item(customer.id, session_id="sess-2")
        await seed.cart_item(None)
        repo = CustomerRepository(db_session)

        assert await repo.delete_cart_items(customer.id) == 2
        assert await repo.get_cart_items(customer.id) == []

    async def test_get_missing(self, db_session) -> None:
        assert await CustomerRepository(db_session).get(404) is None

    async def test_require_missing(self, db_session) -> None:
        with pytest.raises(NotFoundError) as exc_info:
            await CustomerRepository(db_session).require(404)

        assert exc_info.value.subject_id == 404

    async def test_create_and_count(self, db_session) -> None:
        repo = CustomerRepository(db_session)

        created = await repo.create(Customer(username="cy", email="cy@example.com"))

        assert created.id is not None
        assert await repo.count() == 1


class TestEngineConfiguration:
    def test_test_environment_uses_null_pool(self) -> None:
        engine = create_engine_from_settings(
            Settings(_env_file=None, ENVIRONMENT="test", DATABASE_URL="sqlite+aiosqlite://")
        )

        assert isinstance(engine.pool, NullPool)

    async def test_init_db_creates_schema(self, tmp_path) -> None:
        url = f"sqlite+aiosqlite:///{tmp_path / 'storeguard.db'}"
        engine = create_engine_from_settings(
            Settings(_env_file=None, ENVIRONMENT="test", DATABASE_URL=url)
        )

        await init_db(engine, create_tables=True)
        async with engine.connect() as conn:
            tables = await conn.run_sync(lambda sync: inspect(sync).get_table_names())

        async with session_scope(create_session_factory(engine)) as session:
            session.add(Customer(username="dee", email="dee@example.com"))
            await session.commit()
        await close_db(engine)

        assert {
            "customers",
            "orders",
            "cart_items",
            "audit_log",
            "audit_log_archive",
            "deletion_tokens",
            "compliance_snapshots",
            "cleanup_runs",
        } <= set(tables)
