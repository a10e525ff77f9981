"""Tests for the retention policy engine."""

from datetime import UTC, timedelta, timezone

import pytest

from storeguard.compliance.retention.engine import RetentionPolicyEngine
from storeguard.compliance.retention.policies import DEFAULT_RULES
from storeguard.compliance.types import EntityClass
from storeguard.core.exceptions import ValidationError


@pytest.fixture
def engine(db_session):
    return RetentionPolicyEngine(db_session)


class TestCutoffs:
    """Tests for cutoff arithmetic."""

    def test_active_cutoff(self, engine, now) -> None:
        assert engine.active_cutoff(EntityClass.CART_SESSIONS, now) == now - timedelta(days=30)
        assert engine.active_cutoff(EntityClass.AUDIT_LOGS, now) == now - timedelta(days=90)

    def test_archive_cutoff_uses_horizon(self, engine, now) -> None:
        """Archived rows expire once active plus archive window has elapsed."""
        assert engine.archive_cutoff(EntityClass.AUDIT_LOGS, now) == now - timedelta(days=455)

    def test_cutoffs_are_normalized_to_utc(self, engine, now) -> None:
        local_now = now.astimezone(timezone(timedelta(hours=5)))

        cutoff = engine.active_cutoff(EntityClass.CART_SESSIONS, local_now)

        assert cutoff.utcoffset() == timedelta(0)
        assert cutoff == (now - timedelta(days=30)).astimezone(UTC)
        assert engine.archive_cutoff(EntityClass.AUDIT_LOGS, local_now).tzinfo is UTC

    def test_archive_cutoff_requires_archive_phase(self, engine, now) -> None:
        with pytest.raises(ValidationError) as exc_info:
            engine.archive_cutoff(EntityClass.CART_SESSIONS, now)

        assert exc_info.value.field == "entity_class"

    def test_unknown_rule_raises(self, db_session) -> None:
        engine = RetentionPolicyEngine(
            db_session, rules={EntityClass.ORDERS: DEFAULT_RULES[EntityClass.ORDERS]}
        )

        with pytest.raises(ValidationError, match="No retention rule"):
            engine.rule_for(EntityClass.CART_SESSIONS)


async def test_due_for_action_boundary_is_inclusive(engine, seed, now):
    """A record exactly one window old is due; one a little younger is not."""
    exact = await seed.cart_item(None, age_days=30)
    older = await seed.cart_item(None, age_days=45)
    await seed.cart_item(None, age_days=29)
    await seed.cart_item(None, age_days=29.99)

    due = await engine.due_for_action(EntityClass.CART_SESSIONS, now)

    assert due == {exact.id, older.id}


async def test_due_for_action_empty_store(engine, now):
    assert await engine.due_for_action(EntityClass.AUDIT_LOGS, now) == set()


async def test_approaching_limit_includes_records_past_horizon(engine, seed, now):
    """Orders within the lead time of the horizon, or already past it, are reported."""
    near = await seed.order(None, age_days=2530)
    past = await seed.order(None, age_days=2600)
    await seed.order(None, age_days=2520)
    await seed.order(None, age_days=10)

    ids = await engine.approaching_limit(EntityClass.ORDERS, now, timedelta(days=30))

    assert ids == {near.id, past.id}


async def test_approaching_limit_lead_time(engine, seed, now):
    order = await seed.order(None, age_days=2500)

    assert await engine.approaching_limit(EntityClass.ORDERS, now, timedelta(days=30)) == set()
    assert await engine.approaching_limit(EntityClass.ORDERS, now, timedelta(days=60)) == {
        order.id
    }


async def test_count_expiring(engine, seed, now):
    """Only carts that will fall due within the notice period are counted."""
    await seed.cart_item(None, age_days=25)
    await seed.cart_item(None, age_days=23)
    await seed.cart_item(None, age_days=20)
    await seed.cart_item(None, age_days=30)

    count = await engine.count_expiring(EntityClass.CART_SESSIONS, timedelta(days=7), now)

    assert count == 2


async def test_legal_hold_requires_an_order(engine, seed):
    """A subject is under legal hold exactly when they own an order."""
    with_order = await seed.customer()
    without_order = await seed.customer(username="bob", email="bob@example.com")
    await seed.order(with_order.id)

    assert await engine.has_legal_hold(with_order.id) is True
    assert await engine.has_legal_hold(without_order.id) is False


async def test_due_for_action_with_offset_clock(engine, seed, now):
    """A caller clock in another zone selects the same rows as UTC."""
    due = await seed.cart_item(None, age_days=30)
    await seed.cart_item(None, age_days=29.9)
    local_now = now.astimezone(timezone(timedelta(hours=5)))

    approaching = await engine.approaching_limit(
        EntityClass.CART_SESSIONS, local_now, lead_time=timedelta(0)
    )

    assert await engine.due_for_action(EntityClass.CART_SESSIONS, local_now) == {due.id}
    assert approaching == {due.id}
