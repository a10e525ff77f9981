"""Retention policy engine.

Evaluates the rule table against stored ``created_at`` values. Nothing here
writes; the archival pipeline acts on the sets computed here.
"""

from collections.abc import Mapping
from datetime import datetime, timedelta

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from storeguard.compliance.retention.policies import DEFAULT_RULES
from storeguard.compliance.retention.stores import DEFAULT_STORES, TrackedStore
from storeguard.compliance.retention.types import RetentionRule
from storeguard.compliance.types import EntityClass
from storeguard.core.exceptions import ValidationError
from storeguard.utils.clock import as_utc, utc_now


class RetentionPolicyEngine:
    """Computes which records are due under each retention rule.

    Boundaries are inclusive: a record whose age equals the window exactly is
    due, so repeated runs converge.

    Example:
        engine = RetentionPolicyEngine(session)
        ids = await engine.due_for_action(EntityClass.CART_SESSIONS)
    """

    def __init__(
        self,
        db: AsyncSession,
        rules: Mapping[EntityClass, RetentionRule] | None = None,
        stores: Mapping[EntityClass, TrackedStore] | None = None,
    ):
        self.db = db
        self.rules = rules if rules is not None else DEFAULT_RULES
        self.stores = stores if stores is not None else DEFAULT_STORES

    def rule_for(self, entity_class: EntityClass) -> RetentionRule:
        """Get the rule for an entity class.

        Raises:
            ValidationError: If no rule is configured for the class
        """
        try:
            return self.rules[entity_class]
        except KeyError:
            raise ValidationError(
                f"No retention rule for {entity_class}", field="entity_class"
            ) from None

    def store_for(self, entity_class: EntityClass) -> TrackedStore:
        try:
            return self.stores[entity_class]
        except KeyError:
            raise ValidationError(
                f"No store registered for {entity_class}", field="entity_class"
            ) from None

    def active_cutoff(self, entity_class: EntityClass, now: datetime | None = None) -> datetime:
        """Newest ``created_at`` that is past the active window, in UTC."""
        return as_utc(now or utc_now()) - self.rule_for(entity_class).active_window

    def archive_cutoff(self, entity_class: EntityClass, now: datetime | None = None) -> datetime:
        """Newest ``created_at`` whose archive window has fully elapsed.

        Raises:
            ValidationError: If the rule has no archive phase
        """
        rule = self.rule_for(entity_class)
        if rule.archive_window is None:
            raise ValidationError(
                f"{entity_class.value} has no archive window", field="entity_class"
            )
        return as_utc(now or utc_now()) - rule.horizon

    async def due_for_action(
        self, entity_class: EntityClass, now: datetime | None = None
    ) -> set[int]:
        """Ids of active records at or past the active window."""
        store = self.store_for(entity_class)
        cutoff = self.active_cutoff(entity_class, now)
        stmt = select(store.active.id).where(store.active.created_at <= cutoff)
        result = await self.db.execute(stmt)
        return set(result.scalars().all())

    async def approaching_limit(
        self,
        entity_class: EntityClass,
        now: datetime | None = None,
        lead_time: timedelta = timedelta(days=30),
    ) -> set[int]:
        """Ids of active records within ``lead_time`` of the rule's horizon.

        Records already past the horizon are included; they still need review.
        """
        store = self.store_for(entity_class)
        rule = self.rule_for(entity_class)
        warning_cutoff = as_utc(now or utc_now()) - (rule.horizon - lead_time)
        stmt = select(store.active.id).where(store.active.created_at <= warning_cutoff)
        result = await self.db.execute(stmt)
        return set(result.scalars().all())

    async def count_expiring(
        self,
        entity_class: EntityClass,
        notice: timedelta,
        now: datetime | None = None,
    ) -> int:
        """Count active records that will fall due within ``notice``."""
        store = self.store_for(entity_class)
        cutoff = self.active_cutoff(entity_class, now)
        stmt = (
            select(func.count())
            .select_from(store.active)
            .where(store.active.created_at > cutoff)
            .where(store.active.created_at <= cutoff + notice)
        )
        result = await self.db.execute(stmt)
        return result.scalar() or 0

    async def has_legal_hold(self, subject_id: int) -> bool:
        """Legal hold predicate: the subject owns at least one order."""
        store = self.store_for(EntityClass.ORDERS)
        owner = getattr(store.active, store.owner_column)
        stmt = select(store.active.id).where(owner == subject_id).limit(1)
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none() is not None
