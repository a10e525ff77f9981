"""Retention rules and due-set evaluation.

Usage:
    from storeguard.compliance.retention import RetentionPolicyEngine, EntityClass

    engine = RetentionPolicyEngine(session)
    due = await engine.due_for_action(EntityClass.CART_SESSIONS)
    warn = await engine.approaching_limit(EntityClass.ORDERS, lead_time=timedelta(days=30))
"""

from storeguard.compliance.retention.engine import RetentionPolicyEngine
from storeguard.compliance.retention.policies import (
    CART_EXPIRY_NOTICE_DAYS,
    DEFAULT_RULES,
    create_default_rules,
    get_rule,
)
from storeguard.compliance.retention.stores import DEFAULT_STORES, TrackedStore
from storeguard.compliance.retention.types import RetentionRule
from storeguard.compliance.types import EntityClass, TerminalAction

__all__ = [
    "CART_EXPIRY_NOTICE_DAYS",
    "DEFAULT_RULES",
    "DEFAULT_STORES",
    "EntityClass",
    "RetentionPolicyEngine",
    "RetentionRule",
    "TerminalAction",
    "TrackedStore",
    "create_default_rules",
    "get_rule",
]
