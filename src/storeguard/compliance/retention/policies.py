"""Default retention rules for the store."""

from collections.abc import Mapping
from types import MappingProxyType

from storeguard.compliance.retention.types import RetentionRule
from storeguard.compliance.types import EntityClass, TerminalAction

# Standard retention periods (days)
SEVEN_YEARS = 7 * 365  # 2555 days
ONE_YEAR = 365
NINETY_DAYS = 90
THIRTY_DAYS = 30

CART_EXPIRY_NOTICE_DAYS = 7
"""Carts this close to their window are reported as expiring soon."""


def create_default_rules() -> list[RetentionRule]:
    """Create the default rule set, one rule per entity class."""
    return [
        RetentionRule(
            entity_class=EntityClass.CART_SESSIONS,
            active_window_days=THIRTY_DAYS,
            terminal_action=TerminalAction.PURGE,
            description="Abandoned carts carry no legal retention requirement",
        ),
        RetentionRule(
            entity_class=EntityClass.AUDIT_LOGS,
            active_window_days=NINETY_DAYS,
            archive_window_days=ONE_YEAR,
            terminal_action=TerminalAction.ARCHIVE_THEN_PURGE,
            description="Ledger kept queryable for 90 days, then archived for a year",
        ),
        RetentionRule(
            entity_class=EntityClass.ORDERS,
            active_window_days=SEVEN_YEARS,
            terminal_action=TerminalAction.WARN_ONLY,
            description="Financial records; tax law requires seven years",
        ),
    ]


DEFAULT_RULES: Mapping[EntityClass, RetentionRule] = MappingProxyType(
    {rule.entity_class: rule for rule in create_default_rules()}
)


def get_rule(entity_class: EntityClass) -> RetentionRule:
    """Get the default rule for an entity class."""
    return DEFAULT_RULES[entity_class]
