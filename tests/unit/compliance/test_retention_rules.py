"""Tests for retention rule definitions and the default rule table."""

from datetime import timedelta

import pytest
from pydantic import ValidationError as PydanticValidationError

from storeguard.compliance.retention.policies import (
    DEFAULT_RULES,
    NINETY_DAYS,
    ONE_YEAR,
    SEVEN_YEARS,
    THIRTY_DAYS,
    create_default_rules,
    get_rule,
)
from storeguard.compliance.retention.types import RetentionRule
from storeguard.compliance.types import EntityClass, TerminalAction


class TestRetentionRule:
    """Tests for RetentionRule validation."""

    def test_archive_rule_requires_archive_window(self) -> None:
        """archive_then_purge without an archive window is rejected."""
        with pytest.raises(PydanticValidationError, match="archive_window_days"):
            RetentionRule(
                entity_class=EntityClass.AUDIT_LOGS,
                active_window_days=90,
                terminal_action=TerminalAction.ARCHIVE_THEN_PURGE,
            )

    def test_archive_window_only_for_archive_rules(self) -> None:
        """An archive window on a purge rule is rejected."""
        with pytest.raises(PydanticValidationError, match="only valid"):
            RetentionRule(
                entity_class=EntityClass.CART_SESSIONS,
                active_window_days=30,
                archive_window_days=10,
                terminal_action=TerminalAction.PURGE,
            )

    def test_active_window_must_be_positive(self) -> None:
        with pytest.raises(PydanticValidationError):
            RetentionRule(
                entity_class=EntityClass.CART_SESSIONS,
                active_window_days=0,
                terminal_action=TerminalAction.PURGE,
            )

    def test_horizon_adds_archive_window(self) -> None:
        """Horizon is the active window plus the archive window."""
        rule = RetentionRule(
            entity_class=EntityClass.AUDIT_LOGS,
            active_window_days=90,
            archive_window_days=365,
            terminal_action=TerminalAction.ARCHIVE_THEN_PURGE,
        )

        assert rule.active_window == timedelta(days=90)
        assert rule.archive_window == timedelta(days=365)
        assert rule.horizon == timedelta(days=455)

    def test_horizon_without_archive(self) -> None:
        rule = RetentionRule(
            entity_class=EntityClass.ORDERS,
            active_window_days=2555,
            terminal_action=TerminalAction.WARN_ONLY,
        )

        assert rule.archive_window is None
        assert rule.horizon == timedelta(days=2555)

    def test_rules_are_frozen(self) -> None:
        rule = get_rule(EntityClass.CART_SESSIONS)

        with pytest.raises(PydanticValidationError):
            rule.active_window_days = 1


class TestDefaultRules:
    """Tests for the default rule table."""

    def test_one_rule_per_entity_class(self) -> None:
        rules = create_default_rules()

        assert len(rules) == 3
        assert {rule.entity_class for rule in rules} == set(EntityClass)

    def test_cart_sessions_rule(self) -> None:
        rule = DEFAULT_RULES[EntityClass.CART_SESSIONS]

        assert rule.active_window_days == THIRTY_DAYS
        assert rule.terminal_action == TerminalAction.PURGE

    def test_audit_logs_rule(self) -> None:
        rule = DEFAULT_RULES[EntityClass.AUDIT_LOGS]

        assert rule.active_window_days == NINETY_DAYS
        assert rule.archive_window_days == ONE_YEAR
        assert rule.terminal_action == TerminalAction.ARCHIVE_THEN_PURGE

    def test_orders_rule(self) -> None:
        rule = DEFAULT_RULES[EntityClass.ORDERS]

        assert rule.active_window_days == SEVEN_YEARS == 2555
        assert rule.terminal_action == TerminalAction.WARN_ONLY

    def test_default_table_is_read_only(self) -> None:
        cart_rule = get_rule(EntityClass.CART_SESSIONS)
        with pytest.raises(TypeError):
            DEFAULT_RULES[EntityClass.ORDERS] = cart_rule  # type: ignore[index]
