"""Tests for settings defaults and exception formatting."""

import pytest
from pydantic import ValidationError as PydanticValidationError

from storeguard.config.settings import Settings
from storeguard.core.exceptions import (
    ArchivalIntegrityError,
    AuthorizationError,
    CollaboratorError,
    ConfirmationError,
    InvalidStateTransitionError,
    NotFoundError,
    ValidationError,
)
from storeguard.utils.exceptions import StoreguardError


class TestSettings:
    def test_defaults(self, monkeypatch) -> None:
        for name in ("ENVIRONMENT", "DELETION_TOKEN_TTL_DAYS", "CLEANUP_HOUR_UTC"):
            monkeypatch.delenv(name, raising=False)

        settings = Settings(_env_file=None)

        assert settings.ENVIRONMENT == "development"
        assert settings.deletion_token_ttl_days == 7
        assert settings.crm_delete_on_erasure is False
        assert settings.retention_warning_lead_days == 30
        assert settings.cleanup_hour_utc == 3
        assert settings.DATABASE_URL.startswith("sqlite+aiosqlite")

    def test_environment_override(self, monkeypatch) -> None:
        monkeypatch.setenv("DELETION_TOKEN_TTL_DAYS", "3")
        monkeypatch.setenv("CRM_DELETE_ON_ERASURE", "true")

        settings = Settings(_env_file=None)

        assert settings.deletion_token_ttl_days == 3
        assert settings.crm_delete_on_erasure is True

    @pytest.mark.parametrize(
        "overrides",
        [{"deletion_token_ttl_days": 0}, {"cleanup_hour_utc": 24}, {"ENVIRONMENT": "qa"}],
    )
    def test_invalid_values(self, overrides) -> None:
        with pytest.raises(PydanticValidationError):
            Settings(_env_file=None, **overrides)


class TestExceptions:
    """All errors share a base and format their context."""

    def test_hierarchy(self) -> None:
        for exc in (
            ValidationError("bad"),
            AuthorizationError(),
            NotFoundError(3),
            ConfirmationError(),
            CollaboratorError("down", "crm", "get_contact"),
            ArchivalIntegrityError("failed", "audit_logs", "insert"),
            InvalidStateTransitionError("Order", "paid", "pending"),
        ):
            assert isinstance(exc, StoreguardError)

    def test_validation_error_field(self) -> None:
        exc = ValidationError("must be positive", field="subject_id")

        assert str(exc) == "ValidationError(subject_id): must be positive"
        assert str(ValidationError("bad")) == "ValidationError: bad"

    def test_confirmation_error_is_generic(self) -> None:
        assert str(ConfirmationError()) == "Invalid or expired confirmation token"

    def test_archival_error_context(self) -> None:
        exc = ArchivalIntegrityError("delete failed", "audit_logs", "delete")

        assert exc.phase == "delete"
        assert str(exc) == "ArchivalIntegrityError(audit_logs, delete): delete failed"

    def test_collaborator_error(self) -> None:
        exc = CollaboratorError("timeout", "crm", "delete_contact")

        assert str(exc) == "CollaboratorError(crm.delete_contact): timeout"
