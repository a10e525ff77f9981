"""Configuration validation for startup checks.

Validates that the settings the compliance engine depends on are usable
before the scheduler or the web layer starts calling it.

Usage:
    from storeguard.config.validation import validate_or_raise

    # During startup
    validate_or_raise()
"""

import logging
from dataclasses import dataclass
from enum import Enum
from urllib.parse import urlparse

from storeguard.config.settings import Settings, get_settings
from storeguard.utils.exceptions import ConfigurationError

logger = logging.getLogger("storeguard.config")

ASYNC_DRIVERS = ("sqlite+aiosqlite", "postgresql+asyncpg", "postgresql+psycopg")


class ValidationSeverity(str, Enum):
    """Severity of configuration validation issues."""

    ERROR = "error"  # Must be fixed, engine cannot start
    WARNING = "warning"  # Should be fixed, engine can start


@dataclass
class ValidationResult:
    """Result of a configuration validation check."""

    field: str
    severity: ValidationSeverity
    message: str
    suggestion: str | None = None

    def __str__(self) -> str:
        prefix = "ERROR" if self.severity == ValidationSeverity.ERROR else "WARNING"
        result = f"[{prefix}] {self.field}: {self.message}"
        if self.suggestion:
            result += f"\n  Suggestion: {self.suggestion}"
        return result


def validate_configuration(settings: Settings | None = None) -> list[ValidationResult]:
    """Run all configuration checks.

    Returns:
        List of validation results (empty if all checks pass)
    """
    if settings is None:
        settings = get_settings()

    results: list[ValidationResult] = []
    results.extend(_validate_database(settings))
    results.extend(_validate_subject_rights(settings))
    results.extend(_validate_notifications(settings))
    results.extend(_validate_environment(settings))
    return results


def validate_or_raise(settings: Settings | None = None) -> None:
    """Validate configuration and raise if errors are found.

    Raises:
        ConfigurationError: If any check reports an error
    """
    results = validate_configuration(settings)
    errors = [r for r in results if r.severity == ValidationSeverity.ERROR]

    if errors:
        error_messages = "\n".join(str(e) for e in errors)
        raise ConfigurationError(f"Configuration validation failed:\n{error_messages}")

    for warning in results:
        logger.warning(str(warning))


# =============================================================================
# Validators
# =============================================================================


def _validate_database(settings: Settings) -> list[ValidationResult]:
    results: list[ValidationResult] = []

    if not settings.DATABASE_URL:
        results.append(
            ValidationResult(
                field="DATABASE_URL",
                severity=ValidationSeverity.ERROR,
                message="Database URL is not configured",
                suggestion="Set DATABASE_URL environment variable",
            )
        )
    elif not settings.DATABASE_URL.startswith(ASYNC_DRIVERS):
        results.append(
            ValidationResult(
                field="DATABASE_URL",
                severity=ValidationSeverity.ERROR,
                message=f"Not an async driver URL: {settings.DATABASE_URL.split(':', 1)[0]}",
                suggestion="Use sqlite+aiosqlite:// or postgresql+asyncpg://",
            )
        )

    return results


def _validate_subject_rights(settings: Settings) -> list[ValidationResult]:
    results: list[ValidationResult] = []

    link = urlparse(settings.deletion_confirm_url)
    if not link.scheme or not link.netloc:
        results.append(
            ValidationResult(
                field="deletion_confirm_url",
                severity=ValidationSeverity.ERROR,
                message="Confirmation URL must be absolute",
                suggestion="Point it at the storefront's deletion confirmation page",
            )
        )
    elif link.scheme != "https" and settings.ENVIRONMENT == "production":
        results.append(
            ValidationResult(
                field="deletion_confirm_url",
                severity=ValidationSeverity.ERROR,
                message="Confirmation links must use https in production",
            )
        )

    if settings.deletion_token_ttl_days > 30:
        results.append(
            ValidationResult(
                field="deletion_token_ttl_days",
                severity=ValidationSeverity.WARNING,
                message=f"Tokens live {settings.deletion_token_ttl_days} days",
                suggestion="Erasure requests should be answered within a month",
            )
        )

    return results


def _validate_notifications(settings: Settings) -> list[ValidationResult]:
    results: list[ValidationResult] = []

    notifies = settings.cleanup_notifications_enabled or settings.retention_warnings_enabled
    if notifies and "@" not in settings.admin_email:
        results.append(
            ValidationResult(
                field="admin_email",
                severity=ValidationSeverity.ERROR,
                message="Administrator notifications are enabled without a valid address",
            )
        )

    return results


def _validate_environment(settings: Settings) -> list[ValidationResult]:
    results: list[ValidationResult] = []

    if settings.ENVIRONMENT == "production" and settings.DEBUG:
        results.append(
            ValidationResult(
                field="DEBUG",
                severity=ValidationSeverity.WARNING,
                message="Debug mode is enabled in production",
                suggestion="Set DEBUG=false; it echoes every SQL statement",
            )
        )

    return results
