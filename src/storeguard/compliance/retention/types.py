"""Retention rule definitions."""

from datetime import timedelta

from pydantic import BaseModel, ConfigDict, Field, model_validator

from storeguard.compliance.types import EntityClass, TerminalAction


class RetentionRule(BaseModel):
    """Retention rule for one entity class.

    Rules are fixed configuration. ``archive_window_days`` is present exactly
    when the terminal action is ``archive_then_purge``.
    """

    model_config = ConfigDict(frozen=True)

    entity_class: EntityClass
    active_window_days: int = Field(gt=0)
    """Days a record stays in the active store."""

    archive_window_days: int | None = Field(default=None, gt=0)
    """Days an archived record is kept before it is purged."""

    terminal_action: TerminalAction
    description: str = ""

    @model_validator(mode="after")
    def check_archive_window(self) -> "RetentionRule":
        archives = self.terminal_action == TerminalAction.ARCHIVE_THEN_PURGE
        if archives and self.archive_window_days is None:
            raise ValueError("archive_then_purge requires archive_window_days")
        if not archives and self.archive_window_days is not None:
            raise ValueError(
                f"archive_window_days is only valid for archive_then_purge, "
                f"not {self.terminal_action.value}"
            )
        return self

    @property
    def active_window(self) -> timedelta:
        return timedelta(days=self.active_window_days)

    @property
    def archive_window(self) -> timedelta | None:
        if self.archive_window_days is None:
            return None
        return timedelta(days=self.archive_window_days)

    @property
    def horizon(self) -> timedelta:
        """Maximum age a record of this class can reach before final disposal."""
        return timedelta(days=self.active_window_days + (self.archive_window_days or 0))
