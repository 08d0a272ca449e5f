"""JSON report models for ``--json`` CLI output."""

from pydantic import BaseModel, Field

from spentsync.types import SyncOutcome, ms_to_iso


class SyncReport(BaseModel):
    """Result of one sync cycle."""

    status: str
    scope: str | None = None
    pulled: dict[str, int] = Field(default_factory=dict)
    pushed: dict[str, int] = Field(default_factory=dict)
    errors: list[str] = Field(default_factory=list)
    last_pull_at: str | None = None

    @classmethod
    def from_outcome(cls, outcome: SyncOutcome) -> "SyncReport":
        return cls(
            status=outcome.status.value,
            scope=outcome.scope,
            pulled=outcome.pulled,
            pushed=outcome.pushed,
            errors=outcome.errors,
            last_pull_at=ms_to_iso(outcome.settings_patch.get("last_pull_at")),
        )


class NormalizeReport(BaseModel):
    """Identifier normalization of one scope."""

    scope: str
    changed: bool
    renamed: dict[str, str] = Field(default_factory=dict)  # old id -> new id


class StatusReport(BaseModel):
    """Sync state and record counts of one scope."""

    scope: str
    remote_configured: bool
    last_pull_at: str | None = None
    last_push_at: str | None = None
    last_sync_error: str | None = None
    counts: dict[str, int] = Field(default_factory=dict)
