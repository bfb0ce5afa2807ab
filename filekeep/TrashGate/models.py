"""
TrashGate Pydantic models.

Defines the sidecar record, trash settings, sweep reports and scan results.
"""

from datetime import datetime, timedelta, timezone
from typing import Optional, List, Dict, Any, TYPE_CHECKING

from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    field_validator,
)

if TYPE_CHECKING:
    from filekeep.Config import ConfigManager


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class TrashEntry(BaseModel):
    """
    One soft-deleted item, as recorded in its sidecar.

    Serialized keys are ``original_path``, ``deleted_at`` and ``filename``.
    Older sidecars written with camelCase keys are still accepted.
    """
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    original_path: str = Field(
        validation_alias=AliasChoices("original_path", "originalPath"),
        description="Path relative to the sandbox root",
    )
    deleted_at: datetime = Field(
        validation_alias=AliasChoices("deleted_at", "deletedAt"),
    )
    staged_name: str = Field(
        alias="filename",
        validation_alias=AliasChoices("filename", "staged_name"),
        description="Name of the content entry inside the staging directory",
    )
    size_bytes: int = Field(default=0, ge=0)
    is_directory: bool = False

    @field_validator("deleted_at")
    @classmethod
    def _assume_utc(cls, value: datetime) -> datetime:
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)

    @field_validator("original_path", "staged_name")
    @classmethod
    def _not_blank(cls, value: str) -> str:
        if not value or not value.strip():
            raise ValueError("must not be empty")
        return value

    def age(self, now: datetime) -> timedelta:
        """Time elapsed since deletion."""
        return now - self.deleted_at

    def to_dict(self) -> Dict[str, Any]:
        """Convert to the sidecar JSON shape."""
        return self.model_dump(mode="json", by_alias=True)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "TrashEntry":
        """Create from a sidecar dict."""
        return cls.model_validate(data)


class TrashSettings(BaseModel):
    """Runtime settings for the trash subsystem."""
    root: str = Field(default=".", description="Sandbox root")
    trash_folder: str = Field(default=".trash")
    retention_days: float = Field(default=30, ge=0)
    sweep_interval_seconds: float = Field(default=3600, gt=0)
    initial_delay_seconds: Optional[float] = Field(
        default=None,
        ge=0,
        description="Delay before the first sweep; None waits one interval",
    )
    janitor_enabled: bool = True

    @field_validator("trash_folder")
    @classmethod
    def _single_component(cls, value: str) -> str:
        if not value or "/" in value or "\\" in value or value in (".", ".."):
            raise ValueError("trash_folder must be a single directory name")
        return value

    @property
    def retention(self) -> timedelta:
        return timedelta(days=self.retention_days)

    @property
    def first_delay(self) -> float:
        if self.initial_delay_seconds is None:
            return self.sweep_interval_seconds
        return self.initial_delay_seconds

    @classmethod
    def from_config(cls, config: "ConfigManager") -> "TrashSettings":
        """
        Build settings from a ConfigManager.

        Raises:
            ValueError: If the configuration does not validate
        """
        ok, errors = config.validate()
        if not ok:
            raise ValueError("Invalid configuration: " + "; ".join(errors))

        return cls(
            root=config.get("FILEKEEP_ROOT", "."),
            trash_folder=config.get("FILEKEEP_TRASH_FOLDER", ".trash"),
            retention_days=config.get("FILEKEEP_TRASH_RETENTION_DAYS", 30),
            sweep_interval_seconds=config.get("FILEKEEP_TRASH_SWEEP_INTERVAL", 3600),
            initial_delay_seconds=config.get("FILEKEEP_TRASH_SWEEP_INITIAL_DELAY"),
            janitor_enabled=config.get("FILEKEEP_JANITOR_ENABLED", True),
        )


class SweepError(BaseModel):
    """A single entry the janitor failed to reclaim."""
    name: str
    error: str


class SweepReport(BaseModel):
    """Outcome of one janitor sweep."""
    started_at: datetime = Field(default_factory=_utcnow)
    finished_at: Optional[datetime] = None
    dry_run: bool = False
    examined: int = 0
    reclaimed: List[str] = Field(default_factory=list)
    retained: int = 0
    skipped_busy: List[str] = Field(default_factory=list)
    fallback_clock: List[str] = Field(
        default_factory=list,
        description="Entries aged by content mtime because their sidecar was unusable",
    )
    orphan_sidecars_removed: List[str] = Field(default_factory=list)
    errors: List[SweepError] = Field(default_factory=list)

    def record_error(self, name: str, exc: Exception) -> None:
        self.errors.append(SweepError(name=name, error=str(exc)))

    def summary(self) -> str:
        verb = "would reclaim" if self.dry_run else "reclaimed"
        return (
            f"examined {self.examined}, {verb} {len(self.reclaimed)}, "
            f"retained {self.retained}, busy {len(self.skipped_busy)}, "
            f"errors {len(self.errors)}"
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dict for JSON serialization."""
        return self.model_dump(mode="json")


class TrashScan(BaseModel):
    """Full inventory of the staging directory, including integrity problems."""
    entries: List[TrashEntry] = Field(
        default_factory=list,
        description="Restorable entries: readable sidecars whose content is present",
    )
    corrupt: List[str] = Field(
        default_factory=list,
        description="Sidecar names that exist but do not parse",
    )
    orphan_content: List[str] = Field(
        default_factory=list,
        description="Content entries with no sidecar",
    )
    orphan_metadata: List[str] = Field(
        default_factory=list,
        description="Sidecar names with no content entry",
    )

    @property
    def clean(self) -> bool:
        return not (self.corrupt or self.orphan_content or self.orphan_metadata)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dict for JSON serialization."""
        data = self.model_dump(mode="json", by_alias=True)
        data["clean"] = self.clean
        return data
