"""
TrashGate - recoverable deletes for FileKeep.

Provides:
- Soft delete into a staging directory, with JSON sidecar metadata
- Restore to the original location (reject or rename on conflict)
- Listing and integrity scans of the staging directory
- A background janitor that reclaims entries past the retention window
- Reconciliation of soft-deletes interrupted by a crash

Usage:
    from filekeep.TrashGate import TrashService, TrashSettings

    service = TrashService(TrashSettings(root="/srv/files"))
    service.initialize()

    entry = service.soft_delete("docs/report.txt")
    service.restore(entry.staged_name)

    await service.start_janitor()
    ...
    await service.shutdown()
"""

import shutil
import time
from datetime import datetime
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

from filekeep.FileSystemGate import (
    OperationResult,
    PathGuard,
    PathSecurityError,
    delete_path,
)
from filekeep.shared.gate import GateLogger, PathUtils, build_health_status

from . import codec, inventory, recovery
from .errors import (
    EntryBusy,
    MetadataCorrupt,
    MetadataNotFound,
    NotFound,
    RestoreConflict,
    StagingConflict,
    TrashError,
    TrashIOError,
    UnsafeNameError,
)
from .janitor import Janitor, SweepCallback
from .locks import EntryLockRegistry
from .models import SweepReport, TrashEntry, TrashScan, TrashSettings
from .relocator import Relocator, check_staged_name

_log = GateLogger.get("TrashGate")


class TrashService:
    """
    The trash subsystem for one sandbox root.

    Owns the staging directory, the lock registry shared by foreground
    operations and the janitor, and the janitor itself.
    """

    def __init__(
        self,
        settings: TrashSettings,
        guard: Optional[PathGuard] = None,
        clock: Optional[Callable[[], datetime]] = None,
        clock_ns: Callable[[], int] = time.time_ns,
        on_sweep: Optional[SweepCallback] = None,
    ):
        self.settings = settings
        self.guard = guard or PathGuard(settings.root)
        self.staging_dir = Path(self.guard.root) / settings.trash_folder
        self.locks = EntryLockRegistry()
        self.relocator = Relocator(self.guard, self.staging_dir, self.locks, clock_ns=clock_ns)

        janitor_kwargs: Dict[str, Any] = {}
        if clock is not None:
            janitor_kwargs["clock"] = clock
        self.janitor = Janitor(
            self.staging_dir,
            self.locks,
            retention=settings.retention,
            interval=settings.sweep_interval_seconds,
            initial_delay=settings.initial_delay_seconds,
            on_sweep=on_sweep,
            **janitor_kwargs,
        )
        self._initialized = False
        self.last_reconcile: Dict[str, int] = {}

    # ==================== Lifecycle ====================

    def initialize(self) -> bool:
        """
        Create the staging directory and finish interrupted soft-deletes.

        Raises:
            TrashIOError: If the staging directory cannot be created
        """
        if self._initialized:
            return True

        try:
            PathUtils.ensure_dirs(self.staging_dir)
        except OSError as e:
            raise TrashIOError(f"Cannot create trash folder {self.staging_dir}: {e}") from e

        self.last_reconcile = recovery.reconcile(self.staging_dir)
        self._initialized = True
        _log.info(f"TrashGate initialized at {self.staging_dir}")
        return True

    async def start_janitor(self):
        """Start the background janitor if enabled."""
        if not self.settings.janitor_enabled:
            _log.info("Janitor disabled by configuration")
            return
        self.initialize()
        await self.janitor.start()

    async def shutdown(self):
        """Stop background work."""
        await self.janitor.stop()

    # ==================== Operations ====================

    def soft_delete(self, original_path: str) -> TrashEntry:
        """Move a sandbox path into the trash. See Relocator.soft_delete."""
        self.initialize()
        return self.relocator.soft_delete(original_path)

    def restore(self, staged_name: str, on_conflict: str = "reject") -> str:
        """Move a trashed item back. Returns the restored relative path."""
        self.initialize()
        return self.relocator.restore(staged_name, on_conflict=on_conflict)

    def delete_permanently(self, original_path: str) -> OperationResult:
        """
        Delete a sandbox path without going through the trash.

        Raises:
            PathSecurityError: Path escapes the sandbox, is the root or lies in the trash
            NotFound: Nothing exists at the path
            TrashIOError: The delete failed
        """
        result = delete_path(self.guard, original_path, protected=[str(self.staging_dir)])
        if result.success:
            _log.info(f"Permanently deleted {result.path}")
            return result

        if result.error_code == PathSecurityError.code:
            raise PathSecurityError(result.error)
        if result.error_code == NotFound.code:
            raise NotFound(result.error)
        raise TrashIOError(result.error)

    def list_trash(self) -> List[TrashEntry]:
        """Trash entries with readable metadata."""
        return inventory.list_trash(self.staging_dir)

    def scan(self) -> TrashScan:
        """Trash entries plus corrupt and orphaned records."""
        return inventory.scan(self.staging_dir)

    def get_entry(self, staged_name: str) -> TrashEntry:
        """Metadata for one staged item."""
        check_staged_name(staged_name)
        return codec.read(self.staging_dir, staged_name)

    def empty_all(self, timeout: Optional[float] = 30.0) -> int:
        """
        Permanently delete everything in the trash.

        Returns:
            Number of content entries removed

        Raises:
            EntryBusy: If in-flight operations do not finish within timeout
            TrashIOError: If the staging directory cannot be wiped or recreated
        """
        with self.locks.exclusive(timeout=timeout):
            removed = inventory.count_content(self.staging_dir)
            try:
                if self.staging_dir.exists():
                    shutil.rmtree(self.staging_dir)
                self.staging_dir.mkdir(parents=True, exist_ok=True)
            except OSError as e:
                raise TrashIOError(f"Cannot empty trash: {e}") from e

        _log.info(f"Emptied trash ({removed} item(s))")
        return removed

    def sweep_once(self, now: Optional[datetime] = None, dry_run: bool = False) -> SweepReport:
        """Run one janitor pass immediately."""
        return self.janitor.sweep_once(now=now, dry_run=dry_run)

    # ==================== Health ====================

    def get_stats(self) -> Dict[str, Any]:
        entries = self.list_trash()
        oldest = min((e.deleted_at for e in entries), default=None)
        return {
            "entries": len(entries),
            "total_bytes": sum(e.size_bytes for e in entries),
            "oldest_deleted_at": oldest.isoformat() if oldest else None,
            "in_flight": len(self.locks.in_flight()),
        }

    def is_healthy(self) -> bool:
        return self.get_health_status()["healthy"]

    def get_health_status(self) -> Dict[str, Any]:
        """Get detailed health information."""
        checks = {"staging_dir": self.staging_dir.is_dir()}
        details: Dict[str, Any] = {
            "root": self.guard.root,
            "staging_dir": str(self.staging_dir),
            "retention_days": self.settings.retention_days,
            "janitor": self.janitor.get_status(),
        }
        if self.settings.janitor_enabled and self.janitor.state != "idle":
            checks["janitor"] = self.janitor.running
        if self.last_reconcile:
            details["reconcile"] = self.last_reconcile

        return build_health_status(
            gate_name="TrashGate",
            initialized=self._initialized,
            dependencies=["filesystem"],
            checks=checks,
            details=details,
        )


__all__ = [
    "EntryBusy",
    "EntryLockRegistry",
    "Janitor",
    "MetadataCorrupt",
    "MetadataNotFound",
    "NotFound",
    "Relocator",
    "RestoreConflict",
    "StagingConflict",
    "SweepReport",
    "TrashEntry",
    "TrashError",
    "TrashIOError",
    "TrashScan",
    "TrashService",
    "TrashSettings",
    "UnsafeNameError",
]
