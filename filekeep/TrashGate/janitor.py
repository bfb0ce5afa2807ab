"""
Janitor - background reclamation of expired trash entries.

An entry's age is measured from the ``deleted_at`` recorded in its sidecar.
When the sidecar is missing or unreadable, the content's modification time
is used instead. Entries older than the retention window are removed
together with their sidecar.
"""

import asyncio
import os
import shutil
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Awaitable, Callable, List, Optional, Tuple

from filekeep.shared.gate import GateErrorHandler, GateLogger

from . import codec
from .errors import MetadataCorrupt, MetadataNotFound, TrashError
from .locks import EntryLockRegistry
from .models import SweepReport

_log = GateLogger.get("Janitor")

SweepCallback = Callable[[SweepReport], Awaitable[None]]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _mtime(path: Path) -> datetime:
    return datetime.fromtimestamp(os.lstat(path).st_mtime, tz=timezone.utc)


class Janitor:
    """
    Periodic sweeper for one staging directory.

    States: idle -> sleeping <-> sweeping -> stopped.
    """

    def __init__(
        self,
        staging_dir: Path,
        locks: EntryLockRegistry,
        retention: timedelta,
        interval: float = 3600,
        initial_delay: Optional[float] = None,
        clock: Callable[[], datetime] = _utcnow,
        on_sweep: Optional[SweepCallback] = None,
    ):
        self.staging_dir = Path(staging_dir)
        self.locks = locks
        self.retention = retention
        self.interval = interval
        self.initial_delay = interval if initial_delay is None else initial_delay
        self._clock = clock
        self._on_sweep = (
            GateErrorHandler.wrap_async("Janitor", "Sweep callback")(on_sweep)
            if on_sweep else None
        )

        self.state = "idle"
        self.last_report: Optional[SweepReport] = None
        self.sweep_count = 0
        self._running = False
        self._stop_event: Optional[asyncio.Event] = None
        self._task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._running and self._task is not None and not self._task.done()

    # =========================================================================
    # Lifecycle
    # =========================================================================

    async def start(self):
        """Start the background sweep loop."""
        if self._running:
            return
        self._running = True
        self._stop_event = asyncio.Event()
        self._task = asyncio.create_task(self._worker(), name="trash-janitor")
        _log.info(
            f"Janitor started (retention {self.retention}, every {self.interval:g}s, "
            f"first sweep in {self.initial_delay:g}s)"
        )

    async def stop(self):
        """Stop the loop, interrupting any sleep."""
        self._running = False
        if self._stop_event is not None:
            self._stop_event.set()
        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None
        self.state = "stopped"
        _log.info("Janitor stopped")

    async def _worker(self):
        delay = self.initial_delay
        while self._running:
            self.state = "sleeping"
            if await self._sleep(delay):
                break

            self.state = "sweeping"
            try:
                report = await asyncio.to_thread(self.sweep_once)
            except asyncio.CancelledError:
                raise
            except Exception as e:
                _log.exception(f"Sweep crashed: {e}")
            else:
                if self._on_sweep is not None:
                    await self._on_sweep(report)
            delay = self.interval

    async def _sleep(self, seconds: float) -> bool:
        """Sleep unless stopped first. Returns True when stop was requested."""
        try:
            await asyncio.wait_for(self._stop_event.wait(), timeout=seconds)
            return True
        except asyncio.TimeoutError:
            return False

    # =========================================================================
    # Sweep
    # =========================================================================

    def sweep_once(self, now: Optional[datetime] = None, dry_run: bool = False) -> SweepReport:
        """
        Run one reclamation pass.

        Args:
            now: Reference time (defaults to the janitor clock)
            dry_run: Report what would be reclaimed without deleting

        Returns:
            SweepReport describing every entry examined
        """
        now = now or self._clock()
        report = SweepReport(started_at=now, dry_run=dry_run)

        try:
            names = os.listdir(self.staging_dir)
        except FileNotFoundError:
            names = []
        except OSError as e:
            report.record_error(self.staging_dir.name, e)
            GateErrorHandler.handle("Janitor", "List trash", e)
            names = []

        present = set(names)
        orphan_sidecars: List[str] = []

        for name in names:
            if codec.is_pending(name):
                continue
            if codec.is_sidecar(name):
                if codec.staged_name_of(name) not in present:
                    orphan_sidecars.append(name)
                continue
            self._sweep_entry(name, now, report)

        for name in orphan_sidecars:
            self._sweep_orphan_sidecar(name, now, report)

        report.finished_at = self._clock()
        self.last_report = report
        self.sweep_count += 1

        if report.reclaimed or report.errors or report.orphan_sidecars_removed:
            _log.info(f"Sweep: {report.summary()}")
        else:
            _log.debug(f"Sweep: {report.summary()}")
        return report

    def _sweep_entry(self, name: str, now: datetime, report: SweepReport) -> None:
        report.examined += 1
        if not self.locks.try_acquire(name):
            report.skipped_busy.append(name)
            return

        try:
            if not os.path.lexists(self.staging_dir / name):
                # Restored or emptied since the listing
                return
            deleted_at, fallback = self._deleted_at(name)
            if fallback:
                report.fallback_clock.append(name)

            if now - deleted_at <= self.retention:
                report.retained += 1
                return

            if not report.dry_run:
                self._reclaim(name)
            report.reclaimed.append(name)
        except (OSError, TrashError) as e:
            report.record_error(name, e)
            GateErrorHandler.handle("Janitor", f"Reclaim {name}", e)
        finally:
            self.locks.release(name)

    def _deleted_at(self, name: str) -> Tuple[datetime, bool]:
        """Deletion time from the sidecar, or the content mtime as a fallback."""
        try:
            return codec.read(self.staging_dir, name).deleted_at, False
        except (MetadataNotFound, MetadataCorrupt) as e:
            _log.warning(f"{name}: {e}; aging by modification time")
            return _mtime(self.staging_dir / name), True

    def _reclaim(self, name: str) -> None:
        content = self.staging_dir / name
        if content.is_dir() and not content.is_symlink():
            shutil.rmtree(content)
        else:
            content.unlink()
        (self.staging_dir / codec.sidecar_name(name)).unlink(missing_ok=True)

    def _sweep_orphan_sidecar(self, sidecar: str, now: datetime, report: SweepReport) -> None:
        staged = codec.staged_name_of(sidecar)
        if not self.locks.try_acquire(staged):
            report.skipped_busy.append(sidecar)
            return

        path = self.staging_dir / sidecar
        try:
            if os.path.lexists(self.staging_dir / staged):
                return
            try:
                deleted_at = codec.read_file(path).deleted_at
            except MetadataNotFound:
                return
            except MetadataCorrupt:
                deleted_at = _mtime(path)

            if now - deleted_at > self.retention:
                if not report.dry_run:
                    path.unlink(missing_ok=True)
                report.orphan_sidecars_removed.append(sidecar)
        except (OSError, TrashError) as e:
            report.record_error(sidecar, e)
            GateErrorHandler.handle("Janitor", f"Remove orphan {sidecar}", e)
        finally:
            self.locks.release(staged)

    def get_status(self) -> dict:
        return {
            "state": self.state,
            "running": self.running,
            "retention_days": self.retention.total_seconds() / 86400,
            "interval_seconds": self.interval,
            "sweep_count": self.sweep_count,
            "last_sweep": self.last_report.to_dict() if self.last_report else None,
        }