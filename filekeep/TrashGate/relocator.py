"""
Relocator - moves items between the sandbox and the staging directory.

Soft-delete writes a pending sidecar, moves the content, then commits the
sidecar. Restore reads the sidecar, moves the content back and removes the
sidecar. Both hold the staged name in the lock registry while they work.
"""

import errno
import os
import shutil
import time
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable

from filekeep.FileSystemGate import (
    PathGuard,
    PathSecurityError,
    describe_path,
    is_within,
)
from filekeep.shared.gate import GateLogger

from . import codec
from .errors import (
    EntryBusy,
    NotFound,
    RestoreConflict,
    StagingConflict,
    TrashIOError,
    UnsafeNameError,
)
from .locks import EntryLockRegistry
from .models import TrashEntry

_log = GateLogger.get("TrashGate")

CONFLICT_POLICIES = ("reject", "rename")


def check_staged_name(name: str) -> str:
    """
    Reject staged names that could reach outside the staging directory.

    Raises:
        UnsafeNameError: For empty names, path separators, NUL, dot names
            and names of metadata files
    """
    if not name or name in (".", ".."):
        raise UnsafeNameError("Invalid trash entry name")
    if "/" in name or "\\" in name or "\x00" in name:
        raise UnsafeNameError(f"Invalid trash entry name: {name!r}")
    if codec.is_metadata(name):
        raise UnsafeNameError(f"Not a trash entry: {name}")
    return name


def move_path(src: str, dst: str) -> None:
    """Rename, falling back to copy-and-delete across filesystems."""
    try:
        os.rename(src, dst)
    except OSError as e:
        if e.errno != errno.EXDEV:
            raise
        shutil.move(src, dst)


def restored_name(path: str, attempt: int) -> str:
    """``report.txt`` -> ``report (restored).txt``, ``report (restored 2).txt``, ..."""
    parent, base = os.path.split(path)
    stem, suffix = os.path.splitext(base)
    if not stem:
        stem, suffix = base, ""
    label = "restored" if attempt == 1 else f"restored {attempt}"
    return os.path.join(parent, f"{stem} ({label}){suffix}")


class Relocator:
    """Performs soft-delete and restore against one staging directory."""

    def __init__(
        self,
        guard: PathGuard,
        staging_dir: Path,
        locks: EntryLockRegistry,
        clock_ns: Callable[[], int] = time.time_ns,
    ):
        self.guard = guard
        self.staging_dir = Path(staging_dir)
        self.locks = locks
        self._clock_ns = clock_ns

    # =========================================================================
    # Soft delete
    # =========================================================================

    def soft_delete(self, original_path: str) -> TrashEntry:
        """
        Move a path from the sandbox into the staging directory.

        Args:
            original_path: Path relative to the sandbox root

        Returns:
            The committed TrashEntry

        Raises:
            PathSecurityError: Path escapes the sandbox or targets the trash
            NotFound: Nothing exists at the path
            StagingConflict: The generated staged name is taken
            EntryBusy: The trash is being emptied
            TrashIOError: Metadata could not be written or the move failed
        """
        target = self._resolve_live(original_path)
        if not os.path.lexists(target):
            raise NotFound(f"Path not found: {original_path}")

        info = describe_path(self.guard, target)
        stamp = self._clock_ns()
        staged = f"{info.name}_{stamp}"

        if not self.locks.try_acquire(staged):
            if self.locks.is_exclusive():
                raise EntryBusy(f"Trash is being emptied, cannot stage {staged}")
            raise StagingConflict(f"Staged name already in use: {staged}")
        try:
            self._check_free(staged)

            entry = TrashEntry(
                original_path=info.path,
                deleted_at=datetime.fromtimestamp(stamp / 1e9, tz=timezone.utc),
                staged_name=staged,
                size_bytes=info.size_bytes,
                is_directory=info.is_directory,
            )
            codec.write_pending(self.staging_dir, entry)

            staged_path = str(self.staging_dir / staged)
            try:
                move_path(target, staged_path)
            except OSError as e:
                codec.discard_pending(self.staging_dir, staged)
                raise TrashIOError(f"Cannot move {info.path} to trash: {e}") from e

            try:
                codec.commit(self.staging_dir, staged)
            except TrashIOError:
                self._roll_back(staged_path, target, staged)
                raise
        finally:
            self.locks.release(staged)

        _log.info(f"Trashed {entry.original_path} as {staged}")
        return entry

    def _resolve_live(self, relative_path: str) -> str:
        """Resolve a path that must lie in the sandbox but outside the trash."""
        target = self.guard.resolve(relative_path)
        if target == self.guard.root:
            raise PathSecurityError("Refusing to operate on the sandbox root")
        if is_within(str(self.staging_dir), target):
            raise PathSecurityError(f"Path is inside the trash: {relative_path}")
        return target

    def _check_free(self, staged: str) -> None:
        for name in (staged, codec.sidecar_name(staged), codec.pending_name(staged)):
            if os.path.lexists(self.staging_dir / name):
                raise StagingConflict(f"Staged name already in use: {staged}")

    def _roll_back(self, staged_path: str, target: str, staged: str) -> None:
        """Return content to its origin after a failed commit."""
        try:
            move_path(staged_path, target)
        except OSError as e:
            # Pending sidecar stays so reconciliation can commit it
            _log.error(f"Roll-back of {staged} failed, left pending in trash: {e}")
            return
        codec.discard_pending(self.staging_dir, staged)
        _log.warning(f"Rolled back soft-delete of {staged}")

    # =========================================================================
    # Restore
    # =========================================================================

    def restore(self, staged_name: str, on_conflict: str = "reject") -> str:
        """
        Move a staged item back to its original location.

        Args:
            staged_name: Name of the content entry in staging
            on_conflict: "reject" to fail when the destination is occupied,
                "rename" to restore beside it as "<name> (restored)"

        Returns:
            The restored path, relative to the sandbox root

        Raises:
            UnsafeNameError, EntryBusy, MetadataNotFound, MetadataCorrupt,
            NotFound, PathSecurityError, RestoreConflict, TrashIOError
        """
        check_staged_name(staged_name)
        if on_conflict not in CONFLICT_POLICIES:
            raise ValueError(f"on_conflict must be one of {CONFLICT_POLICIES}")

        with self.locks.hold(staged_name):
            entry = codec.read(self.staging_dir, staged_name)

            content = self.staging_dir / staged_name
            if not os.path.lexists(content):
                raise NotFound(f"Trash content missing for {staged_name}")

            dest = self._resolve_live(entry.original_path)
            if os.path.lexists(dest):
                if on_conflict == "reject":
                    raise RestoreConflict(
                        f"Destination already exists: {entry.original_path}"
                    )
                dest = self._free_destination(dest)

            try:
                os.makedirs(os.path.dirname(dest), exist_ok=True)
                move_path(str(content), dest)
            except OSError as e:
                raise TrashIOError(f"Cannot restore {staged_name}: {e}") from e

            try:
                os.remove(self.staging_dir / codec.sidecar_name(staged_name))
            except OSError as e:
                # Content is live again; the janitor reclaims the leftover sidecar
                _log.warning(f"Restored {staged_name} but could not remove its metadata: {e}")

        restored = self.guard.relative(dest)
        _log.info(f"Restored {staged_name} to {restored}")
        return restored

    def _free_destination(self, dest: str) -> str:
        attempt = 1
        candidate = restored_name(dest, attempt)
        while os.path.lexists(candidate):
            attempt += 1
            candidate = restored_name(dest, attempt)
        return candidate
