"""
Inventory - read-only views of the staging directory.
"""

import os
from pathlib import Path
from typing import List

from filekeep.shared.gate import GateLogger

from . import codec
from .errors import MetadataCorrupt, MetadataNotFound, TrashIOError
from .models import TrashEntry, TrashScan

_log = GateLogger.get("TrashGate")


def _listdir(staging_dir: Path) -> List[str]:
    try:
        return os.listdir(staging_dir)
    except FileNotFoundError:
        return []
    except OSError as e:
        raise TrashIOError(f"Cannot read trash: {e}") from e


def list_trash(staging_dir: Path) -> List[TrashEntry]:
    """
    Entries described by committed sidecars, in directory order.

    Unreadable or corrupt sidecars are left out. Pending sidecars are never
    listed.
    """
    staging_dir = Path(staging_dir)
    entries = []
    for name in _listdir(staging_dir):
        if not codec.is_sidecar(name):
            continue
        try:
            entries.append(codec.read_file(staging_dir / name))
        except (MetadataCorrupt, MetadataNotFound, TrashIOError) as e:
            _log.debug(f"Skipping {name}: {e}")
    return entries


def scan(staging_dir: Path) -> TrashScan:
    """Inventory the staging directory, reporting corrupt and orphaned records."""
    staging_dir = Path(staging_dir)
    names = _listdir(staging_dir)
    present = set(names)
    result = TrashScan()

    for name in names:
        if codec.is_pending(name):
            continue

        if codec.is_sidecar(name):
            staged = codec.staged_name_of(name)
            try:
                entry = codec.read_file(staging_dir / name)
            except MetadataNotFound:
                continue
            except (MetadataCorrupt, TrashIOError) as e:
                _log.warning(f"Corrupt trash metadata {name}: {e}")
                result.corrupt.append(name)
                continue
            if staged in present:
                result.entries.append(entry)
            else:
                result.orphan_metadata.append(name)
            continue

        if codec.sidecar_name(name) not in present:
            result.orphan_content.append(name)

    if result.orphan_content or result.orphan_metadata:
        _log.warning(
            f"Trash has {len(result.orphan_content)} content orphan(s) and "
            f"{len(result.orphan_metadata)} metadata orphan(s)"
        )
    return result


def count_content(staging_dir: Path) -> int:
    """Number of content entries, with or without metadata."""
    return sum(1 for name in _listdir(Path(staging_dir)) if not codec.is_metadata(name))
