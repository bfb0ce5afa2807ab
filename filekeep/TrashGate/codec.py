"""
Sidecar metadata codec.

A staged item ``<name>`` is described by ``<name>.json`` in the staging
directory. While a soft-delete is in flight the record lives at
``<name>.json.pending`` and is only committed once the content has moved.
"""

import json
import os
from pathlib import Path
from typing import Union

from pydantic import ValidationError

from .errors import MetadataCorrupt, MetadataNotFound, StagingConflict, TrashIOError
from .models import TrashEntry

SIDECAR_SUFFIX = ".json"
PENDING_SUFFIX = ".json.pending"


def sidecar_name(staged_name: str) -> str:
    return staged_name + SIDECAR_SUFFIX


def pending_name(staged_name: str) -> str:
    return staged_name + PENDING_SUFFIX


def is_sidecar(name: str) -> bool:
    """True for committed sidecars only."""
    return name.endswith(SIDECAR_SUFFIX)


def is_pending(name: str) -> bool:
    return name.endswith(PENDING_SUFFIX)


def is_metadata(name: str) -> bool:
    """True for anything that is not a content entry."""
    return is_sidecar(name) or is_pending(name)


def staged_name_of(metadata_name: str) -> str:
    """Strip the sidecar or pending suffix from a metadata file name."""
    if is_pending(metadata_name):
        return metadata_name[: -len(PENDING_SUFFIX)]
    if is_sidecar(metadata_name):
        return metadata_name[: -len(SIDECAR_SUFFIX)]
    return metadata_name


def encode(entry: TrashEntry) -> str:
    """Serialize an entry as indented JSON."""
    return json.dumps(entry.to_dict(), indent=2)


def decode(text: Union[str, bytes]) -> TrashEntry:
    """
    Parse sidecar JSON.

    Raises:
        MetadataCorrupt: On invalid JSON or a record missing required fields
    """
    try:
        data = json.loads(text)
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise MetadataCorrupt(f"Invalid sidecar JSON: {e}") from e

    if not isinstance(data, dict):
        raise MetadataCorrupt("Sidecar must contain a JSON object")

    try:
        return TrashEntry.from_dict(data)
    except ValidationError as e:
        raise MetadataCorrupt(f"Invalid sidecar record: {e.error_count()} error(s)") from e


def read(staging_dir: Union[str, Path], staged_name: str) -> TrashEntry:
    """
    Load the committed sidecar for a staged name.

    Raises:
        MetadataNotFound: If no sidecar exists
        MetadataCorrupt: If it cannot be parsed
        TrashIOError: If it exists but cannot be read
    """
    return read_file(Path(staging_dir) / sidecar_name(staged_name))


def read_file(path: Union[str, Path]) -> TrashEntry:
    """Load a sidecar by path. Raises like read()."""
    path = Path(path)
    try:
        raw = path.read_bytes()
    except FileNotFoundError as e:
        raise MetadataNotFound(f"No metadata for {path.name}") from e
    except IsADirectoryError as e:
        raise MetadataCorrupt(f"Metadata path is a directory: {path.name}") from e
    except OSError as e:
        raise TrashIOError(f"Cannot read metadata {path.name}: {e}") from e

    try:
        return decode(raw)
    except MetadataCorrupt as e:
        raise MetadataCorrupt(f"{path.name}: {e}") from e


def write_pending(staging_dir: Union[str, Path], entry: TrashEntry) -> Path:
    """
    Write the entry to its pending sidecar and flush it to disk.

    Raises:
        TrashIOError: If the file cannot be written
    """
    path = Path(staging_dir) / pending_name(entry.staged_name)
    try:
        f = open(path, "x", encoding="utf-8")
    except FileExistsError as e:
        raise StagingConflict(f"Metadata already pending for {entry.staged_name}") from e
    except OSError as e:
        raise TrashIOError(f"Cannot write metadata for {entry.staged_name}: {e}") from e

    try:
        with f:
            f.write(encode(entry))
            f.flush()
            os.fsync(f.fileno())
    except OSError as e:
        path.unlink(missing_ok=True)
        raise TrashIOError(f"Cannot write metadata for {entry.staged_name}: {e}") from e
    return path


def commit(staging_dir: Union[str, Path], staged_name: str) -> Path:
    """
    Promote a pending sidecar to its committed name.

    Raises:
        TrashIOError: If the rename fails
    """
    staging_dir = Path(staging_dir)
    final = staging_dir / sidecar_name(staged_name)
    try:
        os.replace(staging_dir / pending_name(staged_name), final)
    except OSError as e:
        raise TrashIOError(f"Cannot commit metadata for {staged_name}: {e}") from e
    return final


def discard_pending(staging_dir: Union[str, Path], staged_name: str) -> bool:
    """Remove a pending sidecar if present. Returns True if one was removed."""
    try:
        os.remove(Path(staging_dir) / pending_name(staged_name))
        return True
    except FileNotFoundError:
        return False
