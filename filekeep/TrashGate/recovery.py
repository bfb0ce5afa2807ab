"""
Startup reconciliation of interrupted soft-deletes.

A pending sidecar whose content reached staging is committed. One whose
content never arrived is discarded.
"""

import os
from pathlib import Path
from typing import Dict

from filekeep.shared.gate import GateErrorHandler, GateLogger

from . import codec
from .errors import TrashIOError

_log = GateLogger.get("TrashGate")


def reconcile(staging_dir: Path) -> Dict[str, int]:
    staging_dir = Path(staging_dir)
    counts = {"committed": 0, "discarded": 0, "failed": 0}

    try:
        names = os.listdir(staging_dir)
    except FileNotFoundError:
        return counts

    for name in names:
        if not codec.is_pending(name):
            continue

        staged = codec.staged_name_of(name)
        try:
            if os.path.lexists(staging_dir / staged):
                codec.commit(staging_dir, staged)
                counts["committed"] += 1
                _log.warning(f"Recovered interrupted soft-delete: {staged}")
            else:
                codec.discard_pending(staging_dir, staged)
                counts["discarded"] += 1
                _log.info(f"Discarded metadata of unfinished soft-delete: {staged}")
        except (TrashIOError, OSError) as e:
            counts["failed"] += 1
            GateErrorHandler.handle("TrashGate", f"Reconcile {name}", e)

    return counts
