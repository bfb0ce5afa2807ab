from __future__ import annotations

from filekeep.shared.gate import GateLogger

_log = GateLogger.get("Lifecycle")


async def startup(service, emit_event):
    """Initialize the trash and start its janitor."""
    service.initialize()

    reconciled = service.last_reconcile
    if reconciled.get("committed") or reconciled.get("discarded"):
        await emit_event(
            "trash",
            "Recovered interrupted soft-deletes",
            operation="reconcile",
            **reconciled,
        )

    try:
        await service.start_janitor()
    except Exception as e:
        _log.error(f"Janitor failed to start: {e}")

    await emit_event("system", "FileKeep started", root=service.guard.root)


async def shutdown(service):
    """Stop background work."""
    try:
        await service.shutdown()
    except Exception as e:
        _log.error(f"Trash shutdown error: {e}")


__all__ = ["startup", "shutdown"]
