from __future__ import annotations

import asyncio
from typing import Literal

from fastapi import APIRouter, Query


def create_router(service, emit_event) -> APIRouter:
    """
    Trash endpoints backed by a TrashService.

    TrashError and PathSecurityError are left to the app's error handlers,
    which map them to HTTP status codes.
    """
    router = APIRouter()

    @router.api_route("/api/delete", methods=["DELETE", "POST"])
    async def api_delete(
        path: str = Query(..., min_length=1),
        permanent: bool = False,
    ):
        """Move a path to the trash, or delete it outright with permanent=true."""
        if permanent:
            result = await asyncio.to_thread(service.delete_permanently, path)
            await emit_event("trash", f"Deleted permanently: {result.path}",
                             operation="delete_permanent", path=result.path)
            return {"status": "deleted", "path": result.path}

        entry = await asyncio.to_thread(service.soft_delete, path)
        await emit_event("trash", f"Moved to trash: {entry.original_path}",
                         operation="soft_delete", name=entry.staged_name)
        return {"status": "trashed", "entry": entry.to_dict()}

    @router.get("/api/trash")
    async def api_list_trash():
        """List trashed items with readable metadata."""
        entries = await asyncio.to_thread(service.list_trash)
        return {"entries": [e.to_dict() for e in entries], "count": len(entries)}

    @router.get("/api/trash/scan")
    async def api_scan_trash():
        """Inventory including corrupt and orphaned records."""
        result = await asyncio.to_thread(service.scan)
        return result.to_dict()

    @router.get("/api/trash/stats")
    async def api_trash_stats():
        return await asyncio.to_thread(service.get_stats)

    @router.post("/api/trash/restore")
    async def api_restore(
        name: str = Query(...),
        on_conflict: Literal["reject", "rename"] = "reject",
    ):
        """Restore a trashed item to its original location."""
        restored = await asyncio.to_thread(service.restore, name, on_conflict)
        await emit_event("trash", f"Restored: {restored}",
                         operation="restore", name=name, path=restored)
        return {"status": "restored", "path": restored}

    @router.post("/api/trash/empty")
    async def api_empty_trash():
        """Permanently delete everything in the trash."""
        removed = await asyncio.to_thread(service.empty_all)
        await emit_event("trash", f"Emptied trash ({removed} item(s))",
                         operation="empty", removed=removed)
        return {"status": "emptied", "removed": removed}

    @router.post("/api/trash/sweep")
    async def api_sweep(dry_run: bool = False):
        """Run one janitor sweep now."""
        report = await asyncio.to_thread(service.sweep_once, None, dry_run)
        await emit_event("trash", f"Manual sweep: {report.summary()}",
                         operation="sweep", dry_run=dry_run)
        return report.to_dict()

    return router


__all__ = ["create_router"]
