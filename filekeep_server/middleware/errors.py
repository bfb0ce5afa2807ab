"""
Error handlers mapping FileKeep errors to HTTP responses.

Client errors expose their message. I/O failures are logged in full and
returned with a generic message.
"""

from __future__ import annotations

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from filekeep.FileSystemGate import PathSecurityError
from filekeep.TrashGate.errors import (
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
from filekeep.shared.gate import GateLogger

_log = GateLogger.get("API")

STATUS_CODES = {
    NotFound: 404,
    MetadataNotFound: 404,
    UnsafeNameError: 403,
    PathSecurityError: 403,
    RestoreConflict: 409,
    StagingConflict: 409,
    EntryBusy: 409,
    MetadataCorrupt: 422,
    TrashIOError: 500,
}


def status_for(exc: Exception) -> int:
    for cls in type(exc).__mro__:
        if cls in STATUS_CODES:
            return STATUS_CODES[cls]
    return 500


def register_error_handlers(app: FastAPI) -> None:
    """Register handlers for trash and path errors on the app."""

    async def handle(request: Request, exc: Exception) -> JSONResponse:
        status = status_for(exc)
        code = getattr(exc, "code", "error")

        if status >= 500:
            _log.error(f"{request.method} {request.url.path} failed: {exc}")
            detail = "Trash operation failed"
        else:
            _log.warning(f"{request.method} {request.url.path} -> {status}: {exc}")
            detail = str(exc)

        return JSONResponse(status_code=status, content={"detail": detail, "error": code})

    app.add_exception_handler(TrashError, handle)
    app.add_exception_handler(PathSecurityError, handle)


__all__ = ["register_error_handlers", "status_for"]
