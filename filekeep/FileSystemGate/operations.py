"""
FileSystemGate file operations.

Permanent deletion and path inspection, both bounded by a PathGuard.
"""

import os
import shutil
from datetime import datetime, timezone
from typing import Iterable, Optional

from filekeep.shared.gate import PathUtils

from .models import FileInfo, OperationResult
from .security import PathGuard, PathSecurityError, is_within


def describe_path(guard: PathGuard, absolute_path: str) -> FileInfo:
    """
    Collect metadata for an existing path.

    Raises:
        FileNotFoundError: If nothing exists at the path
    """
    st = os.lstat(absolute_path)
    is_dir = os.path.isdir(absolute_path) and not os.path.islink(absolute_path)

    return FileInfo(
        name=os.path.basename(absolute_path),
        path=guard.relative(absolute_path),
        is_directory=is_dir,
        size_bytes=PathUtils.dir_size(absolute_path) if is_dir else st.st_size,
        modified_at=datetime.fromtimestamp(st.st_mtime, tz=timezone.utc),
    )


def delete_path(
    guard: PathGuard,
    relative_path: str,
    protected: Optional[Iterable[str]] = None,
) -> OperationResult:
    """
    Permanently delete a file or directory tree.

    Args:
        guard: Sandbox boundary
        relative_path: Path relative to the sandbox root
        protected: Absolute paths that may not be deleted, nor anything
            beneath them

    Returns:
        OperationResult; error_code is set on failure
    """
    try:
        resolved = guard.resolve(relative_path)
    except PathSecurityError as e:
        return OperationResult(
            success=False,
            operation="delete",
            path=relative_path,
            error=str(e),
            error_code=PathSecurityError.code,
        )

    if resolved == guard.root or any(is_within(p, resolved) for p in (protected or ())):
        return OperationResult(
            success=False,
            operation="delete",
            path=relative_path,
            error=f"Refusing to delete protected path: {relative_path}",
            error_code=PathSecurityError.code,
        )

    if not os.path.lexists(resolved):
        return OperationResult(
            success=False,
            operation="delete",
            path=relative_path,
            error=f"Path not found: {relative_path}",
            error_code="not_found",
        )

    try:
        if os.path.isdir(resolved) and not os.path.islink(resolved):
            shutil.rmtree(resolved)
            message = "Directory deleted"
        else:
            os.remove(resolved)
            message = "File deleted"

        return OperationResult(
            success=True,
            operation="delete",
            path=guard.relative(resolved),
            message=message,
        )

    except OSError as e:
        return OperationResult(
            success=False,
            operation="delete",
            path=relative_path,
            error=f"Failed to delete: {e}",
            error_code="io_error",
        )
