"""
FileSystemGate - sandboxed path access for FileKeep.

Every path handled by FileKeep is resolved through a PathGuard anchored at
the configured root.
"""

from .models import FileInfo, OperationResult
from .operations import delete_path, describe_path
from .security import PathGuard, PathSecurityError, is_within, normalize_path

__all__ = [
    "FileInfo",
    "OperationResult",
    "PathGuard",
    "PathSecurityError",
    "delete_path",
    "describe_path",
    "is_within",
    "normalize_path",
]
