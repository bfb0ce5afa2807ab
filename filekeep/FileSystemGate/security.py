"""
FileSystemGate security module.

Provides path normalization and sandbox containment checks.
"""

import os
from typing import Optional


class PathSecurityError(Exception):
    """Raised when a path fails security validation."""

    code = "path_unsafe"


def normalize_path(path: str) -> str:
    """
    Normalize a path to prevent traversal attacks.

    Args:
        path: Raw path string

    Returns:
        Normalized absolute path
    """
    path = os.path.expanduser(path)
    path = os.path.normpath(path)
    return os.path.abspath(path)


def is_within(base: str, target: str) -> bool:
    """
    Check whether target equals base or lies beneath it.

    Both paths are normalized first. Paths on different drives are never
    contained in one another.
    """
    base = normalize_path(base)
    target = normalize_path(target)
    try:
        return os.path.commonpath([base, target]) == base
    except ValueError:
        # Different drives on Windows
        return False


class PathGuard:
    """
    Sandbox boundary for every filesystem operation.

    A path is safe when it resolves to the root itself or anything beneath
    it. Relative paths are always interpreted against the root.
    """

    def __init__(self, root: str):
        self.root = normalize_path(root)

    def is_safe(self, path: str) -> bool:
        """True if the absolute path stays inside the sandbox root."""
        if not path or "\x00" in path:
            return False
        return is_within(self.root, path)

    def resolve(self, relative_path: Optional[str]) -> str:
        """
        Resolve a path relative to the sandbox root.

        Leading slashes are stripped so "/docs/a.txt" and "docs/a.txt" name
        the same file.

        Raises:
            PathSecurityError: If the result escapes the root
        """
        if relative_path is None or "\x00" in relative_path:
            raise PathSecurityError("Invalid path")

        cleaned = relative_path.replace("\\", "/").lstrip("/")
        target = normalize_path(os.path.join(self.root, cleaned))

        if not self.is_safe(target):
            raise PathSecurityError(f"Path escapes sandbox root: {relative_path}")

        return target

    def relative(self, absolute_path: str) -> str:
        """Express an absolute path inside the root as a POSIX relative path."""
        rel = os.path.relpath(normalize_path(absolute_path), self.root)
        return rel.replace(os.sep, "/")
