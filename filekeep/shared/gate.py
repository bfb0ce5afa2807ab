"""
Shared Gate utilities for FileKeep.

Patterns every Gate builds on:
- GateLogger: namespaced loggers under "filekeep"
- GateErrorHandler: log-and-continue handling for recoverable failures
- build_health_status: standard health payload
- PathUtils: directory helpers
"""

from __future__ import annotations

import logging
from functools import wraps
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Union


ROOT_LOGGER = "filekeep"


# =============================================================================
# GateLogger - Unified logging for all Gates
# =============================================================================


class GateLogger:
    """
    Unified logging for all Gates.

    Each gate gets its own logger under the "filekeep" namespace, sharing a
    single stream handler installed on first use.
    """

    _loggers: Dict[str, logging.Logger] = {}
    _configured = False

    @classmethod
    def _ensure_configured(cls):
        """Install the stream handler on the root filekeep logger once."""
        if cls._configured:
            return

        root_logger = logging.getLogger(ROOT_LOGGER)
        if not root_logger.handlers:
            handler = logging.StreamHandler()
            handler.setFormatter(
                logging.Formatter("[%(name)s] %(levelname)s: %(message)s")
            )
            root_logger.addHandler(handler)
            root_logger.setLevel(logging.INFO)

        cls._configured = True

    @classmethod
    def get(cls, gate_name: str) -> logging.Logger:
        """
        Get a logger for a specific gate.

        Args:
            gate_name: Name of the gate (e.g., "TrashGate", "Janitor")

        Returns:
            Logger instance for the gate
        """
        cls._ensure_configured()

        logger_name = f"{ROOT_LOGGER}.{gate_name}"
        if logger_name not in cls._loggers:
            cls._loggers[logger_name] = logging.getLogger(logger_name)

        return cls._loggers[logger_name]

    @classmethod
    def set_level(cls, level: Union[int, str], gate_name: Optional[str] = None):
        """
        Set logging level for one gate, or for all of them.

        Accepts either a logging constant or a level name such as "DEBUG".
        """
        if isinstance(level, str):
            level = logging.getLevelName(level.upper())
            if not isinstance(level, int):
                level = logging.INFO

        if gate_name:
            cls.get(gate_name).setLevel(level)
        else:
            cls._ensure_configured()
            logging.getLogger(ROOT_LOGGER).setLevel(level)


# =============================================================================
# GateErrorHandler - Unified error handling
# =============================================================================


class GateErrorHandler:
    """
    Error handling for Gate operations that must not abort their caller.

    Used by background work (sweeps, reconciliation, event callbacks) where a
    failure is logged and the loop moves on.
    """

    @staticmethod
    def handle(
        gate_name: str,
        operation: str,
        exception: Exception,
        default_return: Any = None,
        log_level: int = logging.ERROR,
    ) -> Any:
        """
        Log a gate operation error and return a fallback value.

        Args:
            gate_name: Name of the gate
            operation: Operation that failed
            exception: The exception that occurred
            default_return: Value to return on error
            log_level: Logging level to use

        Returns:
            The default_return value
        """
        logger = GateLogger.get(gate_name)
        logger.log(log_level, f"{operation} failed: {exception}")
        return default_return

    @staticmethod
    def wrap_async(
        gate_name: str,
        operation: str,
        default_return: Any = None,
        log_level: int = logging.ERROR,
    ):
        """
        Decorator for async callables whose failures should only be logged.

        Cancellation is never swallowed.
        """
        def decorator(func: Callable) -> Callable:
            @wraps(func)
            async def wrapper(*args, **kwargs):
                try:
                    return await func(*args, **kwargs)
                except Exception as e:
                    return GateErrorHandler.handle(
                        gate_name, operation, e, default_return, log_level
                    )
            return wrapper
        return decorator


# =============================================================================
# Health
# =============================================================================


def build_health_status(
    gate_name: str,
    initialized: bool,
    dependencies: List[str],
    checks: Dict[str, bool],
    details: Optional[Dict[str, Any]] = None,
) -> Dict[str, Any]:
    """
    Build a standardized health status dict.

    Args:
        gate_name: Name of the gate
        initialized: Whether the gate is initialized
        dependencies: List of dependency names
        checks: Dict of check name -> passed
        details: Additional details

    Returns:
        Standardized health status dict
    """
    all_checks_passed = all(checks.values()) if checks else True

    return {
        "gate": gate_name,
        "healthy": initialized and all_checks_passed,
        "initialized": initialized,
        "dependencies": dependencies,
        "checks": checks,
        "details": details or {},
    }


# =============================================================================
# PathUtils - Common path operations
# =============================================================================


class PathUtils:
    """Directory helpers shared by Gates."""

    @staticmethod
    def ensure_dirs(*paths: Union[str, Path]) -> None:
        """Create each directory (and its parents) if it does not exist."""
        for path in paths:
            Path(path).mkdir(parents=True, exist_ok=True)

    @staticmethod
    def dir_size(path: Union[str, Path]) -> int:
        """Total size in bytes of a file or directory tree."""
        path = Path(path)
        if not path.is_dir():
            return path.lstat().st_size

        total = 0
        for child in path.rglob("*"):
            try:
                if child.is_file() and not child.is_symlink():
                    total += child.stat().st_size
            except OSError:
                continue
        return total


def get_logger(gate_name: str) -> logging.Logger:
    """Shortcut for GateLogger.get()."""
    return GateLogger.get(gate_name)
