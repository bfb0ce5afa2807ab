"""
Shared utilities for FileKeep.

Provides the logging, error handling and health helpers used across Gates.
"""

from filekeep.shared.gate import (
    GateLogger,
    GateErrorHandler,
    PathUtils,
    build_health_status,
    get_logger,
)

__all__ = [
    "GateLogger",
    "GateErrorHandler",
    "PathUtils",
    "build_health_status",
    "get_logger",
]
