"""
FileSystemGate Pydantic models.

Defines file metadata and operation results.
"""

from datetime import datetime, timezone
from typing import Optional, Dict, Any
from pydantic import BaseModel, Field


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class FileInfo(BaseModel):
    """Metadata for a path inside the sandbox."""
    name: str
    path: str = Field(description="Path relative to the sandbox root")
    is_directory: bool = False
    size_bytes: int = 0
    modified_at: Optional[datetime] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dict for JSON serialization."""
        return self.model_dump(mode="json")


class OperationResult(BaseModel):
    """Result of a filesystem operation."""
    success: bool
    operation: str
    path: Optional[str] = None
    message: Optional[str] = None
    error: Optional[str] = None
    error_code: Optional[str] = Field(
        default=None,
        description="Machine-readable failure kind (not_found, path_unsafe, io_error)"
    )
    timestamp: datetime = Field(default_factory=_utcnow)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dict for JSON serialization."""
        return self.model_dump(mode="json")
