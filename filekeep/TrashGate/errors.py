"""
TrashGate error taxonomy.

Every error carries a stable ``code`` so callers (the HTTP layer, the CLI)
can map failures without matching on messages.
"""


class TrashError(Exception):
    """Base class for trash operation failures."""

    code = "trash_error"


class NotFound(TrashError):
    """The target path or staged content does not exist."""

    code = "not_found"


class MetadataNotFound(TrashError):
    """No sidecar exists for the staged name."""

    code = "metadata_not_found"


class MetadataCorrupt(TrashError):
    """The sidecar exists but cannot be parsed."""

    code = "metadata_corrupt"


class TrashIOError(TrashError):
    """A filesystem operation on the trash failed."""

    code = "io_error"


class StagingConflict(TrashError):
    """The generated staged name is already taken."""

    code = "staging_conflict"


class RestoreConflict(TrashError):
    """Something already occupies the restore destination."""

    code = "restore_conflict"


class EntryBusy(TrashError):
    """Another operation currently holds the entry."""

    code = "entry_busy"


class UnsafeNameError(TrashError):
    """A staged name could name something outside the staging directory."""

    code = "unsafe_name"
