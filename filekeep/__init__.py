"""
FileKeep - a sandboxed file service with a recoverable trash.

Gates:
- FileSystemGate: sandbox path guard and permanent deletes
- TrashGate: soft delete, restore, listing and the background janitor
- Config: schema-driven configuration
"""

__version__ = "0.3.0"
