"""
Custom exception classes
"""
from pydantic import ValidationError


class PortalSyncError(Exception):
    """Base class for portal errors"""


class InvalidPatchError(PortalSyncError):
    """Raised when a create/patch payload does not match its schema"""
    def __init__(self, schema: str, error: ValidationError):
        self.schema = schema
        self.errors = error.errors()
        fields = ", ".join(
            ".".join(str(part) for part in item.get("loc", ())) or "<root>"
            for item in self.errors
        )
        super().__init__(f"Invalid {schema} payload: {fields}")


class SnapshotDecodeError(PortalSyncError):
    """Raised when a stored snapshot cannot be decoded"""
    def __init__(self, key: str, reason: str = "Unknown error"):
        self.key = key
        super().__init__(f"Snapshot {key} unreadable: {reason}")
