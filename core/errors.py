"""
NAVTREE ERRORS - Exception hierarchy for the navigation core.

Malformed navigation input is never an error (it is tolerated by the
normalizer or skipped by the store). Only the storage boundary and
settings validation raise.
"""


class NavTreeError(Exception):
    """Base exception for navtree operations."""
    pass


class StorageError(NavTreeError):
    """Base exception for the durable key-value boundary."""
    pass


class StorageUnavailableError(StorageError):
    """Raised when the durable store cannot be read or written."""
    def __init__(self, operation: str, key: str, cause: Exception = None):
        self.operation = operation
        self.key = key
        self.cause = cause
        detail = f": {cause}" if cause is not None else ""
        super().__init__(f"Storage unavailable during {operation} of '{key}'{detail}")


class StorageCorruptionError(StorageError):
    """Raised when a stored record cannot be decoded into its schema."""
    def __init__(self, key: str, cause: Exception = None):
        self.key = key
        self.cause = cause
        super().__init__(f"Stored record '{key}' does not match its schema: {cause}")


class SettingsError(NavTreeError):
    """Raised when a settings payload has the wrong shape."""
    pass
