# sessionlog/core/errors.py
"""
Storage error taxonomy.

The storage layer raises these; `BoundedLogStore` catches them, logs them and
turns them into a no-op or an empty result. None of them reach the caller.
"""

from __future__ import annotations


class StorageError(RuntimeError):
    """Base class for failures of the underlying storage engine."""
    pass


class StorageOpenFailure(StorageError):
    """Raised when the database cannot be opened or its schema created."""
    pass


class StorageWriteFailure(StorageError):
    """Raised when a record cannot be saved."""
    pass


class StorageReadFailure(StorageError):
    """Raised when a page query or count fails."""
    pass


class StorageDeleteFailure(StorageError):
    """Raised when eviction or a bulk clear fails."""
    pass
