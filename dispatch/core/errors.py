"""Error taxonomy shared by the storage drivers and the services above them."""

from __future__ import annotations


class StorageError(Exception):
    """Base class for data-layer failures surfaced to callers."""


class NotFound(StorageError):
    """Raised when a record addressed by identifier does not exist."""


class DuplicateShift(StorageError):
    """Raised when a person already has a shift on the requested date."""


class InvalidTransition(StorageError):
    """Raised when an assignment status change is not allowed."""


class ConstraintViolation(StorageError):
    """Raised when a backend rejects a write (integrity, schema, concurrent edit)."""


class BackendUnavailable(StorageError):
    """Raised when the backend needed for a call is not configured or not ready."""


class ConnectionUnavailable(StorageError):
    """Raised when a network-backed store cannot be reached."""


class DegradedDurability(UserWarning):
    """Warning emitted when a local write proceeds without its file lock."""
