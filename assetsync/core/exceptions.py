from typing import Optional


class SyncServiceError(Exception):
    """Base exception for all sync-engine errors."""
    pass

class NotFoundError(SyncServiceError):
    """Raised when a referenced resource does not exist."""
    pass

class SyncClientNotFoundError(NotFoundError):
    """Raised when a sync client cannot be found."""

    def __init__(self, message: str = "Sync client not found"):
        super().__init__(message)

class EntityNotFoundError(NotFoundError):
    """Raised when a store operation targets a missing entity."""
    pass

class CrossTenantAccessError(SyncServiceError):
    """Raised when a caller touches a resource owned by another organization."""
    pass

class SyncValidationError(SyncServiceError):
    """Raised when input data fails validation."""
    pass

class ChecksumMismatchError(SyncValidationError):
    """Raised when a payload does not match its recorded checksum."""
    pass

class UnknownEntityTypeError(SyncValidationError):
    """Raised when no repository is registered for an entity type."""
    pass

class VersionConflictError(SyncServiceError):
    """Raised when an optimistic-lock check fails."""

    def __init__(
        self,
        message: str = "Optimistic locking failed - version mismatch",
        expected_version: Optional[int] = None,
        actual_version: Optional[int] = None,
    ):
        super().__init__(message)
        self.expected_version = expected_version
        self.actual_version = actual_version
