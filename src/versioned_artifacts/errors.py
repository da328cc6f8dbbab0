"""Artifact service exceptions."""

from __future__ import annotations


class ArtifactServiceError(Exception):
    """Base exception for artifact service related errors."""

    pass


class ArtifactValidationError(ArtifactServiceError):
    """Raised when a request is missing required fields or is malformed."""

    pass


class ArtifactNotFoundError(ArtifactServiceError):
    """Exception raised when requested artifact or version does not exist."""

    pass


class StorageIOError(ArtifactServiceError):
    """Raised when the underlying filesystem or object store fails.

    Attributes:
        location: Path or object key the failing operation targeted, if known.

    """

    def __init__(self, message: str, location: str | None = None) -> None:
        """Initialise with a message and the offending location."""
        super().__init__(message)
        self.location = location


class PartialFailureError(StorageIOError):
    """Raised when a fan-out deletion fails part way through.

    Deletions that completed before the failure are not rolled back.
    """

    pass
