"""Request, response and payload types for artifact service operations.

This module provides:
- Part: the artifact payload (inline bytes with a MIME type, or text)
- SaveRequest, LoadRequest, DeleteRequest, ListRequest, VersionsRequest
- SaveResponse, LoadResponse, ListResponse, VersionsResponse

Every request exposes `validate()`, which checks field presence only and
raises ArtifactValidationError on the first problem found.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Self

from versioned_artifacts.errors import ArtifactValidationError

TEXT_CONTENT_TYPE = "text/plain"


@dataclass(slots=True, frozen=True)
class Part:
    """Artifact payload.

    Exactly one of `data` or `text` is expected. Text parts are always
    stored with the `text/plain` content type.
    """

    data: bytes | None = None
    """Inline binary data."""

    mime_type: str | None = None
    """MIME type of `data`."""

    text: str | None = None
    """Plain text payload."""

    @classmethod
    def from_bytes(cls, data: bytes, mime_type: str) -> Self:
        """Create an inline data part."""
        return cls(data=data, mime_type=mime_type)

    @classmethod
    def from_text(cls, text: str) -> Self:
        """Create a text part."""
        return cls(text=text)

    @property
    def content_type(self) -> str:
        """Content type the payload is stored with."""
        if self.data is not None:
            return self.mime_type or ""
        return TEXT_CONTENT_TYPE

    def payload(self) -> bytes:
        """Return the bytes to store for this part."""
        if self.data is not None:
            return self.data
        return (self.text or "").encode("utf-8")

    def validate(self) -> None:
        """Check that the part carries a payload.

        Raises:
            ArtifactValidationError: If neither data nor text is set, or
                inline data has no MIME type.

        """
        if self.data is None and self.text is None:
            raise ArtifactValidationError("part must have either data or text")
        if self.data is not None and not self.mime_type:
            raise ArtifactValidationError("inline data requires a mime_type")


def _require(**fields: str) -> None:
    for name, value in fields.items():
        if not value:
            raise ArtifactValidationError(f"{name} is required")


def _require_version(version: int) -> None:
    if version < 0:
        raise ArtifactValidationError(
            f"version must be zero or positive, got {version}"
        )


@dataclass(slots=True)
class SaveRequest:
    """Request to store a new version of an artifact.

    A zero version lets the service allocate the next one. A positive
    version is written as given and may overwrite an existing one.
    """

    app_name: str
    user_id: str
    session_id: str
    file_name: str
    part: Part
    version: int = 0

    def validate(self) -> None:
        """Raise ArtifactValidationError if the request is incomplete."""
        _require(
            app_name=self.app_name,
            user_id=self.user_id,
            session_id=self.session_id,
            file_name=self.file_name,
        )
        if not isinstance(self.part, Part):
            raise ArtifactValidationError("part is required")
        self.part.validate()
        _require_version(self.version)


@dataclass(slots=True)
class SaveResponse:
    """Result of a save: the version that was written."""

    version: int


@dataclass(slots=True)
class LoadRequest:
    """Request to read one version of an artifact (0 means latest)."""

    app_name: str
    user_id: str
    session_id: str
    file_name: str
    version: int = 0

    def validate(self) -> None:
        """Raise ArtifactValidationError if the request is incomplete."""
        _require(
            app_name=self.app_name,
            user_id=self.user_id,
            session_id=self.session_id,
            file_name=self.file_name,
        )
        _require_version(self.version)


@dataclass(slots=True)
class LoadResponse:
    """Loaded payload, always returned as inline bytes."""

    part: Part


@dataclass(slots=True)
class DeleteRequest:
    """Request to delete one version, or every version when version is 0."""

    app_name: str
    user_id: str
    session_id: str
    file_name: str
    version: int = 0

    def validate(self) -> None:
        """Raise ArtifactValidationError if the request is incomplete."""
        _require(
            app_name=self.app_name,
            user_id=self.user_id,
            session_id=self.session_id,
            file_name=self.file_name,
        )
        _require_version(self.version)


@dataclass(slots=True)
class ListRequest:
    """Request to list artifact names visible in a session."""

    app_name: str
    user_id: str
    session_id: str

    def validate(self) -> None:
        """Raise ArtifactValidationError if the request is incomplete."""
        _require(
            app_name=self.app_name,
            user_id=self.user_id,
            session_id=self.session_id,
        )


@dataclass(slots=True)
class ListResponse:
    """Sorted, deduplicated artifact names."""

    file_names: list[str] = field(default_factory=list)


@dataclass(slots=True)
class VersionsRequest:
    """Request to enumerate the stored versions of an artifact."""

    app_name: str
    user_id: str
    session_id: str
    file_name: str

    def validate(self) -> None:
        """Raise ArtifactValidationError if the request is incomplete."""
        _require(
            app_name=self.app_name,
            user_id=self.user_id,
            session_id=self.session_id,
            file_name=self.file_name,
        )


@dataclass(slots=True)
class VersionsResponse:
    """Stored versions in ascending order."""

    versions: list[int] = field(default_factory=list)
