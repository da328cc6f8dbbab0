"""ArtifactService interface.

Backends satisfy this protocol structurally; none of them inherit from
it. The backend is chosen at construction time, see
versioned_artifacts.configuration.
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from versioned_artifacts.models import (
    DeleteRequest,
    ListRequest,
    ListResponse,
    LoadRequest,
    LoadResponse,
    SaveRequest,
    SaveResponse,
    VersionsRequest,
    VersionsResponse,
)


@runtime_checkable
class ArtifactService(Protocol):
    """Versioned artifact storage scoped by app, user and session.

    File names starting with `user:` are visible across every session of
    the user; all other names are visible only within their session.

    Implementations: LocalFilesystemArtifactService, S3ArtifactService,
    InMemoryArtifactService
    """

    async def save(self, request: SaveRequest) -> SaveResponse:
        """Store a new version of an artifact.

        Args:
            request: Identity, payload and an optional explicit version.
                With version 0 the next version is allocated as the
                highest existing version + 1.

        Returns:
            The version that was written.

        Raises:
            ArtifactValidationError: If the request is incomplete.
            StorageIOError: If the backend write fails.

        """
        ...

    async def load(self, request: LoadRequest) -> LoadResponse:
        """Load one version of an artifact, the latest when version is 0.

        Raises:
            ArtifactValidationError: If the request is incomplete.
            ArtifactNotFoundError: If no versions exist or the requested
                version is absent.
            StorageIOError: If the backend read fails.

        """
        ...

    async def delete(self, request: DeleteRequest) -> None:
        """Delete one version, or the whole artifact when version is 0.

        Deleting something that does not exist is not an error.

        Raises:
            ArtifactValidationError: If the request is incomplete.
            StorageIOError: If the backend delete fails.

        """
        ...

    async def list(self, request: ListRequest) -> ListResponse:
        """List artifact names visible in the session.

        Returns:
            Sorted union of session scoped and user scoped names. Empty
            when there are none.

        """
        ...

    async def versions(self, request: VersionsRequest) -> VersionsResponse:
        """List the stored versions of an artifact in ascending order.

        Raises:
            ArtifactNotFoundError: If the artifact has no versions.

        """
        ...

    async def close(self) -> None:
        """Release the backend handle."""
        ...
