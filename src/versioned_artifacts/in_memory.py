"""In-memory artifact service implementation.

Provides an in-memory implementation of the ArtifactService protocol for
testing without filesystem or network dependencies. Objects are keyed
exactly like the object store backend.
"""

from __future__ import annotations

from types import TracebackType
from typing import Self

from versioned_artifacts import addressing
from versioned_artifacts.errors import ArtifactNotFoundError
from versioned_artifacts.listing import merge_file_names
from versioned_artifacts.models import (
    DeleteRequest,
    ListRequest,
    ListResponse,
    LoadRequest,
    LoadResponse,
    Part,
    SaveRequest,
    SaveResponse,
    VersionsRequest,
    VersionsResponse,
)
from versioned_artifacts.versioning import latest_version, next_version, parse_versions


class InMemoryArtifactService:
    """In-memory artifact service for testing.

    No locking is needed since asyncio runs in a single thread and no
    method awaits between reading and writing the storage dict.
    """

    def __init__(self) -> None:
        """Initialise in-memory service."""
        # Storage: object key -> (payload, content type)
        self._objects: dict[str, tuple[bytes, str]] = {}

    async def __aenter__(self) -> Self:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.close()

    async def close(self) -> None:
        """Drop every stored object."""
        self._objects.clear()

    def _keys_under(self, loc: addressing.Location) -> tuple[str, ...]:
        prefix = addressing.key_prefix(loc)
        return tuple(key for key in self._objects if key.startswith(prefix))

    def _existing_versions(self, container: addressing.Location) -> tuple[int, ...]:
        keys = self._keys_under(container)
        return tuple(parse_versions(key.rsplit("/", 1)[-1] for key in keys))

    async def save(self, request: SaveRequest) -> SaveResponse:
        """Store a version, overwriting when the version is explicit."""
        request.validate()
        container = addressing.container_location(
            request.app_name, request.user_id, request.session_id, request.file_name
        )
        version = request.version or next_version(self._existing_versions(container))
        key = addressing.object_key((*container, str(version)))
        self._objects[key] = (request.part.payload(), request.part.content_type)
        return SaveResponse(version=version)

    async def load(self, request: LoadRequest) -> LoadResponse:
        """Return a stored version, the latest when version is 0.

        Raises:
            ArtifactNotFoundError: If the artifact or version does not exist.

        """
        request.validate()
        container = addressing.container_location(
            request.app_name, request.user_id, request.session_id, request.file_name
        )
        version = request.version or latest_version(self._existing_versions(container))
        key = addressing.object_key((*container, str(version)))
        if key not in self._objects:
            raise ArtifactNotFoundError(
                f"artifact '{request.file_name}' version {version} not found"
            )
        data, content_type = self._objects[key]
        return LoadResponse(part=Part.from_bytes(data, content_type))

    async def delete(self, request: DeleteRequest) -> None:
        """Delete a version or every version. No-op if absent."""
        request.validate()
        container = addressing.container_location(
            request.app_name, request.user_id, request.session_id, request.file_name
        )
        if request.version != 0:
            key = addressing.object_key((*container, str(request.version)))
            self._objects.pop(key, None)
            return
        for key in self._keys_under(container):
            del self._objects[key]

    async def list(self, request: ListRequest) -> ListResponse:
        """List names stored under the session and user scopes."""
        request.validate()
        scopes = (
            addressing.session_scope(
                request.app_name, request.user_id, request.session_id
            ),
            addressing.user_scope(request.app_name, request.user_id),
        )
        name_groups = (
            {key.split("/")[-2] for key in self._keys_under(scope)} for scope in scopes
        )
        return ListResponse(file_names=merge_file_names(*name_groups))

    async def versions(self, request: VersionsRequest) -> VersionsResponse:
        """List stored versions in ascending order.

        Raises:
            ArtifactNotFoundError: If the artifact has no versions.

        """
        request.validate()
        container = addressing.container_location(
            request.app_name, request.user_id, request.session_id, request.file_name
        )
        versions = self._existing_versions(container)
        if not versions:
            raise ArtifactNotFoundError(f"artifact '{request.file_name}' not found")
        return VersionsResponse(versions=list(versions))
