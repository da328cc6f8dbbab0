"""Local filesystem artifact service.

Maps artifact identities to paths under a root directory. Uses aiofiles
for file contents; directory operations run inline.

Storage structure:
    {root_dir}/{app_name}/{user_id}/
        ├── {session_id}/
        │   └── {file_name}/
        │       ├── 1            # payload
        │       ├── 1.meta       # content type
        │       └── ...
        └── user/
            └── user:{name}/
                └── ...
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
import os
import shutil
from collections.abc import Iterator
from pathlib import Path
from types import TracebackType
from typing import Self

import aiofiles

from versioned_artifacts import addressing
from versioned_artifacts.errors import ArtifactNotFoundError, StorageIOError
from versioned_artifacts.listing import merge_file_names
from versioned_artifacts.models import (
    TEXT_CONTENT_TYPE,
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
from versioned_artifacts.versioning import (
    MAX_ALLOCATION_ATTEMPTS,
    latest_version,
    next_version,
    parse_versions,
)

logger = logging.getLogger(__name__)

SIDECAR_SUFFIX = ".meta"


def _version_entry_names(container: Path) -> Iterator[str]:
    """Yield names of payload files in a container directory."""
    with os.scandir(container) as entries:
        for entry in entries:
            if entry.is_dir():
                continue
            if entry.name.endswith(SIDECAR_SUFFIX):
                continue
            yield entry.name


def _subdirectory_names(directory: Path) -> set[str]:
    """Names of immediate subdirectories; empty if the directory is missing."""
    try:
        with os.scandir(directory) as entries:
            return {entry.name for entry in entries if entry.is_dir()}
    except FileNotFoundError:
        return set()
    except OSError as e:
        raise StorageIOError(
            f"failed to list directory '{directory}': {e}", location=str(directory)
        ) from e


class LocalFilesystemArtifactService:
    """Filesystem-backed artifact service.

    One file per version plus a `.meta` sidecar holding the content type.
    The root directory is created on construction.
    """

    def __init__(self, root_dir: Path) -> None:
        """Initialise the service and create the root directory.

        Args:
            root_dir: Directory under which all artifacts are stored.

        Raises:
            StorageIOError: If the root directory cannot be created.

        """
        try:
            root_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise StorageIOError(
                f"failed to create root dir '{root_dir}': {e}", location=str(root_dir)
            ) from e
        self._root_dir = root_dir

    @property
    def root_dir(self) -> Path:
        """The root directory for storage."""
        return self._root_dir

    def _path(self, loc: addressing.Location) -> Path:
        return self._root_dir.joinpath(*loc)

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
        """Nothing to release; the root directory is left in place."""

    # ========================================================================
    # Version Discovery
    # ========================================================================

    def _scan_versions(self, container: Path) -> tuple[int, ...]:
        """Parse the versions stored in a container directory.

        Raises:
            ArtifactNotFoundError: If the directory is missing or holds no
                versions.
            StorageIOError: If the directory cannot be read.

        """
        try:
            versions = parse_versions(_version_entry_names(container))
        except FileNotFoundError as e:
            raise ArtifactNotFoundError(
                f"artifact not found at '{container}'"
            ) from e
        except OSError as e:
            raise StorageIOError(
                f"failed to list versions in '{container}': {e}",
                location=str(container),
            ) from e

        if not versions:
            raise ArtifactNotFoundError(f"artifact not found at '{container}'")
        return tuple(versions)

    def _existing_versions(self, container: Path) -> tuple[int, ...]:
        """Like _scan_versions, but an absent artifact has no versions."""
        try:
            return self._scan_versions(container)
        except ArtifactNotFoundError:
            return ()

    # ========================================================================
    # Artifact Operations
    # ========================================================================

    async def save(self, request: SaveRequest) -> SaveResponse:
        """Write the payload and its content type sidecar."""
        request.validate()
        container = self._path(
            addressing.container_location(
                request.app_name,
                request.user_id,
                request.session_id,
                request.file_name,
            )
        )
        data = request.part.payload()
        content_type = request.part.content_type

        try:
            container.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise StorageIOError(
                f"failed to create directory '{container}': {e}",
                location=str(container),
            ) from e

        if request.version > 0:
            version = request.version
            path = container / str(version)
            await self._write_payload(path, data, mode="wb")
        else:
            version, path = await self._write_allocated(container, data)

        meta_path = path.with_name(path.name + SIDECAR_SUFFIX)
        try:
            async with aiofiles.open(meta_path, "wb") as f:
                await f.write(content_type.encode("utf-8"))
        except OSError as e:
            with contextlib.suppress(OSError):
                path.unlink()
            raise StorageIOError(
                f"failed to write metadata file '{meta_path}': {e}",
                location=str(meta_path),
            ) from e

        logger.debug("Saved %s (version %d, %d bytes)", path, version, len(data))
        return SaveResponse(version=version)

    async def _write_payload(self, path: Path, data: bytes, mode: str) -> None:
        try:
            async with aiofiles.open(path, mode) as f:
                await f.write(data)
        except FileExistsError:
            raise
        except OSError as e:
            raise StorageIOError(
                f"failed to write file '{path}': {e}", location=str(path)
            ) from e

    async def _write_allocated(self, container: Path, data: bytes) -> tuple[int, Path]:
        """Write the payload under the next free version.

        The payload is created exclusively, so a concurrent writer that
        allocated the same version makes this one re-list and retry.
        """
        for _ in range(MAX_ALLOCATION_ATTEMPTS):
            version = next_version(self._existing_versions(container))
            path = container / str(version)
            try:
                await self._write_payload(path, data, mode="xb")
            except FileExistsError:
                logger.warning(
                    "Version %d of '%s' taken concurrently", version, container
                )
                continue
            return version, path
        raise StorageIOError(
            f"could not allocate a version in '{container}' after "
            f"{MAX_ALLOCATION_ATTEMPTS} attempts",
            location=str(container),
        )

    async def load(self, request: LoadRequest) -> LoadResponse:
        """Read a version; the content type defaults to text/plain."""
        request.validate()
        identity = (
            request.app_name,
            request.user_id,
            request.session_id,
            request.file_name,
        )
        version = request.version
        if version == 0:
            container = self._path(addressing.container_location(*identity))
            version = latest_version(self._scan_versions(container))

        path = self._path(addressing.location(*identity, version))
        try:
            async with aiofiles.open(path, "rb") as f:
                data = await f.read()
        except FileNotFoundError as e:
            raise ArtifactNotFoundError(
                f"artifact '{request.file_name}' version {version} not found"
            ) from e
        except OSError as e:
            raise StorageIOError(
                f"could not read file '{path}': {e}", location=str(path)
            ) from e

        content_type = TEXT_CONTENT_TYPE
        meta_path = path.with_name(path.name + SIDECAR_SUFFIX)
        try:
            async with aiofiles.open(meta_path, "rb") as f:
                content_type = (await f.read()).decode("utf-8")
        except (OSError, UnicodeDecodeError) as e:
            logger.debug(
                "No usable metadata at %s (%s), using text/plain", meta_path, e
            )

        return LoadResponse(part=Part.from_bytes(data, content_type))

    async def delete(self, request: DeleteRequest) -> None:
        """Remove one version, or the artifact directory when version is 0."""
        request.validate()
        identity = (
            request.app_name,
            request.user_id,
            request.session_id,
            request.file_name,
        )

        if request.version != 0:
            path = self._path(addressing.location(*identity, request.version))
            try:
                path.unlink(missing_ok=True)
            except OSError as e:
                raise StorageIOError(
                    f"failed to delete artifact file '{path}': {e}", location=str(path)
                ) from e
            with contextlib.suppress(OSError):
                path.with_name(path.name + SIDECAR_SUFFIX).unlink(missing_ok=True)
            # Drop the container once its last version is gone; rmdir refuses
            # non-empty directories
            with contextlib.suppress(OSError):
                path.parent.rmdir()
            return

        container = self._path(addressing.container_location(*identity))
        try:
            await asyncio.to_thread(shutil.rmtree, container)
        except FileNotFoundError:
            return
        except OSError as e:
            raise StorageIOError(
                f"failed to delete artifact directory '{container}': {e}",
                location=str(container),
            ) from e
        logger.debug("Deleted artifact directory %s", container)

    async def list(self, request: ListRequest) -> ListResponse:
        """List subdirectory names of the session and user scopes."""
        request.validate()
        session_dir = self._path(
            addressing.session_scope(
                request.app_name, request.user_id, request.session_id
            )
        )
        user_dir = self._path(addressing.user_scope(request.app_name, request.user_id))
        return ListResponse(
            file_names=merge_file_names(
                _subdirectory_names(session_dir), _subdirectory_names(user_dir)
            )
        )

    async def versions(self, request: VersionsRequest) -> VersionsResponse:
        """List the versions found in the artifact directory."""
        request.validate()
        container = self._path(
            addressing.container_location(
                request.app_name,
                request.user_id,
                request.session_id,
                request.file_name,
            )
        )
        return VersionsResponse(versions=list(self._scan_versions(container)))
