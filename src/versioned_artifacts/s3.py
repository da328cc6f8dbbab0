"""S3-compatible object store artifact service.

Uses boto3 for AWS S3, MinIO, SeaweedFS and other S3-compatible stores.
boto3 is synchronous, so every call is wrapped in asyncio.to_thread.

Key structure:
    {app_name}/{user_id}/{session_id}/{file_name}/{version}
    {app_name}/{user_id}/user/{file_name}/{version}     # user scoped

The content type is stored as the object's own ContentType metadata.
There are no directories: versions and names are found by listing keys
under a prefix, and deleting a whole artifact deletes every version key.
"""

from __future__ import annotations

import asyncio
import logging
from types import TracebackType
from typing import TYPE_CHECKING, Any, Self

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from versioned_artifacts import addressing
from versioned_artifacts.deletion import DEFAULT_MAX_CONCURRENCY, delete_versions
from versioned_artifacts.errors import ArtifactNotFoundError, StorageIOError
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
from versioned_artifacts.versioning import (
    MAX_ALLOCATION_ATTEMPTS,
    latest_version,
    next_version,
    parse_versions,
)

if TYPE_CHECKING:
    from botocore.client import BaseClient

    from versioned_artifacts.configuration import S3StoreConfig

logger = logging.getLogger(__name__)

DEFAULT_CONTENT_TYPE = "application/octet-stream"

_NOT_FOUND_CODES = frozenset({"404", "NoSuchKey", "NotFound"})
# Returned when a conditional put finds the key already written
_CONFLICT_CODES = frozenset(
    {"412", "PreconditionFailed", "ConditionalRequestConflict"}
)


def _error_code(error: ClientError) -> str:
    return str(error.response.get("Error", {}).get("Code", ""))


def _is_not_found(error: Exception) -> bool:
    return isinstance(error, ClientError) and _error_code(error) in _NOT_FOUND_CODES


def _close_after_failure(key: str, body: Any) -> None:
    """Close a body whose read already failed, keeping the read error."""
    try:
        body.close()
    except Exception as e:
        logger.debug("Ignoring close error for '%s': %s", key, e)


class _VersionTaken(Exception):
    """A conditional put found the allocated version already written."""


class S3ArtifactService:
    """Object-store backed artifact service.

    One object per version. Holds a boto3 client and a bucket name, both
    read-only after construction.
    """

    def __init__(
        self,
        bucket: str,
        client: BaseClient | None = None,
        *,
        max_delete_concurrency: int = DEFAULT_MAX_CONCURRENCY,
        conditional_writes: bool = True,
    ) -> None:
        """Initialise the service for a bucket.

        Args:
            bucket: Name of an existing bucket.
            client: boto3 S3 client. Created from the default AWS
                configuration chain if omitted.
            max_delete_concurrency: Upper bound on parallel deletions when
                deleting every version of an artifact.
            conditional_writes: Guard allocated versions with
                `If-None-Match: *` so concurrent saves cannot overwrite
                each other. Disable for stores that reject the header.

        """
        self._bucket = bucket
        self._client = client if client is not None else boto3.client("s3")
        self._max_delete_concurrency = max_delete_concurrency
        self._conditional_writes = conditional_writes

    @classmethod
    def from_config(cls, config: S3StoreConfig) -> Self:
        """Create a service and its boto3 client from configuration."""
        client_config = None
        if config.force_path_style:
            client_config = Config(s3={"addressing_style": "path"})
        client = boto3.client(
            "s3",
            endpoint_url=config.endpoint_url,
            region_name=config.region,
            aws_access_key_id=config.access_key_id,
            aws_secret_access_key=config.secret_access_key,
            config=client_config,
        )
        return cls(
            config.bucket,
            client,
            max_delete_concurrency=config.max_delete_concurrency,
            conditional_writes=config.conditional_writes,
        )

    @property
    def bucket(self) -> str:
        """The bucket holding every artifact key."""
        return self._bucket

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
        """Close the underlying client connections."""
        await asyncio.to_thread(self._client.close)

    # ========================================================================
    # Object Primitives (sync, run via asyncio.to_thread)
    # ========================================================================

    def _list_keys(self, prefix: str) -> tuple[str, ...]:
        keys: list[str] = []
        try:
            paginator = self._client.get_paginator("list_objects_v2")
            for page in paginator.paginate(Bucket=self._bucket, Prefix=prefix):
                keys.extend(obj["Key"] for obj in page.get("Contents", []))
        except (BotoCoreError, ClientError) as e:
            raise StorageIOError(
                f"error iterating objects under '{prefix}': {e}", location=prefix
            ) from e
        return tuple(keys)

    def _put_object(
        self, key: str, data: bytes, content_type: str, exclusive: bool
    ) -> None:
        params: dict[str, Any] = {
            "Bucket": self._bucket,
            "Key": key,
            "Body": data,
            "ContentType": content_type,
        }
        if exclusive:
            params["IfNoneMatch"] = "*"
        try:
            self._client.put_object(**params)
        except ClientError as e:
            if exclusive and _error_code(e) in _CONFLICT_CODES:
                raise _VersionTaken(key) from e
            raise StorageIOError(
                f"failed to write object '{key}': {e}", location=key
            ) from e
        except BotoCoreError as e:
            raise StorageIOError(
                f"failed to write object '{key}': {e}", location=key
            ) from e

    def _get_object(self, key: str) -> tuple[bytes, str]:
        """Buffer an object's body; the body stream is always closed."""
        try:
            response = self._client.get_object(Bucket=self._bucket, Key=key)
        except ClientError as e:
            if _is_not_found(e):
                raise ArtifactNotFoundError(f"artifact '{key}' not found") from e
            raise StorageIOError(
                f"could not get object '{key}': {e}", location=key
            ) from e
        except BotoCoreError as e:
            raise StorageIOError(
                f"could not get object '{key}': {e}", location=key
            ) from e

        body = response["Body"]
        try:
            data = body.read()
        except (BotoCoreError, OSError) as e:
            _close_after_failure(key, body)
            raise StorageIOError(
                f"could not read data from object '{key}': {e}", location=key
            ) from e
        except BaseException:
            _close_after_failure(key, body)
            raise

        try:
            body.close()
        except (BotoCoreError, OSError) as e:
            raise StorageIOError(
                f"failed to close object reader for '{key}': {e}", location=key
            ) from e

        return data, response.get("ContentType") or DEFAULT_CONTENT_TYPE

    def _delete_object(self, key: str) -> None:
        try:
            self._client.delete_object(Bucket=self._bucket, Key=key)
        except ClientError as e:
            if _is_not_found(e):
                return
            raise StorageIOError(
                f"failed to delete artifact '{key}': {e}", location=key
            ) from e
        except BotoCoreError as e:
            raise StorageIOError(
                f"failed to delete artifact '{key}': {e}", location=key
            ) from e

    # ========================================================================
    # Version Discovery
    # ========================================================================

    async def _existing_versions(
        self, app_name: str, user_id: str, session_id: str, file_name: str
    ) -> tuple[int, ...]:
        """Versions stored for an artifact, possibly none."""
        prefix = addressing.key_prefix(
            addressing.container_location(app_name, user_id, session_id, file_name)
        )
        keys = await asyncio.to_thread(self._list_keys, prefix)
        return tuple(parse_versions(key.rsplit("/", 1)[-1] for key in keys))

    # ========================================================================
    # Artifact Operations
    # ========================================================================

    async def save(self, request: SaveRequest) -> SaveResponse:
        """Write a version object with its content type as metadata."""
        request.validate()
        identity = (
            request.app_name,
            request.user_id,
            request.session_id,
            request.file_name,
        )
        data = request.part.payload()
        content_type = request.part.content_type

        if request.version > 0:
            key = addressing.object_key(addressing.location(*identity, request.version))
            await asyncio.to_thread(self._put_object, key, data, content_type, False)
            logger.debug("Uploaded %s, size=%d", key, len(data))
            return SaveResponse(version=request.version)

        for _ in range(MAX_ALLOCATION_ATTEMPTS):
            version = next_version(await self._existing_versions(*identity))
            key = addressing.object_key(addressing.location(*identity, version))
            try:
                await asyncio.to_thread(
                    self._put_object, key, data, content_type, self._conditional_writes
                )
            except _VersionTaken:
                logger.warning("Version %d of '%s' taken concurrently", version, key)
                continue
            logger.debug("Uploaded %s, size=%d", key, len(data))
            return SaveResponse(version=version)

        prefix = addressing.key_prefix(addressing.container_location(*identity))
        raise StorageIOError(
            f"could not allocate a version under '{prefix}' after "
            f"{MAX_ALLOCATION_ATTEMPTS} attempts",
            location=prefix,
        )

    async def load(self, request: LoadRequest) -> LoadResponse:
        """Read a version object, the latest when version is 0."""
        request.validate()
        identity = (
            request.app_name,
            request.user_id,
            request.session_id,
            request.file_name,
        )
        version = request.version
        if version == 0:
            version = latest_version(await self._existing_versions(*identity))

        key = addressing.object_key(addressing.location(*identity, version))
        data, content_type = await asyncio.to_thread(self._get_object, key)
        logger.debug("Downloaded %s, size=%d", key, len(data))
        return LoadResponse(part=Part.from_bytes(data, content_type))

    async def delete(self, request: DeleteRequest) -> None:
        """Delete one version key, or fan out over every version key."""
        request.validate()
        identity = (
            request.app_name,
            request.user_id,
            request.session_id,
            request.file_name,
        )

        if request.version != 0:
            key = addressing.object_key(addressing.location(*identity, request.version))
            await asyncio.to_thread(self._delete_object, key)
            return

        async def _delete_version(version: int) -> None:
            key = addressing.object_key(addressing.location(*identity, version))
            pending = asyncio.ensure_future(
                asyncio.to_thread(self._delete_object, key)
            )
            try:
                await asyncio.shield(pending)
            except asyncio.CancelledError:
                # The worker thread cannot be interrupted, so wait for it to
                # land before unwinding
                try:
                    await pending
                except StorageIOError as e:
                    logger.debug("Cancelled deletion of '%s' failed: %s", key, e)
                raise

        versions = await self._existing_versions(*identity)
        await delete_versions(versions, _delete_version, self._max_delete_concurrency)
        logger.debug("Deleted %d version(s) of '%s'", len(versions), request.file_name)

    async def _file_names_under(self, prefix: str) -> set[str]:
        """Artifact names found under a scope prefix."""
        names: set[str] = set()
        for key in await asyncio.to_thread(self._list_keys, prefix):
            # app/user/{session|user}/file_name/version
            segments = key.split("/")
            if len(segments) < 2:
                raise StorageIOError(
                    f"incorrect number of segments in key '{key}'", location=key
                )
            names.add(segments[-2])
        return names

    async def list(self, request: ListRequest) -> ListResponse:
        """List artifact names under the session and user prefixes."""
        request.validate()
        session_names = await self._file_names_under(
            addressing.key_prefix(
                addressing.session_scope(
                    request.app_name, request.user_id, request.session_id
                )
            )
        )
        user_names = await self._file_names_under(
            addressing.key_prefix(
                addressing.user_scope(request.app_name, request.user_id)
            )
        )
        return ListResponse(file_names=merge_file_names(session_names, user_names))

    async def versions(self, request: VersionsRequest) -> VersionsResponse:
        """List stored versions; an artifact without any is not found."""
        request.validate()
        versions = await self._existing_versions(
            request.app_name, request.user_id, request.session_id, request.file_name
        )
        if not versions:
            raise ArtifactNotFoundError(f"artifact '{request.file_name}' not found")
        return VersionsResponse(versions=list(versions))
