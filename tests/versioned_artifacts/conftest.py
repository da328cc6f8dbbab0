"""Shared fixtures for artifact service tests.

The S3 service is exercised against FakeS3Client, an in-process stand-in
for a boto3 S3 client. It raises real botocore ClientErrors and returns
real StreamingBody objects so error classification and stream handling
run exactly as they would against a live endpoint.
"""

from __future__ import annotations

import io
import time
from collections.abc import Iterator
from pathlib import Path
from typing import Any

import pytest
from botocore.exceptions import ClientError
from botocore.response import StreamingBody

from versioned_artifacts.base import ArtifactService
from versioned_artifacts.filesystem import LocalFilesystemArtifactService
from versioned_artifacts.in_memory import InMemoryArtifactService
from versioned_artifacts.s3 import S3ArtifactService

TEST_BUCKET = "test-bucket"


def make_client_error(code: str, operation: str, status: int) -> ClientError:
    """Build a ClientError shaped like the ones botocore raises."""
    return ClientError(
        {
            "Error": {"Code": code, "Message": code},
            "ResponseMetadata": {"HTTPStatusCode": status},
        },
        operation,
    )


class _FakePaginator:
    def __init__(self, client: FakeS3Client) -> None:
        self._client = client

    def paginate(
        self,
        *,
        Bucket: str,  # noqa: N803
        Prefix: str = "",  # noqa: N803
    ) -> Iterator[dict[str, Any]]:
        self._client.list_calls.append(Prefix)
        if self._client.fail_listing:
            raise make_client_error("InternalError", "ListObjectsV2", 500)
        keys = sorted(key for key in self._client.objects if key.startswith(Prefix))
        size = self._client.page_size
        for start in range(0, max(len(keys), 1), size):
            chunk = keys[start : start + size]
            page: dict[str, Any] = {"KeyCount": len(chunk), "Prefix": Prefix}
            if chunk:
                page["Contents"] = [
                    {"Key": key, "Size": len(self._client.objects[key][0])}
                    for key in chunk
                ]
            yield page


class FakeS3Client:
    """Dict-backed subset of the boto3 S3 client API used by S3ArtifactService."""

    def __init__(self, page_size: int = 1000) -> None:
        self.objects: dict[str, tuple[bytes, str]] = {}
        self.page_size = page_size
        self.list_calls: list[str] = []
        self.put_calls: list[dict[str, Any]] = []
        self.deleted: list[str] = []
        self.failing_deletes: set[str] = set()
        self.missing_on_delete: set[str] = set()
        # Key -> seconds a delete_object call blocks before it lands
        self.slow_deletes: dict[str, float] = {}
        # Keys another writer claims just before our conditional put lands
        self.preempted_keys: set[str] = set()
        self.fail_listing = False
        self.closed = False

    def put_object(
        self,
        *,
        Bucket: str,  # noqa: N803
        Key: str,  # noqa: N803
        Body: bytes,  # noqa: N803
        ContentType: str,  # noqa: N803
        IfNoneMatch: str | None = None,  # noqa: N803
    ) -> dict[str, Any]:
        self.put_calls.append(
            {"Key": Key, "ContentType": ContentType, "IfNoneMatch": IfNoneMatch}
        )
        if Key in self.preempted_keys:
            self.preempted_keys.discard(Key)
            self.objects[Key] = (b"other writer", "text/plain")
        if IfNoneMatch == "*" and Key in self.objects:
            raise make_client_error("PreconditionFailed", "PutObject", 412)
        self.objects[Key] = (bytes(Body), ContentType)
        return {"ETag": '"fake"'}

    def get_object(self, *, Bucket: str, Key: str) -> dict[str, Any]:  # noqa: N803
        if Key not in self.objects:
            raise make_client_error("NoSuchKey", "GetObject", 404)
        data, content_type = self.objects[Key]
        return {
            "Body": StreamingBody(io.BytesIO(data), len(data)),
            "ContentType": content_type,
            "ContentLength": len(data),
        }

    def delete_object(self, *, Bucket: str, Key: str) -> dict[str, Any]:  # noqa: N803
        if Key in self.failing_deletes:
            raise make_client_error("InternalError", "DeleteObject", 500)
        if Key in self.slow_deletes:
            time.sleep(self.slow_deletes[Key])
        if Key in self.missing_on_delete:
            raise make_client_error("NoSuchKey", "DeleteObject", 404)
        self.objects.pop(Key, None)
        self.deleted.append(Key)
        return {}

    def get_paginator(self, operation_name: str) -> _FakePaginator:
        assert operation_name == "list_objects_v2"
        return _FakePaginator(self)

    def close(self) -> None:
        self.closed = True


@pytest.fixture
def fake_s3_client() -> FakeS3Client:
    """Create an empty fake S3 client."""
    return FakeS3Client()


@pytest.fixture
def s3_service(fake_s3_client: FakeS3Client) -> S3ArtifactService:
    """Create an S3 service backed by the fake client."""
    return S3ArtifactService(TEST_BUCKET, fake_s3_client)  # type: ignore[arg-type]


@pytest.fixture
def filesystem_service(tmp_path: Path) -> LocalFilesystemArtifactService:
    """Create a filesystem service rooted in a temporary directory."""
    return LocalFilesystemArtifactService(tmp_path / "artifacts")


@pytest.fixture
def in_memory_service() -> InMemoryArtifactService:
    """Create an in-memory service."""
    return InMemoryArtifactService()


@pytest.fixture(params=["filesystem", "s3", "in_memory"])
def artifact_service(
    request: pytest.FixtureRequest,
    filesystem_service: LocalFilesystemArtifactService,
    s3_service: S3ArtifactService,
    in_memory_service: InMemoryArtifactService,
) -> ArtifactService:
    """Parametrised fixture providing every backend implementation."""
    services: dict[str, ArtifactService] = {
        "filesystem": filesystem_service,
        "s3": s3_service,
        "in_memory": in_memory_service,
    }
    return services[request.param]
