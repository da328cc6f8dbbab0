"""Integration tests against a real S3-compatible endpoint.

These tests need a running endpoint (MinIO, SeaweedFS, LocalStack) and
are skipped unless ARTIFACT_SERVICE_TEST_S3_ENDPOINT is set.
Run with: pytest -m integration
"""

from __future__ import annotations

import os
import uuid
from collections.abc import AsyncIterator

import boto3
import pytest
from botocore.exceptions import ClientError

from versioned_artifacts.configuration import S3StoreConfig
from versioned_artifacts.errors import ArtifactNotFoundError
from versioned_artifacts.models import (
    DeleteRequest,
    ListRequest,
    LoadRequest,
    Part,
    SaveRequest,
    VersionsRequest,
)
from versioned_artifacts.s3 import S3ArtifactService


@pytest.fixture
def require_s3_endpoint() -> str:
    """Skip unless ARTIFACT_SERVICE_TEST_S3_ENDPOINT is set, otherwise return it."""
    endpoint = os.getenv("ARTIFACT_SERVICE_TEST_S3_ENDPOINT")
    if not endpoint:
        pytest.skip("ARTIFACT_SERVICE_TEST_S3_ENDPOINT not set")
    return endpoint


@pytest.fixture
async def live_service(require_s3_endpoint: str) -> AsyncIterator[S3ArtifactService]:
    config = S3StoreConfig(
        bucket=os.getenv("ARTIFACT_SERVICE_TEST_S3_BUCKET", "artifact-service-test"),
        endpoint_url=require_s3_endpoint,
        region=os.getenv("AWS_REGION", "us-east-1"),
        force_path_style=True,
    )
    admin = boto3.client(
        "s3", endpoint_url=config.endpoint_url, region_name=config.region
    )
    try:
        admin.create_bucket(Bucket=config.bucket)
    except ClientError:
        # Bucket already exists from an earlier run
        pass
    finally:
        admin.close()

    async with S3ArtifactService.from_config(config) as service:
        yield service


class TestS3ArtifactServiceIntegration:
    """Round trips through a live object store."""

    @pytest.mark.integration
    async def test_notes_lifecycle(self, live_service: S3ArtifactService) -> None:
        session = f"s-{uuid.uuid4().hex}"

        first = await live_service.save(
            SaveRequest("app", "u1", session, "notes.txt", Part.from_text("hello"))
        )
        second = await live_service.save(
            SaveRequest("app", "u1", session, "notes.txt", Part.from_text("world"))
        )
        latest = await live_service.load(LoadRequest("app", "u1", session, "notes.txt"))
        older = await live_service.load(
            LoadRequest("app", "u1", session, "notes.txt", version=1)
        )

        assert (first.version, second.version) == (1, 2)
        assert latest.part.data == b"world"
        assert latest.part.mime_type == "text/plain"
        assert older.part.data == b"hello"
        versions = await live_service.versions(
            VersionsRequest("app", "u1", session, "notes.txt")
        )
        assert versions.versions == [1, 2]
        assert "notes.txt" in (
            await live_service.list(ListRequest("app", "u1", session))
        ).file_names

        await live_service.delete(DeleteRequest("app", "u1", session, "notes.txt"))

        with pytest.raises(ArtifactNotFoundError):
            await live_service.load(LoadRequest("app", "u1", session, "notes.txt"))
