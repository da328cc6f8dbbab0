"""Versioned artifact storage with filesystem and S3-compatible backends."""

from versioned_artifacts.base import ArtifactService
from versioned_artifacts.configuration import (
    ArtifactServiceConfiguration,
    FilesystemStoreConfig,
    MemoryStoreConfig,
    S3StoreConfig,
)
from versioned_artifacts.errors import (
    ArtifactNotFoundError,
    ArtifactServiceError,
    ArtifactValidationError,
    PartialFailureError,
    StorageIOError,
)
from versioned_artifacts.factory import ArtifactServiceFactory
from versioned_artifacts.filesystem import LocalFilesystemArtifactService
from versioned_artifacts.in_memory import InMemoryArtifactService
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
from versioned_artifacts.s3 import S3ArtifactService

__all__ = [
    "ArtifactService",
    "ArtifactServiceConfiguration",
    "ArtifactServiceError",
    "ArtifactServiceFactory",
    "ArtifactNotFoundError",
    "ArtifactValidationError",
    "DeleteRequest",
    "FilesystemStoreConfig",
    "InMemoryArtifactService",
    "ListRequest",
    "ListResponse",
    "LoadRequest",
    "LoadResponse",
    "LocalFilesystemArtifactService",
    "MemoryStoreConfig",
    "Part",
    "PartialFailureError",
    "S3ArtifactService",
    "S3StoreConfig",
    "SaveRequest",
    "SaveResponse",
    "StorageIOError",
    "VersionsRequest",
    "VersionsResponse",
]
