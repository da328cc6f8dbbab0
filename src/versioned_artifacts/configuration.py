"""Artifact service configuration using a discriminated union.

Each backend defines its own config class with a `create_service()`
method. Pydantic's discriminated union on the `type` field picks the
right class when deserialising. Configuration can be given explicitly or
read from environment variables as a fallback.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Annotated, Any, Literal, Self

from pydantic import BaseModel, ConfigDict, Field, RootModel

from versioned_artifacts.base import ArtifactService
from versioned_artifacts.deletion import DEFAULT_MAX_CONCURRENCY
from versioned_artifacts.filesystem import LocalFilesystemArtifactService
from versioned_artifacts.in_memory import InMemoryArtifactService
from versioned_artifacts.s3 import S3ArtifactService


class _StoreConfig(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")


class MemoryStoreConfig(_StoreConfig):
    """Config for in-memory service (testing, ephemeral runs)."""

    type: Literal["memory"] = "memory"

    def create_service(self) -> ArtifactService:
        """Create an in-memory artifact service."""
        return InMemoryArtifactService()


class FilesystemStoreConfig(_StoreConfig):
    """Config for local filesystem service."""

    type: Literal["filesystem"] = "filesystem"
    root_dir: Path = Path(".artifacts")

    def create_service(self) -> ArtifactService:
        """Create a filesystem-backed artifact service.

        Raises:
            StorageIOError: If the root directory cannot be created.

        """
        return LocalFilesystemArtifactService(root_dir=self.root_dir)


class S3StoreConfig(_StoreConfig):
    """Config for an S3-compatible object store service.

    Credentials left unset are resolved by the default AWS chain
    (environment, shared config files, instance metadata).
    """

    type: Literal["s3"] = "s3"
    bucket: str = Field(min_length=1)
    endpoint_url: str | None = Field(
        default=None, description="Custom endpoint, e.g. MinIO or SeaweedFS"
    )
    region: str | None = None
    access_key_id: str | None = None
    secret_access_key: str | None = None
    force_path_style: bool = False
    max_delete_concurrency: int = Field(default=DEFAULT_MAX_CONCURRENCY, ge=1)
    conditional_writes: bool = True

    def create_service(self) -> ArtifactService:
        """Create an S3-backed artifact service."""
        return S3ArtifactService.from_config(self)


# Type alias for the union of all config types
_ServiceConfigUnion = Annotated[
    MemoryStoreConfig | FilesystemStoreConfig | S3StoreConfig,
    Field(discriminator="type"),
]


class ArtifactServiceConfiguration(RootModel[_ServiceConfigUnion]):
    """Artifact service configuration with automatic backend selection.

    Example:
        >>> config = ArtifactServiceConfiguration.model_validate(
        ...     {"type": "filesystem", "root_dir": "/var/artifacts"}
        ... )
        >>> service = config.create_service()

        >>> # Zero-config, reads ARTIFACT_SERVICE_* environment variables
        >>> config = ArtifactServiceConfiguration.from_properties({})

    """

    model_config = ConfigDict(frozen=True)

    def create_service(self) -> ArtifactService:
        """Create the configured artifact service.

        Delegates to the inner config's create_service method.
        """
        return self.root.create_service()

    @classmethod
    def from_properties(cls, properties: dict[str, Any]) -> Self:
        """Create configuration from properties with environment fallback.

        Explicit properties take priority over environment variables,
        which take priority over defaults.

        Environment variables used:
        - ARTIFACT_SERVICE_TYPE: Backend type (default: "memory")
        - ARTIFACT_SERVICE_ROOT: Filesystem root directory
        - ARTIFACT_SERVICE_BUCKET: S3 bucket name
        - ARTIFACT_SERVICE_ENDPOINT_URL: S3 endpoint URL
        - ARTIFACT_SERVICE_REGION: S3 region

        Args:
            properties: Configuration properties dictionary

        Returns:
            Validated configuration instance

        Raises:
            ValidationError: If configuration is invalid

        """
        config_data = properties.copy()

        if "type" not in config_data:
            config_data["type"] = os.getenv("ARTIFACT_SERVICE_TYPE", "memory").lower()

        backend = config_data["type"]
        if backend == "filesystem":
            root = os.getenv("ARTIFACT_SERVICE_ROOT")
            if "root_dir" not in config_data and root:
                config_data["root_dir"] = root
        elif backend == "s3":
            env_fallbacks = {
                "bucket": "ARTIFACT_SERVICE_BUCKET",
                "endpoint_url": "ARTIFACT_SERVICE_ENDPOINT_URL",
                "region": "ARTIFACT_SERVICE_REGION",
            }
            for field_name, env_var in env_fallbacks.items():
                value = os.getenv(env_var)
                if field_name not in config_data and value:
                    config_data[field_name] = value

        return cls.model_validate(config_data)
