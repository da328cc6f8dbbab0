"""Artifact service factory.

Selects and constructs the configured backend. Configuration can be
provided explicitly or will be read from environment variables as a
fallback.
"""

from __future__ import annotations

import logging

from pydantic import ValidationError

from versioned_artifacts.base import ArtifactService
from versioned_artifacts.configuration import ArtifactServiceConfiguration
from versioned_artifacts.errors import StorageIOError

logger = logging.getLogger(__name__)


class ArtifactServiceFactory:
    """Factory for creating artifact service instances.

    Example:
        ```python
        # Zero-config (reads ARTIFACT_SERVICE_* from environment)
        service = ArtifactServiceFactory().create()

        # Explicit configuration
        config = ArtifactServiceConfiguration.model_validate(
            {
                "type": "s3",
                "bucket": "artifacts",
                "endpoint_url": "http://localhost:9000",
            }
        )
        service = ArtifactServiceFactory(config).create()
        ```

    """

    def __init__(self, config: ArtifactServiceConfiguration | None = None) -> None:
        """Initialise factory with optional configuration.

        Args:
            config: Optional explicit configuration. If None, will attempt
                   to create configuration from environment variables.

        """
        self._config = config

    def _get_config(self) -> ArtifactServiceConfiguration | None:
        """Get configuration, either from constructor or environment.

        Returns:
            Configuration instance, or None if configuration is invalid.

        """
        if self._config:
            return self._config

        try:
            return ArtifactServiceConfiguration.from_properties({})
        except ValidationError as e:
            logger.debug(f"Cannot create configuration from environment: {e}")
            return None

    def can_create(self) -> bool:
        """Check if an artifact service can be created with current configuration."""
        return self._get_config() is not None

    def create(self) -> ArtifactService | None:
        """Create an artifact service instance.

        Returns:
            ArtifactService instance, or None if service unavailable.

        """
        config = self._get_config()
        if not config:
            logger.debug("Cannot create artifact service - configuration invalid")
            return None

        try:
            service = config.create_service()
        except StorageIOError as e:
            logger.warning(f"Cannot create '{config.root.type}' artifact service: {e}")
            return None

        logger.info(f"Creating {config.root.type} artifact service")
        return service
