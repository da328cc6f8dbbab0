"""Whole-artifact deletion fan-out.

Stores without an atomic "remove directory" delete every version one by
one. The deletions run concurrently inside an asyncio.TaskGroup with a
semaphore bounding how many are in flight. The first failure cancels the
rest, and completed deletions are not rolled back.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable, Iterable

from versioned_artifacts.errors import PartialFailureError, StorageIOError

logger = logging.getLogger(__name__)

DEFAULT_MAX_CONCURRENCY = 8


async def delete_versions(
    versions: Iterable[int],
    delete_one: Callable[[int], Awaitable[None]],
    max_concurrency: int = DEFAULT_MAX_CONCURRENCY,
) -> None:
    """Delete every given version concurrently.

    Args:
        versions: Versions to delete, fetched just before calling.
        delete_one: Coroutine function deleting a single version. It must
            treat an already-absent version as success.
        max_concurrency: Upper bound on deletions in flight.

    Raises:
        PartialFailureError: If any deletion fails. Chained to the first
            failure observed.

    """
    semaphore = asyncio.Semaphore(max(1, max_concurrency))

    async def _bounded(version: int) -> None:
        async with semaphore:
            await delete_one(version)

    try:
        async with asyncio.TaskGroup() as group:
            for version in versions:
                group.create_task(_bounded(version))
    except ExceptionGroup as eg:
        first = eg.exceptions[0]
        location = first.location if isinstance(first, StorageIOError) else None
        logger.debug("Fan-out deletion failed with %d error(s)", len(eg.exceptions))
        raise PartialFailureError(
            f"failed to delete all versions: {first}", location=location
        ) from first
