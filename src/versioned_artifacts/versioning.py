"""Version allocation and parsing.

Versions are discovered by enumerating an artifact's container, so the
helpers here operate on whatever integers a backend found.
"""

from __future__ import annotations

from collections.abc import Iterable

from versioned_artifacts.errors import ArtifactNotFoundError

# Re-list and retry this many times when a conditional write loses a race
MAX_ALLOCATION_ATTEMPTS = 5


def parse_version(name: str) -> int | None:
    """Parse a stored entry name as a version.

    Returns:
        The version, or None if the name is not the canonical decimal form
        of a positive integer. Locations are built with str(version), so
        a zero-padded name could never be read back.

    """
    if not name.isascii() or not name.isdigit() or str(int(name)) != name:
        return None
    version = int(name)
    return version if version > 0 else None


def parse_versions(names: Iterable[str]) -> list[int]:
    """Parse entry names, silently dropping the ones that are not versions."""
    versions: set[int] = set()
    for name in names:
        version = parse_version(name)
        if version is not None:
            versions.add(version)
    return sorted(versions)


def next_version(existing: Iterable[int]) -> int:
    """Version to assign to the next save: 1 when empty, else max + 1."""
    return max(existing, default=0) + 1


def latest_version(existing: Iterable[int]) -> int:
    """Highest existing version.

    Raises:
        ArtifactNotFoundError: If there are no versions.

    """
    latest = max(existing, default=0)
    if latest == 0:
        raise ArtifactNotFoundError("artifact not found")
    return latest
