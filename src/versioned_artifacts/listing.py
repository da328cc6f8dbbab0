"""Merging of session and user scoped artifact names."""

from __future__ import annotations

from collections.abc import Iterable


def merge_file_names(*name_groups: Iterable[str]) -> list[str]:
    """Union the given name groups into a sorted, deduplicated list."""
    names: set[str] = set()
    for group in name_groups:
        names.update(group)
    return sorted(names)
