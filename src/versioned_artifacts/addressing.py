"""Artifact addressing shared by every backend.

Maps an artifact identity to a location, a tuple of path segments:

    {app_name}/{user_id}/{session_id}/{file_name}/{version}   # session scoped
    {app_name}/{user_id}/user/{file_name}/{version}           # user scoped

A file name starting with `user:` is user scoped. The filesystem backend
joins segments under its root directory, the object store joins them
with `/`. Segments are not escaped; callers supply storage-safe names.
"""

from __future__ import annotations

from enum import StrEnum

USER_NAMESPACE_PREFIX = "user:"
USER_SCOPE_SEGMENT = "user"

type Location = tuple[str, ...]


class Scope(StrEnum):
    """Namespace an artifact belongs to."""

    SESSION = "session"
    USER = "user"


def classify(file_name: str) -> Scope:
    """Return the namespace implied by the file name."""
    if file_name.startswith(USER_NAMESPACE_PREFIX):
        return Scope.USER
    return Scope.SESSION


def container_location(
    app_name: str, user_id: str, session_id: str, file_name: str
) -> Location:
    """Location holding every version of one artifact."""
    if classify(file_name) is Scope.USER:
        return (app_name, user_id, USER_SCOPE_SEGMENT, file_name)
    return (app_name, user_id, session_id, file_name)


def location(
    app_name: str, user_id: str, session_id: str, file_name: str, version: int
) -> Location:
    """Location of a single artifact version."""
    return (
        *container_location(app_name, user_id, session_id, file_name),
        str(version),
    )


def session_scope(app_name: str, user_id: str, session_id: str) -> Location:
    """Location under which session scoped artifacts live."""
    return (app_name, user_id, session_id)


def user_scope(app_name: str, user_id: str) -> Location:
    """Location under which user scoped artifacts live."""
    return (app_name, user_id, USER_SCOPE_SEGMENT)


def object_key(loc: Location) -> str:
    """Join a location into a flat object key."""
    return "/".join(loc)


def key_prefix(loc: Location) -> str:
    """Object key prefix matching everything below a location."""
    return object_key(loc) + "/"
