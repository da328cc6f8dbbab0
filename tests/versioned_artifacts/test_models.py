"""Tests for request validation and the Part payload type."""

from __future__ import annotations

from typing import Any

import pytest

from versioned_artifacts.errors import ArtifactValidationError
from versioned_artifacts.models import (
    DeleteRequest,
    ListRequest,
    LoadRequest,
    Part,
    SaveRequest,
    VersionsRequest,
)


class TestPart:
    """Tests for Part."""

    def test_text_part_is_stored_as_utf8_text_plain(self) -> None:
        part = Part.from_text("héllo")

        assert part.payload() == "héllo".encode()
        assert part.content_type == "text/plain"

    def test_bytes_part_keeps_mime_type(self) -> None:
        part = Part.from_bytes(b"\x89PNG", "image/png")

        assert part.payload() == b"\x89PNG"
        assert part.content_type == "image/png"

    def test_empty_text_is_a_valid_payload(self) -> None:
        Part.from_text("").validate()

    def test_part_without_payload_is_invalid(self) -> None:
        with pytest.raises(ArtifactValidationError):
            Part().validate()

    def test_inline_data_without_mime_type_is_invalid(self) -> None:
        with pytest.raises(ArtifactValidationError, match="mime_type"):
            Part(data=b"x").validate()


class TestRequestValidation:
    """Tests for validate() on each request type."""

    @pytest.mark.parametrize(
        "field", ["app_name", "user_id", "session_id", "file_name"]
    )
    def test_save_requires_identity_fields(self, field: str) -> None:
        values: dict[str, Any] = {
            "app_name": "app",
            "user_id": "u1",
            "session_id": "s1",
            "file_name": "notes.txt",
        }
        values[field] = ""

        with pytest.raises(ArtifactValidationError, match=field):
            SaveRequest(**values, part=Part.from_text("x")).validate()

    def test_save_requires_part(self) -> None:
        request = SaveRequest(
            "app", "u1", "s1", "notes.txt", None  # type: ignore[arg-type]
        )

        with pytest.raises(ArtifactValidationError, match="part"):
            request.validate()

    def test_negative_versions_are_rejected(self) -> None:
        with pytest.raises(ArtifactValidationError):
            LoadRequest("app", "u1", "s1", "notes.txt", version=-1).validate()
        with pytest.raises(ArtifactValidationError):
            DeleteRequest("app", "u1", "s1", "notes.txt", version=-1).validate()
        with pytest.raises(ArtifactValidationError):
            SaveRequest(
                "app", "u1", "s1", "notes.txt", Part.from_text("x"), version=-1
            ).validate()

    def test_list_requires_session(self) -> None:
        with pytest.raises(ArtifactValidationError, match="session_id"):
            ListRequest("app", "u1", "").validate()

    def test_versions_requires_file_name(self) -> None:
        with pytest.raises(ArtifactValidationError, match="file_name"):
            VersionsRequest("app", "u1", "s1", "").validate()

    def test_complete_requests_validate(self) -> None:
        SaveRequest(
            "app", "u1", "s1", "notes.txt", Part.from_text("x"), version=2
        ).validate()
        LoadRequest("app", "u1", "s1", "notes.txt").validate()
        DeleteRequest("app", "u1", "s1", "notes.txt").validate()
        ListRequest("app", "u1", "s1").validate()
        VersionsRequest("app", "u1", "s1", "notes.txt").validate()
