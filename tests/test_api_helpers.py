"""Unit tests for request parsing in ``replication_controller.api.helpers``.

These tests cover body-to-request mapping used by the Falcon resources:
camel-case field names, set semantics for tables and schemas, and type
validation of JSON fields.

Run these tests directly with:

```bash
python -m pytest -v tests/test_api_helpers.py
```
"""

from __future__ import annotations

import pytest

from replication_controller.api import helpers
from replication_controller.errors import ValidationError
from replication_controller.publications import PublicationRequest


class TestBuildPublicationRequest:
    """Tests for ``build_publication_request``."""

    @staticmethod
    def test_maps_camel_case_fields() -> None:
        """Map ``publicationName`` and list fields onto the request."""
        request = helpers.build_publication_request({
            "publicationName": "sales_pub",
            "database": "salesdb",
            "tables": ["public.orders"],
            "schemas": ["sales"],
        })

        assert request == PublicationRequest(
            name="sales_pub",
            database="salesdb",
            tables=("public.orders",),
            schemas=("sales",),
        ), "Expected payload fields to map onto PublicationRequest."

    @staticmethod
    def test_duplicates_are_removed_in_first_seen_order() -> None:
        """Collapse repeated members while keeping their first position."""
        request = helpers.build_publication_request({
            "publicationName": "p",
            "database": "db",
            "tables": ["b", "a", "b"],
            "schemas": ["s", "s"],
        })

        assert request.tables == ("b", "a")
        assert request.schemas == ("s",)

    @staticmethod
    def test_missing_fields_become_empty() -> None:
        """Leave absent fields empty so services report them."""
        request = helpers.build_publication_request({})

        assert request == PublicationRequest(name="", database="")
        assert not request.has_members

    @staticmethod
    @pytest.mark.parametrize(
        "payload",
        [
            {"publicationName": 1, "database": "db"},
            {"publicationName": "p", "database": "db", "tables": "orders"},
            {"publicationName": "p", "database": "db", "schemas": [1]},
        ],
    )
    def test_wrong_json_types_are_rejected(payload: dict[str, object]) -> None:
        """Reject fields with the wrong JSON type."""
        with pytest.raises(ValidationError):
            helpers.build_publication_request(payload)


class TestParseUsername:
    """Tests for ``parse_username``."""

    @staticmethod
    def test_returns_username() -> None:
        """Return the username field."""
        assert helpers.parse_username({"username": "app"}) == "app"

    @staticmethod
    def test_null_username_is_empty() -> None:
        """Treat a JSON null as an empty username."""
        assert helpers.parse_username({"username": None}) == ""
