"""Request parsing helpers for Falcon resource adapters.

This module turns request media and query strings into typed service inputs.
An empty body is accepted and parsed as an empty request so that the services
report the missing fields, as they do for partially filled bodies.

Examples
--------
>>> request = build_publication_request(
...     {"publicationName": "sales_pub", "database": "salesdb"}
... )
"""

from __future__ import annotations

import typing as typ

import falcon

from replication_controller.config import parse_bool
from replication_controller.errors import ConfigurationError, ValidationError
from replication_controller.publications import PublicationRequest

if typ.TYPE_CHECKING:
    from .types import JsonPayload


async def read_payload(req: falcon.asgi.Request) -> JsonPayload:
    """Return the JSON object body of ``req``, or ``{}`` when the body is empty.

    Raises
    ------
    falcon.HTTPBadRequest
        Raised when the body is not a JSON object. Malformed JSON is rejected
        by Falcon itself with the same status.
    """
    media = await req.get_media(default_when_empty=None)
    if media is None:
        return {}
    if not isinstance(media, dict):
        msg = "JSON object payload is required."
        raise falcon.HTTPBadRequest(description=msg)
    return typ.cast("JsonPayload", media)


def _optional_text(payload: JsonPayload, field_name: str) -> str:
    """Return a string field, treating a missing field as empty."""
    value = payload.get(field_name, "")
    if value is None:
        return ""
    if not isinstance(value, str):
        msg = f"{field_name} must be a string."
        raise ValidationError(msg)
    return value


def build_publication_request(payload: JsonPayload) -> PublicationRequest:
    """Build a ``PublicationRequest`` from a create/alter/drop body.

    Raises
    ------
    ValidationError
        Raised when a field has the wrong JSON type.
    """
    return PublicationRequest.build(
        name=_optional_text(payload, "publicationName"),
        database=_optional_text(payload, "database"),
        tables=payload.get("tables"),
        schemas=payload.get("schemas"),
    )


def parse_username(payload: JsonPayload) -> str:
    """Return the ``username`` field of a grant body."""
    return _optional_text(payload, "username")


def parse_bool_param(req: falcon.Request, name: str, *, default: bool = False) -> bool:
    """Parse a boolean query parameter.

    Raises
    ------
    falcon.HTTPBadRequest
        Raised when the parameter is present but not a boolean literal.
    """
    raw = req.get_param(name)
    if not raw:
        return default
    try:
        return parse_bool(raw, name)
    except ConfigurationError as exc:
        raise falcon.HTTPBadRequest(description=str(exc)) from exc


__all__ = [
    "build_publication_request",
    "parse_bool_param",
    "parse_username",
    "read_payload",
]
