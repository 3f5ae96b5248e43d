"""Shared Falcon endpoint handlers translating service errors to HTTP.

Mutating endpoints answer ``200 OK`` in plain text and report every expected
failure (validation, absent publication or database, duplicate object) as
``400``. Only the publication GET distinguishes absence with ``404``.
Unexpected database failures become ``500`` and leave the process running.

Examples
--------
>>> await handle_command(
...     resp,
...     payload=payload,
...     parse=build_publication_request,
...     operation=reconciler.create,
...     request_id=request_id,
... )
"""

from __future__ import annotations

import typing as typ

import falcon

from replication_controller.errors import (
    NotFoundError,
    PublicationConflictError,
    UnexpectedDatabaseError,
    ValidationError,
)
from replication_controller.logging import RequestLogger, get_logger, log_error

from .serializers import serialize_publication

if typ.TYPE_CHECKING:
    import collections.abc as cabc

    from falcon import asgi

    from replication_controller.publications import PublicationReconciler

    from .types import JsonPayload

_logger = get_logger(__name__)

RequestT = typ.TypeVar("RequestT")


def respond_ok(resp: asgi.Response) -> None:
    """Write the plain-text success body used by mutating endpoints."""
    resp.status = falcon.HTTP_200
    resp.content_type = falcon.MEDIA_TEXT
    resp.text = "OK"


def _internal_error(
    exc: UnexpectedDatabaseError,
    request_id: str | None,
) -> falcon.HTTPInternalServerError:
    log_error(RequestLogger(_logger, request_id), "%s", exc, exc_info=exc)
    return falcon.HTTPInternalServerError(description=str(exc))


async def handle_command(
    resp: asgi.Response,
    *,
    payload: JsonPayload,
    parse: cabc.Callable[[JsonPayload], RequestT],
    operation: cabc.Callable[..., cabc.Awaitable[None]],
    request_id: str | None,
) -> None:
    """Parse ``payload``, run a mutating service operation, write the outcome.

    Raises
    ------
    falcon.HTTPBadRequest
        Raised for validation, not-found and duplicate-object failures.
    falcon.HTTPInternalServerError
        Raised for unexpected database failures.
    """
    try:
        request = parse(payload)
        await operation(request, request_id=request_id)
    except (ValidationError, NotFoundError, PublicationConflictError) as exc:
        raise falcon.HTTPBadRequest(description=str(exc)) from exc
    except UnexpectedDatabaseError as exc:
        raise _internal_error(exc, request_id) from exc
    respond_ok(resp)


async def handle_get_publication(
    reconciler: PublicationReconciler,
    *,
    database: str,
    name: str,
    with_tables: bool,
    request_id: str | None,
) -> dict[str, typ.Any]:
    """Fetch one publication and return its JSON payload.

    Raises
    ------
    falcon.HTTPNotFound
        Raised when the publication or its database does not exist.
    falcon.HTTPBadRequest
        Raised when the path parameters are invalid.
    falcon.HTTPInternalServerError
        Raised for unexpected database failures.
    """
    try:
        publication = await reconciler.get(
            database,
            name,
            with_tables=with_tables,
            request_id=request_id,
        )
    except NotFoundError as exc:
        raise falcon.HTTPNotFound(description=str(exc)) from exc
    except ValidationError as exc:
        raise falcon.HTTPBadRequest(description=str(exc)) from exc
    except UnexpectedDatabaseError as exc:
        raise _internal_error(exc, request_id) from exc
    return serialize_publication(publication)


__all__ = ["handle_command", "handle_get_publication", "respond_ok"]
