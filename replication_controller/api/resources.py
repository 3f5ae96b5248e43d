"""Falcon resources for publication, user-grant and health endpoints."""

from __future__ import annotations

import typing as typ

import falcon

from replication_controller.errors import HealthCheckTimeoutError
from replication_controller.postgres import HealthStatus

from .handlers import handle_command, handle_get_publication
from .helpers import (
    build_publication_request,
    parse_bool_param,
    parse_username,
    read_payload,
)

if typ.TYPE_CHECKING:
    import collections.abc as cabc

    from falcon import asgi

    from replication_controller.postgres import ClusterClient
    from replication_controller.publications import PublicationReconciler
    from replication_controller.users import UserGrantService


def _request_id(req: asgi.Request) -> str | None:
    return getattr(req.context, "request_id", None)


class PublicationResource:
    """Read one publication: ``/publications/{database}/{publication}``."""

    def __init__(self, reconciler: PublicationReconciler) -> None:
        self._reconciler = reconciler

    async def on_get(
        self,
        req: asgi.Request,
        resp: asgi.Response,
        database: str,
        publication: str,
    ) -> None:
        """Return the publication, with tables when ``withTables`` is true."""
        resp.media = await handle_get_publication(
            self._reconciler,
            database=database,
            name=publication,
            with_tables=parse_bool_param(req, "withTables"),
            request_id=_request_id(req),
        )
        resp.status = falcon.HTTP_200


class _PublicationCommandResource:
    """Base resource dispatching a JSON body to one reconciler operation."""

    def __init__(
        self,
        operation: cabc.Callable[..., cabc.Awaitable[None]],
    ) -> None:
        self._operation = operation

    async def _dispatch(self, req: asgi.Request, resp: asgi.Response) -> None:
        await handle_command(
            resp,
            payload=await read_payload(req),
            parse=build_publication_request,
            operation=self._operation,
            request_id=_request_id(req),
        )


class PublicationCreateResource(_PublicationCommandResource):
    """``POST /publications/create``."""

    def __init__(self, reconciler: PublicationReconciler) -> None:
        super().__init__(reconciler.create)

    async def on_post(self, req: asgi.Request, resp: asgi.Response) -> None:
        """Create the publication unless it exists."""
        await self._dispatch(req, resp)


class _PublicationAlterResource(_PublicationCommandResource):
    """Alter route that also serves reads of publication ``<verb>`` in ``alter``.

    Falcon matches the static ``/publications/alter/<verb>`` path before the
    ``{database}/{publication}`` template, so GET is forwarded here.
    """

    verb: typ.ClassVar[str]

    def __init__(
        self,
        reconciler: PublicationReconciler,
        operation: cabc.Callable[..., cabc.Awaitable[None]],
    ) -> None:
        super().__init__(operation)
        self._lookup = PublicationResource(reconciler)

    async def on_get(self, req: asgi.Request, resp: asgi.Response) -> None:
        """Look up publication ``verb`` in database ``alter``."""
        await self._lookup.on_get(req, resp, "alter", self.verb)


class PublicationAlterAddResource(_PublicationAlterResource):
    """``POST /publications/alter/add``."""

    verb = "add"

    def __init__(self, reconciler: PublicationReconciler) -> None:
        super().__init__(reconciler, reconciler.alter_add)

    async def on_post(self, req: asgi.Request, resp: asgi.Response) -> None:
        """Add tables or schemas to the publication."""
        await self._dispatch(req, resp)


class PublicationAlterSetResource(_PublicationAlterResource):
    """``POST /publications/alter/set``."""

    verb = "set"

    def __init__(self, reconciler: PublicationReconciler) -> None:
        super().__init__(reconciler, reconciler.alter_set)

    async def on_post(self, req: asgi.Request, resp: asgi.Response) -> None:
        """Replace the tables and schemas of the publication."""
        await self._dispatch(req, resp)


class PublicationDropResource(_PublicationCommandResource):
    """``DELETE /publications/drop``."""

    def __init__(self, reconciler: PublicationReconciler) -> None:
        super().__init__(reconciler.drop)

    async def on_delete(self, req: asgi.Request, resp: asgi.Response) -> None:
        """Drop the publication if it exists."""
        await self._dispatch(req, resp)


class UserGrantResource:
    """``POST /users/grant``."""

    def __init__(self, grants: UserGrantService) -> None:
        self._grants = grants

    async def on_post(self, req: asgi.Request, resp: asgi.Response) -> None:
        """Grant replication privilege to the user named in the body."""
        await handle_command(
            resp,
            payload=await read_payload(req),
            parse=parse_username,
            operation=self._grants.grant,
            request_id=_request_id(req),
        )


class HealthResource:
    """``GET /health``: probe the cluster on every call."""

    def __init__(self, cluster: ClusterClient) -> None:
        self._cluster = cluster

    async def on_get(self, req: asgi.Request, resp: asgi.Response) -> None:
        """Report cluster health; 503 when down or when the probe times out."""
        try:
            status = await self._cluster.request_health(request_id=_request_id(req))
        except HealthCheckTimeoutError:
            status = HealthStatus.OUT_OF_SERVICE
        resp.media = {"status": str(status)}
        resp.status = (
            falcon.HTTP_200 if status is HealthStatus.UP else falcon.HTTP_503
        )
