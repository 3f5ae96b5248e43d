"""Falcon application factory for the replication controller API."""

from __future__ import annotations

import typing as typ

from falcon import asgi

from .middleware import BasicAuthMiddleware, RequestIdMiddleware
from .resources import (
    HealthResource,
    PublicationAlterAddResource,
    PublicationAlterSetResource,
    PublicationCreateResource,
    PublicationDropResource,
    PublicationResource,
    UserGrantResource,
)

if typ.TYPE_CHECKING:
    from replication_controller.postgres import ClusterClient
    from replication_controller.publications import PublicationReconciler
    from replication_controller.users import UserGrantService


def create_app(
    reconciler: PublicationReconciler,
    grants: UserGrantService,
    cluster: ClusterClient,
    *,
    api_user: str,
    api_password: str,
) -> asgi.App:
    """Build the Falcon ASGI application for publication and grant endpoints.

    Every route except ``/health`` requires HTTP basic credentials matching
    ``api_user`` and ``api_password``.
    """
    app = asgi.App(
        middleware=[
            RequestIdMiddleware(),
            BasicAuthMiddleware(api_user, api_password),
        ],
    )

    app.add_route("/health", HealthResource(cluster))

    app.add_route("/publications/create", PublicationCreateResource(reconciler))
    app.add_route("/publications/alter/add", PublicationAlterAddResource(reconciler))
    app.add_route("/publications/alter/set", PublicationAlterSetResource(reconciler))
    app.add_route("/publications/drop", PublicationDropResource(reconciler))
    app.add_route(
        "/publications/{database}/{publication}",
        PublicationResource(reconciler),
    )

    app.add_route("/users/grant", UserGrantResource(grants))

    return app
