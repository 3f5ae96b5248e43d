"""REST API adapter for the replication controller.

This package exposes the Falcon application factory used by the runtime
entry point and the HTTP tests.

Examples
--------
>>> from replication_controller.api import create_app
>>> app = create_app(
...     reconciler, grants, cluster, api_user="u", api_password="p"
... )  # doctest: +SKIP
"""

from __future__ import annotations

from .app import create_app

__all__ = ["create_app"]
