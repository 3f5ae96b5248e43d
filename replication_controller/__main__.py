"""CLI argument parsing and uvicorn entry point.

Settings come from the environment and are overridden by explicit flags. The
cluster is probed once before any listener starts; when it is unreachable the
process exits with status 1 instead of serving requests it cannot fulfil.
"""

from __future__ import annotations

import argparse
import asyncio
import dataclasses as dc
import sys
import typing as typ

import uvicorn

from replication_controller.api import create_app
from replication_controller.config import ControllerSettings, settings_from_environment
from replication_controller.errors import (
    ClusterUnavailableError,
    ConfigurationError,
    HealthCheckTimeoutError,
)
from replication_controller.logging import (
    configure_logging,
    get_logger,
    log_error,
    log_info,
    log_warning,
)
from replication_controller.postgres import connect_cluster
from replication_controller.publications import PublicationReconciler
from replication_controller.users import UserGrantService

if typ.TYPE_CHECKING:
    import collections.abc as cabc

    from falcon import asgi

_logger = get_logger(__name__)


def build_parser(defaults: ControllerSettings) -> argparse.ArgumentParser:
    """Return the argument parser with environment-derived defaults."""
    parser = argparse.ArgumentParser(
        prog="replication-controller",
        description="PostgreSQL logical replication admin API",
    )
    parser.add_argument("--pg-host", default=defaults.pg_host)
    parser.add_argument("--pg-port", type=int, default=defaults.pg_port)
    parser.add_argument("--pg-user", default=defaults.pg_user)
    parser.add_argument("--pg-pass", default=defaults.pg_password)
    parser.add_argument(
        "--pg-ssl",
        choices=("on", "off"),
        default="on" if defaults.pg_ssl else "off",
    )
    parser.add_argument("--server-user", default=defaults.api_user)
    parser.add_argument("--server-pass", default=defaults.api_password)
    parser.add_argument("--serve-port", type=int, default=defaults.serve_port)
    parser.add_argument(
        "--log-debug",
        action="store_true",
        default=defaults.log_level == "DEBUG",
    )
    return parser


def resolve_settings(
    argv: cabc.Sequence[str] | None = None,
    env: cabc.Mapping[str, str] | None = None,
) -> ControllerSettings:
    """Merge environment settings with command-line overrides.

    Raises
    ------
    ConfigurationError
        If an environment variable holds an unparseable value.
    """
    base = settings_from_environment(env)
    args = build_parser(base).parse_args(argv)
    return dc.replace(
        base,
        pg_host=args.pg_host,
        pg_port=args.pg_port,
        pg_user=args.pg_user,
        pg_password=args.pg_pass,
        pg_ssl=args.pg_ssl == "on",
        api_user=args.server_user,
        api_password=args.server_pass,
        serve_port=args.serve_port,
        log_level="DEBUG" if args.log_debug else base.log_level,
    )


def _servers(app: asgi.App, settings: ControllerSettings) -> list[uvicorn.Server]:
    """Build the plain listener and, when enabled, the TLS listener."""
    servers = [
        uvicorn.Server(
            uvicorn.Config(app, host="0.0.0.0", port=settings.serve_port),  # noqa: S104
        )
    ]
    if settings.tls_enabled:
        servers.append(
            uvicorn.Server(
                uvicorn.Config(
                    app,
                    host="0.0.0.0",  # noqa: S104
                    port=settings.https_port,
                    ssl_certfile=settings.tls_cert_file,
                    ssl_keyfile=settings.tls_key_file,
                ),
            )
        )
    return servers


async def serve(settings: ControllerSettings) -> int:
    """Connect to the cluster and serve the API until shutdown."""
    try:
        cluster = await connect_cluster(settings)
    except (ClusterUnavailableError, HealthCheckTimeoutError) as exc:
        log_error(_logger, "Cannot start: %s", exc)
        return 1

    app = create_app(
        PublicationReconciler(cluster.connections),
        UserGrantService(
            cluster.connections,
            replication_role=settings.replication_grant_role,
        ),
        cluster,
        api_user=settings.api_user,
        api_password=settings.api_password,
    )
    servers = _servers(app, settings)
    log_info(
        _logger,
        "Serving on port %s%s",
        settings.serve_port,
        f" and TLS port {settings.https_port}" if settings.tls_enabled else "",
    )
    await asyncio.gather(*(server.serve() for server in servers))
    return 0


def main(argv: cabc.Sequence[str] | None = None) -> int:
    """Run the replication controller and return the process exit status."""
    try:
        settings = resolve_settings(argv)
    except ConfigurationError as exc:
        configure_logging(None)
        log_error(_logger, "%s", exc)
        return 2

    level, used_default = configure_logging(settings.log_level)
    if used_default:
        log_warning(
            _logger,
            "Unknown log level %r; using %s.",
            settings.log_level,
            level,
        )
    return asyncio.run(serve(settings))


if __name__ == "__main__":
    sys.exit(main())
