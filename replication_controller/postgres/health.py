"""Bounded-time liveness checks for the PostgreSQL cluster.

The probe runs as its own task and races a timeout. When the timeout wins, or
the caller is cancelled while waiting, the probe task is cancelled and awaited
so its connection is closed before control leaves ``HealthProbe.check``.

The race timer is ``connection_timeout`` plus a grace period, so a connect
attempt that gives up at ``connection_timeout`` always reports
``OUT_OF_SERVICE`` rather than a timeout.
"""

from __future__ import annotations

import asyncio
import enum
import typing as typ

import sqlalchemy as sa
import sqlalchemy.exc as sa_exc

from replication_controller.errors import (
    ClusterUnavailableError,
    HealthCheckTimeoutError,
    ReplicationControllerError,
)
from replication_controller.logging import (
    RequestLogger,
    SupportsLog,
    get_logger,
    log_debug,
    log_error,
    log_info,
)

from .client import ClusterConnectionProvider

if typ.TYPE_CHECKING:
    from replication_controller.config import ControllerSettings

    from .client import ConnectionProvider

_logger = get_logger(__name__)

HEALTH_QUERY = "SELECT 1 FROM pg_catalog.pg_tables"


class HealthStatus(enum.StrEnum):
    """Cluster health reported by the probe."""

    UP = "UP"
    OUT_OF_SERVICE = "OUT_OF_SERVICE"


class HealthProbe:
    """Race a trivial catalog query against a timeout.

    Parameters
    ----------
    connections : ConnectionProvider
        Source of connections to the default database.
    timeout : float
        Seconds the probe may take before the check is considered failed.
    """

    def __init__(
        self,
        connections: ConnectionProvider,
        timeout: float,
        *,
        logger: SupportsLog | None = None,
    ) -> None:
        self._connections = connections
        self._timeout = timeout
        self._logger = logger if logger is not None else _logger

    @property
    def timeout(self) -> float:
        """Seconds the probe may run before the check fails."""
        return self._timeout

    async def _probe(self, log: RequestLogger) -> HealthStatus:
        """Run the health query; any failure means out of service."""
        try:
            async with self._connections.connect() as connection:
                await connection.execute(sa.text(HEALTH_QUERY))
        except (ReplicationControllerError, sa_exc.SQLAlchemyError, OSError) as exc:
            log_error(log, "Postgres is unavailable", exc_info=exc)
            return HealthStatus.OUT_OF_SERVICE
        return HealthStatus.UP

    async def check(self, *, request_id: str | None = None) -> HealthStatus:
        """Return the cluster health or raise when the probe times out.

        Raises
        ------
        HealthCheckTimeoutError
            If the probe does not finish within the configured timeout. The
            probe task has been cancelled and its connection released by the
            time this is raised.
        """
        log = RequestLogger(self._logger, request_id)
        probe = asyncio.create_task(self._probe(log), name="postgres-health-probe")
        try:
            done, _ = await asyncio.wait({probe}, timeout=self._timeout)
        finally:
            # Runs on timeout and on caller cancellation alike.
            if not probe.done():
                probe.cancel()
                await asyncio.wait({probe})
        if probe in done:
            status = probe.result()
            log_debug(log, "Postgres health is %s", status)
            return status

        msg = f"Postgres health check did not finish within {self._timeout:g}s."
        log_error(log, msg)
        raise HealthCheckTimeoutError(msg)


class ClusterClient:
    """Cluster handle holding the connection provider and last known health.

    ``health`` reflects only the most recent check; it is never consulted in
    place of a fresh probe.
    """

    def __init__(
        self,
        connections: ConnectionProvider,
        probe: HealthProbe,
    ) -> None:
        self.connections = connections
        self.probe = probe
        self.health = HealthStatus.OUT_OF_SERVICE

    async def request_health(self, *, request_id: str | None = None) -> HealthStatus:
        """Probe the cluster and record the outcome on ``health``."""
        try:
            self.health = await self.probe.check(request_id=request_id)
        except HealthCheckTimeoutError:
            self.health = HealthStatus.OUT_OF_SERVICE
            raise
        return self.health


async def connect_cluster(settings: ControllerSettings) -> ClusterClient:
    """Create a cluster client after verifying that the cluster is reachable.

    Raises
    ------
    ClusterUnavailableError
        If the startup probe reports the cluster out of service.
    HealthCheckTimeoutError
        If the startup probe times out.
    """
    connections = ClusterConnectionProvider(settings)
    client = ClusterClient(
        connections,
        HealthProbe(connections, settings.probe_timeout),
    )
    log_debug(
        _logger,
        "Checking connection for host=%s port=%s with database %s",
        settings.pg_host,
        settings.pg_port,
        settings.default_database,
    )
    if await client.request_health() is not HealthStatus.UP:
        msg = f"Postgres at {settings.pg_host}:{settings.pg_port} is unavailable."
        raise ClusterUnavailableError(msg)
    log_info(_logger, "PG client has been initialized")
    return client


__all__ = [
    "HEALTH_QUERY",
    "ClusterClient",
    "HealthProbe",
    "HealthStatus",
    "connect_cluster",
]
