"""PostgreSQL connectivity for the replication controller.

This package opens short-lived, unpooled connections to cluster databases and
probes cluster liveness within a bounded time.

Examples
--------
>>> client = await connect_cluster(settings)
>>> async with client.connections.connect("salesdb") as connection:
...     ...
"""

from .client import ClusterConnectionProvider, ConnectionProvider
from .health import (
    HEALTH_QUERY,
    ClusterClient,
    HealthProbe,
    HealthStatus,
    connect_cluster,
)

__all__ = (
    "HEALTH_QUERY",
    "ClusterClient",
    "ClusterConnectionProvider",
    "ConnectionProvider",
    "HealthProbe",
    "HealthStatus",
    "connect_cluster",
)
