"""Tests for the runtime entry point."""

from __future__ import annotations

import pytest

from replication_controller import __main__ as entry
from replication_controller.config import ControllerSettings
from replication_controller.errors import (
    ClusterUnavailableError,
    HealthCheckTimeoutError,
)


class TestServe:
    """Tests for startup behaviour of ``serve``."""

    @staticmethod
    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "error",
        [
            ClusterUnavailableError("Postgres at 127.0.0.1:5432 is unavailable."),
            HealthCheckTimeoutError("Postgres health check did not finish."),
        ],
    )
    async def test_unreachable_cluster_exits_with_status_one(
        monkeypatch: pytest.MonkeyPatch,
        error: Exception,
    ) -> None:
        """Return a failure status instead of starting listeners."""

        async def _fail(_settings: ControllerSettings) -> None:
            raise error

        monkeypatch.setattr(entry, "connect_cluster", _fail)

        assert await entry.serve(ControllerSettings()) == 1


class TestServers:
    """Tests for listener construction."""

    @staticmethod
    def test_plain_listener_only_by_default() -> None:
        """Start one plain HTTP listener unless TLS is enabled."""
        servers = entry._servers(object(), ControllerSettings(serve_port=9090))  # type: ignore[arg-type]

        assert [server.config.port for server in servers] == [9090]

    @staticmethod
    def test_tls_listener_uses_certificate_files() -> None:
        """Add a TLS listener with the configured certificate and key."""
        settings = ControllerSettings(
            tls_enabled=True,
            tls_cert_file="/tmp/tls.crt",  # noqa: S108
            tls_key_file="/tmp/tls.key",  # noqa: S108
        )

        servers = entry._servers(object(), settings)  # type: ignore[arg-type]

        assert [server.config.port for server in servers] == [8080, 8443]
        tls_config = servers[1].config
        assert (tls_config.ssl_certfile, tls_config.ssl_keyfile) == (
            "/tmp/tls.crt",  # noqa: S108
            "/tmp/tls.key",  # noqa: S108
        )
