"""Tests for per-operation connection handling in ``ClusterConnectionProvider``.

The SQLAlchemy engine factory is replaced with a recording stand-in so the
tests can assert on URLs, connect errors and resource release without a
running PostgreSQL server.
"""

from __future__ import annotations

import dataclasses as dc
import typing as typ

import pytest
from _postgres_fakes import driver_error

from replication_controller.config import ControllerSettings
from replication_controller.errors import (
    INVALID_CATALOG_NAME_SQLSTATE,
    DatabaseConnectionError,
    DatabaseNotFoundError,
)
from replication_controller.postgres import ClusterConnectionProvider
from replication_controller.postgres import client as client_module


class _RecordingConnection:
    def __init__(self) -> None:
        self.closed = False

    async def close(self) -> None:
        self.closed = True


@dc.dataclass(slots=True)
class _RecordingEngine:
    url: typ.Any
    options: dict[str, typ.Any]
    connect_error: BaseException | None = None
    disposed: bool = False
    connection: _RecordingConnection = dc.field(default_factory=_RecordingConnection)

    async def connect(self) -> _RecordingConnection:
        if self.connect_error is not None:
            raise self.connect_error
        return self.connection

    async def dispose(self) -> None:
        self.disposed = True


@dc.dataclass(slots=True)
class _EngineFactory:
    connect_error: BaseException | None = None
    engines: list[_RecordingEngine] = dc.field(default_factory=list)

    def __call__(self, url: object, **options: typ.Any) -> _RecordingEngine:  # noqa: ANN401
        engine = _RecordingEngine(url, options, self.connect_error)
        self.engines.append(engine)
        return engine


@pytest.fixture
def engine_factory(monkeypatch: pytest.MonkeyPatch) -> _EngineFactory:
    """Replace ``create_async_engine`` with a recording factory."""
    factory = _EngineFactory()
    monkeypatch.setattr(client_module, "create_async_engine", factory)
    return factory


class TestConnectionUrl:
    """Tests for connection URL construction."""

    @staticmethod
    def test_plaintext_url_uses_admin_credentials() -> None:
        """Build an asyncpg URL without SSL options by default."""
        provider = ClusterConnectionProvider(
            ControllerSettings(pg_host="pg.internal", pg_password="secret")  # noqa: S106
        )

        url = provider.connection_url("salesdb")

        assert url.drivername == "postgresql+asyncpg"
        assert url.host == "pg.internal"
        assert url.port == 5432
        assert url.username == "postgres"
        assert url.database == "salesdb"
        assert "ssl" not in url.query, "Expected plaintext transport."

    @staticmethod
    def test_ssl_flag_requires_tls() -> None:
        """Request TLS when the SSL flag is on."""
        provider = ClusterConnectionProvider(ControllerSettings(pg_ssl=True))

        url = provider.connection_url("postgres")

        assert url.query["ssl"] == "require"

    @staticmethod
    def test_explicit_credentials_override_admin_role() -> None:
        """Connect as another role when credentials are given."""
        provider = ClusterConnectionProvider(ControllerSettings())

        url = provider.connection_url("postgres", "app", "pw")

        assert (url.username, url.password) == ("app", "pw")


class TestConnect:
    """Tests for scoped connection acquisition."""

    @staticmethod
    @pytest.mark.asyncio
    async def test_connect_defaults_to_default_database(
        engine_factory: _EngineFactory,
    ) -> None:
        """Use the configured default database and release everything."""
        provider = ClusterConnectionProvider(
            ControllerSettings(default_database="admin", connection_timeout=3.0)
        )

        async with provider.connect() as connection:
            engine = engine_factory.engines[0]
            assert connection is engine.connection

        assert engine.url.database == "admin"
        assert engine.options["isolation_level"] == "AUTOCOMMIT"
        assert engine.options["connect_args"] == {"timeout": 3.0}
        assert engine.connection.closed, "Expected the connection closed."
        assert engine.disposed, "Expected the engine disposed."

    @staticmethod
    @pytest.mark.asyncio
    async def test_connection_released_when_block_raises(
        engine_factory: _EngineFactory,
    ) -> None:
        """Close the connection even when the caller fails."""
        provider = ClusterConnectionProvider(ControllerSettings())

        with pytest.raises(RuntimeError, match="boom"):
            async with provider.connect("salesdb"):
                msg = "boom"
                raise RuntimeError(msg)

        engine = engine_factory.engines[0]
        assert engine.connection.closed
        assert engine.disposed

    @staticmethod
    @pytest.mark.asyncio
    async def test_missing_database_is_not_found(
        engine_factory: _EngineFactory,
    ) -> None:
        """Map SQLSTATE 3D000 on connect to ``DatabaseNotFoundError``."""
        engine_factory.connect_error = driver_error(
            'database "nodb" does not exist',
            INVALID_CATALOG_NAME_SQLSTATE,
        )
        provider = ClusterConnectionProvider(ControllerSettings())

        with pytest.raises(DatabaseNotFoundError, match="nodb"):
            async with provider.connect("nodb"):
                pass
        assert engine_factory.engines[0].disposed

    @staticmethod
    @pytest.mark.asyncio
    async def test_refused_connection_is_connection_error(
        engine_factory: _EngineFactory,
    ) -> None:
        """Map other connect failures to ``DatabaseConnectionError``."""
        engine_factory.connect_error = ConnectionRefusedError("refused")
        provider = ClusterConnectionProvider(ControllerSettings())

        with pytest.raises(DatabaseConnectionError):
            async with provider.connect("salesdb"):
                pass
        assert engine_factory.engines[0].disposed
