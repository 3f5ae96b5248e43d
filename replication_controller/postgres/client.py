"""Short-lived connections to the PostgreSQL cluster.

Every logical operation opens its own connection and releases it on exit.
The provider builds a throwaway SQLAlchemy async engine with ``NullPool`` for
each call, so no connection outlives the ``async with`` block that acquired
it, including when the block exits with an error or is cancelled.

Examples
--------
>>> provider = ClusterConnectionProvider(settings)
>>> async with provider.connect("salesdb") as connection:
...     await connection.execute(sa.text("SELECT 1"))
"""

from __future__ import annotations

import contextlib
import typing as typ

import asyncpg
import sqlalchemy.exc as sa_exc
from sqlalchemy.engine import URL
from sqlalchemy.ext.asyncio import create_async_engine
from sqlalchemy.pool import NullPool

from replication_controller.errors import (
    INVALID_CATALOG_NAME_SQLSTATE,
    DatabaseConnectionError,
    DatabaseNotFoundError,
    sqlstate_of,
)
from replication_controller.logging import get_logger, log_error

if typ.TYPE_CHECKING:
    import collections.abc as cabc

    from sqlalchemy.ext.asyncio import AsyncConnection

    from replication_controller.config import ControllerSettings

_logger = get_logger(__name__)

_CONNECT_ERRORS: tuple[type[BaseException], ...] = (
    sa_exc.SQLAlchemyError,
    asyncpg.PostgresError,
    asyncpg.InterfaceError,
    OSError,
    TimeoutError,
)


class ConnectionProvider(typ.Protocol):
    """Port for opening scoped database connections."""

    def connect(
        self,
        database: str | None = None,
        *,
        username: str | None = None,
        password: str | None = None,
    ) -> contextlib.AbstractAsyncContextManager[AsyncConnection]:
        """Return a context manager yielding one open connection."""
        ...


class ClusterConnectionProvider:
    """Open autocommit connections to databases of one cluster.

    Parameters
    ----------
    settings : ControllerSettings
        Cluster address, credentials, SSL flag and connection timeout.
    """

    def __init__(self, settings: ControllerSettings) -> None:
        self._settings = settings

    @property
    def default_database(self) -> str:
        """Database used when callers do not name one."""
        return self._settings.default_database

    def connection_url(
        self,
        database: str,
        username: str | None = None,
        password: str | None = None,
    ) -> URL:
        """Build the asyncpg URL, requiring TLS when the SSL flag is set."""
        query = {"ssl": "require"} if self._settings.pg_ssl else {}
        return URL.create(
            "postgresql+asyncpg",
            username=username if username is not None else self._settings.pg_user,
            password=password if password is not None else self._settings.pg_password,
            host=self._settings.pg_host,
            port=self._settings.pg_port,
            database=database,
            query=query,
        )

    @contextlib.asynccontextmanager
    async def connect(
        self,
        database: str | None = None,
        *,
        username: str | None = None,
        password: str | None = None,
    ) -> cabc.AsyncIterator[AsyncConnection]:
        """Yield one connection to ``database`` and always release it.

        Parameters
        ----------
        database : str | None, optional
            Target database; empty or ``None`` selects the default database.
        username : str | None, optional
            Role to connect as; defaults to the administrative role.
        password : str | None, optional
            Password for ``username``.

        Yields
        ------
        AsyncConnection
            A connection in autocommit mode.

        Raises
        ------
        DatabaseNotFoundError
            If the database does not exist (SQLSTATE 3D000).
        DatabaseConnectionError
            If the connection cannot be opened for any other reason.
        """
        target = database or self._settings.default_database
        engine = create_async_engine(
            self.connection_url(target, username, password),
            poolclass=NullPool,
            isolation_level="AUTOCOMMIT",
            connect_args={"timeout": self._settings.connection_timeout},
        )
        try:
            try:
                connection = await engine.connect()
            except _CONNECT_ERRORS as exc:
                if sqlstate_of(exc) == INVALID_CATALOG_NAME_SQLSTATE:
                    msg = f"Database {target} does not exist."
                    raise DatabaseNotFoundError(msg) from exc
                log_error(
                    _logger,
                    "Error occurred during connect to database %s",
                    target,
                    exc_info=exc,
                )
                msg = f"Cannot connect to database {target}: {exc}"
                raise DatabaseConnectionError(msg) from exc
            try:
                yield connection
            finally:
                await connection.close()
        finally:
            await engine.dispose()


__all__ = ["ClusterConnectionProvider", "ConnectionProvider"]
