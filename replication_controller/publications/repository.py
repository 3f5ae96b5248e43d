"""Catalog lookups for publications.

The repository reads ``pg_publication`` and ``pg_publication_tables`` and maps
rows to domain entities. Each lookup opens its own connection to the target
database and releases it before returning.

Examples
--------
>>> repository = PublicationRepository(connections)
>>> publication = await repository.lookup("salesdb", "sales_pub", with_tables=True)
"""

from __future__ import annotations

import typing as typ

import sqlalchemy as sa
import sqlalchemy.exc as sa_exc

from replication_controller.errors import (
    NotFoundError,
    PublicationNotFoundError,
    UnexpectedDatabaseError,
)
from replication_controller.logging import (
    RequestLogger,
    SupportsLog,
    get_logger,
    log_error,
    log_info,
)

from .domain import Publication, Table

if typ.TYPE_CHECKING:
    import collections.abc as cabc

    from sqlalchemy.ext.asyncio import AsyncConnection

    from replication_controller.postgres import ConnectionProvider

_logger = get_logger(__name__)

PUBLICATION_QUERY = sa.text(
    "SELECT pubname AS name, pubowner::regrole::text AS owner "
    "FROM pg_catalog.pg_publication WHERE pubname = :name"
)
PUBLICATION_TABLES_QUERY = sa.text(
    "SELECT schemaname, tablename, attnames::text, coalesce(rowfilter, '') "
    "FROM pg_catalog.pg_publication_tables WHERE pubname = :name"
)


def parse_attribute_names(raw: str | None) -> tuple[str, ...]:
    """Parse a brace-delimited array literal such as ``{id,name}``."""
    if not raw:
        return ()
    inner = raw.strip().removeprefix("{").removesuffix("}")
    if not inner:
        return ()
    return tuple(inner.split(","))


def group_table_rows(
    rows: cabc.Iterable[cabc.Sequence[typ.Any]],
) -> dict[str, tuple[Table, ...]]:
    """Group ``(schema, table, attnames, rowfilter)`` rows by schema."""
    grouped: dict[str, list[Table]] = {}
    for schema, table, attnames, row_filter in rows:
        grouped.setdefault(schema, []).append(
            Table(
                name=table,
                attributes=parse_attribute_names(attnames),
                row_filter=row_filter or "",
            )
        )
    return {schema: tuple(tables) for schema, tables in grouped.items()}


class PublicationRepository:
    """Look up publications in a named database.

    Parameters
    ----------
    connections : ConnectionProvider
        Source of per-operation database connections.
    logger : SupportsLog | None, optional
        Logger used for lookup messages; defaults to the module logger.
    """

    def __init__(
        self,
        connections: ConnectionProvider,
        *,
        logger: SupportsLog | None = None,
    ) -> None:
        self._connections = connections
        self._logger = logger if logger is not None else _logger

    async def lookup(
        self,
        database: str,
        name: str,
        *,
        with_tables: bool = False,
        request_id: str | None = None,
    ) -> Publication:
        """Return the publication ``name`` of ``database``.

        Parameters
        ----------
        database : str
            Database that owns the publication.
        name : str
            Publication name.
        with_tables : bool, optional
            Whether to populate ``Publication.tables``.
        request_id : str | None, optional
            Correlation identifier used to prefix log messages.

        Returns
        -------
        Publication
            The matching publication.

        Raises
        ------
        PublicationNotFoundError
            If the database has no publication with that name.
        DatabaseNotFoundError
            If the database itself does not exist.
        UnexpectedDatabaseError
            If the connection or a query fails for any other reason.
        """
        log = RequestLogger(self._logger, request_id)
        log_info(log, "Get publication %s for database %s", name, database)
        try:
            async with self._connections.connect(database) as connection:
                publication = await self._fetch(connection, database, name)
                if with_tables:
                    tables = await self._fetch_tables(connection, name)
                    publication = Publication(
                        name=publication.name,
                        owner=publication.owner,
                        database=database,
                        tables=tables,
                    )
        except NotFoundError:
            raise
        except UnexpectedDatabaseError as exc:
            log_error(
                log,
                "Cannot connect to database %s to get publication %s",
                database,
                name,
                exc_info=exc,
            )
            raise
        except (sa_exc.SQLAlchemyError, ValueError) as exc:
            log_error(
                log,
                "Cannot get publication %s for database %s",
                name,
                database,
                exc_info=exc,
            )
            msg = f"Cannot get publication {name} for database {database}: {exc}"
            raise UnexpectedDatabaseError(msg) from exc

        log_info(log, "Publication %s has been fetched for database %s", name, database)
        return publication

    @staticmethod
    async def _fetch(
        connection: AsyncConnection,
        database: str,
        name: str,
    ) -> Publication:
        result = await connection.execute(PUBLICATION_QUERY, {"name": name})
        row = result.first()
        if row is None:
            msg = f"Publication {name} not found in database {database}."
            raise PublicationNotFoundError(msg)
        return Publication(name=row[0], owner=row[1], database=database)

    @staticmethod
    async def _fetch_tables(
        connection: AsyncConnection,
        name: str,
    ) -> dict[str, tuple[Table, ...]]:
        result = await connection.execute(PUBLICATION_TABLES_QUERY, {"name": name})
        return group_table_rows(result.all())


__all__ = [
    "PUBLICATION_QUERY",
    "PUBLICATION_TABLES_QUERY",
    "PublicationRepository",
    "group_table_rows",
    "parse_attribute_names",
]
