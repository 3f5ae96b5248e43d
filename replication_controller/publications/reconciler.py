"""Idempotent create/alter/drop orchestration for publications.

Every mutating operation looks the publication up first and then decides:

=========  ==============  ============================================
operation  absent          present
=========  ==============  ============================================
create     CREATE          no-op (membership is not reconciled)
alter add  not found       ALTER ... ADD (duplicate object -> conflict)
alter set  not found       ALTER ... SET (duplicate object -> conflict)
drop       no-op           DROP
=========  ==============  ============================================

Publication DDL has no uniform ``IF [NOT] EXISTS`` form, hence the extra
lookup round trip. Alter requests naming no table or schema are rejected
before any database access.

Examples
--------
>>> reconciler = PublicationReconciler(connections)
>>> await reconciler.create(PublicationRequest.build(name="p", database="db"))
"""

from __future__ import annotations

import typing as typ

import sqlalchemy.exc as sa_exc

from replication_controller.errors import (
    DUPLICATE_OBJECT_SQLSTATE,
    NotFoundError,
    PublicationConflictError,
    PublicationNotFoundError,
    UnexpectedDatabaseError,
    ValidationError,
    sqlstate_of,
)
from replication_controller.logging import (
    RequestLogger,
    SupportsLog,
    get_logger,
    log_debug,
    log_error,
    log_info,
)

from . import statements
from .repository import PublicationRepository

if typ.TYPE_CHECKING:
    from replication_controller.postgres import ConnectionProvider

    from .domain import Publication, PublicationRequest

_logger = get_logger(__name__)


def validate_target(name: str, database: str) -> None:
    """Validate the publication name and database of a request.

    Raises
    ------
    ValidationError
        If either value is empty or contains a statement terminator.
    """
    if not database:
        msg = "database must not be empty"
        raise ValidationError(msg)
    if not name:
        msg = "publication name must not be empty"
        raise ValidationError(msg)
    statements.validate_identifier(database, "database")
    statements.validate_identifier(name, "publication name")


def _validate_members(request: PublicationRequest) -> None:
    for table in request.tables:
        statements.validate_identifier(table, "table")
    for schema in request.schemas:
        statements.validate_identifier(schema, "schema")


class PublicationReconciler:
    """Apply desired publication state with idempotent semantics.

    Parameters
    ----------
    connections : ConnectionProvider
        Source of per-operation database connections.
    repository : PublicationRepository | None, optional
        Lookup adapter; built from ``connections`` when omitted.
    logger : SupportsLog | None, optional
        Logger used for operation messages; defaults to the module logger.
    """

    def __init__(
        self,
        connections: ConnectionProvider,
        *,
        repository: PublicationRepository | None = None,
        logger: SupportsLog | None = None,
    ) -> None:
        self._connections = connections
        self._logger = logger if logger is not None else _logger
        self._repository = (
            repository
            if repository is not None
            else PublicationRepository(connections, logger=self._logger)
        )

    async def get(
        self,
        database: str,
        name: str,
        *,
        with_tables: bool = False,
        request_id: str | None = None,
    ) -> Publication:
        """Return one publication.

        Raises
        ------
        ValidationError
            If ``database`` or ``name`` is invalid.
        NotFoundError
            If the publication or its database does not exist.
        """
        validate_target(name, database)
        return await self._repository.lookup(
            database,
            name,
            with_tables=with_tables,
            request_id=request_id,
        )

    async def exists(
        self,
        database: str,
        name: str,
        *,
        request_id: str | None = None,
    ) -> bool:
        """Return True unless the lookup reports the publication as absent."""
        try:
            await self._repository.lookup(database, name, request_id=request_id)
        except NotFoundError:
            return False
        return True

    async def create(
        self,
        request: PublicationRequest,
        *,
        request_id: str | None = None,
    ) -> None:
        """Create the publication unless one with that name already exists.

        An empty request publishes all tables. An existing publication is left
        untouched even if its membership differs from the request.
        """
        log = RequestLogger(self._logger, request_id)
        validate_target(request.name, request.database)
        _validate_members(request)
        log_info(
            log,
            "Publication %s creation started for database %s",
            request.name,
            request.database,
        )
        if await self.exists(request.database, request.name, request_id=request_id):
            log_info(
                log,
                "Publication %s already exists in database %s",
                request.name,
                request.database,
            )
            return

        statement = statements.build_create(
            request.name, request.tables, request.schemas
        )
        await self._execute(log, request, statement, action="create")
        log_info(
            log,
            "Publication %s has been created for database %s",
            request.name,
            request.database,
        )

    async def alter_add(
        self,
        request: PublicationRequest,
        *,
        request_id: str | None = None,
    ) -> None:
        """Add tables and/or schemas to an existing publication.

        Raises
        ------
        ValidationError
            If the request names no table or schema.
        PublicationNotFoundError
            If the publication does not exist.
        PublicationConflictError
            If a requested member is already part of the publication.
        """
        await self._alter(
            request,
            build=statements.build_alter_add,
            action="alter add",
            request_id=request_id,
        )

    async def alter_set(
        self,
        request: PublicationRequest,
        *,
        request_id: str | None = None,
    ) -> None:
        """Replace the membership of an existing publication.

        Raises
        ------
        ValidationError
            If the request names no table or schema.
        PublicationNotFoundError
            If the publication does not exist.
        PublicationConflictError
            If the database reports a duplicate object.
        """
        await self._alter(
            request,
            build=statements.build_alter_set,
            action="alter set",
            request_id=request_id,
        )

    async def drop(
        self,
        request: PublicationRequest,
        *,
        request_id: str | None = None,
    ) -> None:
        """Drop the publication; an absent publication is a no-op."""
        log = RequestLogger(self._logger, request_id)
        validate_target(request.name, request.database)
        log_info(
            log,
            "Publication %s drop started for database %s",
            request.name,
            request.database,
        )
        if not await self.exists(
            request.database, request.name, request_id=request_id
        ):
            log_info(
                log,
                "Publication %s doesn't exist in database %s",
                request.name,
                request.database,
            )
            return

        await self._execute(
            log, request, statements.build_drop(request.name), action="drop"
        )
        log_info(
            log,
            "Publication %s has been dropped for database %s",
            request.name,
            request.database,
        )

    async def _alter(
        self,
        request: PublicationRequest,
        *,
        build: typ.Callable[[str, tuple[str, ...], tuple[str, ...]], str],
        action: str,
        request_id: str | None,
    ) -> None:
        log = RequestLogger(self._logger, request_id)
        validate_target(request.name, request.database)
        if not request.has_members:
            msg = (
                f"Nothing to {action.removeprefix('alter ')} for publication "
                f"{request.name} in database {request.database}"
            )
            log_error(log, msg)
            raise ValidationError(msg)
        _validate_members(request)

        log_info(
            log,
            "Publication %s %s started for database %s",
            request.name,
            action,
            request.database,
        )
        if not await self.exists(
            request.database, request.name, request_id=request_id
        ):
            log_info(
                log,
                "Publication %s doesn't exist in database %s",
                request.name,
                request.database,
            )
            msg = (
                f"Publication {request.name} not found in database "
                f"{request.database}."
            )
            raise PublicationNotFoundError(msg)

        statement = build(request.name, request.tables, request.schemas)
        await self._execute(
            log, request, statement, action=action, conflict_is_error=True
        )
        log_info(
            log,
            "Publication %s has been altered for database %s",
            request.name,
            request.database,
        )

    async def _execute(
        self,
        log: RequestLogger,
        request: PublicationRequest,
        statement: str,
        *,
        action: str,
        conflict_is_error: bool = False,
    ) -> None:
        """Run one DDL statement on a fresh connection to the target database."""
        log_debug(log, "%s", statement)
        try:
            async with self._connections.connect(request.database) as connection:
                await connection.exec_driver_sql(statement)
        except sa_exc.SQLAlchemyError as exc:
            log_error(
                log,
                "Cannot %s publication %s for database %s",
                action,
                request.name,
                request.database,
                exc_info=exc,
            )
            if conflict_is_error and sqlstate_of(exc) == DUPLICATE_OBJECT_SQLSTATE:
                detail = getattr(exc, "orig", None) or exc
                raise PublicationConflictError(str(detail)) from exc
            msg = (
                f"Cannot {action} publication {request.name} for database "
                f"{request.database}: {exc}"
            )
            raise UnexpectedDatabaseError(msg) from exc


__all__ = ["PublicationReconciler", "validate_target"]
