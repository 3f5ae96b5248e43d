"""Grant replication privilege to database roles.

Granting is naturally idempotent in PostgreSQL, so no existence check runs
before the statement.
"""

from __future__ import annotations

import typing as typ

import sqlalchemy.exc as sa_exc

from replication_controller.errors import UnexpectedDatabaseError, ValidationError
from replication_controller.logging import (
    RequestLogger,
    SupportsLog,
    get_logger,
    log_debug,
    log_error,
    log_info,
)
from replication_controller.publications.statements import (
    quote_identifier,
    validate_identifier,
)

if typ.TYPE_CHECKING:
    from replication_controller.postgres import ConnectionProvider

_logger = get_logger(__name__)


def build_grant(username: str, role: str | None = None) -> str:
    """Return the statement granting replication privilege to ``username``.

    Without ``role`` the ``REPLICATION`` attribute is set on the user; with a
    role (for example ``rds_replication`` on managed clusters) that role is
    granted instead.
    """
    if role:
        return f"GRANT {quote_identifier(role)} TO {quote_identifier(username)};"
    return f"ALTER ROLE {quote_identifier(username)} WITH REPLICATION;"


class UserGrantService:
    """Grant replication privilege through the default database.

    Parameters
    ----------
    connections : ConnectionProvider
        Source of per-operation database connections.
    replication_role : str | None, optional
        Role to grant; ``None`` sets the ``REPLICATION`` attribute.
    logger : SupportsLog | None, optional
        Logger used for grant messages; defaults to the module logger.
    """

    def __init__(
        self,
        connections: ConnectionProvider,
        *,
        replication_role: str | None = None,
        logger: SupportsLog | None = None,
    ) -> None:
        self._connections = connections
        self._replication_role = replication_role
        self._logger = logger if logger is not None else _logger

    async def grant(self, username: str, *, request_id: str | None = None) -> None:
        """Grant replication privilege to ``username``.

        Raises
        ------
        ValidationError
            If ``username`` is empty or contains a statement terminator.
        UnexpectedDatabaseError
            If the connection or the statement fails.
        """
        log = RequestLogger(self._logger, request_id)
        if not username:
            msg = "username must not be empty"
            log_error(log, msg)
            raise ValidationError(msg)
        validate_identifier(username, "username")

        statement = build_grant(username, self._replication_role)
        log_debug(log, "%s", statement)
        try:
            async with self._connections.connect() as connection:
                await connection.exec_driver_sql(statement)
        except sa_exc.SQLAlchemyError as exc:
            log_error(
                log,
                "Cannot grant user %s for replication",
                username,
                exc_info=exc,
            )
            msg = f"Cannot grant user {username} for replication: {exc}"
            raise UnexpectedDatabaseError(msg) from exc
        log_info(log, "User %s has been granted for replication", username)


__all__ = ["UserGrantService", "build_grant"]
