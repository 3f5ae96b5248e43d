"""Exception hierarchy shared by the controller services and adapters.

Services raise these exceptions; the Falcon adapter translates them into HTTP
responses. ``NotFoundError`` is kept distinct from generic failures so callers
can treat absence as a no-op (create/drop), a 404 (get), or an error (alter).

Examples
--------
>>> raise PublicationNotFoundError("Publication sales_pub not found.")
"""

import typing as typ

DUPLICATE_OBJECT_SQLSTATE = "42710"
INVALID_CATALOG_NAME_SQLSTATE = "3D000"


class ReplicationControllerError(Exception):
    """Base exception with a structured error code."""

    error_code: typ.ClassVar[str] = "replication_controller_error"

    code: str

    def __init__(self, message: str, *, code: str | None = None) -> None:
        super().__init__(message)
        self.code = code if code is not None else type(self).error_code


class ConfigurationError(ReplicationControllerError):
    """Raised when an environment or CLI setting cannot be parsed."""

    error_code: typ.ClassVar[str] = "configuration_error"


class ValidationError(ReplicationControllerError):
    """Raised when a request is malformed or incomplete."""

    error_code: typ.ClassVar[str] = "validation_error"


class InvalidIdentifierError(ValidationError):
    """Raised when an identifier could terminate or break a DDL statement."""

    error_code: typ.ClassVar[str] = "invalid_identifier"


class NotFoundError(ReplicationControllerError):
    """Raised when the addressed publication or database does not exist."""

    error_code: typ.ClassVar[str] = "not_found"


class PublicationNotFoundError(NotFoundError):
    """Raised when no publication with the requested name exists."""

    error_code: typ.ClassVar[str] = "publication_not_found"


class DatabaseNotFoundError(NotFoundError):
    """Raised when the target database does not exist (SQLSTATE 3D000)."""

    error_code: typ.ClassVar[str] = "database_not_found"


class PublicationConflictError(ReplicationControllerError):
    """Raised when DDL fails with a duplicate-object error (SQLSTATE 42710)."""

    error_code: typ.ClassVar[str] = "duplicate_object"


class UnexpectedDatabaseError(ReplicationControllerError):
    """Raised for any database failure without a dedicated mapping."""

    error_code: typ.ClassVar[str] = "unexpected_database_error"


class DatabaseConnectionError(UnexpectedDatabaseError):
    """Raised when a connection to the cluster cannot be opened."""

    error_code: typ.ClassVar[str] = "database_connection_error"


class HealthCheckTimeoutError(ReplicationControllerError):
    """Raised when the health probe does not finish within its timeout."""

    error_code: typ.ClassVar[str] = "health_check_timeout"


class ClusterUnavailableError(ReplicationControllerError):
    """Raised at startup when the cluster reports itself out of service."""

    error_code: typ.ClassVar[str] = "cluster_unavailable"


def sqlstate_of(exc: BaseException) -> str | None:
    """Return the SQLSTATE carried by ``exc`` or one of its causes.

    SQLAlchemy wraps driver errors in ``DBAPIError`` (``orig``), and the
    asyncpg adapter chains the native exception as ``__cause__``; connect-time
    failures may surface as the bare asyncpg exception.
    """
    seen: set[int] = set()
    pending: list[object] = [exc]
    while pending:
        current = pending.pop(0)
        if not isinstance(current, BaseException) or id(current) in seen:
            continue
        seen.add(id(current))
        for attribute in ("sqlstate", "pgcode"):
            value = getattr(current, attribute, None)
            if isinstance(value, str) and value:
                return value
        pending.extend(
            (
                getattr(current, "orig", None),
                current.__cause__,
            )
        )
    return None


__all__ = (
    "DUPLICATE_OBJECT_SQLSTATE",
    "INVALID_CATALOG_NAME_SQLSTATE",
    "ClusterUnavailableError",
    "ConfigurationError",
    "DatabaseConnectionError",
    "DatabaseNotFoundError",
    "HealthCheckTimeoutError",
    "InvalidIdentifierError",
    "NotFoundError",
    "PublicationConflictError",
    "PublicationNotFoundError",
    "ReplicationControllerError",
    "UnexpectedDatabaseError",
    "ValidationError",
    "sqlstate_of",
)
