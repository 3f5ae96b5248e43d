"""Runtime settings for the replication controller.

Settings are read from the process environment first; the command-line entry
point then overrides individual values with explicit flags. Invalid numeric or
boolean values raise ``ConfigurationError`` rather than silently falling back.

Examples
--------
>>> settings = settings_from_environment({"POSTGRES_HOST": "pg.internal"})
>>> settings.pg_host
'pg.internal'
"""

from __future__ import annotations

import collections.abc as cabc
import dataclasses as dc
import os

from .errors import ConfigurationError

# Accepted boolean spellings, shared by settings and query parameters.
_TRUE_LITERALS = frozenset({"1", "t", "T", "TRUE", "true", "True"})
_FALSE_LITERALS = frozenset({"0", "f", "F", "FALSE", "false", "False"})

DEFAULT_DATABASE = "postgres"

# Extra seconds the health race allows beyond one connect attempt.
PROBE_GRACE_SECONDS = 1.0


@dc.dataclass(frozen=True, slots=True)
class ControllerSettings:
    """Immutable controller configuration.

    Attributes
    ----------
    pg_host : str
        Host of the PostgreSQL cluster.
    pg_port : int
        Port of the PostgreSQL cluster.
    pg_user : str
        Administrative role used for every connection.
    pg_password : str
        Password of the administrative role.
    pg_ssl : bool
        Whether connections require TLS (``PG_SSL=on``).
    default_database : str
        Database used for health checks, grants, and empty database names.
    connection_timeout : float
        Seconds allowed for one connection attempt. The health probe
        allows ``PROBE_GRACE_SECONDS`` more.
    api_user : str
        Username accepted by HTTP basic authentication.
    api_password : str
        Password accepted by HTTP basic authentication.
    serve_port : int
        Plain HTTP listener port.
    https_port : int
        TLS listener port, used only when ``tls_enabled`` is set.
    tls_enabled : bool
        Whether to start the additional TLS listener.
    tls_cert_file : str
        Certificate chain for the TLS listener.
    tls_key_file : str
        Private key for the TLS listener.
    log_level : str
        femtologging level name.
    replication_grant_role : str | None
        Role granted to users by ``/users/grant``; ``None`` sets the
        ``REPLICATION`` attribute instead.
    """

    pg_host: str = "127.0.0.1"
    pg_port: int = 5432
    pg_user: str = "postgres"
    pg_password: str = ""
    pg_ssl: bool = False
    default_database: str = DEFAULT_DATABASE
    connection_timeout: float = 20.0
    api_user: str = "logical-repl-user"
    api_password: str = "logical-repl-password"  # noqa: S105
    serve_port: int = 8080
    https_port: int = 8443
    tls_enabled: bool = False
    tls_cert_file: str = "/certs/tls.crt"
    tls_key_file: str = "/certs/tls.key"
    log_level: str = "INFO"
    replication_grant_role: str | None = None

    @property
    def probe_timeout(self) -> float:
        """Return the health race timer, longer than any connect attempt."""
        return self.connection_timeout + PROBE_GRACE_SECONDS


def parse_bool(raw: str, name: str) -> bool:
    """Parse a boolean literal or raise ``ConfigurationError``."""
    value = raw.strip()
    if value in _TRUE_LITERALS:
        return True
    if value in _FALSE_LITERALS:
        return False
    msg = f"Cannot parse {name} boolean value: {raw!r}."
    raise ConfigurationError(msg)


def _parse_positive_int(raw: str, name: str) -> int:
    """Parse a strictly positive integer or raise ``ConfigurationError``."""
    try:
        parsed = int(raw.strip())
    except ValueError as exc:
        msg = f"Cannot parse {name} integer value: {raw!r}."
        raise ConfigurationError(msg) from exc
    if parsed <= 0:
        msg = f"{name} must be a positive integer, got {parsed}."
        raise ConfigurationError(msg)
    return parsed


def _parse_ssl_mode(raw: str) -> bool:
    """Return True when ``PG_SSL`` selects encrypted transport."""
    return raw.strip().lower() == "on"


def settings_from_environment(
    env: cabc.Mapping[str, str] | None = None,
) -> ControllerSettings:
    """Build settings from environment variables.

    Parameters
    ----------
    env : collections.abc.Mapping[str, str] | None, optional
        Variables to read; defaults to ``os.environ``.

    Returns
    -------
    ControllerSettings
        Settings with defaults applied for unset variables.

    Raises
    ------
    ConfigurationError
        If a numeric or boolean variable holds an unparseable value.
    """
    source = os.environ if env is None else env
    defaults = ControllerSettings()

    def text(name: str, fallback: str) -> str:
        return source.get(name, fallback)

    def integer(name: str, fallback: int) -> int:
        raw = source.get(name)
        return fallback if raw is None else _parse_positive_int(raw, name)

    def flag(name: str, *, fallback: bool) -> bool:
        raw = source.get(name)
        return fallback if raw is None else parse_bool(raw, name)

    log_debug = flag("LOG_DEBUG", fallback=False)
    log_level = "DEBUG" if log_debug else text("LOG_LEVEL", defaults.log_level)
    grant_role = source.get("REPLICATION_GRANT_ROLE", "").strip() or None

    return ControllerSettings(
        pg_host=text("POSTGRES_HOST", defaults.pg_host),
        pg_port=integer("POSTGRES_PORT", defaults.pg_port),
        pg_user=text("POSTGRES_ADMIN_USER", defaults.pg_user),
        pg_password=text("POSTGRES_ADMIN_PASSWORD", defaults.pg_password),
        pg_ssl=_parse_ssl_mode(text("PG_SSL", "off")),
        default_database=text("POSTGRES_DEFAULT_DATABASE", DEFAULT_DATABASE),
        connection_timeout=float(
            integer("PG_CONN_TIMEOUT_SEC", int(defaults.connection_timeout))
        ),
        api_user=text("API_USER", defaults.api_user),
        api_password=text("API_PASSWORD", defaults.api_password),
        serve_port=integer("SERVE_PORT", defaults.serve_port),
        https_port=integer("HTTPS_PORT", defaults.https_port),
        tls_enabled=flag("TLS_ENABLED", fallback=False),
        tls_cert_file=text("TLS_CERT_FILE", defaults.tls_cert_file),
        tls_key_file=text("TLS_KEY_FILE", defaults.tls_key_file),
        log_level=log_level,
        replication_grant_role=grant_role,
    )


__all__ = [
    "DEFAULT_DATABASE",
    "PROBE_GRACE_SECONDS",
    "ControllerSettings",
    "parse_bool",
    "settings_from_environment",
]
