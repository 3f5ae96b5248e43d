"""Falcon middleware for request correlation and basic authentication.

``RequestIdMiddleware`` must run first so that authentication failures are
logged with the request identifier too.
"""

from __future__ import annotations

import base64
import binascii
import hmac
import typing as typ
import uuid

import falcon

from replication_controller.logging import (
    RequestLogger,
    get_logger,
    log_debug,
    log_warning,
)

from .types import REQUEST_ID_HEADER

if typ.TYPE_CHECKING:
    import collections.abc as cabc

    from falcon import asgi

_logger = get_logger(__name__)


class RequestIdMiddleware:
    """Attach a correlation identifier to every request and response.

    An incoming ``X-Request-ID`` header is reused; otherwise a UUID4 is
    generated. The identifier is stored on ``req.context.request_id``.
    """

    async def process_request(self, req: asgi.Request, resp: asgi.Response) -> None:
        """Resolve the request identifier and echo it on the response."""
        request_id = req.get_header(REQUEST_ID_HEADER) or str(uuid.uuid4())
        req.context.request_id = request_id
        resp.set_header(REQUEST_ID_HEADER, request_id)
        log_debug(RequestLogger(_logger, request_id), "%s %s", req.method, req.path)


def _decode_basic_credentials(header: str | None) -> tuple[str, str] | None:
    """Return ``(username, password)`` from a Basic authorization header."""
    if not header:
        return None
    scheme, _, encoded = header.partition(" ")
    if scheme.lower() != "basic" or not encoded:
        return None
    try:
        decoded = base64.b64decode(encoded.strip(), validate=True).decode("utf-8")
    except (binascii.Error, UnicodeDecodeError):
        return None
    username, separator, password = decoded.partition(":")
    if not separator:
        return None
    return username, password


class BasicAuthMiddleware:
    """Require HTTP basic credentials on every route except exempt paths.

    Parameters
    ----------
    username : str
        Accepted username.
    password : str
        Accepted password.
    exempt_paths : collections.abc.Iterable[str], optional
        Paths served without credentials; defaults to ``/health``.
    """

    def __init__(
        self,
        username: str,
        password: str,
        *,
        exempt_paths: cabc.Iterable[str] = ("/health",),
    ) -> None:
        self._username = username.encode("utf-8")
        self._password = password.encode("utf-8")
        self._exempt_paths = frozenset(exempt_paths)

    def _authorized(self, credentials: tuple[str, str] | None) -> bool:
        if credentials is None:
            return False
        username, password = credentials
        username_ok = hmac.compare_digest(username.encode("utf-8"), self._username)
        password_ok = hmac.compare_digest(password.encode("utf-8"), self._password)
        return username_ok and password_ok

    async def process_request(self, req: asgi.Request, resp: asgi.Response) -> None:
        """Reject requests without valid credentials.

        Raises
        ------
        falcon.HTTPUnauthorized
            Raised when credentials are missing or do not match.
        """
        del resp
        if req.path in self._exempt_paths:
            return
        if self._authorized(_decode_basic_credentials(req.auth)):
            return
        request_id = getattr(req.context, "request_id", None)
        log_warning(
            RequestLogger(_logger, request_id),
            "Unauthorized %s %s",
            req.method,
            req.path,
        )
        raise falcon.HTTPUnauthorized(
            title="Unauthorized",
            challenges=['Basic realm="Restricted"'],
        )


__all__ = ["BasicAuthMiddleware", "RequestIdMiddleware"]
