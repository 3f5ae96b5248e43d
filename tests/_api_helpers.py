"""Credentials shared by the HTTP tests and their fixtures."""

from __future__ import annotations

import base64

API_USER = "logical-repl-user"
API_PASSWORD = "logical-repl-password"  # noqa: S105


def basic_auth_header(username: str, password: str) -> dict[str, str]:
    """Return an ``Authorization`` header for HTTP basic credentials."""
    token = base64.b64encode(f"{username}:{password}".encode()).decode("ascii")
    return {"Authorization": f"Basic {token}"}
