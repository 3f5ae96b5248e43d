"""Shared types for the Falcon API adapter."""

from __future__ import annotations

import typing as typ

JsonPayload: typ.TypeAlias = dict[str, object]

REQUEST_ID_HEADER = "X-Request-ID"
