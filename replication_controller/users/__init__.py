"""Replication privilege management for database users."""

from .grants import UserGrantService, build_grant

__all__ = ("UserGrantService", "build_grant")
