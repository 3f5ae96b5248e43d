"""Publication domain, DDL construction, lookups, and reconciliation.

This package holds the only component with business rules: the reconciler
deciding between create, alter, drop and no-op for a desired publication
state, plus the pure statement builder it relies on.

Examples
--------
>>> reconciler = PublicationReconciler(connections)
>>> request = PublicationRequest.build(
...     name="sales_pub", database="salesdb", tables=["public.orders"]
... )
>>> await reconciler.alter_add(request, request_id="6f1c...")
"""

from .domain import Publication, PublicationRequest, Table
from .reconciler import PublicationReconciler, validate_target
from .repository import PublicationRepository
from .statements import (
    build_alter_add,
    build_alter_set,
    build_create,
    build_drop,
    escape_identifier,
    quote_identifier,
    quote_table,
    validate_identifier,
)

__all__ = (
    "Publication",
    "PublicationReconciler",
    "PublicationRepository",
    "PublicationRequest",
    "Table",
    "build_alter_add",
    "build_alter_set",
    "build_create",
    "build_drop",
    "escape_identifier",
    "quote_identifier",
    "quote_table",
    "validate_identifier",
    "validate_target",
)
