"""Domain models for logical-replication publications."""

import dataclasses as dc

from replication_controller.errors import ValidationError


@dc.dataclass(frozen=True, slots=True)
class Table:
    """One table published by a publication.

    Attributes
    ----------
    name : str
        Table name without its schema.
    attributes : tuple[str, ...]
        Published column names in catalog order.
    row_filter : str
        Row-filter predicate, or an empty string when unset.
    """

    name: str
    attributes: tuple[str, ...] = ()
    row_filter: str = ""


@dc.dataclass(frozen=True, slots=True)
class Publication:
    """A publication as reported by ``pg_publication``.

    ``tables`` is ``None`` unless the lookup asked for table membership.
    """

    name: str
    owner: str
    database: str
    tables: dict[str, tuple[Table, ...]] | None = None


def _unique(values: object, field_name: str) -> tuple[str, ...]:
    """Return ``values`` as a duplicate-free tuple, keeping first occurrence."""
    if values is None:
        return ()
    if isinstance(values, str) or not isinstance(values, list | tuple | set):
        msg = f"{field_name} must be a list of strings."
        raise ValidationError(msg)
    if not all(isinstance(value, str) for value in values):
        msg = f"{field_name} must contain only strings."
        raise ValidationError(msg)
    return tuple(dict.fromkeys(values))


@dc.dataclass(frozen=True, slots=True)
class PublicationRequest:
    """Desired publication state carried by a mutating request.

    ``tables`` and ``schemas`` behave as sets: duplicates are removed while the
    order of first appearance is kept, so the generated DDL is deterministic.
    """

    name: str
    database: str
    tables: tuple[str, ...] = ()
    schemas: tuple[str, ...] = ()

    @classmethod
    def build(
        cls,
        *,
        name: str,
        database: str,
        tables: object = None,
        schemas: object = None,
    ) -> "PublicationRequest":
        """Build a request, normalising table and schema collections."""
        return cls(
            name=name,
            database=database,
            tables=_unique(tables, "tables"),
            schemas=_unique(schemas, "schemas"),
        )

    @property
    def has_members(self) -> bool:
        """Return True when the request names any table or schema."""
        return bool(self.tables or self.schemas)
