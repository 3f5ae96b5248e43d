"""Response serializers for publication endpoints."""

import typing as typ

if typ.TYPE_CHECKING:
    from replication_controller.publications import Publication, Table


def serialize_table(table: Table) -> dict[str, typ.Any]:
    """Serialize one published table; an empty row filter is omitted."""
    payload: dict[str, typ.Any] = {
        "name": table.name,
        "attrNames": list(table.attributes),
    }
    if table.row_filter:
        payload["rowfilter"] = table.row_filter
    return payload


def serialize_publication(publication: Publication) -> dict[str, typ.Any]:
    """Serialize a publication; ``tables`` is omitted when absent or empty."""
    payload: dict[str, typ.Any] = {
        "name": publication.name,
        "owner": publication.owner,
        "database": publication.database,
    }
    if publication.tables:
        payload["tables"] = {
            schema: [serialize_table(table) for table in tables]
            for schema, tables in publication.tables.items()
        }
    return payload
