"""Tests for publication catalog lookups and row mapping."""

from __future__ import annotations

import typing as typ

import pytest
from _postgres_fakes import driver_error

from replication_controller.errors import (
    DatabaseNotFoundError,
    PublicationNotFoundError,
    UnexpectedDatabaseError,
)
from replication_controller.publications import PublicationRepository, Table
from replication_controller.publications.repository import (
    group_table_rows,
    parse_attribute_names,
)

if typ.TYPE_CHECKING:
    from _postgres_fakes import FakeCluster


class TestRowMapping:
    """Tests for pure row-mapping helpers."""

    @staticmethod
    @pytest.mark.parametrize(
        ("raw", "expected"),
        [
            ("{id,name}", ("id", "name")),
            ("{id}", ("id",)),
            ("{}", ()),
            ("", ()),
            (None, ()),
        ],
    )
    def test_parse_attribute_names(
        raw: str | None,
        expected: tuple[str, ...],
    ) -> None:
        """Parse brace-delimited arrays into ordered column names."""
        assert parse_attribute_names(raw) == expected

    @staticmethod
    def test_group_table_rows_groups_by_schema_in_order() -> None:
        """Group tables per schema while keeping row order."""
        grouped = group_table_rows([
            ("public", "orders", "{id,total}", ""),
            ("sales", "items", "{}", "(qty > 0)"),
            ("public", "customers", "{id}", ""),
        ])

        assert grouped == {
            "public": (
                Table(name="orders", attributes=("id", "total")),
                Table(name="customers", attributes=("id",)),
            ),
            "sales": (Table(name="items", row_filter="(qty > 0)"),),
        }, "Expected tables grouped by schema."


class TestLookup:
    """Tests for ``PublicationRepository.lookup``."""

    @staticmethod
    @pytest.mark.asyncio
    async def test_lookup_without_tables(cluster: FakeCluster) -> None:
        """Return name, owner and database but no tables."""
        cluster.publications["salesdb", "sales_pub"] = "replicator"
        cluster.table_rows["salesdb", "sales_pub"] = [
            ("public", "orders", "{id}", "")
        ]

        publication = await PublicationRepository(cluster).lookup(
            "salesdb", "sales_pub"
        )

        assert publication.owner == "replicator"
        assert publication.database == "salesdb"
        assert publication.tables is None, "Expected tables only on request."
        assert not any(
            "pg_publication_tables" in sql for _, sql in cluster.queries
        ), "Expected no membership query."

    @staticmethod
    @pytest.mark.asyncio
    async def test_lookup_with_tables(cluster: FakeCluster) -> None:
        """Populate tables from the membership catalog."""
        cluster.publications["salesdb", "sales_pub"] = "postgres"
        cluster.table_rows["salesdb", "sales_pub"] = [
            ("public", "orders", "{id,total}", "")
        ]

        publication = await PublicationRepository(cluster).lookup(
            "salesdb", "sales_pub", with_tables=True
        )

        assert publication.tables == {
            "public": (Table(name="orders", attributes=("id", "total")),)
        }
        assert cluster.opened == ["salesdb"], "Expected one connection."
        assert cluster.open_connections == 0, "Expected connection released."

    @staticmethod
    @pytest.mark.asyncio
    async def test_lookup_missing_publication(cluster: FakeCluster) -> None:
        """Raise not-found when the catalog has no matching row."""
        with pytest.raises(PublicationNotFoundError):
            await PublicationRepository(cluster).lookup("salesdb", "missing")

    @staticmethod
    @pytest.mark.asyncio
    async def test_lookup_missing_database(cluster: FakeCluster) -> None:
        """Propagate database absence as not-found."""
        with pytest.raises(DatabaseNotFoundError):
            await PublicationRepository(cluster).lookup("nodb", "sales_pub")

    @staticmethod
    @pytest.mark.asyncio
    async def test_lookup_query_failure_is_unexpected(cluster: FakeCluster) -> None:
        """Wrap driver failures and release the connection."""
        cluster.query_error = driver_error("permission denied", "42501")

        with pytest.raises(UnexpectedDatabaseError, match="Cannot get publication"):
            await PublicationRepository(cluster).lookup("salesdb", "sales_pub")
        assert cluster.open_connections == 0, "Expected connection released."
