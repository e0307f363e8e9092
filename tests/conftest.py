"""Shared pytest fixtures for pgsample tests."""

import logging
from typing import TextIO

import pytest

from pgsample.adapters.base import DatabaseAdapter
from pgsample.exceptions import ConnectionError, SchemaIntrospectionError, StreamError
from pgsample.utils.connection import ConnectionOptions


class FakeAdapter(DatabaseAdapter):
    """In-memory adapter for testing without a real database."""

    def __init__(
        self,
        references: dict[str, list[str]] | None = None,
        columns: dict[str, list[str]] | None = None,
        rows: dict[str, list[str]] | None = None,
        query_rows: dict[str, list[str]] | None = None,
        password: str | None = None,
        broken_tables: set[str] | None = None,
        broken_streams: set[str] | None = None,
        aliases: dict[str, str] | None = None,
    ):
        self.references = references or {}
        self.columns = columns or {}
        self.rows = rows or {}
        self.query_rows = query_rows or {}
        self.password = password
        self.broken_tables = broken_tables or set()
        self.broken_streams = broken_streams or set()
        self.aliases = aliases or {}

        self.connected = False
        self.closed = False
        self.connect_attempts: list[ConnectionOptions] = []
        self.name_lookups: list[str] = []
        self.reference_lookups: list[str] = []
        self.column_lookups: list[str] = []
        self.copied: list[str] = []
        self.snapshots = 0

    def connect(self, options: ConnectionOptions) -> None:
        self.connect_attempts.append(options)
        if self.password is not None and options.password != self.password:
            raise ConnectionError(options.display_target, "password authentication failed")
        self.connected = True

    def close(self) -> None:
        self.connected = False
        self.closed = True

    def canonical_name(self, table: str) -> str:
        self.name_lookups.append(table)
        return self.aliases.get(table, table)

    def get_columns(self, table: str) -> list[str]:
        self.column_lookups.append(table)
        if table in self.broken_tables:
            raise SchemaIntrospectionError("relation does not exist", table, "column lookup")
        return list(self.columns.get(table, ["id"]))

    def get_referenced_tables(self, table: str) -> list[str]:
        self.reference_lookups.append(table)
        if table in self.broken_tables:
            raise SchemaIntrospectionError("relation does not exist", table, "foreign key lookup")
        return list(self.references.get(table, []))

    def copy_out(self, source: str, sink: TextIO, table: str | None = None) -> int:
        self.copied.append(source)
        if source.startswith("("):
            lines = self.query_rows.get(source, [])
        else:
            lines = self.rows.get(source, [])

        for i, line in enumerate(lines):
            if (table or source) in self.broken_streams and i == 1:
                raise StreamError("connection lost", table=table or source)
            sink.write(line + "\n")
        return len(lines)

    def begin_snapshot(self) -> None:
        self.snapshots += 1

    def end_snapshot(self) -> None:
        pass


@pytest.fixture
def make_adapter():
    """Factory building a FakeAdapter from keyword arguments."""
    return FakeAdapter


@pytest.fixture
def shop_adapter() -> FakeAdapter:
    """
    A small shop schema.

    regions <- customers <- orders -> products
                              ^
                         order_items
    employees references itself (manager_id).
    """
    return FakeAdapter(
        references={
            "customers": ["regions"],
            "orders": ["customers", "products"],
            "order_items": ["orders", "products"],
            "employees": ["employees"],
        },
        columns={
            "regions": ["id", "name"],
            "customers": ["id", "region_id", "email"],
            "products": ["id", "sku", "price"],
            "orders": ["id", "customer_id", "product_id", "total"],
            "order_items": ["id", "order_id", "product_id", "quantity"],
            "employees": ["id", "manager_id", "name"],
        },
        rows={
            "regions": ["1\tNorth", "2\tSouth"],
            "customers": ["10\t1\talice@example.com", "11\t2\tbob@example.com"],
            "products": ["100\tWIDGET-001\t19.99"],
            "orders": ["1000\t10\t100\t19.99"],
            "order_items": ["5000\t1000\t100\t1"],
            "employees": ["1\t\\N\tAda", "2\t1\tGrace"],
        },
    )


@pytest.fixture(autouse=True)
def reset_pgsample_logging():
    """Drop handlers installed by setup_logging so they never outlive a test's streams."""
    yield
    root = logging.getLogger("pgsample")
    root.handlers.clear()
    root.propagate = True
