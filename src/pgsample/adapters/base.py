from abc import ABC, abstractmethod
from contextlib import contextmanager
from typing import TextIO

from pgsample.utils.connection import ConnectionOptions


class DatabaseAdapter(ABC):
    """
    Abstract base class for database adapters.

    One adapter instance holds the single session shared by the dependency
    resolver and the dump emitter. It provides:
    - Connection management
    - Schema introspection (column lists, foreign key targets)
    - Bulk row export in COPY text format
    - Snapshot transaction control
    """

    @abstractmethod
    def connect(self, options: ConnectionOptions) -> None:
        """
        Establish the database connection.

        Raises:
            ConnectionError: If the connection or authentication fails
        """
        pass

    @abstractmethod
    def close(self) -> None:
        """Close the database connection."""
        pass

    @abstractmethod
    def canonical_name(self, table: str) -> str:
        """
        The catalog's spelling of a table name.

        Different spellings of one table (schema-qualified or not, quoted or
        not) map to the same canonical name, which is the form
        ``get_referenced_tables`` returns.

        Raises:
            SchemaIntrospectionError: If the table does not exist
        """
        pass

    @abstractmethod
    def get_columns(self, table: str) -> list[str]:
        """
        Column names of a table in their catalog-defined ordinal order.

        Raises:
            SchemaIntrospectionError: If the catalog query fails
        """
        pass

    @abstractmethod
    def get_referenced_tables(self, table: str) -> list[str]:
        """
        Tables that ``table`` references through its own foreign keys.

        Only constraints where ``table`` is the referencing side count. Each
        referenced table appears once, in a stable order. Names are canonical
        (see ``canonical_name``).

        Raises:
            SchemaIntrospectionError: If the catalog query fails
        """
        pass

    @abstractmethod
    def copy_out(self, source: str, sink: TextIO, table: str | None = None) -> int:
        """
        Stream rows in COPY text format into ``sink``.

        Args:
            source: A table name or a parenthesized query
            sink: Text stream the rows are written to, one row per line
            table: Table the rows belong to, for error messages

        Returns:
            Number of rows written

        Raises:
            StreamError: If the transfer fails
        """
        pass

    @abstractmethod
    def begin_snapshot(self) -> None:
        """Begin a read-only transaction so every table is read from one snapshot."""
        pass

    @abstractmethod
    def end_snapshot(self) -> None:
        """End the snapshot transaction."""
        pass

    @contextmanager
    def snapshot_transaction(self):
        """
        Context manager for consistent snapshot reads.

        Usage:
            with adapter.snapshot_transaction():
                make_dump(adapter, manifest, sink)
        """
        self.begin_snapshot()
        try:
            yield
        finally:
            self.end_snapshot()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False
