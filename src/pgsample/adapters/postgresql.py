import io
from typing import Any, TextIO

import psycopg2

from pgsample.adapters.base import DatabaseAdapter
from pgsample.exceptions import ConnectionError, SchemaIntrospectionError, StreamError
from pgsample.logging import get_logger, log_query_execution
from pgsample.utils.connection import ConnectionOptions

logger = get_logger(__name__)

CANONICAL_NAME_QUERY = "SELECT %s::regclass::text"

COLUMNS_QUERY = """
    SELECT attname
    FROM pg_catalog.pg_attribute
    WHERE
        attrelid = %s::regclass
        AND attnum > 0
        AND attisdropped = FALSE
    ORDER BY attnum
"""

REFERENCED_TABLES_QUERY = """
    SELECT confrelid::regclass::text AS tablename
    FROM pg_catalog.pg_constraint
    WHERE
        conrelid = %s::regclass
        AND contype = 'f'
    ORDER BY conname
"""


class RowCountingWriter(io.TextIOBase):
    """
    Text sink wrapper that counts COPY rows as they pass through.

    COPY text format escapes embedded newlines, so every newline written
    ends exactly one row. Subclassing TextIOBase makes psycopg2 hand over
    decoded text instead of bytes.
    """

    def __init__(self, sink: TextIO):
        self._sink = sink
        self.rows = 0

    def writable(self) -> bool:
        return True

    def write(self, data: str) -> int:
        self.rows += data.count("\n")
        self._sink.write(data)
        return len(data)


class PostgreSQLAdapter(DatabaseAdapter):
    """PostgreSQL adapter backed by psycopg2."""

    def __init__(self):
        self._conn: Any = None

    def connect(self, options: ConnectionOptions) -> None:
        logger.debug(
            "Connecting to PostgreSQL",
            host=options.host,
            port=options.port,
            database=options.database,
            user=options.user,
            tls=options.use_tls,
        )

        try:
            self._conn = psycopg2.connect(**options.connect_kwargs())
            self._conn.autocommit = True
            with self._conn.cursor() as cur:
                cur.execute("SELECT 1")
            logger.info("PostgreSQL connection established", database=options.database)
        except psycopg2.Error as e:
            self.close()
            logger.debug("PostgreSQL connection failed", error=str(e).strip())
            raise ConnectionError(options.display_target, str(e).strip())

    def close(self) -> None:
        if self._conn:
            self._conn.close()
            self._conn = None
            logger.debug("PostgreSQL connection closed")

    def canonical_name(self, table: str) -> str:
        try:
            with self._conn.cursor() as cur:
                log_query_execution(logger, CANONICAL_NAME_QUERY, table=table)
                cur.execute(CANONICAL_NAME_QUERY, (table,))
                (name,) = cur.fetchone()
        except psycopg2.Error as e:
            raise SchemaIntrospectionError(str(e).strip(), table=table, phase="name lookup")

        return name

    def get_columns(self, table: str) -> list[str]:
        try:
            with self._conn.cursor() as cur:
                log_query_execution(logger, COLUMNS_QUERY, table=table)
                cur.execute(COLUMNS_QUERY, (table,))
                columns = [row[0] for row in cur.fetchall()]
        except psycopg2.Error as e:
            raise SchemaIntrospectionError(str(e).strip(), table=table, phase="column lookup")

        logger.debug("Columns fetched", table=table, count=len(columns))
        return columns

    def get_referenced_tables(self, table: str) -> list[str]:
        try:
            with self._conn.cursor() as cur:
                log_query_execution(logger, REFERENCED_TABLES_QUERY, table=table)
                cur.execute(REFERENCED_TABLES_QUERY, (table,))
                rows = cur.fetchall()
        except psycopg2.Error as e:
            raise SchemaIntrospectionError(
                str(e).strip(), table=table, phase="foreign key lookup"
            )

        # A table referenced by several constraints is listed once
        referenced = list(dict.fromkeys(row[0] for row in rows))
        logger.debug("Foreign key targets fetched", table=table, referenced=referenced)
        return referenced

    def copy_out(self, source: str, sink: TextIO, table: str | None = None) -> int:
        sql = f"COPY {source} TO STDOUT"
        writer = RowCountingWriter(sink)

        try:
            with self._conn.cursor() as cur:
                log_query_execution(logger, sql, table=table)
                cur.copy_expert(sql, writer)
        except psycopg2.Error as e:
            raise StreamError(f"COPY failed: {str(e).strip()}", table=table or source) from e

        return writer.rows

    def begin_snapshot(self) -> None:
        """Begin a read-only REPEATABLE READ transaction."""
        if self._conn:
            self._conn.autocommit = False
            with self._conn.cursor() as cur:
                cur.execute("SET TRANSACTION ISOLATION LEVEL REPEATABLE READ READ ONLY")
            logger.debug("Snapshot transaction started")

    def end_snapshot(self) -> None:
        """
        Roll back the read-only snapshot transaction.

        A connection that broke mid-dump cannot be rolled back. That failure
        is only logged, so the error that broke it reaches the caller.
        """
        if not self._conn:
            return
        if self._conn.closed:
            logger.debug("Snapshot not rolled back, connection is closed")
            return

        try:
            self._conn.rollback()  # read-only
            self._conn.autocommit = True
        except (psycopg2.InterfaceError, psycopg2.OperationalError) as e:
            logger.debug("Snapshot rollback failed", error=str(e).strip())
