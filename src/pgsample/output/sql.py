"""
SQL script fragments for COPY-based dumps.

The fragments match pg_dump's plain-text layout so the script replays with
``psql -f``. Row data between a table header and its terminator is written
by the database adapter.
"""

from typing import TextIO

BEGIN_DUMP = """
--
-- PostgreSQL database dump
--

BEGIN;

SET statement_timeout = 0;
SET lock_timeout = 0;
SET client_encoding = 'UTF8';
SET standard_conforming_strings = on;
SET check_function_bodies = false;
SET client_min_messages = warning;

SET search_path = public, pg_catalog;

"""

END_DUMP = """
COMMIT;

--
-- PostgreSQL database dump complete
--
"""

BEGIN_TABLE_DUMP = """
--
-- Data for Name: {table}; Type: TABLE DATA
--

COPY {table} ({columns}) FROM stdin;
"""

END_TABLE_DUMP = "\\.\n"

SQL_CMD_DUMP = "\n{statement};\n"


def quote_identifier(name: str) -> str:
    """Quote a column name as a SQL double-quoted identifier."""
    return '"' + name.replace('"', '""') + '"'


def copy_source(table: str, query: str = "") -> str:
    """The COPY source expression: the table itself or the query as a derived table."""
    if query:
        return f"({query})"
    return table


class SQLDumpWriter:
    """Writes dump script fragments to a text sink as they are produced."""

    def __init__(self, sink: TextIO):
        self.sink = sink

    def begin_dump(self) -> None:
        self.sink.write(BEGIN_DUMP)

    def end_dump(self) -> None:
        self.sink.write(END_DUMP)

    def begin_table(self, table: str, columns: list[str]) -> None:
        quoted = ", ".join(quote_identifier(col) for col in columns)
        self.sink.write(BEGIN_TABLE_DUMP.format(table=table, columns=quoted))

    def end_table(self) -> None:
        self.sink.write(END_TABLE_DUMP)

    def sql_command(self, statement: str) -> None:
        """Write a post-action statement verbatim, terminated with ``;``."""
        self.sink.write(SQL_CMD_DUMP.format(statement=statement))

    def flush(self) -> None:
        flush = getattr(self.sink, "flush", None)
        if flush is not None:
            flush()
