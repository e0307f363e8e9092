import time
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from typing import TextIO

from pgsample.adapters.base import DatabaseAdapter
from pgsample.core.resolver import DependencyResolver
from pgsample.logging import get_logger, log_dump_complete, log_table_emitted
from pgsample.manifest import Manifest
from pgsample.models import TableSpec
from pgsample.output.sql import SQLDumpWriter, copy_source
from pgsample.template import render_query

logger = get_logger(__name__)

ProgressCallback = Callable[[str, int], None]
"""Called with (table, position) before each table is dumped."""


@dataclass
class DumpResult:
    """What a dump wrote."""

    tables: list[str] = field(default_factory=list)
    """Emitted tables in script order."""

    stats: dict[str, int] = field(default_factory=dict)
    """Row count per table."""

    synthesized: list[TableSpec] = field(default_factory=list)
    """Specs the resolver added for tables missing from the manifest."""

    post_action_count: int = 0
    duration_ms: int = 0

    def total_rows(self) -> int:
        return sum(self.stats.values())

    def table_count(self) -> int:
        return len(self.tables)


class DumpEmitter:
    """
    Writes a replayable SQL script from an ordered stream of table specs.

    Every fragment goes straight to the sink, so memory use does not grow
    with the number of rows. On failure the sink is left as written so far;
    the caller owns it and decides whether to discard it.
    """

    def __init__(
        self,
        adapter: DatabaseAdapter,
        progress_callback: ProgressCallback | None = None,
    ):
        self.adapter = adapter
        self.progress_callback = progress_callback

    def emit(
        self,
        specs: Iterable[TableSpec],
        variables: dict[str, str],
        sink: TextIO,
    ) -> DumpResult:
        """
        Write the full script for ``specs`` to ``sink``.

        Args:
            specs: Table specs in dependency order (typically a DependencyResolver)
            variables: Values for ``{{name}}`` placeholders in subset queries
            sink: Text stream receiving the script

        Returns:
            DumpResult with emitted tables and row counts

        Raises:
            SchemaIntrospectionError: If a column or foreign key lookup fails
            TemplateError: If a subset query cannot be rendered
            StreamError: If row transfer fails
            DependencyCycleError: If the specs come from a resolver that hits a cycle
        """
        start_time = time.time()
        writer = SQLDumpWriter(sink)
        result = DumpResult()

        writer.begin_dump()

        for spec in specs:
            if self.progress_callback:
                self.progress_callback(spec.table, len(result.tables) + 1)
            rows = self._emit_table(spec, variables, writer)

            result.tables.append(spec.table)
            result.stats[spec.table] = rows
            result.post_action_count += len(spec.post_actions)
            if spec.is_synthesized:
                result.synthesized.append(spec)

            log_table_emitted(
                logger, spec.table, rows, len(result.tables), synthesized=spec.is_synthesized
            )

        writer.end_dump()
        writer.flush()

        result.duration_ms = int((time.time() - start_time) * 1000)
        log_dump_complete(logger, result.total_rows(), result.table_count(), result.duration_ms)
        return result

    def _emit_table(
        self, spec: TableSpec, variables: dict[str, str], writer: SQLDumpWriter
    ) -> int:
        table_logger = logger.with_context(table=spec.table)

        columns = spec.columns or self.adapter.get_columns(spec.table)

        # Render before the header so a bad template leaves no partial block
        query = render_query(spec.query, variables, table=spec.table) if spec.query else ""

        writer.begin_table(spec.table, columns)
        with table_logger.timed_operation("copy", filtered=bool(query)):
            source = copy_source(spec.table, query)
            rows = self.adapter.copy_out(source, writer.sink, table=spec.table)
        writer.end_table()

        for statement in spec.post_actions:
            writer.sql_command(statement)

        writer.flush()
        return rows


def make_dump(
    adapter: DatabaseAdapter,
    manifest: Manifest,
    sink: TextIO,
    progress_callback: ProgressCallback | None = None,
) -> DumpResult:
    """
    Resolve the manifest's table order and write the dump script to ``sink``.

    Resolution is lazy: tables are introspected as the emitter asks for them.
    """
    resolver = DependencyResolver(manifest, adapter)
    return DumpEmitter(adapter, progress_callback).emit(resolver, manifest.vars, sink)


def plan_dump(adapter: DatabaseAdapter, manifest: Manifest) -> list[TableSpec]:
    """Resolve the emission order without dumping any data."""
    return DependencyResolver(manifest, adapter).resolve_all()
