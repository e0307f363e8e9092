from collections import deque

from pgsample.adapters.base import DatabaseAdapter
from pgsample.exceptions import DependencyCycleError
from pgsample.logging import get_logger
from pgsample.manifest import Manifest
from pgsample.models import TableSpec

logger = get_logger(__name__)


class DependencyResolver:
    """
    Yields manifest table specs in foreign-key-safe order.

    A table is only yielded once every other table it references has been
    yielded. Tables referenced by foreign key but missing from the manifest
    are discovered on the way and yielded with a synthesized default spec
    (full table, all columns, no post-actions) right before the first table
    that needs them. Tables with no dependency between them keep manifest
    order. Self-references never block a table.

    Tables are tracked by their canonical catalog name, so two spellings of
    one table (``public.customers`` and ``customers``) count as the same
    table. Yielded specs keep the manifest's spelling. Manifest names are
    canonicalized when the resolver is built; the order itself is computed
    lazily, each ``next()`` call only introspecting as much of the schema as
    it needs to find the next ready table.

    Usage:
        resolver = DependencyResolver(manifest, adapter)
        for spec in resolver:
            ...

    Raises (from the constructor):
        SchemaIntrospectionError: If a manifest table does not exist

    Raises (from ``next()``):
        SchemaIntrospectionError: If a foreign key lookup fails
        DependencyCycleError: If two or more tables reference each other
    """

    def __init__(self, manifest: Manifest, adapter: DatabaseAdapter):
        self.adapter = adapter
        # Keyed by canonical name
        self.pending: dict[str, TableSpec] = {}
        self.done: dict[str, TableSpec] = {}
        self.queue: deque[str] = deque()
        self.synthesized: list[TableSpec] = []

        self._references: dict[str, list[str]] = {}
        # table -> pending tables it was last deferred on
        self._waiting_on: dict[str, list[str]] = {}

        for spec in manifest.tables:
            key = adapter.canonical_name(spec.table)
            if key in self.pending:
                logger.warning(
                    "Manifest names one table twice, last entry wins",
                    table=spec.table,
                    first=self.pending[key].table,
                )
            else:
                self.queue.append(key)
            self.pending[key] = spec

    def __iter__(self):
        return self

    def __next__(self) -> TableSpec:
        while self.queue:
            table = self.queue.popleft()
            if table not in self.pending:
                continue

            outstanding = []
            for dep in self._referenced_tables(table):
                if dep not in self.pending and dep not in self.done:
                    self._synthesize(dep, referenced_by=self.pending[table].table)
                if dep in self.pending and dep != table:
                    outstanding.append(dep)

            if outstanding:
                self._defer(table, outstanding)
                continue

            spec = self.pending.pop(table)
            self.done[table] = spec
            self._waiting_on.pop(table, None)
            logger.debug("Table ready", table=table, position=len(self.done))
            return spec

        raise StopIteration

    def _referenced_tables(self, table: str) -> list[str]:
        if table not in self._references:
            self._references[table] = self.adapter.get_referenced_tables(table)
        return self._references[table]

    def _synthesize(self, table: str, referenced_by: str) -> None:
        spec = TableSpec.synthesized(table, referenced_by=referenced_by)
        self.pending[table] = spec
        self.synthesized.append(spec)
        logger.warning(
            "Table not listed in manifest, dumping it in full",
            table=table,
            referenced_by=referenced_by,
        )

    def _defer(self, table: str, outstanding: list[str]) -> None:
        """Put ``outstanding`` and then ``table`` back at the front of the queue."""
        self._waiting_on[table] = outstanding
        cycle = self._find_cycle(table)
        if cycle:
            raise DependencyCycleError(cycle)

        logger.debug("Table deferred", table=table, waiting_on=outstanding)
        self.queue.appendleft(table)
        self.queue.extendleft(reversed(outstanding))

    def _find_cycle(self, start: str) -> list[str] | None:
        """
        Look for a path of deferrals leading from ``start`` back to itself.

        Every edge followed is a foreign key between two still-pending
        tables, so a path back to ``start`` is a cycle no ordering can break.
        """
        stack: list[tuple[str, list[str]]] = [(start, [start])]
        seen: set[str] = set()

        while stack:
            table, path = stack.pop()
            for dep in self._waiting_on.get(table, []):
                if dep == start:
                    return path
                if dep in seen or dep not in self.pending:
                    continue
                seen.add(dep)
                stack.append((dep, path + [dep]))

        return None

    def resolve_all(self) -> list[TableSpec]:
        """Drain the resolver and return every remaining spec in order."""
        return list(self)
