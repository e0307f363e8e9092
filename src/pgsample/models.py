from dataclasses import dataclass, field
from enum import Enum


class SpecOrigin(Enum):
    """Where a table specification came from."""

    DECLARED = "declared"  # listed in the manifest
    SYNTHESIZED = "synthesized"  # pulled in through a foreign key


@dataclass
class TableSpec:
    """
    How a single table is dumped.

    An empty ``columns`` list means the column list is introspected when the
    table is emitted. An empty ``query`` means the whole table is dumped.
    """

    table: str
    query: str = ""
    columns: list[str] = field(default_factory=list)
    post_actions: list[str] = field(default_factory=list)
    origin: SpecOrigin = SpecOrigin.DECLARED
    referenced_by: str | None = None
    """For synthesized specs, the table whose foreign key pulled this one in."""

    @classmethod
    def synthesized(cls, table: str, referenced_by: str | None = None) -> "TableSpec":
        """Default spec for a table reachable by foreign key but absent from the manifest."""
        return cls(table=table, origin=SpecOrigin.SYNTHESIZED, referenced_by=referenced_by)

    @property
    def is_synthesized(self) -> bool:
        return self.origin is SpecOrigin.SYNTHESIZED

    @property
    def has_query(self) -> bool:
        return bool(self.query)
