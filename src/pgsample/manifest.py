from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from pgsample.exceptions import PgSampleError
from pgsample.logging import get_logger
from pgsample.models import TableSpec

logger = get_logger(__name__)

__all__ = [
    "Manifest",
    "ManifestError",
    "load_manifest",
]


class ManifestError(PgSampleError):
    """Error loading or decoding a manifest file."""

    def __init__(self, path: str, reason: str):
        self.path = path
        self.reason = reason
        super().__init__(f"Failed to load manifest from '{path}': {reason}")


def _render_var(name: str, value: Any) -> str:
    """Turn a YAML scalar into the string substituted into query templates."""
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (str, int, float)):
        return str(value)
    raise ValueError(f"'vars.{name}' must be a scalar value")


def _string_list(value: Any, where: str) -> list[str]:
    if value is None:
        return []
    if not isinstance(value, list):
        raise ValueError(f"{where} must be a list")
    for item in value:
        if not isinstance(item, str):
            raise ValueError(f"{where} must contain only strings, got {item!r}")
    return list(value)


@dataclass
class Manifest:
    """
    Declarative description of a sample dump.

    ``vars`` supplies values for ``{{name}}`` placeholders in table queries.
    ``tables`` is the ordered list of table specifications; it may omit
    tables reachable by foreign key and need not be in dependency order.
    """

    vars: dict[str, str] = field(default_factory=dict)
    tables: list[TableSpec] = field(default_factory=list)

    @classmethod
    def from_yaml(cls, path: str | Path) -> "Manifest":
        """
        Load a manifest from a YAML file.

        Args:
            path: Path to the manifest file

        Returns:
            Decoded Manifest

        Raises:
            ManifestError: If the file cannot be read or decoded
        """
        path = Path(path)

        if not path.exists():
            raise ManifestError(str(path), "File does not exist")

        if not path.is_file():
            raise ManifestError(str(path), "Path is not a file")

        try:
            with open(path) as f:
                data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ManifestError(str(path), f"Invalid YAML: {e}")
        except OSError as e:
            raise ManifestError(str(path), f"Cannot read file: {e}")

        try:
            manifest = cls.from_dict(data)
        except (ValueError, TypeError) as e:
            raise ManifestError(str(path), f"Invalid manifest: {e}")

        logger.info(
            "Loaded manifest",
            path=str(path),
            table_count=len(manifest.tables),
            var_count=len(manifest.vars),
        )
        return manifest

    @classmethod
    def from_dict(cls, data: Any) -> "Manifest":
        """
        Build a manifest from decoded YAML data.

        Unknown keys are ignored. A table listed more than once keeps the
        position of its first entry and the contents of its last one.

        Raises:
            ValueError: If a section has the wrong shape
        """
        if data is None:
            data = {}

        if not isinstance(data, dict):
            raise ValueError("Manifest must contain a YAML mapping (dictionary)")

        vars_data = data.get("vars") or {}
        if not isinstance(vars_data, dict):
            raise ValueError("'vars' section must be a mapping")

        variables = {str(name): _render_var(str(name), value) for name, value in vars_data.items()}

        tables_data = data.get("tables") or []
        if not isinstance(tables_data, list):
            raise ValueError("'tables' section must be a list")

        specs: dict[str, TableSpec] = {}
        for i, item in enumerate(tables_data):
            if not isinstance(item, dict):
                raise ValueError(f"Table entry #{i + 1} must be a mapping")

            table = item.get("table")
            if not isinstance(table, str) or not table.strip():
                raise ValueError(f"Table entry #{i + 1}: 'table' is required")

            query = item.get("query") or ""
            if not isinstance(query, str):
                raise ValueError(f"Table '{table}': 'query' must be a string")

            spec = TableSpec(
                table=table,
                query=query,
                columns=_string_list(item.get("columns"), f"Table '{table}': 'columns'"),
                post_actions=_string_list(
                    item.get("post_actions"), f"Table '{table}': 'post_actions'"
                ),
            )

            if table in specs:
                logger.warning("Table listed more than once, last entry wins", table=table)
            specs[table] = spec

        return cls(vars=variables, tables=list(specs.values()))

    def table_names(self) -> list[str]:
        """Table names in manifest order."""
        return [spec.table for spec in self.tables]


def load_manifest(path: str | Path) -> Manifest:
    """
    Load a manifest from a YAML file.

    Raises:
        ManifestError: If the file cannot be read or decoded
    """
    return Manifest.from_yaml(path)
