import re

__all__ = [
    "PgSampleError",
    "ConnectionError",
    "SchemaIntrospectionError",
    "SchemaError",
    "EmissionError",
    "StreamError",
    "TemplateError",
    "DependencyCycleError",
]


class PgSampleError(Exception):
    """Base exception for all pgsample errors."""

    pass


class ConnectionError(PgSampleError):
    """Failed to connect or authenticate to the database."""

    def __init__(self, target: str, reason: str):
        self.target = target
        self.reason = reason
        super().__init__(f"Cannot connect to {self._mask_password(target)}: {reason}")

    @staticmethod
    def _mask_password(target: str) -> str:
        """Mask a password embedded in a DSN or URL for safe display."""
        target = re.sub(r"(password=)\S+", r"\1****", target)
        return re.sub(r"(://[^:]+:)(.+)(@[^@]+)$", r"\1****\3", target)


class SchemaIntrospectionError(PgSampleError):
    """A catalog query about a table failed."""

    def __init__(self, reason: str, table: str | None = None, phase: str = "introspection"):
        self.reason = reason
        self.table = table
        self.phase = phase
        msg = f"Failed to introspect schema: {reason}"
        if table:
            msg = f"Failed to introspect table '{table}' during {phase}: {reason}"
        super().__init__(msg)


SchemaError = SchemaIntrospectionError


class EmissionError(PgSampleError):
    """Writing the dump script failed."""

    def __init__(self, reason: str, table: str | None = None):
        self.reason = reason
        self.table = table
        msg = f"Dump failed: {reason}"
        if table:
            msg = f"Dump failed for table '{table}': {reason}"
        super().__init__(msg)


class StreamError(EmissionError):
    """Row transfer failed mid-table; output is left partially written."""

    pass


class TemplateError(EmissionError):
    """A subset query template could not be rendered."""

    def __init__(self, template: str, reason: str, table: str | None = None):
        self.template = template
        super().__init__(f"Cannot render query template: {reason}", table=table)


class DependencyCycleError(PgSampleError):
    """Two or more distinct tables reference each other through foreign keys."""

    def __init__(self, cycle: list[str]):
        self.cycle = cycle
        path = " -> ".join(cycle + [cycle[0]])
        super().__init__(
            f"Foreign key cycle between tables: {path}. "
            "Tables in a cycle cannot be ordered for a COPY-based dump."
        )
