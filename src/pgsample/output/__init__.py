from pgsample.output.sql import SQLDumpWriter

__all__ = [
    "SQLDumpWriter",
]
