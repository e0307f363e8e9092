from pgsample.adapters.base import DatabaseAdapter
from pgsample.adapters.postgresql import PostgreSQLAdapter

__all__ = [
    "DatabaseAdapter",
    "PostgreSQLAdapter",
]
