DEFAULT_HOST = "/tmp"
"""Default database host (the local socket directory)."""

DEFAULT_POSTGRESQL_PORT = 5432
"""Default port number for PostgreSQL connections."""

MIN_PORT = 0
MAX_PORT = 65535

MAX_QUERY_PREVIEW = 200
"""Maximum query length included in log context."""
