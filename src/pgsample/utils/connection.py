from collections.abc import Callable
from dataclasses import dataclass, replace
from typing import Any

from pgsample.constants import DEFAULT_HOST, DEFAULT_POSTGRESQL_PORT
from pgsample.exceptions import ConnectionError
from pgsample.logging import get_logger

logger = get_logger(__name__)


@dataclass(repr=False)
class ConnectionOptions:
    """Parsed database connection settings."""

    database: str
    user: str
    host: str = DEFAULT_HOST
    port: int = DEFAULT_POSTGRESQL_PORT
    use_tls: bool = False
    password: str | None = None

    def __repr__(self) -> str:
        masked_pw = "***" if self.password else None
        return (
            f"ConnectionOptions(database={self.database!r}, user={self.user!r}, "
            f"host={self.host!r}, port={self.port!r}, use_tls={self.use_tls!r}, "
            f"password={masked_pw!r})"
        )

    @property
    def display_target(self) -> str:
        """``user@host:port/database`` without the password."""
        return f"{self.user}@{self.host}:{self.port}/{self.database}"

    def with_password(self, password: str) -> "ConnectionOptions":
        return replace(self, password=password)

    def connect_kwargs(self) -> dict[str, Any]:
        """Keyword arguments for ``psycopg2.connect``."""
        kwargs: dict[str, Any] = {
            "host": self.host,
            "port": self.port,
            "user": self.user,
            "dbname": self.database,
            "sslmode": "require" if self.use_tls else "disable",
        }
        # Leaving the password out lets libpq fall back to PGPASSWORD / .pgpass
        if self.password is not None:
            kwargs["password"] = self.password
        return kwargs


def connect_with_password_retry(
    adapter,
    options: ConnectionOptions,
    no_password: bool = False,
    prompt: Callable[[str], str] | None = None,
) -> None:
    """
    Connect ``adapter``, retrying once with a password if the first attempt fails.

    The first attempt uses ``options`` as given. If it raises ConnectionError,
    the password is read with ``prompt`` (or left empty when ``no_password``
    is set or no prompt is available) and the connection is tried again.

    Args:
        adapter: Unconnected DatabaseAdapter
        options: Connection settings for the first attempt
        no_password: Never prompt for a password
        prompt: Callable receiving the user name and returning a password

    Raises:
        ConnectionError: If the retry fails too
    """
    try:
        adapter.connect(options)
        return
    except ConnectionError as e:
        logger.debug("First connection attempt failed", reason=e.reason, user=options.user)

    password = ""
    if not no_password and prompt is not None:
        password = prompt(options.user)

    logger.debug("Retrying connection with password", user=options.user)
    adapter.connect(options.with_password(password))
