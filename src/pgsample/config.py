from dataclasses import dataclass
from pathlib import Path

from pgsample.utils.connection import ConnectionOptions


@dataclass
class DumpConfig:
    """Settings for one dump run, assembled from command-line flags."""

    connection: ConnectionOptions
    manifest_file: Path
    output_file: Path | None = None
    """Where the script goes; None means stdout."""

    no_password: bool = False
    """Never prompt for a password when the first connection attempt fails."""

    snapshot: bool = True
    """Read every table inside one REPEATABLE READ transaction."""

    dry_run: bool = False
    verbose: bool = False
    quiet: bool = False
    log_json: bool = False

    @property
    def output_label(self) -> str:
        return str(self.output_file) if self.output_file else "<stdout>"
