import getpass
import sys
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import Annotated, TextIO

import typer
from rich.console import Console
from rich.status import Status
from rich.table import Table

from pgsample import __version__
from pgsample.adapters.base import DatabaseAdapter
from pgsample.adapters.postgresql import PostgreSQLAdapter
from pgsample.config import DumpConfig
from pgsample.constants import DEFAULT_HOST, DEFAULT_POSTGRESQL_PORT, MAX_PORT, MIN_PORT
from pgsample.core.dump import DumpResult, make_dump, plan_dump
from pgsample.exceptions import (
    ConnectionError,
    DependencyCycleError,
    PgSampleError,
    SchemaIntrospectionError,
    StreamError,
    TemplateError,
)
from pgsample.input_validators import (
    ValidationError,
    validate_database_name,
    validate_output_file_path,
)
from pgsample.logging import get_logger, log_dump_start, setup_logging
from pgsample.manifest import Manifest, ManifestError, load_manifest
from pgsample.models import TableSpec
from pgsample.utils.connection import ConnectionOptions, connect_with_password_retry

logger = get_logger(__name__)

app = typer.Typer(
    name="pg-dump-sample",
    help="Dump a referentially-consistent sample of a PostgreSQL database.",
)

console = Console(stderr=True)


def version_callback(value: bool):
    """Print version and exit."""
    if value:
        print(f"pg-dump-sample {__version__}")
        raise typer.Exit()


def prompt_password(username: str) -> str:
    """Read the database password from the terminal without echoing it."""
    return typer.prompt(
        f"Password for {username}",
        hide_input=True,
        default="",
        show_default=False,
        err=True,
    )


def create_progress_callback(status: Status | None, verbose: bool, console: Console):
    """
    Create a progress callback that updates the Rich status line.

    Returns:
        Callback with signature (table, position) -> None
    """

    def callback(table: str, position: int):
        if status:
            status.update(f"[bold blue]Dumping {table}[/bold blue] [dim]({position})[/dim]")
        if verbose:
            console.print(f"  [dim][{position}] {table}[/dim]")

    return callback


@contextmanager
def open_output(path: Path | None) -> Iterator[TextIO]:
    """
    Open the script destination, falling back to stdout.

    Files are always closed on exit, including error paths. A file left
    behind by a failed run is incomplete and should be discarded.
    """
    if path is None:
        try:
            yield sys.stdout
        finally:
            sys.stdout.flush()
        return

    f = open(path, "w", encoding="utf-8")
    try:
        yield f
    finally:
        f.close()


def _build_dump_config(
    database: str,
    host: str,
    port: int,
    username: str | None,
    no_password: bool,
    manifest_file: Path,
    out_file: Path | None,
    tls: bool,
    dry_run: bool,
    no_snapshot: bool,
    verbose: bool,
    quiet: bool,
    log_json: bool,
) -> DumpConfig:
    """
    Build DumpConfig from validated CLI parameters.

    The user name defaults to the current OS user.
    """
    if not username:
        try:
            username = getpass.getuser()
        except (KeyError, OSError):
            raise ValidationError("Cannot determine the current user; pass --username")

    return DumpConfig(
        connection=ConnectionOptions(
            database=database,
            user=username,
            host=host,
            port=port,
            use_tls=tls,
        ),
        manifest_file=manifest_file,
        output_file=out_file,
        no_password=no_password,
        snapshot=not no_snapshot,
        dry_run=dry_run,
        verbose=verbose,
        quiet=quiet,
        log_json=log_json,
    )


def _describe_origin(spec: TableSpec) -> str:
    if spec.is_synthesized:
        return f"[yellow]via FK from {spec.referenced_by}[/yellow]"
    return "manifest"


def _show_plan(specs: list[TableSpec], console: Console) -> None:
    """Print the resolved dump order for --dry-run."""
    table = Table(title="Dump order", title_justify="left")
    table.add_column("#", justify="right", style="dim")
    table.add_column("Table", style="cyan")
    table.add_column("Source")
    table.add_column("Rows")
    table.add_column("Post-actions", justify="right")

    for position, spec in enumerate(specs, start=1):
        table.add_row(
            str(position),
            spec.table,
            _describe_origin(spec),
            "query" if spec.has_query else "all",
            str(len(spec.post_actions)),
        )

    console.print(table)


def _execute_dump(
    adapter: DatabaseAdapter,
    manifest: Manifest,
    sink: TextIO,
    config: DumpConfig,
    console: Console,
) -> DumpResult:
    """Run the dump, with a status line unless progress output is off."""
    if config.quiet:
        return make_dump(adapter, manifest, sink)

    with console.status("[bold blue]Resolving tables...[/bold blue]") as status:
        progress_cb = create_progress_callback(
            status if not config.verbose else None, config.verbose, console
        )
        return make_dump(adapter, manifest, sink, progress_callback=progress_cb)


def _show_dump_summary(result: DumpResult, config: DumpConfig, console: Console) -> None:
    """Display the dump summary on stderr."""
    console.print()
    console.print("[bold green]Dump Complete![/bold green]")
    console.print(
        f"  Total: [cyan]{result.total_rows()}[/cyan] rows from "
        f"[cyan]{result.table_count()}[/cyan] tables"
    )
    if result.post_action_count:
        console.print(f"  Post-actions: [cyan]{result.post_action_count}[/cyan]")

    if result.synthesized:
        console.print()
        console.print(
            f"[yellow]⚠ {len(result.synthesized)} table(s) not in the manifest "
            "were dumped in full to satisfy foreign keys[/yellow]"
        )
        for spec in result.synthesized:
            console.print(f"  [dim]{spec.table} (referenced by {spec.referenced_by})[/dim]")

    if config.verbose:
        console.print()
        console.print("[bold]Tables dumped:[/bold]")
        for table in result.tables:
            console.print(f"  [dim]{table}:[/dim] {result.stats[table]} rows")

    if config.output_file:
        console.print()
        console.print(f"[green]Wrote dump to [bold]{config.output_file}[/bold][/green]")


@app.command()
def dump(
    database: Annotated[
        str,
        typer.Argument(help="Name of the database to sample"),
    ],
    manifest_file: Annotated[
        Path,
        typer.Option(
            "--manifest-file",
            "-m",
            help="Path to the YAML manifest file",
        ),
    ],
    host: Annotated[
        str,
        typer.Option(
            "--host",
            "-h",
            help="Database server host or socket directory",
        ),
    ] = DEFAULT_HOST,
    port: Annotated[
        int,
        typer.Option(
            "--port",
            "-p",
            min=MIN_PORT,
            max=MAX_PORT,
            help="Database server port",
        ),
    ] = DEFAULT_POSTGRESQL_PORT,
    username: Annotated[
        str | None,
        typer.Option(
            "--username",
            "-U",
            help="Database user name (default: current user)",
        ),
    ] = None,
    no_password: Annotated[
        bool,
        typer.Option(
            "--no-password",
            "-w",
            help="Never prompt for a password",
        ),
    ] = False,
    out_file: Annotated[
        Path | None,
        typer.Option(
            "--file",
            "-f",
            help="Write the dump to a file instead of stdout",
        ),
    ] = None,
    tls: Annotated[
        bool,
        typer.Option(
            "--tls",
            "-s",
            help="Use an SSL/TLS database connection",
        ),
    ] = False,
    dry_run: Annotated[
        bool,
        typer.Option(
            "--dry-run",
            help="Show the resolved table order without dumping any data",
        ),
    ] = False,
    no_snapshot: Annotated[
        bool,
        typer.Option(
            "--no-snapshot",
            help="Do not wrap the dump in a single REPEATABLE READ transaction",
        ),
    ] = False,
    verbose: Annotated[
        bool,
        typer.Option(
            "--verbose",
            "-v",
            help="Show detailed logs",
        ),
    ] = False,
    quiet: Annotated[
        bool,
        typer.Option(
            "--quiet",
            "-q",
            help="Only report warnings and errors",
        ),
    ] = False,
    log_json: Annotated[
        bool,
        typer.Option(
            "--log-json",
            help="Emit logs as JSON lines on stderr",
        ),
    ] = False,
    version: Annotated[
        bool | None,
        typer.Option(
            "--version",
            "-V",
            help="Show version and exit.",
            callback=version_callback,
            is_eager=True,
        ),
    ] = None,
):
    """
    Dump the tables named in a manifest, in foreign key order, as a SQL script.

    Tables referenced by foreign key but missing from the manifest are
    dumped in full.

    Examples:

        # Dump to stdout
        pg-dump-sample -m sample.yaml shop

        # Dump to a file over TLS as a given user
        pg-dump-sample -h db.internal -U reader -s -m sample.yaml -f sample.sql shop

        # Only show the order tables would be dumped in
        pg-dump-sample -m sample.yaml --dry-run shop
    """
    try:
        setup_logging(verbose=verbose, quiet=quiet, structured=log_json)
        logger.debug("CLI command invoked", command="dump", database=database)

        try:
            validate_database_name(database)
            if out_file:
                validate_output_file_path(out_file)
            config = _build_dump_config(
                database=database,
                host=host,
                port=port,
                username=username,
                no_password=no_password,
                manifest_file=manifest_file,
                out_file=out_file,
                tls=tls,
                dry_run=dry_run,
                no_snapshot=no_snapshot,
                verbose=verbose,
                quiet=quiet,
                log_json=log_json,
            )
        except ValidationError as e:
            console.print(f"[red]Validation Error:[/red] {e}")
            raise typer.Exit(1)

        manifest = load_manifest(config.manifest_file)
        log_dump_start(logger, database, len(manifest.tables), config.output_label)

        with PostgreSQLAdapter() as adapter:
            connect_with_password_retry(
                adapter,
                config.connection,
                no_password=config.no_password,
                prompt=prompt_password,
            )

            if config.dry_run:
                specs = plan_dump(adapter, manifest)
                _show_plan(specs, console)
                return

            with open_output(config.output_file) as sink:
                if config.snapshot:
                    with adapter.snapshot_transaction():
                        result = _execute_dump(adapter, manifest, sink, config, console)
                else:
                    result = _execute_dump(adapter, manifest, sink, config, console)

        if not quiet:
            _show_dump_summary(result, config, console)

    except ManifestError as e:
        logger.error("Manifest could not be loaded", error=e.reason)
        console.print(f"[red]Manifest Error:[/red] {e}")
        raise typer.Exit(1)

    except ConnectionError as e:
        logger.error("Database connection failed", error=e.reason)
        console.print(f"[red]Connection failed:[/red] {e.reason}")
        raise typer.Exit(1)

    except DependencyCycleError as e:
        logger.error("Foreign key cycle detected", cycle=" -> ".join(e.cycle))
        console.print(f"[red]Dependency Cycle Error:[/red] {e}")
        raise typer.Exit(1)

    except SchemaIntrospectionError as e:
        logger.error("Schema introspection failed", error=str(e), table=e.table)
        console.print(f"[red]Schema Error:[/red] {e}")
        raise typer.Exit(1)

    except TemplateError as e:
        logger.error("Query template failed to render", error=str(e), table=e.table)
        console.print(f"[red]Template Error:[/red] {e}")
        raise typer.Exit(1)

    except StreamError as e:
        logger.error("Row streaming failed", error=str(e), table=e.table)
        console.print(f"[red]Stream Error:[/red] {e}")
        if out_file:
            console.print(f"[dim]{out_file} is incomplete and should be discarded[/dim]")
        raise typer.Exit(1)

    except PgSampleError as e:
        logger.error("PgSampleError occurred", error=str(e), exc_info=True)
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)

    except (typer.Exit, SystemExit):
        raise

    except Exception as e:
        logger.critical("Unexpected error occurred", error=str(e), exc_info=True)
        console.print(f"[red]Unexpected error:[/red] {e}")
        if verbose:
            import traceback

            console.print(traceback.format_exc())
        raise typer.Exit(1)


if __name__ == "__main__":
    app()
