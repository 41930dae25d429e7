"""Command-line interface for the tabularload package loader."""

import json
from pathlib import Path
from typing import TYPE_CHECKING, Annotated, Any

import typer
from rich.console import Console
from rich.table import Table

if TYPE_CHECKING:
    from tabularload.config.settings import LoaderConfig
    from tabularload.descriptor.models import PackageDescriptor

app = typer.Typer(
    name="tabularload",
    help="Load tabular data packages into relational stores.",
    no_args_is_help=True,
)

console = Console()

DescriptorArg = Annotated[
    Path,
    typer.Argument(
        help="Descriptor file (datapackage.json) or package directory.",
        exists=True,
    ),
]
ConfigOption = Annotated[
    Path | None,
    typer.Option(
        "--config",
        "-c",
        help="Path to configuration YAML file.",
        exists=True,
        dir_okay=False,
    ),
]
StoreUrlOption = Annotated[
    str | None,
    typer.Option("--store-url", "-s", help="SQLAlchemy URL of the destination."),
]


def _load_settings(
    config: Path | None, overrides: dict[str, Any] | None = None
) -> "LoaderConfig":
    """Load configuration and set up logging from it."""
    from tabularload.config.loader import load_config
    from tabularload.utils.logging import configure_logging

    try:
        settings = load_config(config, overrides=overrides)
    except ValueError as e:
        console.print(f"[red]Invalid configuration: {e}[/red]")
        raise typer.Exit(code=2) from e

    configure_logging(settings.logging.level, settings.logging.json_output)
    return settings


def _read_descriptor(path: Path) -> "PackageDescriptor":
    from tabularload.descriptor import load_descriptor
    from tabularload.errors import DescriptorError

    try:
        return load_descriptor(path)
    except DescriptorError as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(code=2) from e


@app.command()
def load(
    descriptor: DescriptorArg,
    config: ConfigOption = None,
    store_url: StoreUrlOption = None,
    parallel: Annotated[
        bool | None,
        typer.Option("--parallel/--sequential", help="Import resources concurrently."),
    ] = None,
    batch_size: Annotated[
        int | None, typer.Option("--batch-size", "-b", min=1, help="Rows per insert.")
    ] = None,
    json_report: Annotated[
        Path | None,
        typer.Option("--json-report", help="Also write the load report as JSON."),
    ] = None,
) -> None:
    """Load every resource of a package and print the load report."""
    from tabularload.errors import StoreUnavailableError
    from tabularload.etl import ImportPipeline
    from tabularload.report import ConsoleReporter

    overrides: dict[str, Any] = {}
    if store_url:
        overrides["store"] = {"url": store_url}
    if parallel is not None:
        overrides["concurrency"] = {"parallel": parallel}
    if batch_size is not None:
        overrides["ingestion"] = {"batch_size": batch_size}

    settings = _load_settings(config, overrides)
    package = _read_descriptor(descriptor)

    target = settings.store.url or "in-memory store"
    console.print(f"[blue]Loading package '{package.name}' into {target}[/blue]")

    try:
        report = ImportPipeline(settings).run(package)
    except StoreUnavailableError as e:
        console.print(f"[red]Store unavailable: {e}[/red]")
        raise typer.Exit(code=3) from e

    ConsoleReporter(console).print_report(report)

    if json_report is not None:
        json_report.parent.mkdir(parents=True, exist_ok=True)
        with json_report.open("w", encoding="utf-8") as f:
            json.dump(report.to_dict(), f, indent=2, default=str)
        console.print(f"\n[green]Report saved to: {json_report}[/green]")

    if not report.succeeded:
        raise typer.Exit(code=1)


@app.command()
def inspect(
    descriptor: DescriptorArg,
    config: ConfigOption = None,
) -> None:
    """Show the tables a package would be loaded into, without loading it."""
    from tabularload.errors import SchemaError
    from tabularload.report import ConsoleReporter
    from tabularload.schema import build_table_definition

    settings = _load_settings(config)
    package = _read_descriptor(descriptor)
    prefix = settings.ingestion.table_prefix

    definitions = []
    failed = False
    for resource in package.resources:
        try:
            definitions.append(build_table_definition(resource, table_prefix=prefix))
        except SchemaError as e:
            failed = True
            console.print(f"[red]{resource.name}: {e}[/red]")

    ConsoleReporter(console).print_definitions(definitions)
    if failed:
        raise typer.Exit(code=1)


@app.command()
def verify(
    descriptor: DescriptorArg,
    store_url: Annotated[
        str,
        typer.Option("--store-url", "-s", help="SQLAlchemy URL of the loaded store."),
    ],
    config: ConfigOption = None,
) -> None:
    """Check tables in a store against the package's table definitions."""
    from tabularload.errors import SchemaError, StoreUnavailableError
    from tabularload.schema import build_table_definition
    from tabularload.store import create_store
    from tabularload.validation import verify_table

    settings = _load_settings(config, {"store": {"url": store_url}})
    package = _read_descriptor(descriptor)

    table = Table(title="Table Verification Results", show_header=True)
    table.add_column("Resource", style="cyan", no_wrap=True)
    table.add_column("Table", style="blue")
    table.add_column("Status", justify="center")
    table.add_column("Rows", justify="right")
    table.add_column("Details", style="dim")

    all_valid = True
    with create_store(settings.store) as store:
        for resource in package.resources:
            try:
                definition = build_table_definition(
                    resource, table_prefix=settings.ingestion.table_prefix
                )
                result = verify_table(store, definition)
            except SchemaError as e:
                all_valid = False
                table.add_row(resource.name, "-", "[red]Fail[/red]", "-", str(e))
                continue
            except StoreUnavailableError as e:
                console.print(f"[red]Store unavailable: {e}[/red]")
                raise typer.Exit(code=3) from e

            if not result.exists:
                status = "[yellow]Missing[/yellow]"
                all_valid = False
            elif result.valid:
                status = "[green]Pass[/green]"
            else:
                status = "[red]Fail[/red]"
                all_valid = False

            rows = str(result.row_count) if result.row_count is not None else "-"
            table.add_row(
                resource.name, result.table, status, rows, result.error_message or ""
            )

    console.print(table)
    if not all_valid:
        raise typer.Exit(code=1)


if __name__ == "__main__":
    app()
