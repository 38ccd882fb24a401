"""CLI entry point for the Magento to WoowUp sync.

This module provides the command-line interface for running one import
phase with argument parsing, a progress spinner and a summary table.
"""

import sys
from datetime import datetime
from pathlib import Path
from typing import Any, Callable, Dict, Optional

import click
import uvicorn
from rich.console import Console
from rich.progress import Progress, SpinnerColumn, TextColumn, TimeElapsedColumn
from rich.table import Table

from magento_woowup import __version__
from magento_woowup.models.config import ConfigManager, SyncConfig
from magento_woowup.models.data_models import SyncResult
from magento_woowup.pipeline.orchestrator import DEFAULT_DAYS, DEFAULT_MONTHS, SyncOrchestrator
from magento_woowup.pipeline.output import JSONOutputFormatter
from magento_woowup.processor.aggregator import ENTITIES


console = Console()


COMMON_OPTIONS = [
    click.option(
        "--config",
        "-c",
        type=click.Path(path_type=Path),
        default="config/config.yaml",
        help="Path to configuration YAML file",
    ),
    click.option(
        "--output",
        "-o",
        type=click.Path(path_type=Path),
        help="Output JSON file path (overrides config)",
    ),
    click.option(
        "--log-level",
        "-l",
        type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
        help="Logging level (overrides config)",
    ),
    click.option(
        "--store",
        help="Store id to import (overrides config)",
    ),
    click.option(
        "--no-progress",
        is_flag=True,
        help="Disable progress spinner (useful for CI/CD)",
    ),
]


def common_options(func: Callable) -> Callable:
    """Options shared by every import command."""
    for option in reversed(COMMON_OPTIONS):
        func = option(func)
    return func


@click.group()
@click.version_option(version=__version__, prog_name="magento-woowup")
def cli() -> None:
    """
    Magento to WoowUp sync.

    Imports customers, orders and products changed in a Magento 1 store
    into a WoowUp account.

    Examples:

        # Import orders from the last 5 days
        $ magento-woowup orders

        # Re-import and update a month of orders up to a date
        $ magento-woowup orders --days 30 --to 2024-05-01 --update

        # Import products changed in the last 3 months
        $ magento-woowup products --months 3
    """


@cli.command()
@click.option("--days", "-d", type=int, default=DEFAULT_DAYS, show_default=True, help="Days to look back")
@click.option("--to", "to_date", type=click.DateTime(formats=["%Y-%m-%d"]), help="Last day of the window")
@click.option("--new", is_flag=True, help="Only customers created (not updated) in the window")
@common_options
def customers(days: int, to_date: Optional[datetime], new: bool, **options) -> None:
    """Import customers updated in the last DAYS days."""
    end = to_date.date() if to_date else None
    _execute(options, "customers", lambda orchestrator: orchestrator.import_customers(days, end=end, new=new))


@cli.command()
@click.option("--days", "-d", type=int, default=DEFAULT_DAYS, show_default=True, help="Days to look back")
@click.option("--to", "to_date", type=click.DateTime(formats=["%Y-%m-%d"]), help="Last day of the window")
@click.option("--update", is_flag=True, help="Update orders that already exist in WoowUp")
@click.option("--importing", is_flag=True, help="Historic import: approval time is the creation time")
@common_options
def orders(days: int, to_date: Optional[datetime], update: bool, importing: bool, **options) -> None:
    """Import orders created in the last DAYS days."""
    end = to_date.date() if to_date else None
    _execute(
        options,
        "orders",
        lambda orchestrator: orchestrator.import_orders(days, update=update, importing=importing, end=end)
    )


@cli.command()
@click.option("--months", "-m", type=int, default=DEFAULT_MONTHS, show_default=True, help="Months to look back")
@click.option("--all", "all_products", is_flag=True, help="List the whole catalog in one call")
@common_options
def products(months: int, all_products: bool, **options) -> None:
    """Import products updated in the last MONTHS months."""
    _execute(
        options,
        "products",
        lambda orchestrator: orchestrator.import_products(None if all_products else months)
    )


@cli.command("mock-server")
@click.option("--host", default="127.0.0.1", show_default=True)
@click.option("--port", default=8001, type=int, show_default=True)
def mock_server(host: str, port: int) -> None:
    """Serve an in-memory mock of the WoowUp API."""
    uvicorn.run("magento_woowup.mock_servers.app:create_app", host=host, port=port, factory=True)


def _load_config(options: Dict[str, Any]) -> SyncConfig:
    cli_overrides: Dict[str, Any] = {}
    if options.get("log_level") is not None:
        cli_overrides["log_level"] = options["log_level"].upper()
    if options.get("store") is not None:
        cli_overrides["store_id"] = options["store"]

    config_manager = ConfigManager(options["config"])
    return config_manager.load_config(cli_overrides)


def _execute(options: Dict[str, Any], phase: str, run: Callable[[SyncOrchestrator], SyncResult]) -> None:
    no_progress = options["no_progress"]
    try:
        config = _load_config(options)
        output_path = options.get("output") or config.output_path

        _display_config_summary(config, phase, no_progress)

        orchestrator = SyncOrchestrator.from_config(config)
        if no_progress:
            console.print(f"[cyan]Importing {phase}...[/cyan]")
            result = run(orchestrator)
        else:
            with Progress(
                SpinnerColumn(),
                TextColumn("[progress.description]{task.description}"),
                TimeElapsedColumn(),
                console=console,
                transient=True,
            ) as progress:
                progress.add_task(f"[cyan]Importing {phase}...", total=None)
                result = run(orchestrator)

        JSONOutputFormatter().save(result, str(output_path))
        _display_results(result, output_path, no_progress)

        sys.exit(1 if result.aborted else 0)

    except KeyboardInterrupt:
        console.print("\n[yellow]Sync interrupted by user[/yellow]")
        sys.exit(130)  # Standard exit code for SIGINT
    except Exception as e:
        console.print(f"\n[red]Error:[/red] {e}", style="bold red")
        sys.exit(1)


def _display_config_summary(config: SyncConfig, phase: str, no_progress: bool) -> None:
    """Display configuration summary before running."""
    if no_progress:
        return

    console.print("\n[bold cyan]Sync Configuration[/bold cyan]")
    console.print(f"  Phase: {phase}")
    console.print(f"  Magento: {config.host} (API v{config.version})")
    console.print(f"  Stores: {', '.join(config.stores) or config.store_id or 'all'}")
    console.print(f"  Statuses: {', '.join(config.status)}")
    console.print(f"  Retry: {config.retry_mode}, {config.retry_max_attempts} attempts")
    console.print()


def _display_results(result: SyncResult, output_path: Path, no_progress: bool) -> None:
    """Display final results summary."""
    statistics = result.statistics

    if no_progress:
        for entity in ENTITIES:
            counters = statistics[entity]
            console.print(
                f"{entity}: created={counters['created']} updated={counters['updated']} "
                f"duplicated={counters['duplicated']} failed={counters['failed']}"
            )
        console.print(f"Output saved to: {output_path}")
        return

    if result.aborted:
        console.print(f"\n[bold red]Sync aborted:[/bold red] {result.error}\n")
    else:
        console.print("\n[bold green]Sync Complete![/bold green]\n")

    summary_table = Table(title=f"Import Summary ({result.phase})")
    summary_table.add_column("Entity", style="cyan")
    summary_table.add_column("Created", justify="right", style="green")
    summary_table.add_column("Updated", justify="right", style="green")
    summary_table.add_column("Duplicated", justify="right", style="yellow")
    summary_table.add_column("Failed", justify="right", style="red")

    for entity in ENTITIES:
        counters = statistics[entity]
        summary_table.add_row(
            entity,
            str(counters["created"]),
            str(counters["updated"]),
            str(counters["duplicated"]),
            str(counters["failed"]),
        )

    console.print(summary_table)
    console.print()

    if statistics.get("order_statuses"):
        status_table = Table(title="Orders by Status")
        status_table.add_column("Status", style="cyan")
        status_table.add_column("Orders", justify="right", style="magenta")
        for status, count in sorted(statistics["order_statuses"].items(), key=lambda item: str(item[0])):
            status_table.add_row(str(status), str(count))
        console.print(status_table)
        console.print()

    console.print(f"[bold]Output saved to:[/bold] {output_path}")
    console.print()


if __name__ == "__main__":
    cli()
