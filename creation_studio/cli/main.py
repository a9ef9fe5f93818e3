"""
CLI interface for Creation Studio.

Provides command-line access to quotes, usage records and saved artifacts.
"""

import logging
import sqlite3
import sys
from pathlib import Path
from typing import Optional

import typer
import yaml
from rich.console import Console
from rich.table import Table

from creation_studio.config.loader import StudioConfig, default_studio_config, load_studio_config
from creation_studio.core.errors import StudioError
from creation_studio.core.pricing import quote as compute_quote
from creation_studio.core.usage_ledger import UsageLedger
from creation_studio.storage.repository import ArtifactRepository, UsageRepository, initialize_schema

app = typer.Typer()
console = Console()

EXIT_CODE_PASS = 0
EXIT_CODE_FAIL = 1


def _config(ctx: typer.Context) -> StudioConfig:
    """Config loaded by the callback, or defaults when invoked directly."""
    if ctx.obj is None:
        return default_studio_config()
    return ctx.obj


def _format_currency(amount: float) -> str:
    """Format currency with proper symbols and formatting."""
    return f"${abs(amount):,.2f}"


@app.callback(invoke_without_command=True)
def main(
    ctx: typer.Context,
    config: Optional[str] = typer.Option(
        None,
        "--config",
        "-c",
        help="Path to a YAML studio configuration"
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-v",
        help="Enable logging output"
    )
):
    """Creation Studio CLI."""
    if verbose:
        logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")

    try:
        ctx.obj = load_studio_config(config) if config else default_studio_config()
    except (FileNotFoundError, ValueError, yaml.YAMLError) as e:
        console.print(f"[red]Invalid configuration:[/] {str(e)}")
        sys.exit(EXIT_CODE_FAIL)

    if ctx.invoked_subcommand is None:
        console.print("Creation Studio - Use --help to see available commands")


@app.command()
def status():
    """Check readiness of Creation Studio."""
    console.print("[green]✓[/] Creation Studio is ready")


@app.command()
def init(ctx: typer.Context):
    """Initialize the Creation Studio database."""
    try:
        initialize_schema(_config(ctx).storage.db_path)
        console.print("[green]✓[/] Database initialized successfully")
        sys.exit(EXIT_CODE_PASS)
    except sqlite3.Error as e:
        console.print(f"[red]Error initializing database:[/] {str(e)}")
        sys.exit(EXIT_CODE_FAIL)


@app.command()
def quote(
    ctx: typer.Context,
    prompt: str = typer.Argument(..., help="Prompt or instruction to price"),
    content_file: Optional[Path] = typer.Option(
        None,
        "--content-file",
        "-f",
        help="Existing artifact content the request would edit"
    )
):
    """Show the price quote for a request."""
    existing = None
    if content_file is not None:
        try:
            existing = content_file.read_text(encoding="utf-8")
        except OSError as e:
            console.print(f"[red]Cannot read content file:[/] {str(e)}")
            sys.exit(EXIT_CODE_FAIL)

    result = compute_quote(prompt, existing, _config(ctx).pricing)

    table = Table(title="Price Quote")
    table.add_column("Field")
    table.add_column("Value", justify="right")
    table.add_row("Price", _format_currency(result.amount))
    table.add_row("Complexity", result.complexity_tier.value)
    table.add_row("Estimated load", f"{result.cost_breakdown.estimated_tokens:,} tokens")
    table.add_row("Margin", f"{result.cost_breakdown.margin_percent}%")
    table.add_row("Buffer", result.cost_breakdown.buffer_label)
    console.print(table)


@app.command()
def usage(ctx: typer.Context, owner: str = typer.Argument(..., help="Owner id")):
    """Show generations consumed and tier for an owner."""
    config = _config(ctx)
    try:
        ledger = UsageLedger(UsageRepository(config.storage.db_path))
        record = ledger.get_usage(owner)
    except sqlite3.OperationalError as e:
        if "no such table" in str(e).lower():
            console.print("\n[bold yellow]Database not initialized[/]")
            console.print("Run `creation-studio init` first.\n")
            sys.exit(EXIT_CODE_FAIL)
        raise

    allowance = "UNLIMITED" if record.paid_tier else str(config.quota.free_generations)
    tier = "paid" if record.paid_tier else "free"
    console.print(f"[bold]Owner:[/bold] {record.owner_id}")
    console.print(f"Generations: {record.generations_consumed} / {allowance}")
    console.print(f"Tier: {tier}")


@app.command()
def upgrade(ctx: typer.Context, owner: str = typer.Argument(..., help="Owner id")):
    """Mark an owner as paid tier after an out-of-band payment."""
    try:
        ledger = UsageLedger(UsageRepository(_config(ctx).storage.db_path))
        record = ledger.upgrade(owner)
    except (sqlite3.Error, StudioError) as e:
        console.print(f"[red]Error:[/] {str(e)}")
        sys.exit(EXIT_CODE_FAIL)

    console.print(f"[green]✓[/] {record.owner_id} upgraded to paid tier")


@app.command()
def history(
    ctx: typer.Context,
    owner: str = typer.Argument(..., help="Owner id"),
    limit: int = typer.Option(20, "--limit", "-n", help="Maximum artifacts to list")
):
    """List an owner's saved artifacts, newest first."""
    try:
        artifacts = ArtifactRepository(_config(ctx).storage.db_path).list_by_owner(owner, limit=limit)
    except sqlite3.Error as e:
        console.print(f"[red]Error:[/] {str(e)}")
        sys.exit(EXIT_CODE_FAIL)

    if not artifacts:
        console.print("\n[dim]No saved artifacts found.[/]")
        return

    table = Table(title=f"Artifacts for {owner}")
    table.add_column("Id")
    table.add_column("Name")
    table.add_column("Updated")
    table.add_column("Size", justify="right")
    for artifact in artifacts:
        table.add_row(
            artifact.id,
            artifact.name,
            artifact.updated_at.strftime("%Y-%m-%d %H:%M"),
            f"{len(artifact.content):,} chars"
        )
    console.print(table)


if __name__ == "__main__":
    app()
