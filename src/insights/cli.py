"""Command-line interface for insights administration."""

from typing import Annotated, Optional

import typer
import uvicorn
from rich.console import Console
from rich.table import Table

from insights.dashboard.reports import reporting_service
from insights.errors import InsightsError
from insights.logging_config import configure_logging, get_logger
from insights.referral.service import AttributionRegistry, promo_registry, referral_registry
from insights.settings import settings
from insights.storage.db import db

# Configure logging
configure_logging()
logger = get_logger(__name__)

# Create Typer app
app = typer.Typer(
    name="insights",
    help="Insights - visitor tracking and referral attribution",
    no_args_is_help=True,
)

# Rich console for pretty output
console = Console()


@app.command("init")
def init_database() -> None:
    """Initialize the database and create tables."""
    console.print("[bold blue]Initializing database...[/bold blue]")
    db.create_tables()
    console.print("[bold green]✓[/bold green] Database initialized successfully")


def _create_code(registry: AttributionRegistry, description: str | None, creator_id: int | None) -> None:
    try:
        record = registry.create(description=description, creator_id=creator_id)
    except InsightsError as e:
        console.print(f"[bold red]✗[/bold red] {e.message}")
        raise typer.Exit(code=1)

    console.print(f"[bold green]✓[/bold green] Created {registry.source.value} code [bold]{record.code}[/bold]")


def _print_codes(registry: AttributionRegistry, title: str) -> None:
    records = registry.list()
    if not records:
        console.print(f"[yellow]No {registry.source.value} codes yet[/yellow]")
        return

    table = Table(title=title)
    table.add_column("Code", style="cyan")
    table.add_column("Description")
    table.add_column("Clicks", justify="right", style="green")
    table.add_column("Created By")
    table.add_column("Created", style="dim")

    for record in records:
        table.add_row(
            record.code,
            record.description or "",
            str(record.clicks or 0),
            record.created_by.email if record.created_by else "-",
            record.created_at.strftime("%Y-%m-%d %H:%M") if record.created_at else "-",
        )

    console.print(table)


@app.command("serve")
def serve(
    host: Annotated[str, typer.Option("--host", help="Bind address")] = "127.0.0.1",
    port: Annotated[int, typer.Option("--port", "-p", help="Bind port")] = 8000,
    reload: Annotated[bool, typer.Option("--reload", help="Restart on code changes")] = False,
) -> None:
    """Run the API server."""
    console.print(f"[bold blue]Starting insights API on {host}:{port}[/bold blue]")
    uvicorn.run(
        "insights.api.main:app",
        host=host,
        port=port,
        reload=reload,
        log_level=settings.log_level.lower(),
    )


@app.command("referral-create")
def create_referral(
    description: Annotated[Optional[str], typer.Option("--description", "-d", help="Shown in the admin list")] = None,
    creator_id: Annotated[Optional[int], typer.Option("--creator", help="Admin user ID")] = None,
) -> None:
    """Create a referral code."""
    _create_code(referral_registry, description, creator_id)


@app.command("referral-list")
def list_referrals() -> None:
    """List referral codes with click counts."""
    _print_codes(referral_registry, "Referral Codes")


@app.command("promo-create")
def create_promo(
    description: Annotated[Optional[str], typer.Option("--description", "-d", help="Shown in the admin list")] = None,
    creator_id: Annotated[Optional[int], typer.Option("--creator", help="Admin user ID")] = None,
) -> None:
    """Create a promo link code."""
    _create_code(promo_registry, description, creator_id)


@app.command("promo-list")
def list_promos() -> None:
    """List promo link codes with click counts."""
    _print_codes(promo_registry, "Promo Links")


@app.command("analytics")
def show_analytics(
    days: Annotated[int, typer.Option("--days", help="Window in days (1-365)")] = 30,
) -> None:
    """Print the visitor analytics summary."""
    report = reporting_service.visitor_analytics(days)
    summary = report["analytics"]

    console.print(f"\n[bold]Visitor analytics ({report['period']})[/bold]")
    console.print(f"  Total visits:         {summary['totalVisitors']}")
    console.print(f"  Anonymous:            {summary['anonVisitors']}")
    console.print(f"  Authenticated:        {summary['authenticatedVisitors']}")
    console.print(f"  Avg time spent (s):   {summary['avgTimeSpent']:.1f}")
    console.print(f"  Signed up, no apply:  {summary['usersNotAppliedCount']}")

    if summary["visitorsByPage"]:
        table = Table(title="Visits by page")
        table.add_column("Page", style="cyan")
        table.add_column("Visits", justify="right", style="green")
        for row in summary["visitorsByPage"]:
            table.add_row(row["page"], str(row["count"]))
        console.print(table)


if __name__ == "__main__":
    app()
