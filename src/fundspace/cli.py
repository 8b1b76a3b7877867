"""Command-line interface for Fundspace."""

import asyncio
import logging
from typing import List, Optional

import typer
from rich.console import Console
from rich.progress import Progress, SpinnerColumn, TextColumn
from rich.table import Table

from .core.config import get_settings
from .core.database_manager import DatabaseManager
from .core.exceptions import BaseFundspaceException, ResourceNotFoundError
from .data.seed import seed_database
from .pipeline.funding import format_funding, parse_range
from .pipeline.taxonomy import code_satisfies, taxonomy_label
from .repositories.profile_repository import AccountRepository
from .schemas.filters import GrantFilter
from .services.catalog_service import CatalogService
from .services.news_service import RETENTION_DAYS, NewsService
from .utils.logging import configure_logging, get_logger

# Initialize console and logger
console = Console()
logger = get_logger(__name__)

# Create the main Typer app
typer_app = typer.Typer(
    name="fundspace",
    help="Fundspace - grant discovery and community workspace for nonprofits and funders",
    add_completion=False,
)
typer_app.info_name = "fundspace"

# Sub-apps for organization
db_app = typer.Typer(help="Database management commands")
grants_app = typer.Typer(help="Grant discovery commands")
funding_app = typer.Typer(help="Funding amount helpers")
taxonomy_app = typer.Typer(help="Organization taxonomy helpers")
news_app = typer.Typer(help="News feed maintenance")
accounts_app = typer.Typer(help="Account administration")
typer_app.add_typer(db_app, name="db")
typer_app.add_typer(grants_app, name="grants")
typer_app.add_typer(funding_app, name="funding")
typer_app.add_typer(taxonomy_app, name="taxonomy")
typer_app.add_typer(news_app, name="news")
typer_app.add_typer(accounts_app, name="accounts")


@typer_app.callback(invoke_without_command=True)
def callback(
    ctx: typer.Context,
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable verbose logging"),
    version: bool = typer.Option(False, "--version", help="Show version and exit", is_eager=True),
):
    """Fundspace - grant discovery and community workspace for nonprofits and funders."""
    settings = get_settings()
    if version:
        console.print(f"Fundspace v{settings.version}")
        raise typer.Exit(0)

    if verbose:
        settings.log_level = "DEBUG"
    configure_logging(settings)
    if verbose:
        logging.getLogger().setLevel(logging.DEBUG)

    if ctx.invoked_subcommand is None:
        console.print(ctx.get_help())


async def _with_database(work):
    db = DatabaseManager(get_settings())
    try:
        await db.initialize()
        return await work(db)
    finally:
        await db.shutdown()


@db_app.command("init")
def db_init(
    drop_existing: bool = typer.Option(False, "--drop-existing", help="Drop existing tables first"),
):
    """Initialize the database."""
    console.print("[bold blue]Initializing Database[/bold blue]")

    async def work(db: DatabaseManager):
        if drop_existing:
            await db.drop_all()
        await db.create_all()

    with Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        console=console,
    ) as progress:
        task = progress.add_task("Setting up database...", total=None)

        try:
            asyncio.run(_with_database(work))
            progress.update(task, completed=True)
            console.print("[bold green]Database initialized[/bold green]")

        except BaseFundspaceException as e:
            logger.error("Command failed", error_code=e.error_code, error=e.message)
            progress.update(task, completed=True)
            console.print(f"[bold red]Failed: {e.message}[/bold red]")
            raise typer.Exit(1)


@db_app.command("seed")
def db_seed():
    """Seed database with sample data."""
    console.print("[bold blue]Seeding Database[/bold blue]")

    async def work(db: DatabaseManager):
        await db.create_all()
        return await seed_database(db)

    with Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        console=console,
    ) as progress:
        task = progress.add_task("Seeding database...", total=None)

        try:
            counts = asyncio.run(_with_database(work))
            progress.update(task, completed=True)

        except BaseFundspaceException as e:
            logger.error("Command failed", error_code=e.error_code, error=e.message)
            progress.update(task, completed=True)
            console.print(f"[bold red]Failed: {e.message}[/bold red]")
            raise typer.Exit(1)

    if not any(counts.values()):
        console.print("[yellow]Database already contains sample data[/yellow]")
        return
    console.print("[bold green]Database seeded[/bold green]")
    for name, count in counts.items():
        console.print(f"  {name}: {count}")


@typer_app.command("serve")
def serve_api(
    host: str = typer.Option("127.0.0.1", "--host", "-h", help="Host to bind to."),
    port: int = typer.Option(8000, "--port", "-p", help="Port to bind to."),
    reload: bool = typer.Option(False, "--reload", help="Enable auto-reload"),
):
    """
    Start the FastAPI web server.
    """
    console.print(f"Starting FastAPI server on {host}:{port}...")
    console.print(f"[bold blue]API Documentation: http://{host}:{port}/docs[/bold blue]")

    import uvicorn

    try:
        uvicorn.run(
            "fundspace.web.app:app",
            host=host,
            port=port,
            reload=reload,
            log_level="info",
        )
    except KeyboardInterrupt:
        console.print("\n[bold blue]FastAPI server stopped.[/bold blue]")


@grants_app.command("list")
def grants_list(
    search: str = typer.Option("", "--search", "-s", help="Match title, description, funder or keywords"),
    status: str = typer.Option("", "--status", help="Open, Rolling or Closed"),
    grant_type: str = typer.Option("", "--type", help="Grant type"),
    location: Optional[List[str]] = typer.Option(None, "--location", help="Location (repeatable)"),
    category: Optional[List[str]] = typer.Option(None, "--category", help="Category (repeatable)"),
    taxonomy: Optional[List[str]] = typer.Option(None, "--taxonomy", help="Eligible taxonomy code (repeatable)"),
    min_funding: Optional[float] = typer.Option(None, "--min-funding", help="Lower funding bound"),
    max_funding: Optional[float] = typer.Option(None, "--max-funding", help="Upper funding bound"),
    sort: Optional[str] = typer.Option(None, "--sort", help="dueDate_asc, funding_desc, title_asc, amount_desc, ..."),
    page: int = typer.Option(1, "--page", help="Page number"),
    page_size: Optional[int] = typer.Option(None, "--page-size", help="Items per page"),
):
    """List grants through the discovery pipeline."""
    filters = GrantFilter(
        search=search,
        status=status,
        grant_type=grant_type,
        locations=location or [],
        categories=category or [],
        taxonomies=taxonomy or [],
        min_funding=min_funding,
        max_funding=max_funding,
    )

    async def work(db: DatabaseManager):
        async with db.transaction() as session:
            return await CatalogService(session, db.settings).grant_listing(filters, sort, page, page_size)

    try:
        listing = asyncio.run(_with_database(work))
    except BaseFundspaceException as e:
        logger.error("Command failed", error_code=e.error_code, error=e.message)
        console.print(f"[bold red]Failed: {e.message}[/bold red]")
        raise typer.Exit(1)

    table = Table(title="Grants")
    table.add_column("ID", style="dim")
    table.add_column("Title", style="cyan")
    table.add_column("Funder", style="white")
    table.add_column("Amount", style="green")
    table.add_column("Due", style="yellow")
    table.add_column("Status", style="magenta")
    table.add_column("Saves", justify="right")

    for grant in listing["items"]:
        table.add_row(
            str(grant["id"]),
            grant["title"],
            grant.get("foundation_name") or "",
            grant.get("funding_amount") or "",
            grant.get("due_date") or "Rolling",
            grant["status"],
            str(grant.get("save_count", 0)),
        )

    console.print(table)
    console.print(
        f"Page {listing['page']} of {listing['total_pages']} "
        f"({listing['total_items']} grants, {listing['total_available_funding_display']} available)"
    )


@funding_app.command("parse")
def funding_parse(text: str = typer.Argument(..., help="Free-text funding label, e.g. '$500K - $1M'")):
    """Show the numeric range a funding label normalizes to."""
    funding = parse_range(text)
    if funding.is_unknown:
        console.print(f"[yellow]{text!r}: amount unknown[/yellow]")
        return
    console.print(
        f"{text!r}: min={format_funding(funding.min)} max={format_funding(funding.max)} "
        f"currency={funding.currency}"
    )


@taxonomy_app.command("match")
def taxonomy_match(
    filter_code: str = typer.Argument(..., help="Code being filtered for, e.g. 'nonprofit'"),
    record_code: str = typer.Argument(..., help="Code on the record, e.g. 'nonprofit.501c3'"),
):
    """Check whether a record's taxonomy code satisfies a filter code."""
    if code_satisfies(record_code, filter_code):
        console.print(f"[green]{record_code} ({taxonomy_label(record_code)}) matches {filter_code}[/green]")
    else:
        console.print(f"[red]{record_code} does not match {filter_code}[/red]")
        raise typer.Exit(1)


@news_app.command("cleanup")
def news_cleanup(
    days: int = typer.Option(RETENTION_DAYS, "--days", help="Delete articles older than this many days"),
):
    """Remove old cached news articles."""
    async def work(db: DatabaseManager):
        async with db.transaction() as session:
            return await NewsService(session, db.settings).cleanup(days)

    try:
        deleted = asyncio.run(_with_database(work))
    except BaseFundspaceException as e:
        logger.error("Command failed", error_code=e.error_code, error=e.message)
        console.print(f"[bold red]Failed: {e.message}[/bold red]")
        raise typer.Exit(1)
    console.print(f"[bold green]Removed {deleted} article(s)[/bold green]")


@accounts_app.command("confirm")
def accounts_confirm(email: str = typer.Argument(..., help="Email address of the account")):
    """Mark an account's email as confirmed so its profile can be written."""
    async def work(db: DatabaseManager):
        async with db.transaction() as session:
            accounts = AccountRepository(session)
            account = await accounts.get_by_email(email)
            if account is None:
                raise ResourceNotFoundError("Account", email)
            await accounts.confirm_email(account.id)

    try:
        asyncio.run(_with_database(work))
    except BaseFundspaceException as e:
        logger.error("Command failed", error_code=e.error_code, error=e.message)
        console.print(f"[bold red]Failed: {e.message}[/bold red]")
        raise typer.Exit(1)
    console.print(f"[bold green]Confirmed {email}[/bold green]")


# Expose app for entry point
app = typer_app

if __name__ == "__main__":
    typer_app()
