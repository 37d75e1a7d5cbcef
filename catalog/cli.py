"""
Catalog CLI

Usage:
    catalog serve                 - Start the API server
    catalog init-db               - Create database tables
    catalog create-user NAME EMAIL --role author
    catalog books --sort "pages desc" --filter "pages[gte]=100"
"""
import asyncio
import os
import subprocess
import sys

import click
import httpx
from dotenv import load_dotenv
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from catalog import __version__

load_dotenv()

console = Console()

API_BASE = os.getenv("API_BASE_URL", "http://localhost:8000")


def check_server() -> bool:
    """Check if the API server answers /health."""
    try:
        response = httpx.get(f"{API_BASE}/health", timeout=2.0)
        return response.status_code == 200
    except (httpx.ConnectError, httpx.TimeoutException):
        return False


def parse_filters(filters: tuple[str, ...]) -> list[tuple[str, str]]:
    """Split `key=value` strings into query-param pairs.

    Examples:
        >>> parse_filters(("pages[gte]=100", "language=en"))
        [('pages[gte]', '100'), ('language', 'en')]
    """
    params = []
    for item in filters:
        key, sep, value = item.partition("=")
        if not sep or not key:
            raise click.BadParameter(f"expected key=value, got {item!r}", param_hint="--filter")
        params.append((key.strip(), value.strip()))
    return params


@click.group()
@click.version_option(version=__version__, prog_name="Catalog")
def main():
    """Catalog API command line."""
    pass


@main.command()
@click.option("--port", default=8000, help="Port to run server on")
@click.option("--reload", is_flag=True, help="Reload on code changes")
def serve(port: int, reload: bool):
    """Start the catalog API server."""
    console.print(Panel(
        f"[bold green]Starting Catalog API[/bold green]\n\n"
        f"API Docs: [cyan]http://localhost:{port}/docs[/cyan]\n\n"
        f"[dim]Press Ctrl+C to stop[/dim]",
        border_style="green",
    ))
    cmd = [sys.executable, "-m", "uvicorn", "catalog.main:app", f"--port={port}"]
    if reload:
        cmd.append("--reload")
    subprocess.run(cmd)


@main.command("init-db")
def init_db_command():
    """Create all database tables."""
    from catalog.database import close_db, init_db

    async def _run():
        try:
            await init_db()
        finally:
            await close_db()

    asyncio.run(_run())
    console.print("[green]✓[/green] Database initialized")


@main.command("create-user")
@click.argument("username")
@click.argument("email")
@click.option(
    "--role",
    type=click.Choice(["super_admin", "admin", "author", "user"]),
    default="user",
    help="System role",
)
def create_user(username: str, email: str, role: str):
    """Create a user directly in the database and print an access token."""
    from catalog.auth.jwt_handler import create_access_token
    from catalog.core.document_store import DocumentStore
    from catalog.core.errors import CatalogError
    from catalog.database import close_db, get_session, init_db
    from catalog.models_auth import SystemRole, User

    async def _run() -> User:
        await init_db()
        try:
            async with get_session() as session:
                store = DocumentStore(session)
                if await store.find_one(User, email=email):
                    raise click.ClickException(f"A user with email {email} already exists")
                return await store.create(
                    User(username=username, email=email, role=SystemRole(role))
                )
        finally:
            await close_db()

    try:
        user = asyncio.run(_run())
    except CatalogError as e:
        console.print(f"[red]✗ {e.message}[/red]")
        sys.exit(1)

    console.print(f"[green]✓[/green] Created {user.role.value} [cyan]{user.username}[/cyan] ({user.id})")
    console.print(f"Access token: [yellow]{create_access_token(user.id, user.role)}[/yellow]")


@main.command()
@click.option("--page", default=1, help="Page number")
@click.option("--size", default=10, help="Page size")
@click.option("--sort", default=None, help='Sort, e.g. "pages desc"')
@click.option("--title", default=None, help="Search titles (case-insensitive substring)")
@click.option("--filter", "filters", multiple=True, help='Filter, e.g. "pages[gte]=100"')
def books(page: int, size: int, sort: str | None, title: str | None, filters: tuple[str, ...]):
    """List books from a running server."""
    if not check_server():
        console.print(f"[red]✗ Could not connect to API server at {API_BASE}[/red]")
        sys.exit(1)

    params: list[tuple[str, str]] = [("page", str(page)), ("size", str(size))]
    if sort:
        params.append(("sort", sort))
    if title:
        params.append(("title", title))
    params.extend(parse_filters(filters))

    try:
        response = httpx.get(f"{API_BASE}/api/v1/books", params=params, timeout=10.0)
        response.raise_for_status()
    except httpx.HTTPError as e:
        console.print(f"[red]✗ Error: {e}[/red]")
        sys.exit(1)

    data = response.json().get("data", [])
    if not data:
        console.print("[yellow]No books found.[/yellow]")
        return

    table = Table(title=f"📚 Books (page {page})", show_header=True, header_style="bold cyan")
    table.add_column("Title", style="cyan")
    table.add_column("Language")
    table.add_column("Pages", justify="right")
    table.add_column("Rate", justify="right")
    table.add_column("Released", style="dim")

    for book in data:
        table.add_row(
            book.get("title", ""),
            book.get("language", ""),
            str(book.get("pages", "")),
            f"{book.get('rate', 0):.1f}",
            book.get("release_date", ""),
        )

    console.print(table)


if __name__ == "__main__":
    main()
