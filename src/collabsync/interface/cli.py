"""
CLI - Operator commands for collabsync.

    collabsync index list [--document DOC]
    collabsync index lookup ANNOTATION_ID --document DOC
    collabsync index clear [--yes]
    collabsync config show
    collabsync watch --email EMAIL --password PASSWORD [--document DOC]

Global options: --verbose, --log-file, --config-dir.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Optional, Sequence

import typer
from rich import box
from rich.console import Console
from rich.table import Table

from collabsync.application.collab_client import CollabClient
from collabsync.domain.config import ClientSettings
from collabsync.domain.errors import SyncError
from collabsync.domain.models import Annotation
from collabsync.infrastructure.config_loader import ConfigLoader
from collabsync.infrastructure.logging_config import setup_logging
from collabsync.infrastructure.sqlite import AnnotationIndexStore

logger = logging.getLogger(__name__)

console = Console()

app = typer.Typer(
    name="collabsync",
    help="Realtime annotation sync - local index and change feed tools",
    add_completion=False,
    no_args_is_help=True,
)
index_app = typer.Typer(help="Inspect and clear the local annotation index", no_args_is_help=True)
config_app = typer.Typer(help="Show effective configuration", no_args_is_help=True)
app.add_typer(index_app, name="index")
app.add_typer(config_app, name="config")


def _settings(ctx: typer.Context) -> ClientSettings:
    return ctx.obj["settings"]


def _open_index(ctx: typer.Context) -> AnnotationIndexStore:
    """Index at the configured path; use as a context manager."""
    return AnnotationIndexStore(_settings(ctx).index_path)


@app.callback()
def main_callback(
    ctx: typer.Context,
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log at DEBUG level."),
    log_file: Optional[str] = typer.Option(None, "--log-file", help="Also write logs to this file."),
    config_dir: str = typer.Option("config", "--config-dir", help="Directory holding collabsync.json."),
):
    """collabsync - realtime annotation sync."""
    try:
        settings = ConfigLoader(config_dir).load_settings()
    except ValueError as e:
        console.print(f"[red]Invalid configuration:[/red] {e}")
        raise typer.Exit(2)

    level = logging.DEBUG if verbose else settings.log_level
    setup_logging(level, log_file or settings.log_file)
    ctx.obj = {"settings": settings}


# ============================================================================
# index
# ============================================================================

@index_app.command("list")
def index_list(
    ctx: typer.Context,
    document: Optional[str] = typer.Option(None, "--document", "-d", help="Only this document."),
):
    """List local annotation -> server ID mappings."""
    try:
        with _open_index(ctx) as store:
            records = store.records(document)
    except SyncError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)

    if not records:
        console.print("[yellow]Annotation index is empty[/yellow]")
        return

    table = Table(show_header=True, header_style="bold", box=box.ROUNDED)
    table.add_column("Document")
    table.add_column("Page", justify="right")
    table.add_column("Annotation")
    table.add_column("Server ID")
    table.add_column("Updated")
    for record in records:
        table.add_row(
            record.document_id,
            str(record.page_number),
            record.annotation_id,
            record.server_id or "-",
            record.updated_at.strftime("%Y-%m-%d %H:%M:%S") if record.updated_at else "",
        )
    console.print(table)
    console.print(f"{len(records)} record(s)")


@index_app.command("lookup")
def index_lookup(
    ctx: typer.Context,
    annotation_id: str = typer.Argument(..., help="Viewer annotation ID."),
    document: str = typer.Option(..., "--document", "-d", help="Document ID."),
):
    """Show the page and server ID of one annotation."""
    try:
        with _open_index(ctx) as store:
            page = store.lookup_page_number(annotation_id, document)
            server_id = None
            if page is not None:
                server_id = store.lookup_server_id(annotation_id, document, page)
    except SyncError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)

    if page is None:
        console.print(f"[yellow]{annotation_id} is not indexed for document {document}[/yellow]")
        raise typer.Exit(1)

    console.print(f"annotation: {annotation_id}")
    console.print(f"document:   {document}")
    console.print(f"page:       {page}")
    console.print(f"server ID:  {server_id or '-'}")


@index_app.command("clear")
def index_clear(
    ctx: typer.Context,
    yes: bool = typer.Option(False, "--yes", "-y", help="Do not ask for confirmation."),
):
    """Remove every record from the local annotation index."""
    if not yes:
        typer.confirm("Clear the local annotation index?", abort=True)
    try:
        with _open_index(ctx) as store:
            count = store.count()
            store.clear()
    except SyncError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)
    console.print(f"[green]Cleared {count} record(s)[/green]")


# ============================================================================
# config
# ============================================================================

@config_app.command("show")
def config_show(ctx: typer.Context):
    """Print the effective settings (file + environment overrides)."""
    settings = _settings(ctx)
    table = Table(show_header=True, header_style="bold", box=box.ROUNDED)
    table.add_column("Setting")
    table.add_column("Value")
    for key, value in settings.model_dump(exclude={"timeouts"}).items():
        table.add_row(key, str(value))
    for key, value in settings.timeouts.model_dump().items():
        table.add_row(f"timeouts.{key}", str(value))
    console.print(table)


# ============================================================================
# watch
# ============================================================================

class ConsoleViewer:
    """HostViewer that prints remote changes instead of rendering them."""

    def remote_annotation_added(self, annotation: Annotation) -> None:
        console.print(f"[green]+[/green] {_describe(annotation)}")

    def remote_annotation_modified(self, annotation: Annotation) -> None:
        console.print(f"[cyan]~[/cyan] {_describe(annotation)}")

    def remote_annotation_removed(self, annotation: Annotation) -> None:
        console.print(f"[red]-[/red] {_describe(annotation)}")

    def load_initial_remote_annotations(self, annotations: Sequence[Annotation]) -> None:
        console.print(f"[bold]{len(annotations)} annotation(s) on open[/bold]")
        for annotation in annotations:
            console.print(f"  {_describe(annotation)}")


def _describe(annotation: Annotation) -> str:
    return (
        f"{annotation.annotation_id} (server {annotation.server_id or '-'}, "
        f"doc {annotation.document_id}, page {annotation.page_number})"
    )


async def _watch(settings: ClientSettings, email: str, password: str, document: str | None) -> int:
    async with CollabClient(settings, viewer=ConsoleViewer()) as client:
        login = await client.login_with_password(email, password)
        if login.is_failure():
            console.print(f"[red]Login failed:[/red] {login.error}")
            return 1
        console.print(f"Logged in as [bold]{login.value.user_name or login.value.id}[/bold]")

        if document:
            opened = await client.open_document(document)
            if opened.is_failure():
                console.print(f"[red]Could not open {document}:[/red] {opened.error}")
                await client.logout()
                return 1

        console.print("Watching the change feed (Ctrl+C to stop)")
        try:
            await client.session.wait_for_subscription()
        finally:
            await client.logout()
            console.print(client.engine.stats.summary())

        if client.error_sink.last_error is not None:
            console.print(f"[red]Feed ended:[/red] {client.error_sink.last_error}")
            return 1
    return 0


@app.command("watch")
def watch(
    ctx: typer.Context,
    email: str = typer.Option(..., "--email", help="Account email."),
    password: str = typer.Option(..., "--password", prompt=True, hide_input=True, help="Account password."),
    document: Optional[str] = typer.Option(None, "--document", "-d", help="Open this document first."),
):
    """Log in and print annotation changes as they arrive."""
    try:
        code = asyncio.run(_watch(_settings(ctx), email, password, document))
    except KeyboardInterrupt:
        code = 0
    raise typer.Exit(code)


def main() -> int:
    """
    Main entry point for the collabsync CLI.

    Returns:
        int: Exit code (0 for success, non-zero for failure)
    """
    try:
        app()
        return 0
    except Exception as e:
        logger.exception("Unhandled error")
        console.print(f"[red]Error:[/red] {e}")
        return 1
