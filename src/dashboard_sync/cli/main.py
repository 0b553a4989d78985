"""CLI entry point for dashboard-sync.

Invoked as::

    dashboard-sync [OPTIONS] COMMAND [ARGS]...

or, during development::

    python -m dashboard_sync.cli.main

Commands
--------
- version  — Show version information
- login    — Sign in and store the token
- logout   — Discard the stored token
- tasks    — Task board commands (list, add, move, rm)
- files    — File commands (list, upload, rm)
- chat     — Chat commands (send, history)
"""
from __future__ import annotations

import asyncio
import logging
import sys
from pathlib import Path
from typing import Any, Awaitable, Callable

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.table import Table

from dashboard_sync.client import DashboardClient
from dashboard_sync.config import SyncConfig, load_config
from dashboard_sync.errors import ConfigError
from dashboard_sync.models import TaskStatus
from dashboard_sync.sync.intents import MutationOutcome, OutcomeStatus

console = Console()

_STATUS_STYLES = {
    TaskStatus.TODO: "yellow",
    TaskStatus.DOING: "cyan",
    TaskStatus.DONE: "green",
}

# ---------------------------------------------------------------------------
# Client factory
# ---------------------------------------------------------------------------


def _make_client(config: SyncConfig) -> DashboardClient:
    """Build the client used by every command."""
    return DashboardClient(config)


def _run(ctx: click.Context, command: Callable[[DashboardClient], Awaitable[int]]) -> None:
    """Run ``command`` against a fresh client and exit with its status."""

    async def runner() -> int:
        async with _make_client(ctx.obj["config"]) as client:
            return await command(client)

    code = asyncio.run(runner())
    if code:
        sys.exit(code)


async def _signed_in(client: DashboardClient) -> bool:
    result = await client.restore()
    if not result.success:
        console.print("[red]Not signed in.[/red] Run [bold]dashboard-sync login[/bold] first.")
        return False
    return True


def _report(outcome: MutationOutcome, done: str) -> int:
    if outcome.status is OutcomeStatus.NOOP:
        console.print("[dim]Nothing to change.[/dim]")
        return 0
    if outcome.succeeded:
        console.print(f"[green]{done}[/green]")
        return 0
    message = outcome.error.message if outcome.error else outcome.status.value
    console.print(f"[red]Error:[/red] {message}")
    return 1


# ---------------------------------------------------------------------------
# Root group
# ---------------------------------------------------------------------------


@click.group()
@click.version_option(package_name="dashboard-sync")
@click.option(
    "--config",
    "config_path",
    default=None,
    type=click.Path(dir_okay=False, path_type=Path),
    help="YAML config file. Defaults to ~/.dashboard-sync/config.yaml.",
)
@click.option("--base-url", default=None, help="Backend API root, overrides the config.")
@click.option(
    "--log-level",
    default="WARNING",
    show_default=True,
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
    help="Logging verbosity.",
)
@click.pass_context
def cli(
    ctx: click.Context,
    config_path: Path | None,
    base_url: str | None,
    log_level: str,
) -> None:
    """Optimistic client for the agent dashboard backend"""
    logging.basicConfig(
        level=log_level.upper(),
        format="%(message)s",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
    )
    overrides: dict[str, Any] = {}
    if base_url:
        overrides["base_url"] = base_url
    try:
        config = load_config(config_path, **overrides)
    except ConfigError as exc:
        console.print(f"[red]Configuration error:[/red] {exc}")
        sys.exit(1)
    ctx.ensure_object(dict)
    ctx.obj["config"] = config


# ---------------------------------------------------------------------------
# version
# ---------------------------------------------------------------------------


@cli.command(name="version")
def version_command() -> None:
    """Show detailed version information."""
    from dashboard_sync import __version__

    console.print(f"[bold]dashboard-sync[/bold] v{__version__}")


# ---------------------------------------------------------------------------
# login / logout
# ---------------------------------------------------------------------------


@cli.command(name="login")
@click.option("--email", prompt=True, help="Account e-mail address.")
@click.option("--password", prompt=True, hide_input=True, help="Account password.")
@click.pass_context
def login_command(ctx: click.Context, email: str, password: str) -> None:
    """Sign in and store the token for later commands."""

    async def command(client: DashboardClient) -> int:
        result = await client.login(email, password)
        if not result.success:
            assert result.error is not None
            recent = client.notifications.recent()
            message = recent[-1].message if recent else result.error.message
            console.print(f"[red]Sign-in failed:[/red] {message}")
            return 1
        console.print(f"[green]Signed in as[/green] {result.data.user.email}")
        return 0

    _run(ctx, command)


@cli.command(name="logout")
@click.pass_context
def logout_command(ctx: click.Context) -> None:
    """Discard the stored token."""

    async def command(client: DashboardClient) -> int:
        client.logout()
        console.print("[green]Signed out.[/green]")
        return 0

    _run(ctx, command)


# ---------------------------------------------------------------------------
# tasks command group
# ---------------------------------------------------------------------------


@cli.group(name="tasks")
def tasks_group() -> None:
    """Task board commands."""


@tasks_group.command(name="list")
@click.option(
    "--status",
    default=None,
    type=click.Choice([status.value for status in TaskStatus]),
    help="Only show one column.",
)
@click.option("--json-output", is_flag=True, help="Output raw JSON instead of a table.")
@click.pass_context
def tasks_list(ctx: click.Context, status: str | None, json_output: bool) -> None:
    """List tasks grouped by column."""

    async def command(client: DashboardClient) -> int:
        if not await _signed_in(client):
            return 1
        result = await client.loader.refresh_tasks()
        if not result.success:
            console.print(f"[red]Error:[/red] {result.error.message}")  # type: ignore[union-attr]
            return 1

        snapshot = client.snapshot
        columns = [TaskStatus(status)] if status else list(TaskStatus)
        tasks = [task for column in columns for task in snapshot.tasks_by_status(column)]
        if json_output:
            console.print_json(
                data=[task.model_dump(mode="json", by_alias=True) for task in tasks]
            )
            return 0
        if not tasks:
            console.print("[yellow]No tasks found.[/yellow]")
            return 0

        table = Table(title="Tasks", show_lines=False)
        table.add_column("ID", style="cyan")
        table.add_column("Status")
        table.add_column("Title", style="bold")
        table.add_column("Updated")
        for task in tasks:
            style = _STATUS_STYLES[task.status]
            table.add_row(
                task.id,
                f"[{style}]{task.status.value}[/{style}]",
                task.title,
                task.updated_at.strftime("%Y-%m-%d %H:%M"),
            )
        console.print(table)
        return 0

    _run(ctx, command)


@tasks_group.command(name="add")
@click.argument("title")
@click.option("--description", default="", help="Task description.")
@click.option(
    "--status",
    default=TaskStatus.TODO.value,
    show_default=True,
    type=click.Choice([status.value for status in TaskStatus]),
)
@click.pass_context
def tasks_add(ctx: click.Context, title: str, description: str, status: str) -> None:
    """Create a task titled TITLE."""

    async def command(client: DashboardClient) -> int:
        if not await _signed_in(client):
            return 1
        outcome = await client.create_task(title, description, status)
        task_id = outcome.record.id if outcome.record else ""
        return _report(outcome, f"Task created: {task_id}")

    _run(ctx, command)


@tasks_group.command(name="move")
@click.argument("task_id")
@click.argument("status", type=click.Choice([status.value for status in TaskStatus]))
@click.option("--position", default=None, type=click.IntRange(min=0), help="Index in the column.")
@click.pass_context
def tasks_move(
    ctx: click.Context, task_id: str, status: str, position: int | None
) -> None:
    """Move TASK_ID to the STATUS column."""

    async def command(client: DashboardClient) -> int:
        if not await _signed_in(client):
            return 1
        await client.loader.refresh_tasks()
        outcome = await client.move_task(task_id, status, position)
        return _report(outcome, f"Task {task_id} moved to {status}.")

    _run(ctx, command)


@tasks_group.command(name="rm")
@click.argument("task_id")
@click.pass_context
def tasks_rm(ctx: click.Context, task_id: str) -> None:
    """Delete TASK_ID."""

    async def command(client: DashboardClient) -> int:
        if not await _signed_in(client):
            return 1
        await client.loader.refresh_tasks()
        outcome = await client.delete_task(task_id)
        return _report(outcome, f"Task {task_id} deleted.")

    _run(ctx, command)


# ---------------------------------------------------------------------------
# files command group
# ---------------------------------------------------------------------------


@cli.group(name="files")
def files_group() -> None:
    """File commands."""


@files_group.command(name="list")
@click.pass_context
def files_list(ctx: click.Context) -> None:
    """List uploaded files."""

    async def command(client: DashboardClient) -> int:
        if not await _signed_in(client):
            return 1
        result = await client.loader.refresh_files()
        if not result.success:
            console.print(f"[red]Error:[/red] {result.error.message}")  # type: ignore[union-attr]
            return 1
        files = client.snapshot.files
        if not files:
            console.print("[yellow]No files found.[/yellow]")
            return 0
        table = Table(title="Files")
        table.add_column("ID", style="cyan")
        table.add_column("Name", style="bold")
        table.add_column("Size", justify="right")
        table.add_column("Type")
        for asset in files:
            table.add_row(asset.id, asset.name, str(asset.size), asset.mime_type)
        console.print(table)
        return 0

    _run(ctx, command)


@files_group.command(name="upload")
@click.argument("path", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.pass_context
def files_upload(ctx: click.Context, path: Path) -> None:
    """Upload the file at PATH."""

    async def command(client: DashboardClient) -> int:
        if not await _signed_in(client):
            return 1
        outcome = await client.upload_file(path)
        return _report(outcome, f"Uploaded {path.name}.")

    _run(ctx, command)


@files_group.command(name="rm")
@click.argument("file_id")
@click.pass_context
def files_rm(ctx: click.Context, file_id: str) -> None:
    """Delete FILE_ID."""

    async def command(client: DashboardClient) -> int:
        if not await _signed_in(client):
            return 1
        await client.loader.refresh_files()
        outcome = await client.delete_file(file_id)
        return _report(outcome, f"File {file_id} deleted.")

    _run(ctx, command)


# ---------------------------------------------------------------------------
# chat command group
# ---------------------------------------------------------------------------


@cli.group(name="chat")
def chat_group() -> None:
    """Chat commands."""


@chat_group.command(name="send")
@click.argument("message")
@click.pass_context
def chat_send(ctx: click.Context, message: str) -> None:
    """Send MESSAGE to the agent and print the response."""

    async def command(client: DashboardClient) -> int:
        if not await _signed_in(client):
            return 1
        outcome = await client.send_chat(message)
        if not outcome.succeeded or outcome.record is None:
            return _report(outcome, "")
        exchange = outcome.record
        source = exchange.source.value if exchange.source else "unknown"  # type: ignore[union-attr]
        console.print(Panel(exchange.response, title=f"agent | source={source}", expand=False))  # type: ignore[union-attr]
        return 0

    _run(ctx, command)


@chat_group.command(name="history")
@click.option("--limit", default=20, show_default=True, help="Most recent exchanges to show.")
@click.pass_context
def chat_history(ctx: click.Context, limit: int) -> None:
    """Show the conversation history."""

    async def command(client: DashboardClient) -> int:
        if not await _signed_in(client):
            return 1
        result = await client.loader.load_chat_history()
        if not result.success:
            console.print(f"[red]Error:[/red] {result.error.message}")  # type: ignore[union-attr]
            return 1
        exchanges = client.snapshot.chat[-limit:] if limit > 0 else ()
        if not exchanges:
            console.print("[yellow]No messages yet.[/yellow]")
            return 0
        for exchange in exchanges:
            stamp = exchange.timestamp.strftime("%Y-%m-%d %H:%M")
            console.print(f"[green]YOU[/green] [dim]{stamp}[/dim]  {exchange.message}")
            source = exchange.source.value if exchange.source else "pending"
            console.print(f"[blue]AGENT[/blue] [dim]{source}[/dim]  {exchange.response}\n")
        return 0

    _run(ctx, command)


if __name__ == "__main__":
    cli()
