"""CLI command implementations."""

from __future__ import annotations

import asyncio
import logging
from typing import NoReturn

import click
from rich import box
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from gmail_agent.agent import GmailAgent, build_chat_model
from gmail_agent.config import Settings
from gmail_agent.connection import ensure_connection
from gmail_agent.errors import GmailAgentError
from gmail_agent.toolkit.actions import ALLOWED_ACTIONS
from gmail_agent.toolkit.provider import ComposioToolProvider

logger = logging.getLogger(__name__)
console = Console(width=200)
err_console = Console(width=200, stderr=True)

_USER_HELP = "User (entity) id. Defaults to GMAIL_AGENT_USER_ID or 'default'."


def _show_redirect(url: str) -> None:
    console.print(f"[bold yellow]Log in via:[/bold yellow] {escape(url)}")


def _fail(exc: Exception) -> NoReturn:
    """Report an error kind and message on stderr and exit non-zero."""
    err_console.print(f"[red]Error ({type(exc).__name__}):[/red] {escape(str(exc))}")
    raise SystemExit(1)


def _load_settings() -> Settings:
    try:
        return Settings.from_env()
    except GmailAgentError as exc:
        _fail(exc)


def _non_blank(ctx: click.Context, param: click.Parameter, value: str | None) -> str | None:
    if value is not None and not value.strip():
        raise click.BadParameter("user id must not be empty")
    return value


# ── run ──────────────────────────────────────────────────────────────────────────


@click.command()
@click.argument("instruction")
@click.option("--user", "user_id", default=None, callback=_non_blank, help=_USER_HELP)
def run(instruction: str, user_id: str | None) -> None:
    """Run one natural-language INSTRUCTION against Gmail.

    This may send real email or create real drafts and labels.
    """
    if not instruction.strip():
        raise click.BadParameter("instruction must not be empty", param_hint="INSTRUCTION")
    settings = _load_settings()
    try:
        text = asyncio.run(_run_async(settings, user_id or settings.default_user_id, instruction))
    except GmailAgentError as exc:
        _fail(exc)
    console.print(Panel(escape(text or "(no response)"), title="[bold]Result[/bold]",
                        border_style="green"))


async def _run_async(settings: Settings, user_id: str, instruction: str) -> str:
    agent = GmailAgent(
        ComposioToolProvider.from_settings(settings),
        build_chat_model(settings),
        poll_interval=settings.poll_interval,
        max_attempts=settings.max_attempts,
        on_redirect=_show_redirect,
    )
    return await agent.run_instruction(user_id, instruction)


# ── connect ──────────────────────────────────────────────────────────────────────


@click.command()
@click.option("--user", "user_id", default=None, callback=_non_blank, help=_USER_HELP)
def connect(user_id: str | None) -> None:
    """Make sure the user has an active Gmail connection, authorising if needed."""
    settings = _load_settings()
    user = user_id or settings.default_user_id
    provider = ComposioToolProvider.from_settings(settings)
    try:
        connection = asyncio.run(
            ensure_connection(
                provider,
                user,
                poll_interval=settings.poll_interval,
                max_attempts=settings.max_attempts,
                on_redirect=_show_redirect,
            )
        )
    except GmailAgentError as exc:
        _fail(exc)
    console.print(
        f"[green]Gmail connection {escape(connection.id)} is "
        f"{connection.status.value} for {escape(user)}.[/green]"
    )


# ── actions ──────────────────────────────────────────────────────────────────────


@click.command()
def actions() -> None:
    """List the Gmail actions the agent is allowed to use."""
    table = Table(box=box.ROUNDED, show_header=True, header_style="bold cyan")
    table.add_column("Action")
    table.add_column("Provider slug", style="dim")
    for action in ALLOWED_ACTIONS:
        table.add_row(action.name.lower(), action.value)
    console.print(table)
