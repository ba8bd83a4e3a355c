"""CLI entry point for the Gmail agent."""

import logging

import click
from dotenv import load_dotenv

logger = logging.getLogger(__name__)


@click.group()
@click.option("-v", "--verbose", is_flag=True, help="Log agent steps and tool calls.")
def cli(verbose: bool) -> None:
    """Let an LLM act on your Gmail — run, connect, and actions commands."""
    load_dotenv()
    logging.basicConfig(
        level=logging.INFO if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)-8s %(name)s — %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )


# Import and register commands after cli is defined to avoid circular imports.
from gmail_agent.cli.commands import actions, connect, run  # noqa: E402

cli.add_command(run)
cli.add_command(connect)
cli.add_command(actions)
