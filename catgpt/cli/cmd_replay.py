"""Replay command: run one response cycle for a saved event."""

import asyncio
import json

import click

from . import cli
from .shared import console


@cli.command()
@click.argument("event_file", type=click.Path(exists=True, dir_okay=False))
@click.option("--debug", is_flag=True, help="Enable debug logging")
def replay(event_file, debug):
    """Run a saved Slack event envelope through the bot (signature not checked)."""
    from catgpt.config import load_settings
    from catgpt.errors import MissingChannel
    from catgpt.handler import handle_event
    from catgpt.llm.completion import CompletionClient
    from catgpt.main import setup_logging
    from catgpt.slack.api import SlackAPIError, SlackClient
    from catgpt.slack.message import SlackMessage

    settings = load_settings()
    setup_logging("DEBUG" if debug else settings.log_level)

    with open(event_file, encoding="utf-8") as f:
        envelope = json.load(f)
    event = envelope.get("event", envelope) if isinstance(envelope, dict) else envelope

    try:
        trigger = SlackMessage.from_event(event)
    except (KeyError, TypeError) as e:
        raise click.ClickException(f"Not a Slack message event: {e!r}")

    async def _replay():
        return await handle_event(
            trigger,
            settings,
            SlackClient.from_settings(settings),
            CompletionClient.from_settings(settings),
        )

    try:
        result = asyncio.run(_replay())
    except MissingChannel as e:
        raise click.ClickException(str(e))
    except SlackAPIError as e:
        raise click.ClickException(f"Slack API failure: {e}")

    if result.error is None and result.replied:
        console.print(f"[green]✓[/green] Answered ({len(result.text)} chars)")
    elif result.error is None:
        console.print("[dim]No reply required for this event.[/dim]")
    else:
        style = "yellow" if not result.replied else "red"
        console.print(f"[{style}]✗[/{style}] {result.error.value}")
