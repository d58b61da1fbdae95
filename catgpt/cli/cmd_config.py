"""Config command."""

from rich.table import Table

from . import cli
from .shared import console, mask_secret

_SECRETS = {"slack_bot_token", "slack_signing_secret", "openai_api_key"}


@cli.command()
def config():
    """Show effective settings (secrets masked)."""
    from catgpt.config import load_settings

    settings = load_settings()

    table = Table(title="CatGPT Settings", show_header=False, padding=(0, 2))
    table.add_column("Key", style="bold")
    table.add_column("Value")

    for name, value in settings.model_dump().items():
        if name == "system_prompt":
            value = value[:60] + ("…" if len(value) > 60 else "")
        elif name in _SECRETS:
            value = mask_secret(value)
        table.add_row(name, str(value))

    console.print(table)
