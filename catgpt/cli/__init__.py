"""CatGPT CLI: operator commands."""

import click
from catgpt import __version__


@click.group()
@click.version_option(version=__version__, prog_name="catgpt")
def cli():
    """CatGPT: Slack assistant streaming chat completions into threads."""
    pass


# Import all command modules (registers commands onto cli group)
from . import cmd_config  # noqa: E402, F401
from . import cmd_replay  # noqa: E402, F401


def main():
    """CLI entry point."""
    cli()
