"""Shared utilities for CatGPT CLI commands."""

from rich.console import Console

console = Console()


def mask_secret(value: str) -> str:
    """Show only the last 4 characters of a secret."""
    if not value:
        return "[red](not set)[/red]"
    if len(value) <= 8:
        return "****"
    return f"****{value[-4:]}"
