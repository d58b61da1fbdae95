"""CatGPT: Slack assistant that streams chat completions into threads."""

__version__ = "0.4.0"
