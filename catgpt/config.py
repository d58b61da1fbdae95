"""CatGPT configuration management."""

import logging

from pydantic import Field
from pydantic_settings import BaseSettings

from .constants import OPENAI_API_BASE, SYSTEM_PROMPT

logger = logging.getLogger("catgpt.config")


class CatGPTSettings(BaseSettings):
    """Settings loaded from environment variables or .env file."""

    # Slack
    slack_bot_token: str = Field(default="", description="Bot User OAuth Token (xoxb-...)")
    slack_signing_secret: str = Field(default="", description="Signing secret for request verification")
    bot_member_id: str = Field(default="", description="Slack member ID of the bot user")

    # OpenAI
    openai_api_key: str = Field(default="", description="OpenAI API key")
    openai_base_url: str = Field(default=OPENAI_API_BASE, description="OpenAI-compatible API base URL")
    gpt_model: str = Field(default="gpt-4o", description="Chat completion model")
    temperature: float = Field(default=0.2, ge=0.0, le=2.0, description="Sampling temperature")
    request_timeout: float = Field(default=120.0, gt=0, description="Completion request timeout (seconds)")
    system_prompt: str = Field(default=SYSTEM_PROMPT, description="System prompt sent first in every query")

    # Context
    default_past_num: int = Field(default=6, ge=0, description="Past messages fetched without a pastN directive")
    max_past_num: int = Field(default=10, ge=0, description="Upper bound for the pastN directive")

    # Behaviour
    update_interval_ms: int = Field(default=1000, ge=0, description="Minimum gap between live edits")
    notify_empty_context: bool = Field(
        default=True,
        description="Post the no-context notice when a message resolves to no conversation context",
    )
    log_level: str = Field(default="INFO", description="Level of the catgpt logger, applied by setup_logging()")

    model_config = {"env_prefix": "CATGPT_", "env_file": ".env", "extra": "ignore"}


_REQUIRED = ("slack_bot_token", "slack_signing_secret", "bot_member_id", "openai_api_key")


def load_settings() -> CatGPTSettings:
    """Load settings from environment."""
    settings = CatGPTSettings()

    missing = [name for name in _REQUIRED if not getattr(settings, name)]
    if missing:
        logger.warning(
            "Missing settings: "
            + ", ".join(f"CATGPT_{name.upper()}" for name in missing)
            + ". Requests depending on them will fail."
        )

    return settings
