"""Tests for settings loading."""

import logging

import pytest
from pydantic import ValidationError

from catgpt.config import CatGPTSettings, load_settings


@pytest.fixture(autouse=True)
def isolated(monkeypatch, tmp_path):
    monkeypatch.chdir(tmp_path)
    for name in ("SLACK_BOT_TOKEN", "SLACK_SIGNING_SECRET", "BOT_MEMBER_ID", "OPENAI_API_KEY", "GPT_MODEL"):
        monkeypatch.delenv(f"CATGPT_{name}", raising=False)


def test_defaults():
    settings = CatGPTSettings()
    assert settings.gpt_model == "gpt-4o"
    assert settings.temperature == 0.2
    assert settings.default_past_num == 6
    assert settings.max_past_num == 10
    assert settings.update_interval_ms == 1000
    assert settings.notify_empty_context is True
    assert settings.openai_base_url == "https://api.openai.com/v1"


def test_env_prefix(monkeypatch):
    monkeypatch.setenv("CATGPT_GPT_MODEL", "gpt-4o-mini")
    monkeypatch.setenv("CATGPT_MAX_PAST_NUM", "20")
    settings = CatGPTSettings()
    assert settings.gpt_model == "gpt-4o-mini"
    assert settings.max_past_num == 20


def test_env_file(tmp_path):
    (tmp_path / ".env").write_text("CATGPT_BOT_MEMBER_ID=U42\nUNRELATED=1\n")
    assert CatGPTSettings().bot_member_id == "U42"


def test_rejects_out_of_range():
    with pytest.raises(ValidationError):
        CatGPTSettings(temperature=3.0)
    with pytest.raises(ValidationError):
        CatGPTSettings(default_past_num=-1)


def test_load_settings_warns_on_missing(caplog):
    with caplog.at_level(logging.WARNING, logger="catgpt.config"):
        load_settings()
    assert "CATGPT_SLACK_BOT_TOKEN" in caplog.text
    assert "CATGPT_OPENAI_API_KEY" in caplog.text


def test_load_settings_quiet_when_complete(monkeypatch, caplog):
    monkeypatch.setenv("CATGPT_SLACK_BOT_TOKEN", "xoxb-1")
    monkeypatch.setenv("CATGPT_SLACK_SIGNING_SECRET", "s")
    monkeypatch.setenv("CATGPT_BOT_MEMBER_ID", "U1")
    monkeypatch.setenv("CATGPT_OPENAI_API_KEY", "sk-1")
    with caplog.at_level(logging.WARNING, logger="catgpt.config"):
        load_settings()
    assert "Missing settings" not in caplog.text
