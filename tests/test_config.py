"""Tests for src.config — Settings parsing."""

import pytest
from pydantic import ValidationError

from src.config import Settings, settings


def _make(**overrides):
    values = dict(TELEGRAM_BOT_TOKEN="t", LLM_API_KEY="k")
    values.update(overrides)
    return Settings(**values)


def test_defaults():
    s = _make()
    assert s.LLM_PROVIDER == "gemini"
    assert s.LLM_TIMEOUT_SECONDS == 20.0
    assert s.STORAGE_KEY == "lumina_events"
    assert s.HOUR_UNIT_HEIGHT == 80.0
    assert s.MIN_EVENT_HEIGHT == 20.0
    assert s.MONTH_CELL_EVENT_CAP == 3
    assert s.MONTH_SORT_BY_START is False
    assert s.DEFAULT_EVENT_COLOR == "#3b82f6"


def test_env_strings_are_coerced():
    s = _make(
        ALLOWED_USER_IDS="1, 2,3",
        LLM_TIMEOUT_SECONDS="15",
        HOUR_UNIT_HEIGHT="60",
        MONTH_CELL_EVENT_CAP="5",
        MONTH_SORT_BY_START="yes",
    )
    assert s.ALLOWED_USER_IDS == [1, 2, 3]
    assert s.LLM_TIMEOUT_SECONDS == 15.0
    assert s.HOUR_UNIT_HEIGHT == 60.0
    assert s.MONTH_CELL_EVENT_CAP == 5
    assert s.MONTH_SORT_BY_START is True


def test_empty_user_ids():
    assert _make(ALLOWED_USER_IDS="").ALLOWED_USER_IDS == []


def test_negative_cap_rejected():
    with pytest.raises(ValidationError):
        _make(MONTH_CELL_EVENT_CAP="-1")


def test_singleton_loaded_from_test_env():
    assert settings.TELEGRAM_BOT_TOKEN == "fake-token-for-tests"
    assert settings.ALLOWED_USER_IDS == [12345]
