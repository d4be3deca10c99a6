#!/usr/bin/env python3
"""Tests for environment configuration."""

from pathlib import Path

import pytest

from qaserve.config import DEFAULT_WEIGHTS, Config, parse_weights

ENV_KEYS = [
    "SERPER_API_KEY",
    "TAVILY_API_KEY",
    "SEARCH_RESULTS_PER_QUERY",
    "SEARCH_TIMEOUT",
    "SEARCH_CACHE_PATH",
    "POOL_SIZE",
    "ACQUIRE_TIMEOUT",
    "DISPATCH_WORKERS",
    "MAX_PENDING_REQUESTS",
    "SCORE_WEIGHTS",
    "SCORE_INTERCEPT",
    "QUESTION_DB_PATH",
    "TRAINING_OUTPUT",
    "HOST",
    "PORT",
    "LOG_LEVEL",
]


@pytest.fixture
def clean_env(monkeypatch):
    for key in ENV_KEYS:
        monkeypatch.delenv(key, raising=False)
    return monkeypatch


def test_defaults(clean_env):
    config = Config.from_env()

    assert config.serper_api_key is None
    assert config.tavily_api_key is None
    assert config.pool_size >= 1
    assert config.acquire_timeout == 60.0
    assert config.search_timeout == 30.0
    assert config.score_weights == DEFAULT_WEIGHTS
    assert config.search_cache_path is None
    assert config.training_output is None
    assert config.port == 8887


def test_overrides(clean_env):
    clean_env.setenv("POOL_SIZE", "3")
    clean_env.setenv("ACQUIRE_TIMEOUT", "120")
    clean_env.setenv("SCORE_WEIGHTS", "date_matches=2, search_rank=0.5")
    clean_env.setenv("TRAINING_OUTPUT", "out/training.jsonl")
    clean_env.setenv("TAVILY_API_KEY", "tvly-key")

    config = Config.from_env()

    assert config.pool_size == 3
    assert config.acquire_timeout == 120.0
    assert config.score_weights == {"date_matches": 2.0, "search_rank": 0.5}
    assert config.training_output == Path("out/training.jsonl")
    assert config.tavily_api_key == "tvly-key"


@pytest.mark.parametrize("key,value", [("POOL_SIZE", "0"), ("POOL_SIZE", "many"), ("PORT", "-1")])
def test_invalid_numbers_name_the_key(clean_env, key, value):
    clean_env.setenv(key, value)

    with pytest.raises(ValueError, match=key):
        Config.from_env()


def test_parse_weights_rejects_missing_value():
    with pytest.raises(ValueError):
        parse_weights("date_matches")
    with pytest.raises(ValueError):
        parse_weights("date_matches=high")
    assert parse_weights(" , ") == {}
