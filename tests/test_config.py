"""Tests for Config class."""

import logging
import os
from importlib import reload
from pathlib import Path
from unittest.mock import patch

import pytest

from race import config as config_module
from race.config import Config


@pytest.fixture(autouse=True)
def _restore_config_module():
    yield
    reload(config_module)


def test_get_openai_api_key_from_env():
    with patch.dict(os.environ, {"OPENAI_API_KEY": "test-api-key"}):
        assert Config.get_openai_api_key() == "test-api-key"


def test_get_openai_api_key_empty_when_not_set():
    with patch.dict(os.environ, {}, clear=True):
        assert not Config.get_openai_api_key()


@pytest.mark.parametrize(
    ("env", "expected"),
    [
        ({"COMPLETION_API_KEY": "c-key", "FANAR_API_KEY": "f-key"}, "c-key"),
        ({"FANAR_API_KEY": "f-key"}, "f-key"),
        ({}, ""),
    ],
)
def test_get_completion_api_key_fallback(env, expected):
    with patch.dict(os.environ, env, clear=True):
        assert Config.get_completion_api_key() == expected


def test_validate_success_with_api_keys():
    with (
        patch.object(Config, "get_openai_api_key", return_value="test-key"),
        patch.object(Config, "get_completion_api_key", return_value="test-key"),
    ):
        Config.validate()


def test_validate_fails_without_openai_key():
    with (
        patch.object(Config, "get_openai_api_key", return_value=""),
        pytest.raises(ValueError, match="OPENAI_API_KEY is required"),
    ):
        Config.validate()


def test_validate_fails_without_completion_key():
    with (
        patch.object(Config, "get_openai_api_key", return_value="test-key"),
        patch.object(Config, "get_completion_api_key", return_value=""),
        pytest.raises(ValueError, match="COMPLETION_API_KEY"),
    ):
        Config.validate()


@pytest.mark.parametrize(
    ("env_var", "default_value", "test_value", "expected_type"),
    [
        ("LOG_LEVEL", "INFO", "debug", str),
        ("EMBEDDING_MODEL", "text-embedding-ada-002", "text-embedding-3-small", str),
        ("COMPLETION_MODEL", "Fanar-S-1-7B", "gpt-4o-mini", str),
        ("COMPLETION_BASE_URL", "https://api.fanar.qa/v1", "http://localhost/v1", str),
        ("CHUNK_MAX_LENGTH", 1000, "1500", int),
        ("RETRIEVAL_TOP_K", 5, "8", int),
        ("RETRIEVAL_THRESHOLD", 0.75, "0.6", float),
        ("REFERENCE_EXCERPT_CHARS", 150, "200", int),
        ("CONTEXT_MAX_CHARS", 6000, "8000", int),
        ("HISTORY_MAX_TURNS", 6, "3", int),
        ("COMPLETION_MAX_TOKENS", 500, "800", int),
        ("COMPLETION_TEMPERATURE", 0.1, "0.3", float),
        ("PROVIDER_TIMEOUT", 60.0, "30", float),
        ("EMBEDDING_MAX_RETRIES", 2, "4", int),
        ("EMBEDDING_RETRY_BACKOFF", 1.0, "0.5", float),
        ("EMBEDDING_MAX_RETRY_DELAY", 30.0, "5", float),
        ("INDEX_MAX_MATERIALS", 64, "10", int),
        ("TTS_MODEL", "Fanar-Aura-TTS-1", "tts-1", str),
    ],
)
def test_config_loading_from_env(env_var, default_value, test_value, expected_type):
    with patch.dict(os.environ, {}, clear=True):
        reload(config_module)
        assert getattr(config_module.Config, env_var) == default_value

    with patch.dict(os.environ, {env_var: test_value}):
        reload(config_module)
        actual_value = getattr(config_module.Config, env_var)
        if expected_type is int:
            expected = int(test_value)
        elif expected_type is float:
            expected = float(test_value)
        elif env_var == "LOG_LEVEL":
            expected = test_value.upper()
        else:
            expected = test_value
        assert actual_value == expected


@pytest.mark.parametrize(
    ("log_level", "openai_level", "expected_level", "expected_openai_level"),
    [
        ("INFO", "WARNING", logging.INFO, logging.WARNING),
        ("DEBUG", "ERROR", logging.DEBUG, logging.ERROR),
        ("INVALID", "INVALID", logging.INFO, logging.WARNING),
    ],
)
def test_setup_logging_levels(
    log_level, openai_level, expected_level, expected_openai_level
):
    """Verify logging setup respects overrides and falls back on invalid values."""
    with (
        patch.object(Config, "LOG_LEVEL", log_level),
        patch.object(Config, "OPENAI_LOG_LEVEL", openai_level),
        patch("race.config.logging.basicConfig") as mock_basic,
        patch("race.config.logging.getLogger") as mock_get_logger,
    ):
        mock_logger = mock_get_logger.return_value

        Config.setup_logging()

        mock_basic.assert_called_once_with(
            level=expected_level,
            format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
            datefmt="%H:%M:%S",
        )
        mock_get_logger.assert_called_once_with("openai")
        mock_logger.setLevel.assert_called_once_with(expected_openai_level)


def test_get_api_headers():
    with patch.object(Config, "API_USER_AGENT", "RACE/test"):
        assert Config.get_api_headers() == {"User-Agent": "RACE/test"}

    with patch.object(Config, "API_USER_AGENT", ""):
        assert Config.get_api_headers() == {}


@pytest.mark.parametrize(
    ("env_var", "invalid_value", "error_match"),
    [
        ("CHUNK_MAX_LENGTH", "not_a_number", "invalid literal for int"),
        ("RETRIEVAL_THRESHOLD", "high", "could not convert string to float"),
    ],
)
def test_type_conversion_errors(env_var, invalid_value, error_match):
    with (
        patch.dict(os.environ, {env_var: invalid_value}),
        pytest.raises(ValueError, match=error_match),
    ):
        reload(config_module)


def test_no_dotenv_loading_when_missing():
    with (
        patch.object(Path, "exists", return_value=False),
        patch("race.config.load_dotenv") as mock_load,
    ):
        reload(config_module)

        mock_load.assert_not_called()
