"""Tests for settings defaults, env overrides and logging setup."""
import os
from unittest.mock import patch

from planchain import configure_logging
from planchain.config import Settings, settings


class TestSettings:
    def test_defaults(self):
        s = Settings(_env_file=None)
        assert s.CHAIN_MAX_DEPTH == 5
        assert s.MERGE_MAX_DEPTH == 5
        assert s.SINGLETON_MATCH_SCORE == 2
        assert s.LABEL_COLUMN == "floor_plan"

    def test_env_override(self):
        with patch.dict(os.environ, {"CHAIN_MAX_DEPTH": "8"}):
            assert Settings(_env_file=None).CHAIN_MAX_DEPTH == 8


class TestConfigureLogging:
    def test_uses_configured_level(self):
        with patch("logging.basicConfig") as basic:
            configure_logging()
        basic.assert_called_once_with(level=settings.LOG_LEVEL)

    def test_explicit_level(self):
        with patch("logging.basicConfig") as basic:
            configure_logging("DEBUG")
        basic.assert_called_once_with(level="DEBUG")
