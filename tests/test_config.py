"""
Tests for config loading and validation.

Settings come from ~/.config/cmdguard/config.cfg, a .env fallback and
CMDGUARD_* environment variables, in increasing order of precedence.
"""

import os
import unittest
import tempfile
from pathlib import Path
from unittest.mock import patch

from cmdguard.core.configs import GuardSettings, get_guard_settings, load_raw_config
from cmdguard.core.decomposer import MAX_DEPTH


class TestConfigLoading(unittest.TestCase):
    """Test cases for configuration helpers."""

    def setUp(self):
        """Set up test environment with temporary directories."""
        self.temp_dir = tempfile.mkdtemp()
        self.config_file = Path(self.temp_dir) / "config.cfg"
        self.env_file = Path(self.temp_dir) / ".env"

    def tearDown(self):
        """Clean up temporary files."""
        import shutil

        shutil.rmtree(self.temp_dir, ignore_errors=True)

    def _write_config(self, defaults: dict) -> None:
        import configparser

        cfg = configparser.ConfigParser()
        cfg["DEFAULT"] = defaults
        with open(self.config_file, "w") as handle:
            cfg.write(handle)

    def _load(self, environ=None):
        with patch.dict(os.environ, environ or {}, clear=True):
            return load_raw_config(self.config_file, env_path=self.env_file)

    def test_load_raw_config_lowercases_keys(self):
        self._write_config({"LOG_LEVEL": "DEBUG", "MAX_DEPTH": "4"})

        raw = self._load()
        self.assertEqual(raw["log_level"], "DEBUG")
        self.assertEqual(raw["max_depth"], "4")

    def test_missing_files_give_empty_config(self):
        self.assertEqual(self._load(), {})

    def test_dotenv_fallback(self):
        self.env_file.write_text("CMDGUARD_MAX_DEPTH=3\nCOLOR=false\n")

        raw = self._load()
        self.assertEqual(raw["max_depth"], "3")
        self.assertEqual(raw["color"], "false")

    def test_config_file_wins_over_dotenv(self):
        self._write_config({"max_depth": "5"})
        self.env_file.write_text("CMDGUARD_MAX_DEPTH=3\n")

        self.assertEqual(self._load()["max_depth"], "5")

    def test_environment_overrides(self):
        self._write_config({"max_depth": "5", "log_level": "INFO"})

        raw = self._load({"CMDGUARD_MAX_DEPTH": "6", "CMDGUARD_LOG_LEVEL": ""})
        self.assertEqual(raw["max_depth"], "6")
        self.assertEqual(raw["log_level"], "INFO")

    def test_unreadable_config_raises(self):
        self.config_file.write_text("this is not an ini file\n")

        with self.assertRaises(ValueError):
            self._load()


class TestGuardSettings(unittest.TestCase):

    def test_defaults(self):
        settings = get_guard_settings({})
        self.assertEqual(settings, GuardSettings())
        self.assertEqual(settings.max_depth, MAX_DEPTH)
        self.assertEqual(settings.log_level, "WARNING")
        self.assertTrue(settings.color)

    def test_values_are_parsed(self):
        settings = get_guard_settings({"log_level": "debug", "max_depth": " 12 ", "color": "no"})
        self.assertEqual(settings.log_level, "DEBUG")
        self.assertEqual(settings.max_depth, 12)
        self.assertFalse(settings.color)
        self.assertEqual(settings.numeric_log_level, 10)

    def test_invalid_values_raise(self):
        for raw in ({"max_depth": "deep"}, {"max_depth": "0"}, {"max_depth": "-3"}, {"log_level": "chatty"}):
            with self.subTest(raw=raw):
                with self.assertRaises(ValueError):
                    get_guard_settings(raw)


if __name__ == "__main__":
    unittest.main()
