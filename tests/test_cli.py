"""
Tests for the typer CLI.

Exit codes follow the hook contract: 0 allow, 0 warn, 2 block.
"""

import unittest
from unittest.mock import patch

from typer.testing import CliRunner

from cmdguard.ui.cli import app


class TestCli(unittest.TestCase):
    """Test cases for cmdguard commands."""

    def setUp(self):
        self.runner = CliRunner()
        patcher = patch("cmdguard.ui.cli.load_raw_config", return_value={"color": "false"})
        patcher.start()
        self.addCleanup(patcher.stop)

    def invoke(self, *args):
        return self.runner.invoke(app, list(args))

    def test_check_allowed(self):
        result = self.invoke("check", "git status | grep modified")
        self.assertEqual(result.exit_code, 0)
        self.assertIn("Allowed", result.output)

    def test_check_quiet(self):
        result = self.invoke("check", "--quiet", "ls")
        self.assertEqual(result.exit_code, 0)
        self.assertNotIn("Allowed", result.output)

    def test_check_blocked(self):
        result = self.invoke("check", "echo $(sudo cat /etc/shadow)")
        self.assertEqual(result.exit_code, 2)
        self.assertIn("Blocked:", result.output)
        self.assertIn("sudo", result.output)

    def test_check_warning(self):
        result = self.invoke("check", "rm -rf build")
        self.assertEqual(result.exit_code, 0)
        self.assertIn("Warning:", result.output)

    def test_check_explain(self):
        result = self.invoke("check", "--explain", "ls; npm install")
        self.assertEqual(result.exit_code, 2)
        self.assertIn("npm", result.output)
        self.assertIn("block", result.output)

    def test_check_path(self):
        result = self.invoke("check-path", "services/api/uv.lock")
        self.assertEqual(result.exit_code, 2)
        self.assertIn("uv sync", result.output)

        result = self.invoke("check-path", "services/api/pyproject.toml")
        self.assertEqual(result.exit_code, 0)

    def test_rules(self):
        result = self.invoke("rules")
        self.assertEqual(result.exit_code, 0)
        self.assertIn("npx", result.output)

    def test_max_depth_from_config(self):
        with patch("cmdguard.ui.cli.load_raw_config", return_value={"max_depth": "1"}):
            result = self.invoke("check", "echo $(echo $(ls))")
        self.assertEqual(result.exit_code, 2)
        self.assertIn("too deeply nested", result.output)

    def test_bad_config_exits_1(self):
        with patch("cmdguard.ui.cli.load_raw_config", return_value={"max_depth": "zero"}):
            result = self.invoke("check", "ls")
        self.assertEqual(result.exit_code, 1)
        self.assertIn("Error loading configuration", result.output)


if __name__ == "__main__":
    unittest.main()
