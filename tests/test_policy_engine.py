"""
Tests for the PolicyEngine and the host hooks.

The engine must map every input to exactly one decision and fail closed on
anything it cannot verify.
"""

import unittest
from concurrent.futures import ThreadPoolExecutor
from unittest.mock import patch

import cmdguard
from cmdguard.core.decomposer import SubCommand
from cmdguard.core.policy import exit_code_for, format_notice, pre_edit_hook, pre_execution_hook
from cmdguard.core.policy_engine import PolicyEngine
from cmdguard.policies import PolicyDecision, PrivilegeEscalationPolicy, RuleCategory


class TestPolicyEngine(unittest.TestCase):
    """Test cases for command evaluation."""

    def setUp(self):
        self.engine = PolicyEngine()

    def test_allowed_commands(self):
        for command in ("ls -la", "git status && git diff", "bun install", "echo sudo",
                        "grep -r 'npm install' .", "python script.py", "cat <<'EOF'\nsudo id\nEOF"):
            with self.subTest(command=command):
                self.assertTrue(self.engine.assess_command(command).is_allowed)

    def test_empty_input_is_allowed(self):
        for command in (None, "", "   ", "\n\t"):
            with self.subTest(command=command):
                self.assertTrue(self.engine.assess_command(command).is_allowed)

    def test_non_string_input_is_coerced(self):
        self.assertTrue(self.engine.assess_command(42).is_allowed)

    def test_most_severe_wins(self):
        decision = self.engine.assess_command("rm -rf build; npm install")
        self.assertTrue(decision.is_blocked)
        self.assertEqual(decision.rule_id, "npm")

    def test_first_reason_at_equal_severity(self):
        decision = self.engine.assess_command("npm test && sudo ls")
        self.assertEqual(decision.rule_id, "npm")

    def test_warning(self):
        decision = self.engine.assess_command("rm -rf build")
        self.assertTrue(decision.is_warning)
        self.assertEqual(decision.category, RuleCategory.DESTRUCTIVE_OPERATION)
        self.assertEqual(decision.command, "rm -rf build")

    def test_priority_across_categories(self):
        # node with no arguments is an interactive REPL before it is a package manager
        self.assertEqual(self.engine.assess_command("node").category, RuleCategory.INTERACTIVE_PROGRAM)
        self.assertEqual(self.engine.assess_command("node app.js").category, RuleCategory.PACKAGE_MANAGER)

    def test_dynamic_executable_is_blocked(self):
        for command in ("$CMD install", "$(echo /usr/bin/sudo) ls", "`which npm` install"):
            with self.subTest(command=command):
                decision = self.engine.assess_command(command)
                self.assertTrue(decision.is_blocked)
                self.assertIn("Could not verify command safety", decision.reason)

    def test_malformed_input_fails_closed(self):
        for command in ("echo 'unterminated", 'ls "abc', "echo $(ls", "cat >"):
            with self.subTest(command=command):
                decision = self.engine.assess_command(command)
                self.assertTrue(decision.is_blocked)
                self.assertEqual(decision.category, RuleCategory.UNVERIFIABLE)

    def test_shell_c_payload_after_options_is_checked(self):
        for command in ("bash -c -- 'sudo ls'", "bash -c -e 'sudo ls'", "sh -c -x 'node --version'", "bash -c"):
            with self.subTest(command=command):
                self.assertTrue(self.engine.assess_command(command).is_blocked)

    def test_brace_expansion_and_trap_are_checked(self):
        for command in ("{sudo,ls}", "{npm,install}", "trap 'sudo ls' EXIT"):
            with self.subTest(command=command):
                self.assertTrue(self.engine.assess_command(command).is_blocked)

    def test_interpreter_reading_stdin_is_blocked(self):
        for command in ("echo 'import os' | python3", "python3 <<EOF\nprint(1)\nEOF", "python < x.py", "cat app.js | node"):
            with self.subTest(command=command):
                decision = self.engine.assess_command(command)
                self.assertTrue(decision.is_blocked)
                self.assertEqual(decision.category, RuleCategory.INTERACTIVE_PROGRAM)

    def test_secret_file_access_is_blocked(self):
        for command in ("cat .env", "grep KEY config/.env.local", "echo $(cat ~/.ssh/id_rsa)",
                        "cat < .env", "git diff .env", "tail -f logs/app.log > .env.production"):
            with self.subTest(command=command):
                decision = self.engine.assess_command(command)
                self.assertTrue(decision.is_blocked)
                self.assertEqual(decision.category, RuleCategory.SECRET_FILE_ACCESS)
        for command in ("cat .env.example", "cat README.md", "python script.py"):
            with self.subTest(command=command):
                self.assertTrue(self.engine.assess_command(command).is_allowed)

    def test_unbalanced_parenthesis_fails_closed(self):
        for command in ("echo )", "(ls"):
            with self.subTest(command=command):
                decision = self.engine.assess_command(command)
                self.assertTrue(decision.is_blocked)
                self.assertEqual(decision.category, RuleCategory.UNVERIFIABLE)

    def test_malformed_input_reports_matching_rule_first(self):
        decision = self.engine.assess_command("sudo echo 'unterminated")
        self.assertEqual(decision.category, RuleCategory.PRIVILEGE_ESCALATION)

    def test_nesting_beyond_cap(self):
        command = "ls"
        for _ in range(10):
            command = f"echo $({command})"
        decision = self.engine.assess_command(command)
        self.assertTrue(decision.is_blocked)
        self.assertIn("too deeply nested", decision.reason)

    def test_nesting_reason_wins_over_other_blocks(self):
        command = "npm install"
        for _ in range(10):
            command = f"echo $({command}) && sudo ls"
        self.assertEqual(self.engine.assess_command(command).rule_id, "nesting-depth")

    def test_custom_max_depth(self):
        engine = PolicyEngine(max_depth=2)
        self.assertTrue(engine.assess_command("echo $(echo $(echo $(ls)))").is_blocked)
        self.assertTrue(engine.assess_command("echo $(echo $(ls))").is_allowed)

    def test_invalid_max_depth(self):
        with self.assertRaises(ValueError):
            PolicyEngine(max_depth=0)

    def test_injected_rule_table(self):
        engine = PolicyEngine(policies=[PrivilegeEscalationPolicy()])
        self.assertTrue(engine.assess_command("npm install").is_allowed)
        self.assertTrue(engine.assess_command("ls | sudo tee /etc/x").is_blocked)
        self.assertEqual(engine.get_policy_names(), ["privilege-escalation"])

    def test_internal_error_fails_closed(self):
        with patch("cmdguard.core.policy_engine.decompose", side_effect=RuntimeError("boom")):
            with self.assertLogs("cmdguard.core.policy_engine", level="ERROR"):
                decision = self.engine.assess_command("ls")
        self.assertTrue(decision.is_blocked)
        self.assertIn("Could not verify command safety", decision.reason)

    def test_explain_lists_every_subcommand(self):
        verdicts = self.engine.explain("ls && npm install | tee log")
        self.assertEqual([sub.executable for sub, _ in verdicts], ["ls", "npm", "tee"])
        self.assertEqual([d.action for _, d in verdicts],
                         [PolicyDecision.ALLOW, PolicyDecision.BLOCK, PolicyDecision.ALLOW])

    def test_explain_engine_level_verdicts(self):
        verdicts = self.engine.explain("echo 'oops")
        sub, decision = verdicts[-1]
        self.assertIsNone(sub)
        self.assertEqual(decision.rule_id, "unverifiable")

    def test_assess_subcommand(self):
        decision = self.engine.assess_subcommand(SubCommand(executable="vim", arguments=("x",), path="vim"))
        self.assertEqual(decision.rule_id, "interactive-editor")

    def test_policy_info(self):
        info = self.engine.get_policy_info()
        names = [entry["name"] for entry in info]
        self.assertEqual(names[0], "privilege-escalation")
        self.assertEqual(names[-1], "generated-file")
        self.assertIn(("npx", "block"), info[2]["rules"])

    def test_evaluation_is_deterministic(self):
        command = "FOO=1 bash -c 'git push' | less"
        self.assertEqual(self.engine.assess_command(command), self.engine.assess_command(command))

    def test_concurrent_evaluation(self):
        commands = [
            "ls -la", "sudo ls", "npm install", "git status", "git push",
            "nix run ./flake", "rm -rf x", "echo $(node -v)", "vim a", "python -c 1",
        ] * 20
        expected = [self.engine.assess_command(c) for c in commands]
        with ThreadPoolExecutor(max_workers=8) as pool:
            results = list(pool.map(self.engine.assess_command, commands))
        self.assertEqual(results, expected)


class TestPathEvaluation(unittest.TestCase):

    def test_lock_file_is_blocked(self):
        decision = PolicyEngine().assess_path("frontend/package-lock.json")
        self.assertTrue(decision.is_blocked)
        self.assertIn("bun install", decision.reason)

    def test_source_file_is_allowed(self):
        self.assertTrue(PolicyEngine().assess_path("src/app.py").is_allowed)


class TestHooks(unittest.TestCase):
    """The host-facing boundary."""

    def test_pre_execution_hook(self):
        self.assertTrue(pre_execution_hook("sudo ls").is_blocked)
        self.assertTrue(pre_execution_hook("ls").is_allowed)

    def test_pre_edit_hook(self):
        self.assertTrue(pre_edit_hook("a/b/Cargo.lock").is_blocked)
        self.assertTrue(pre_edit_hook("Cargo.toml").is_allowed)

    def test_hooks_accept_an_engine(self):
        engine = PolicyEngine(policies=[])
        self.assertTrue(pre_execution_hook("sudo ls", engine=engine).is_allowed)

    def test_notice_and_exit_code(self):
        blocked = pre_execution_hook("npm install")
        warned = pre_execution_hook("rm -rf dist")
        allowed = pre_execution_hook("ls")
        self.assertTrue(format_notice(blocked).startswith("Blocked: "))
        self.assertTrue(format_notice(warned).startswith("Warning: "))
        self.assertEqual(format_notice(allowed), "")
        self.assertEqual([exit_code_for(d) for d in (blocked, warned, allowed)], [2, 0, 0])

    def test_package_api(self):
        self.assertTrue(cmdguard.evaluate("bash -c 'sudo id'").is_blocked)
        self.assertTrue(cmdguard.evaluate_path("uv.lock").is_blocked)
        self.assertTrue(cmdguard.__version__)


if __name__ == "__main__":
    unittest.main()
