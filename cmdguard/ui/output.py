"""
UI output for cmdguard decisions.
Verdicts go to stderr for Block/Warn (the hook contract); tables go to stdout.
"""

from typing import Dict, List, Optional

from rich.console import Console
from rich.markup import escape
from rich.table import Table

from ..core.policy import format_notice
from ..core.policy_engine import Verdict
from ..policies import Decision, PolicyDecision

# Style per decision action
ACTION_STYLES = {
    PolicyDecision.ALLOW: "green",
    PolicyDecision.WARN: "yellow",
    PolicyDecision.BLOCK: "red",
}


class UIManager:
    """Manages rich terminal output for cmdguard."""

    def __init__(self, color: bool = True):
        self.console = Console(no_color=not color, highlight=False, soft_wrap=True)
        self.err_console = Console(stderr=True, no_color=not color, highlight=False, soft_wrap=True)

    def success(self, message: str) -> None:
        self.console.print(f"[green]{escape(message)}[/green]")

    def error(self, message: str) -> None:
        self.err_console.print(f"[red]{escape(message)}[/red]")

    def warning(self, message: str) -> None:
        self.err_console.print(f"[yellow]{escape(message)}[/yellow]")

    def decision(self, decision: Decision, quiet: bool = False) -> None:
        """
        Report a decision.

        Args:
            decision: Decision to report
            quiet: Suppress the "Allowed" line for Allow decisions
        """
        if decision.is_blocked:
            self.error(format_notice(decision))
        elif decision.is_warning:
            self.warning(format_notice(decision))
        elif not quiet:
            self.success("Allowed")

    def explanation(self, verdicts: List[Verdict]) -> None:
        """Print a table with the verdict of every sub-command."""
        table = Table(title="Sub-commands")
        table.add_column("#", justify="right")
        table.add_column("Sub-command")
        table.add_column("Decision")
        table.add_column("Rule")
        table.add_column("Reason")

        for index, (sub, decision) in enumerate(verdicts, 1):
            style = ACTION_STYLES[decision.action]
            table.add_row(
                str(index),
                escape(sub.display()) if sub is not None else "[dim](whole command)[/dim]",
                f"[{style}]{decision.action.value}[/{style}]",
                escape(decision.rule_id or "-"),
                escape(decision.reason),
            )
        self.console.print(table)

    def rules_table(self, policies: List[Dict], title: Optional[str] = None) -> None:
        """Print rule categories in evaluation order."""
        table = Table(title=title or "Rule categories (evaluation order)")
        table.add_column("Category", style="cyan")
        table.add_column("Rule")
        table.add_column("Severity")
        table.add_column("Description", style="dim")

        for policy in policies:
            first = True
            for rule_id, severity in policy["rules"]:
                style = ACTION_STYLES[PolicyDecision(severity)]
                table.add_row(
                    policy["name"] if first else "",
                    escape(rule_id),
                    f"[{style}]{severity}[/{style}]",
                    policy["description"] if first else "",
                )
                first = False
        self.console.print(table)
