"""Main CLI entry point - check commands and paths against the policy engine."""

import logging

import typer

from cmdguard.core.configs import GuardSettings, get_guard_settings, load_raw_config
from cmdguard.core.policy import exit_code_for
from cmdguard.core.policy_engine import PolicyEngine
from cmdguard.ui.output import UIManager

app = typer.Typer(
    add_completion=False,
    no_args_is_help=True,
    help="cmdguard - Safety policy checks for agent-proposed shell commands.",
)


# ============================================================================
# Shared Setup
# ============================================================================

def _load_settings() -> GuardSettings:
    """Load settings and configure logging. Exits with 1 on a bad config."""
    try:
        settings = get_guard_settings(load_raw_config())
    except ValueError as e:
        typer.echo(f"Error loading configuration: {e}", err=True)
        raise typer.Exit(1)

    logging.basicConfig(
        level=settings.numeric_log_level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    return settings


def _setup() -> tuple:
    settings = _load_settings()
    return PolicyEngine(max_depth=settings.max_depth), UIManager(color=settings.color)


# ============================================================================
# Commands
# ============================================================================

@app.command()
def check(
    command: str = typer.Argument(..., help="Shell command to evaluate"),
    explain: bool = typer.Option(False, "--explain", "-e", help="Show the verdict of every sub-command"),
    quiet: bool = typer.Option(False, "--quiet", "-q", help="Print nothing when the command is allowed"),
) -> None:
    """
    Evaluate a shell command before it is executed.

    Exit codes: 0 allow, 0 warn (notice on stderr), 2 block (reason on stderr).

    Example: cmdguard check "npm install && git push"
    """
    engine, ui = _setup()

    decision = engine.assess_command(command)
    if explain:
        ui.explanation(engine.explain(command))
    ui.decision(decision, quiet=quiet)
    raise typer.Exit(exit_code_for(decision))


@app.command("check-path")
def check_path(
    path: str = typer.Argument(..., help="File path that is about to be written"),
    quiet: bool = typer.Option(False, "--quiet", "-q", help="Print nothing when the edit is allowed"),
) -> None:
    """
    Evaluate a file edit before it is committed.

    Example: cmdguard check-path frontend/package-lock.json
    """
    engine, ui = _setup()

    decision = engine.assess_path(path)
    ui.decision(decision, quiet=quiet)
    raise typer.Exit(exit_code_for(decision))


@app.command()
def rules() -> None:
    """List rule categories and rules in evaluation order."""
    engine, ui = _setup()
    ui.rules_table(engine.get_policy_info())


def run() -> None:
    """Entry point for console script mapping."""
    app()


if __name__ == "__main__":
    run()
