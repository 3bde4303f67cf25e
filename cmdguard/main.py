#!/usr/bin/env python3
"""
Main entry point for the Typer-based cmdguard CLI.

This delegates to the UI layer in cmdguard.ui.cli to keep the
console script mapping stable.
"""

from cmdguard.ui.cli import run as cmdguard


if __name__ == "__main__":
    cmdguard()
