"""``ath-pipeline doctor`` — environment diagnostics command.

Gathers system information and renders a Rich table summarising
whether the local runtime environment satisfies the pipeline's
requirements.

This module lives in the CLI layer and may import from ``infra``
and renders via Rich.  It purely collects and displays diagnostic data.
"""

from __future__ import annotations

import os
import platform
import sys

from rich.table import Table

from ath_pipeline.cli import exit_codes
from ath_pipeline.cli.console import console
from ath_pipeline.config import Settings
from ath_pipeline.infra.tool_detector import ToolStatus, detect_tool
from ath_pipeline.version import __version__

# Executables the pipeline cannot run without, and those only some URL
# forms need.
REQUIRED_TOOLS: tuple[str, ...] = ("mvn", "java")
OPTIONAL_TOOLS: tuple[str, ...] = ("wget",)


# ---------------------------------------------------------------------------
# Diagnostic collectors
# ---------------------------------------------------------------------------

def _python_version_check() -> tuple[str, str, str]:
    """Return (label, value, status) for the Python version row."""
    version = platform.python_version()
    ok = sys.version_info[:2] >= (3, 10)
    status = "[green]OK[/green]" if ok else "[red]FAIL (>=3.10 required)[/red]"
    return "Python", version, status


def _tool_check(status: ToolStatus, *, required: bool) -> tuple[str, str, str]:
    """Return (label, value, status) for one tool row."""
    if status.found:
        return status.executable, str(status.path), "[green]OK[/green]"
    if required:
        return status.executable, "not found", "[red]FAIL[/red]"
    return status.executable, "not found", "[yellow]WARN[/yellow]"


def _home_check(settings: Settings) -> tuple[str, str, str]:
    """Return (label, value, status) for the pipeline home row."""
    home = settings.ATH_PIPELINE_HOME
    probe = home if home.exists() else home.parent
    if probe.exists() and os.access(probe, os.W_OK):
        return "Home", str(home), "[green]OK[/green]"
    return "Home", str(home), "[red]FAIL (not writable)[/red]"


def _ath_pipeline_version_check() -> tuple[str, str, str]:
    """Return (label, value, status) for the ath-pipeline version row."""
    return "ath-pipeline", __version__, "[green]OK[/green]"


# ---------------------------------------------------------------------------
# Public entry point
# ---------------------------------------------------------------------------

def run_doctor(settings: Settings | None = None) -> int:
    """Execute all diagnostic checks and render a Rich summary table.

    Returns
    -------
    int
        :data:`exit_codes.SUCCESS` when all critical checks pass,
        :data:`exit_codes.GENERAL_ERROR` if a critical check fails.
    """
    settings = settings or Settings()
    tools = [(detect_tool(name), True) for name in REQUIRED_TOOLS]
    tools += [(detect_tool(name), False) for name in OPTIONAL_TOOLS]

    checks = [
        _ath_pipeline_version_check(),
        _python_version_check(),
        *(_tool_check(status, required=required) for status, required in tools),
        _home_check(settings),
    ]
    has_failure = any("FAIL" in status for _, _, status in checks)

    table = Table(
        title="ath-pipeline doctor",
        show_header=True,
        header_style="bold cyan",
        border_style="dim",
    )
    table.add_column("Component", style="bold", min_width=12)
    table.add_column("Value", min_width=20)
    table.add_column("Status", justify="center", min_width=8)
    for label, value, status in checks:
        table.add_row(label, value, status)

    console.print()
    console.print(table)
    console.print()

    for status, _ in tools:
        if status.found or not status.install_commands:
            continue
        console.print(f"[yellow]{status.executable} is not installed.[/yellow]")
        console.print("Install using one of the following commands:\n")
        for cmd in status.install_commands:
            console.print(f"  [bold]{cmd}[/bold]")
        console.print()

    if has_failure:
        console.print("[bold red]Some checks failed.[/bold red]")
        return exit_codes.GENERAL_ERROR

    console.print("[bold green]All checks passed.[/bold green]")
    return exit_codes.SUCCESS
