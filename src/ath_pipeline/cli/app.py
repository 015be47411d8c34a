"""CLI application entry point and command routing for ath-pipeline.

This module is the **sole error boundary** for the entire application.
It catches :class:`~ath_pipeline.exceptions.AthPipelineError`,
``KeyboardInterrupt``, and any unexpected ``Exception``, rendering
user-friendly messages via Rich and returning well-defined exit codes.

Architecture notes
------------------
* No business logic lives here; all work is delegated to the core
  services running against the local pipeline host.
* This module is the only place that translates between the domain
  world and the OS process exit code.
"""

from __future__ import annotations

import argparse
import logging
import os
import sys
from pathlib import Path

from ath_pipeline.cli import exit_codes
from ath_pipeline.cli.console import console
from ath_pipeline.exceptions import AthPipelineError
from ath_pipeline.version import __version__


# ---------------------------------------------------------------------------
# Argument parser
# ---------------------------------------------------------------------------

def _build_parser() -> argparse.ArgumentParser:
    """Construct the top-level argument parser.

    Commands:
    * ``ath-pipeline stash-war <url>``  — fetch, verify and stash jenkins.war
    * ``ath-pipeline war-version <war>`` — print the version of a war file
    * ``ath-pipeline ath``              — run the split acceptance tests
    * ``ath-pipeline doctor``           — environment diagnostics
    """
    parser = argparse.ArgumentParser(
        prog="ath-pipeline",
        description="Jenkins war stashing and parallel acceptance-test runs.",
    )
    parser.add_argument(
        "-V",
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Enable debug logging.",
    )
    parser.add_argument(
        "--log-file",
        default=None,
        help="Also write the log to this file.",
    )
    sub = parser.add_subparsers(dest="command")

    stash = sub.add_parser("stash-war", help="Fetch, verify and stash jenkins.war.")
    stash.add_argument(
        "url",
        help="mvn://g:a:v[:war], artifact://job/N#file, stable://job#file or a URL.",
    )
    stash.add_argument("--label", default=None, help="Node label to run on.")
    stash.add_argument(
        "--no-version",
        dest="get_version",
        action="store_false",
        help="Skip version discovery.",
    )

    war_version = sub.add_parser("war-version", help="Print the Jenkins version of a war.")
    war_version.add_argument("war", type=Path, help="Path to a jenkins.war file.")

    ath = sub.add_parser("ath", help="Run the acceptance test harness in parallel splits.")
    ath.add_argument("--label", default=None, help="Node label (default: ATH_LABEL or hi-speed).")
    ath.add_argument(
        "--archive-junit-reports",
        action="store_true",
        help="Zip and archive each branch's JUnit reports.",
    )
    ath.add_argument(
        "--rerun",
        type=int,
        default=0,
        metavar="N",
        help="Rerun failing tests up to N times (default: 0).",
    )
    ath.add_argument(
        "--parallel",
        type=int,
        default=7,
        metavar="N",
        help="Number of parallel splits besides cucumber (default: 7).",
    )
    ath.add_argument(
        "--no-stash",
        dest="stash",
        action="store_false",
        help="Reuse an existing ath-stash instead of checking out again.",
    )

    sub.add_parser("doctor", help="Check the local environment.")
    return parser


# ---------------------------------------------------------------------------
# Command dispatch
# ---------------------------------------------------------------------------

def _handle_stash_war(args: argparse.Namespace) -> int:
    """Dispatch ``stash-war``."""
    from ath_pipeline.config import Settings
    from ath_pipeline.core.models import BuildContext
    from ath_pipeline.core.war_service import WarStashService
    from ath_pipeline.infra.local_host import LocalPipelineHost

    settings = Settings()
    build = BuildContext(env=dict(os.environ))
    service = WarStashService(LocalPipelineHost(settings), build, settings)

    version = service.stash_jenkins_war(args.url, args.label, args.get_version)
    if version is not None:
        console.print(f"[bold green]Stashed jenkins.war[/bold green]  version={version}")
    else:
        console.print("[bold green]Stashed jenkins.war[/bold green]")
    return exit_codes.SUCCESS


def _handle_war_version(args: argparse.Namespace) -> int:
    """Dispatch ``war-version``."""
    from ath_pipeline.core.version_reader import get_jenkins_version
    from ath_pipeline.exceptions import CorruptedArchiveError
    from ath_pipeline.infra.local_host import LocalPipelineHost

    war = str(args.war.resolve())
    host = LocalPipelineHost()
    if not host.unzip_test(war):
        raise CorruptedArchiveError(f"{args.war} seems to be corrupted.")

    version = get_jenkins_version(host, war)
    if version is None:
        console.print("[yellow]No version found.[/yellow]")
        return exit_codes.GENERAL_ERROR
    console.print(version)
    return exit_codes.SUCCESS


def _handle_ath(args: argparse.Namespace) -> int:
    """Dispatch ``ath``."""
    from ath_pipeline.config import Settings
    from ath_pipeline.core.ath_service import AthService
    from ath_pipeline.core.models import BuildContext
    from ath_pipeline.infra.local_host import LocalPipelineHost

    settings = Settings()
    build = BuildContext(env=dict(os.environ))
    service = AthService(LocalPipelineHost(settings), build, settings)

    if args.stash:
        service.stash_ath()
    branches = service.run_ath(
        node_label=args.label,
        archive_junit_reports=args.archive_junit_reports,
        rerun_failing_tests_count=args.rerun,
        parallel_count=args.parallel,
    )
    console.print(f"[bold green]{len(branches)} ATH branches completed.[/bold green]")
    return exit_codes.SUCCESS


def _handle_doctor() -> int:
    """Dispatch the ``doctor`` diagnostics command."""
    from ath_pipeline.cli.doctor import run_doctor

    return run_doctor()


# ---------------------------------------------------------------------------
# Main entry point
# ---------------------------------------------------------------------------

def main(argv: list[str] | None = None) -> int:
    """Run the ath-pipeline CLI.

    Parameters
    ----------
    argv:
        Explicit argument list.  When ``None`` (default), ``sys.argv[1:]``
        is used.

    Returns
    -------
    int
        OS process exit code.
    """
    parser = _build_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return exit_codes.SUCCESS

    from ath_pipeline.logging_config import setup_logging

    setup_logging(logging.DEBUG if args.verbose else logging.INFO, args.log_file)

    if args.command == "doctor":
        return _handle_doctor()
    if args.command == "stash-war":
        return _handle_stash_war(args)
    if args.command == "war-version":
        return _handle_war_version(args)
    return _handle_ath(args)


# ---------------------------------------------------------------------------
# Script-level error boundary
# ---------------------------------------------------------------------------

def cli() -> None:
    """Top-level error boundary invoked by the console-script entry point.

    This function wraps :func:`main` and guarantees the process never
    exits with a raw stack trace during normal usage.
    """
    try:
        code = main()
        sys.exit(code)
    except AthPipelineError as exc:
        console.print(f"[bold red]Error:[/bold red] {exc}")
        if exc.hint:
            console.print(f"[yellow]Hint:[/yellow] {exc.hint}")
        sys.exit(exit_codes.GENERAL_ERROR)
    except KeyboardInterrupt:
        console.print("\n[yellow]Aborted by user.[/yellow]")
        sys.exit(exit_codes.KEYBOARD_INTERRUPT)
    except Exception as exc:  # noqa: BLE001
        console.print(
            "[bold red]Unexpected error.[/bold red] "
            "Please report this issue.\n"
            f"  {type(exc).__name__}: {exc}"
        )
        sys.exit(exit_codes.UNEXPECTED_ERROR)
