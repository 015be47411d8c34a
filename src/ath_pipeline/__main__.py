"""Allow ``python -m ath_pipeline`` invocation.

Delegates to the CLI error-boundary entry point so that
``python -m ath_pipeline`` behaves identically to the ``ath-pipeline``
console script.
"""

from __future__ import annotations

from ath_pipeline.cli.app import cli

if __name__ == "__main__":
    cli()
