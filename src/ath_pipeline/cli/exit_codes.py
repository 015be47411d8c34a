"""Process exit codes returned by ``ath-pipeline``.

CI wrappers key off these values, so they are fixed and tested.
"""

from __future__ import annotations

SUCCESS: int = 0
"""War stashed, version printed, all ATH branches ran, or doctor passed."""

GENERAL_ERROR: int = 1
"""A pipeline step failed with an AthPipelineError, or doctor found a FAIL."""

KEYBOARD_INTERRUPT: int = 130
"""Interrupted with Ctrl+C (128 + SIGINT)."""

UNEXPECTED_ERROR: int = 2
"""A non-domain exception reached the CLI error boundary."""
