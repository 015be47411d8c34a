"""Custom exception hierarchy for ath-pipeline.

All exceptions that cross layer boundaries must inherit from
:class:`AthPipelineError`.  Raw OS and subprocess exceptions must NEVER
propagate beyond the infrastructure layer; they must be caught and
re-raised as a typed subclass defined here.

Hierarchy
---------
AthPipelineError
├── MissingParameterError
├── MalformedUrlError
├── CorruptedArchiveError
├── HostStepError
├── ToolNotFoundError
└── EnvironmentCheckError
"""

from __future__ import annotations


class AthPipelineError(Exception):
    """Base exception for all ath-pipeline errors.

    Every user-visible error condition maps to a subclass of this
    exception so that the CLI error boundary can render a clean message
    without leaking internal stack traces.
    """

    def __init__(self, message: str, *, hint: str | None = None) -> None:
        super().__init__(message)
        self.hint: str | None = hint
        """Optional actionable guidance shown below the error message."""


# --- Input validation ------------------------------------------------------

class MissingParameterError(AthPipelineError):
    """Raised when a required parameter was not supplied."""


class MalformedUrlError(AthPipelineError):
    """Raised when a war URL does not match its scheme's expected format."""


# --- Fetched artifacts -----------------------------------------------------

class CorruptedArchiveError(AthPipelineError):
    """Raised when a fetched archive fails its unzip self-test."""


# --- Host primitives -------------------------------------------------------

class HostStepError(AthPipelineError):
    """Raised when a pipeline host primitive fails."""


class ToolNotFoundError(AthPipelineError):
    """Raised when a tool installation cannot be located."""


# --- Environment / tooling -------------------------------------------------

class EnvironmentCheckError(AthPipelineError):
    """Raised when a required environment precondition is not met."""
