"""Infrastructure layer — external system integration.

This layer wraps all interaction with the operating system: shell
steps, the filesystem, zip archives and tool lookup.  Every raw OS
exception must be caught here and re-raised as an
:class:`~ath_pipeline.exceptions.AthPipelineError` subclass.

Rules
-----
* No imports from ``cli``.
* No user-facing output (no ``print()``, no Rich rendering).
* Must expose clean, typed interfaces consumed by the core layer.
"""

from ath_pipeline.infra.history_splitter import HistoryTestSplitter
from ath_pipeline.infra.local_host import LocalPipelineHost
from ath_pipeline.infra.tool_detector import ToolStatus, detect_tool, require_tool

__all__: list[str] = [
    "HistoryTestSplitter",
    "LocalPipelineHost",
    "ToolStatus",
    "detect_tool",
    "require_tool",
]
