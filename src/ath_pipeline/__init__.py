"""ath-pipeline — Jenkins war stashing and acceptance-test splitting.

Thin orchestration over an injected pipeline host with a strict layered
architecture.
"""

from ath_pipeline.version import __version__

__all__: list[str] = ["__version__"]
