"""Protocols (interfaces) consumed by the core layer.

These define the contract that a pipeline host adapter must satisfy.
Core code depends only on these protocols, never on concrete
implementations, so the orchestration logic can run against a fake
host.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Mapping
from contextlib import AbstractContextManager
from typing import Protocol

from ath_pipeline.core.models import BuildSelector, CountDrivenParallelism


class SplitProvider(Protocol):
    """Contract for test-history-driven partitioners."""

    def split_tests(self, parallelism: CountDrivenParallelism) -> list[list[str]]:
        """Return one exclusion list per split.

        Each list names the tests that the split must NOT run.  When no
        history is available a single empty list is returned.
        """
        ...  # pragma: no cover


class PipelineHost(SplitProvider, Protocol):
    """Contract for the automation server's built-in pipeline steps.

    Any object that implements these methods satisfies this protocol
    structurally (no explicit inheritance required).  Implementations
    must map all backend-specific exceptions to
    :class:`~ath_pipeline.exceptions.AthPipelineError` subclasses,
    typically :class:`~ath_pipeline.exceptions.HostStepError`.
    """

    # -- Node and workspace scoping -------------------------------------

    def node(self, label: str) -> AbstractContextManager[None]:
        """Lease a node matching *label* for the duration of the block."""
        ...  # pragma: no cover

    def workspace(self, name: str) -> AbstractContextManager[None]:
        """Run the block inside the named workspace directory."""
        ...  # pragma: no cover

    def timestamps(self) -> AbstractContextManager[None]:
        """Prefix every log line produced in the block with a timestamp."""
        ...  # pragma: no cover

    def timeout(self, hours: float) -> AbstractContextManager[None]:
        """Abort steps in the block once *hours* have elapsed."""
        ...  # pragma: no cover

    def virtual_display(self) -> AbstractContextManager[None]:
        """Provide an X display for browser-driven tests."""
        ...  # pragma: no cover

    def with_env(self, overrides: Iterable[str]) -> AbstractContextManager[None]:
        """Overlay ``KEY=value`` (or ``PATH+NAME=dir``) entries on the env."""
        ...  # pragma: no cover

    # -- Steps ----------------------------------------------------------

    def sh(self, script: str) -> None:
        """Run *script* in a shell; raise on non-zero exit."""
        ...  # pragma: no cover

    def write_file(self, file: str, text: str) -> None:
        """Write *text* to *file* in the current workspace."""
        ...  # pragma: no cover

    def checkout_scm(self) -> None:
        """Check out the project sources into the current workspace."""
        ...  # pragma: no cover

    def stash(self, name: str, *, includes: str = "**", excludes: str = "") -> None:
        """Save matching workspace files under *name* for later stages."""
        ...  # pragma: no cover

    def unstash(self, name: str) -> None:
        """Restore a stash into the current workspace."""
        ...  # pragma: no cover

    def archive(self, pattern: str) -> None:
        """Persist matching files as build artifacts; raise if none match."""
        ...  # pragma: no cover

    def copy_artifact(
        self,
        *,
        project: str,
        filter: str,
        selector: BuildSelector,
    ) -> None:
        """Copy *filter* from another job's build into the workspace."""
        ...  # pragma: no cover

    def fingerprint(self, targets: str) -> None:
        """Record checksums of *targets* for cross-build tracking."""
        ...  # pragma: no cover

    def junit(self, test_results: str, *, attachments: bool = False) -> None:
        """Publish JUnit XML results; raise if no report files match."""
        ...  # pragma: no cover

    def zip(self, zip_file: str, glob: str) -> None:
        """Create *zip_file* from workspace files matching *glob*."""
        ...  # pragma: no cover

    def unzip_test(self, zip_file: str) -> bool:
        """Return ``True`` when *zip_file* is a readable, intact archive."""
        ...  # pragma: no cover

    def unzip_read(self, zip_file: str, glob: str) -> dict[str, str]:
        """Return ``{entry name: text}`` for entries matching *glob*."""
        ...  # pragma: no cover

    def read_manifest(self, file: str) -> dict[str, str]:
        """Return the main attributes of the jar/war manifest in *file*."""
        ...  # pragma: no cover

    def tool(self, name: str, type: str) -> str:
        """Install (or locate) a named tool and return its home directory."""
        ...  # pragma: no cover

    def parallel(self, branches: Mapping[str, Callable[[], None]]) -> None:
        """Run every branch concurrently; raise if any branch failed."""
        ...  # pragma: no cover
