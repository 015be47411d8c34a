"""Domain models for ath-pipeline.

Value objects are **frozen** dataclasses with no behaviour beyond data
access.  They carry zero I/O and no dependencies on external packages.
The single exception is :class:`BuildContext`, whose ``description`` is
the one piece of build state the pipeline writes back.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field


# ---------------------------------------------------------------------------
# War sources (tagged union produced by the URL parser)
# ---------------------------------------------------------------------------

@dataclass(frozen=True, slots=True)
class MavenSource:
    """``mvn://groupId:artifactId:version[:war]``."""

    coordinates: str
    """Maven coordinates, always ending in ``:war``."""


@dataclass(frozen=True, slots=True)
class ArtifactSource:
    """``artifact://job/path/buildNr#artifact`` — a specific build."""

    item: str
    """Full job path."""

    run: str
    """Build number, digits only."""

    artifact: str
    """Artifact path relative to the build's archive."""


@dataclass(frozen=True, slots=True)
class StableSource:
    """``stable://job/path#artifact`` — the latest stable build."""

    item: str
    artifact: str


@dataclass(frozen=True, slots=True)
class PlainUrlSource:
    """Anything else, fetched as an HTTP(S) URL."""

    url: str


WarSource = MavenSource | ArtifactSource | StableSource | PlainUrlSource


# ---------------------------------------------------------------------------
# Host step parameters
# ---------------------------------------------------------------------------

@dataclass(frozen=True, slots=True)
class SpecificBuildSelector:
    """Copy artifacts from one numbered build."""

    build_number: str


@dataclass(frozen=True, slots=True)
class StatusBuildSelector:
    """Copy artifacts from the latest build with the given status."""

    stable: bool = True


BuildSelector = SpecificBuildSelector | StatusBuildSelector


@dataclass(frozen=True, slots=True)
class CountDrivenParallelism:
    """Ask the test splitter for *size* buckets of roughly equal test count."""

    size: int


# ---------------------------------------------------------------------------
# Ambient build state
# ---------------------------------------------------------------------------

@dataclass(slots=True)
class BuildContext:
    """Explicit replacement for ambient build variables.

    ``env`` holds the build parameters and environment visible to the
    pipeline (e.g. ``ATH_LABEL``).  ``description`` is the build's
    human-readable description, appended to by the war stash step.
    """

    env: Mapping[str, str] = field(default_factory=dict)
    description: str | None = None

    def append_description(self, text: str) -> None:
        """Append *text* to the description, starting it when empty."""
        if self.description is None:
            self.description = text
        else:
            self.description += text


# ---------------------------------------------------------------------------
# ATH branches
# ---------------------------------------------------------------------------

@dataclass(frozen=True, slots=True)
class Branch:
    """One parallel unit of acceptance-test execution."""

    name: str
    """Key under which the branch is scheduled (``ath-split-3``)."""

    split_id: str
    """Identifier used in archived file names (``split-3``)."""

    exclusions: tuple[str, ...] | None
    """Test patterns excluded from this branch, or ``None`` for none."""

    mvn_props: str
    """Branch-specific Maven property flags."""

    node_label: str
    """Label of the node the branch runs on."""

    archive_junit_reports: bool = False
    """Whether to zip and archive the raw surefire reports."""
