"""Tests for domain models (core/models.py).

Value objects are frozen dataclasses; these tests verify immutability,
equality semantics and the one mutable piece of build state.
"""

from __future__ import annotations

import dataclasses

import pytest

from ath_pipeline.core.models import (
    ArtifactSource,
    Branch,
    BuildContext,
    CountDrivenParallelism,
    MavenSource,
    SpecificBuildSelector,
    StatusBuildSelector,
)


# ---------------------------------------------------------------------------
# Value objects
# ---------------------------------------------------------------------------

class TestValueObjects:
    def test_sources_are_frozen(self) -> None:
        source = MavenSource("g:a:1:war")
        with pytest.raises(dataclasses.FrozenInstanceError):
            source.coordinates = "x"  # type: ignore[misc]

    def test_equality(self) -> None:
        assert ArtifactSource("job", "1", "a.war") == ArtifactSource("job", "1", "a.war")
        assert SpecificBuildSelector("1") != SpecificBuildSelector("2")
        assert StatusBuildSelector() == StatusBuildSelector(stable=True)

    def test_parallelism_is_hashable(self) -> None:
        assert len({CountDrivenParallelism(7), CountDrivenParallelism(7)}) == 1

    def test_branch_defaults(self) -> None:
        branch = Branch("ath-split-0", "split-0", (), "", "hi-speed")
        assert branch.archive_junit_reports is False
        with pytest.raises(dataclasses.FrozenInstanceError):
            branch.node_label = "other"  # type: ignore[misc]


# ---------------------------------------------------------------------------
# BuildContext
# ---------------------------------------------------------------------------

class TestBuildContext:
    def test_defaults(self) -> None:
        build = BuildContext()
        assert build.env == {}
        assert build.description is None

    def test_append_starts_description(self) -> None:
        build = BuildContext()
        build.append_description("2.60.1")
        assert build.description == "2.60.1"

    def test_append_concatenates(self) -> None:
        build = BuildContext(description="core ")
        build.append_description("2.60.1")
        assert build.description == "core 2.60.1"

    def test_env_not_shared(self) -> None:
        assert BuildContext().env is not BuildContext().env
