"""Core / service layer — pipeline orchestration over an injected host.

Rules
-----
* No ``print()`` calls.
* No direct filesystem, network or subprocess access, only through
  :class:`~ath_pipeline.core.protocols.PipelineHost`.
* No imports from ``cli`` or ``infra``.
"""

from ath_pipeline.core.ath_service import AthService
from ath_pipeline.core.models import (
    ArtifactSource,
    Branch,
    BuildContext,
    CountDrivenParallelism,
    MavenSource,
    PlainUrlSource,
    SpecificBuildSelector,
    StableSource,
    StatusBuildSelector,
    WarSource,
)
from ath_pipeline.core.protocols import PipelineHost, SplitProvider
from ath_pipeline.core.url_parser import parse_war_url
from ath_pipeline.core.version_reader import get_jenkins_version
from ath_pipeline.core.war_service import WarStashService

__all__: list[str] = [
    "ArtifactSource",
    "AthService",
    "Branch",
    "BuildContext",
    "CountDrivenParallelism",
    "MavenSource",
    "PipelineHost",
    "PlainUrlSource",
    "SpecificBuildSelector",
    "SplitProvider",
    "StableSource",
    "StatusBuildSelector",
    "WarSource",
    "WarStashService",
    "get_jenkins_version",
    "parse_war_url",
]
