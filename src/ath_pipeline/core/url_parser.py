"""War URL parsing — turns a fetch URL into a :data:`WarSource` variant.

Accepted forms:

* ``mvn://groupId:artifactId:version[:war]``
* ``artifact://full/path/to/job/buildNr#dir/artifact.ext``
* ``stable://full/path/to/job#dir/artifact.ext``
* anything else is treated as a plain HTTP(S) URL.

Pure functions only: no I/O, no logging.
"""

from __future__ import annotations

import re

from ath_pipeline.core.models import (
    ArtifactSource,
    MavenSource,
    PlainUrlSource,
    StableSource,
    WarSource,
)
from ath_pipeline.exceptions import MalformedUrlError, MissingParameterError

MAVEN_SCHEME = "mvn://"
ARTIFACT_SCHEME = "artifact://"
STABLE_SCHEME = "stable://"

_ARTIFACT_PATTERN = re.compile(r"^artifact://([/\w\-_ .]+)/(\d+)/?#([/\w.\-_]+)$")
_STABLE_PATTERN = re.compile(r"^stable://([/\w\-_ .]+)#([/\w.\-_]+)$")

_ARTIFACT_FORMAT = "artifact://full/path/to/job/buildNr#dir/artifact.ext"
_STABLE_FORMAT = "stable://full/path/to/job#dir/artifact.ext"


def get_components_from_artifact_url(url: str) -> dict[str, str]:
    """Split an ``artifact://`` URL into ``item``, ``run`` and ``artifact``.

    Raises
    ------
    MalformedUrlError
        When *url* does not match the expected format.
    """
    match = _ARTIFACT_PATTERN.match(url)
    if match is None:
        raise MalformedUrlError(
            f"Expected format: '{_ARTIFACT_FORMAT}' but got '{url}'",
        )
    return {
        "item": match.group(1),
        "run": match.group(2),
        "artifact": match.group(3),
    }


def get_components_from_latest_stable_url(url: str) -> dict[str, str]:
    """Split a ``stable://`` URL into ``item`` and ``artifact``.

    There is no ``run`` component; the latest stable build is implied.

    Raises
    ------
    MalformedUrlError
        When *url* does not match the expected format.
    """
    match = _STABLE_PATTERN.match(url)
    if match is None:
        raise MalformedUrlError(
            f"Expected format: '{_STABLE_FORMAT}' but got '{url}'",
        )
    return {
        "item": match.group(1),
        "artifact": match.group(2),
    }


def maven_coordinates(url: str) -> str:
    """Strip the ``mvn://`` scheme and make sure the packaging is ``war``."""
    dependency = url[len(MAVEN_SCHEME):]
    if not dependency.endswith(":war"):
        dependency += ":war"
    return dependency


def parse_war_url(url: str | None) -> WarSource:
    """Classify *url* into one of the :data:`WarSource` variants.

    Raises
    ------
    MissingParameterError
        When *url* is ``None`` or blank.
    MalformedUrlError
        When an ``artifact://`` or ``stable://`` URL is malformed.
    """
    if url is None or not url.strip():
        raise MissingParameterError(
            "required parameter url is missing",
            hint="Pass an mvn://, artifact://, stable:// or http(s):// URL.",
        )

    if url.startswith(MAVEN_SCHEME):
        return MavenSource(coordinates=maven_coordinates(url))
    if url.startswith(ARTIFACT_SCHEME):
        comp = get_components_from_artifact_url(url)
        return ArtifactSource(item=comp["item"], run=comp["run"], artifact=comp["artifact"])
    if url.startswith(STABLE_SCHEME):
        comp = get_components_from_latest_stable_url(url)
        return StableSource(item=comp["item"], artifact=comp["artifact"])
    return PlainUrlSource(url=url)
