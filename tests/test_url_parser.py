"""Tests for war URL parsing (core/url_parser.py).

Coverage:
* ``artifact://`` component extraction and malformed inputs.
* ``stable://`` component extraction and malformed inputs.
* Variant dispatch in ``parse_war_url``.
* Maven coordinate normalisation.
"""

from __future__ import annotations

import pytest

from ath_pipeline.core.models import ArtifactSource, MavenSource, PlainUrlSource, StableSource
from ath_pipeline.core.url_parser import (
    get_components_from_artifact_url,
    get_components_from_latest_stable_url,
    maven_coordinates,
    parse_war_url,
)
from ath_pipeline.exceptions import MalformedUrlError, MissingParameterError


# ---------------------------------------------------------------------------
# artifact://
# ---------------------------------------------------------------------------

class TestArtifactUrl:
    def test_simple(self) -> None:
        comp = get_components_from_artifact_url("artifact://job/42#dir/file.war")
        assert comp == {"item": "job", "run": "42", "artifact": "dir/file.war"}

    def test_folder_path_and_trailing_slash(self) -> None:
        comp = get_components_from_artifact_url(
            "artifact://folder/sub folder/my-job/1234/#target/jenkins.war"
        )
        assert comp["item"] == "folder/sub folder/my-job"
        assert comp["run"] == "1234"
        assert comp["artifact"] == "target/jenkins.war"

    @pytest.mark.parametrize(
        "url",
        [
            "artifact://job/42/dir/file.war",
            "artifact://job/abc#file.war",
            "artifact://job#file.war",
            "artifact://job/42#",
            "artifact://job/42#file?.war",
        ],
    )
    def test_malformed(self, url: str) -> None:
        with pytest.raises(MalformedUrlError) as exc_info:
            get_components_from_artifact_url(url)
        assert url in str(exc_info.value)

    def test_malformed_message_is_verbatim(self) -> None:
        with pytest.raises(MalformedUrlError) as exc_info:
            get_components_from_artifact_url("artifact://nope")
        assert str(exc_info.value) == (
            "Expected format: 'artifact://full/path/to/job/buildNr#dir/artifact.ext' "
            "but got 'artifact://nope'"
        )


# ---------------------------------------------------------------------------
# stable://
# ---------------------------------------------------------------------------

class TestStableUrl:
    def test_simple(self) -> None:
        comp = get_components_from_latest_stable_url("stable://job#file.war")
        assert comp == {"item": "job", "artifact": "file.war"}
        assert "run" not in comp

    def test_folder_path(self) -> None:
        comp = get_components_from_latest_stable_url("stable://core/jenkins/master#war/target/jenkins.war")
        assert comp == {"item": "core/jenkins/master", "artifact": "war/target/jenkins.war"}

    @pytest.mark.parametrize("url", ["stable://job", "stable://#file.war", "stable://job#a#b"])
    def test_malformed(self, url: str) -> None:
        with pytest.raises(MalformedUrlError) as exc_info:
            get_components_from_latest_stable_url(url)
        assert url in str(exc_info.value)
        assert "stable://full/path/to/job#dir/artifact.ext" in str(exc_info.value)


# ---------------------------------------------------------------------------
# Dispatch
# ---------------------------------------------------------------------------

class TestParseWarUrl:
    def test_maven(self) -> None:
        source = parse_war_url("mvn://org.jenkins-ci.main:jenkins-war:1.609.1:war")
        assert source == MavenSource(coordinates="org.jenkins-ci.main:jenkins-war:1.609.1:war")

    def test_artifact(self) -> None:
        source = parse_war_url("artifact://job/42#dir/file.war")
        assert source == ArtifactSource(item="job", run="42", artifact="dir/file.war")

    def test_stable(self) -> None:
        assert parse_war_url("stable://job#file.war") == StableSource(item="job", artifact="file.war")

    def test_plain_url(self) -> None:
        url = "https://updates.jenkins.io/download/war/2.60.1/jenkins.war"
        assert parse_war_url(url) == PlainUrlSource(url=url)

    @pytest.mark.parametrize("url", [None, "", "   "])
    def test_missing(self, url: str | None) -> None:
        with pytest.raises(MissingParameterError, match="required parameter url is missing"):
            parse_war_url(url)

    def test_malformed_artifact_propagates(self) -> None:
        with pytest.raises(MalformedUrlError):
            parse_war_url("artifact://job#file.war")


class TestMavenCoordinates:
    def test_appends_war_packaging(self) -> None:
        assert maven_coordinates("mvn://org.jenkins-ci.main:jenkins-war:2.60.1") == (
            "org.jenkins-ci.main:jenkins-war:2.60.1:war"
        )

    def test_keeps_existing_war_packaging(self) -> None:
        assert maven_coordinates("mvn://g:a:1.0:war") == "g:a:1.0:war"
