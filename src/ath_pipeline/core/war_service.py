"""Core war service — fetches, verifies and stashes ``jenkins.war``.

The fetched war is left in the ``jenkins.war`` stash for later stages
of the flow (see :mod:`ath_pipeline.core.ath_service`).

Guarantees
----------
* Every host interaction goes through the injected
  :class:`~ath_pipeline.core.protocols.PipelineHost`.
* Only :class:`~ath_pipeline.exceptions.AthPipelineError` subclasses
  escape.
"""

from __future__ import annotations

import logging
import shlex

from ath_pipeline.config import Settings
from ath_pipeline.core.maven_env import timestamped_node, with_maven_env
from ath_pipeline.core.models import (
    ArtifactSource,
    BuildContext,
    MavenSource,
    PlainUrlSource,
    SpecificBuildSelector,
    StableSource,
    StatusBuildSelector,
    WarSource,
)
from ath_pipeline.core.protocols import PipelineHost
from ath_pipeline.core.url_parser import parse_war_url
from ath_pipeline.core.version_reader import get_jenkins_version
from ath_pipeline.exceptions import CorruptedArchiveError

logger = logging.getLogger(__name__)

WAR_FILE = "jenkins.war"
WAR_STASH = "jenkins.war"
WAR_WORKSPACE = "warDown"


class WarStashService:
    """Downloads and stashes ``jenkins.war`` for further use in the flow.

    Parameters
    ----------
    host:
        Any object satisfying the :class:`PipelineHost` protocol.
    build:
        The running build; its description receives the war version.
    settings:
        Tool names and the default node label.
    """

    def __init__(
        self,
        host: PipelineHost,
        build: BuildContext,
        settings: Settings | None = None,
    ) -> None:
        self._host: PipelineHost = host
        self._build: BuildContext = build
        self._settings: Settings = settings or Settings()

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def stash_jenkins_war(
        self,
        url: str | None,
        label: str | None = None,
        get_version: bool = True,
    ) -> str | None:
        """Fetch *url*, verify it and stash it as ``jenkins.war``.

        Parameters
        ----------
        url:
            ``mvn://``, ``artifact://``, ``stable://`` or plain URL.
        label:
            Node label to run on.  Defaults to the configured label
            (``hi-speed``).
        get_version:
            Whether to read the war's version and append it to the
            build description.

        Returns
        -------
        str | None
            The discovered version, or ``None`` when not requested or
            not found.

        Raises
        ------
        MissingParameterError
            If *url* is missing.
        MalformedUrlError
            If an ``artifact://`` / ``stable://`` URL is malformed.
        CorruptedArchiveError
            If the fetched file fails the unzip self-test.
        HostStepError
            If a host step fails.
        """
        host = self._host
        version: str | None = None

        with timestamped_node(host, label or self._settings.ATH_DEFAULT_LABEL):
            with host.workspace(WAR_WORKSPACE):
                host.sh("rm -rf *")
                source = parse_war_url(url)
                self._fetch(source, url or "")

                if not host.unzip_test(WAR_FILE):
                    raise CorruptedArchiveError(f"{WAR_FILE} seems to be corrupted.")
                host.fingerprint(WAR_FILE)

                if get_version:
                    version = get_jenkins_version(host, WAR_FILE)
                    if version is not None:
                        self._build.append_description(version)
                    else:
                        logger.warning("No version found in %s", WAR_FILE)

                host.stash(WAR_STASH, includes=WAR_FILE)
                logger.info("war stashed as %s", WAR_STASH)

        return version

    # ------------------------------------------------------------------
    # Fetch strategies
    # ------------------------------------------------------------------

    def _fetch(self, source: WarSource, url: str) -> None:
        host = self._host
        match source:
            case MavenSource(coordinates=coordinates):
                logger.info("Fetching %s as Maven artifact.", url)
                with with_maven_env(
                    host,
                    self._settings.ATH_DEFAULT_MAVEN,
                    self._settings.ATH_DEFAULT_JDK,
                ):
                    host.sh(self.maven_copy_command(coordinates))
                    host.sh(f"mv `ls *.war` {WAR_FILE}")
            case ArtifactSource(item=item, run=run, artifact=artifact):
                logger.info("Fetching %s as Jenkins artifact.", url)
                host.copy_artifact(
                    project=item,
                    filter=artifact,
                    selector=SpecificBuildSelector(build_number=run),
                )
                self._rename_to_war(artifact)
            case StableSource(item=item, artifact=artifact):
                logger.info("Fetching %s as Jenkins artifact.", url)
                host.copy_artifact(
                    project=item,
                    filter=artifact,
                    selector=StatusBuildSelector(stable=True),
                )
                self._rename_to_war(artifact)
            case PlainUrlSource(url=plain):
                logger.info("Fetching %s as URL file.", url)
                host.sh(f"wget -q -O {WAR_FILE} {shlex.quote(plain)}")
            case _:
                raise TypeError(f"Unhandled war source: {source!r}")

    def _rename_to_war(self, artifact: str) -> None:
        if artifact != WAR_FILE:
            self._host.sh(f"mv {shlex.quote(artifact)} {WAR_FILE}")

    # ------------------------------------------------------------------
    # Command construction (pure)
    # ------------------------------------------------------------------

    @staticmethod
    def maven_copy_command(coordinates: str) -> str:
        """Return the ``dependency:copy`` invocation for *coordinates*."""
        return (
            "mvn -B -s settings.xml dependency:copy "
            f"-Dartifact={coordinates} -DoutputDirectory=./ -Dmdep.stripVersion=true"
        )
