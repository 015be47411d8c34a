"""Tool environment helpers shared by both pipeline entry points."""

from __future__ import annotations

from collections.abc import Iterable, Iterator
from contextlib import contextmanager

from ath_pipeline.core.protocols import PipelineHost

MAVEN_TOOL_TYPE = "hudson.tasks.Maven$MavenInstallation"
JDK_TOOL_TYPE = "hudson.model.JDK"

DEFAULT_MAVEN = "Maven 3.x"
DEFAULT_JDK = "JDK 8u74"


def default_maven() -> str:
    """Default Maven installation name."""
    return DEFAULT_MAVEN


def default_jdk() -> str:
    """Default JDK installation name."""
    return DEFAULT_JDK


def maven_env_vars(mvn_home: str, jdk_home: str) -> list[str]:
    """Return the env overlay that puts *mvn_home* and *jdk_home* first."""
    return [
        f"PATH+MVN={mvn_home}/bin",
        f"PATH+JDK={jdk_home}/bin",
        f"JAVA_HOME={jdk_home}",
        f"MAVEN_HOME={mvn_home}",
    ]


@contextmanager
def with_maven_env(
    host: PipelineHost,
    maven_name: str | None = None,
    jdk_name: str | None = None,
    env_vars: Iterable[str] = (),
) -> Iterator[None]:
    """Install Maven and a JDK on the node and run the block with them.

    Tool installation goes through ``host.tool``, which installs the
    tool on the current node when needed.  *env_vars* are appended after
    the tool variables, so they may override them.
    """
    if maven_name is None:
        maven_name = default_maven()
    if jdk_name is None:
        jdk_name = default_jdk()

    mvn_home = host.tool(maven_name, MAVEN_TOOL_TYPE)
    jdk_home = host.tool(jdk_name, JDK_TOOL_TYPE)

    mvn_env = maven_env_vars(mvn_home, jdk_home)
    mvn_env.extend(env_vars)

    with host.with_env(mvn_env):
        yield


@contextmanager
def timestamped_node(host: PipelineHost, label: str) -> Iterator[None]:
    """Lease a node for *label* with timestamps on all of its log output."""
    with host.node(label), host.timestamps():
        yield
