"""
Configuration settings for ath-pipeline.
Environment variables override defaults.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field, fields
from pathlib import Path


@dataclass
class Settings:
    """Pipeline configuration"""

    # Local host layout
    ATH_PIPELINE_HOME: Path = field(default_factory=lambda: Path.cwd() / ".ath-pipeline")
    JENKINS_HOME: Path = field(default_factory=lambda: Path.home() / ".jenkins")

    # Nodes
    ATH_DEFAULT_LABEL: str = "hi-speed"
    ATH_MAX_WORKERS: int = 8

    # Tools
    ATH_DEFAULT_MAVEN: str = "Maven 3.x"
    ATH_DEFAULT_JDK: str = "JDK 8u74"
    ATH_MAVEN_HOME: str = ""
    ATH_JDK_HOME: str = ""

    # Test runs
    ATH_TIMEOUT_HOURS: float = 6.0  # per branch
    ATH_TEST_HISTORY: str = ""
    ATH_SCM_DIR: str = ""
    ATH_DISPLAY: str = ""

    def __post_init__(self) -> None:
        """Load from environment variables"""
        for f in fields(self):
            env_value = os.getenv(f.name)
            if env_value is None:
                continue
            if f.type in (bool, "bool"):
                setattr(self, f.name, env_value.lower() in ("true", "1", "yes"))
            elif f.type in (int, "int"):
                setattr(self, f.name, int(env_value))
            elif f.type in (float, "float"):
                setattr(self, f.name, float(env_value))
            elif f.type in (Path, "Path"):
                setattr(self, f.name, Path(env_value).expanduser())
            else:
                setattr(self, f.name, env_value)

    @property
    def tool_homes(self) -> dict[str, str]:
        """Explicitly configured tool installations, keyed by tool name."""
        homes: dict[str, str] = {}
        if self.ATH_MAVEN_HOME:
            homes[self.ATH_DEFAULT_MAVEN] = self.ATH_MAVEN_HOME
        if self.ATH_JDK_HOME:
            homes[self.ATH_DEFAULT_JDK] = self.ATH_JDK_HOME
        return homes
