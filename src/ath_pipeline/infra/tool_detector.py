"""Infrastructure: build tool detection and platform guidance.

Locates the executables the pipeline shells out to (``mvn``, ``java``,
``wget``) on the system PATH and provides platform-specific
installation guidance when one is missing.

Rules
-----
* Detection via :func:`shutil.which` only, no subprocess.
* No permanent PATH modification.
* No automatic installation.
* No ``print()``; callers handle user-facing output.
"""

from __future__ import annotations

import platform
import shutil
from dataclasses import dataclass
from pathlib import Path

from ath_pipeline.exceptions import ToolNotFoundError

# Executable -> (apt, dnf, brew, winget) package names.
_PACKAGES: dict[str, tuple[str, str, str, str]] = {
    "mvn": ("maven", "maven", "maven", "Apache.Maven"),
    "java": ("openjdk-17-jdk", "java-17-openjdk-devel", "openjdk@17", "Microsoft.OpenJDK.17"),
    "wget": ("wget", "wget", "wget", "JernejSimoncic.Wget"),
}


# ---------------------------------------------------------------------------
# Detection result
# ---------------------------------------------------------------------------

@dataclass(frozen=True, slots=True)
class ToolStatus:
    """Result of a tool detection probe.

    Attributes
    ----------
    executable : str
        The executable that was probed for.
    found : bool
        Whether the executable was located on PATH.
    path : Path | None
        Resolved path to the executable, or ``None``.
    install_commands : tuple[str, ...]
        Suggested shell commands for installing the tool on the current
        platform.  Empty when the tool is already present.
    """

    executable: str
    found: bool
    path: Path | None
    install_commands: tuple[str, ...]

    @property
    def home(self) -> Path | None:
        """Installation home, i.e. the parent of the ``bin`` directory."""
        if self.path is None:
            return None
        return self.path.parent.parent


# ---------------------------------------------------------------------------
# Detection logic
# ---------------------------------------------------------------------------

def detect_tool(executable: str) -> ToolStatus:
    """Probe the system for *executable*.

    Returns a :class:`ToolStatus` regardless of whether the tool is
    present; the caller decides whether to abort or merely warn.
    """
    result = shutil.which(executable)

    if result is not None:
        return ToolStatus(
            executable=executable,
            found=True,
            path=Path(result).resolve(),
            install_commands=(),
        )

    return ToolStatus(
        executable=executable,
        found=False,
        path=None,
        install_commands=_platform_install_commands(executable),
    )


def require_tool(executable: str, *, tool_name: str | None = None) -> ToolStatus:
    """Locate *executable* or raise :class:`ToolNotFoundError`."""
    status = detect_tool(executable)
    if not status.found or status.path is None:
        hint_lines: list[str] = []
        if status.install_commands:
            hint_lines.append(f"Install {executable} using one of:")
            hint_lines.extend(f"  {cmd}" for cmd in status.install_commands)
        label = f"'{tool_name}' ({executable})" if tool_name else executable
        raise ToolNotFoundError(
            f"Tool {label} is not configured and not on PATH.",
            hint="\n".join(hint_lines) if hint_lines else None,
        )
    return status


# ---------------------------------------------------------------------------
# Platform-specific install guidance
# ---------------------------------------------------------------------------

def _platform_install_commands(executable: str) -> tuple[str, ...]:
    """Return install commands for *executable* appropriate for the current OS."""
    packages = _PACKAGES.get(executable)
    if packages is None:
        return (f"Please install {executable} and put it on PATH",)
    apt, dnf, brew, winget = packages
    system = platform.system().lower()
    if system == "windows":
        return (f"winget install {winget}",)
    if system == "linux":
        return (
            f"sudo apt install {apt}",
            f"sudo dnf install {dnf}",
        )
    if system == "darwin":
        return (f"brew install {brew}",)
    return (f"Please install {executable} and put it on PATH",)
