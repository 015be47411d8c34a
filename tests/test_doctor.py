"""Tests for the ``ath-pipeline doctor`` command (cli/doctor.py).

Tool detection is mocked, so no mvn, java or wget is needed.

Coverage:
* Individual check functions return correct tuples.
* Doctor returns SUCCESS when required tools are present.
* Doctor returns GENERAL_ERROR when a required tool is missing.
* CLI routing dispatches to ``run_doctor``.
"""

from __future__ import annotations

from pathlib import Path
from unittest.mock import MagicMock, patch

from ath_pipeline.cli import exit_codes
from ath_pipeline.config import Settings
from ath_pipeline.infra.tool_detector import ToolStatus


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _found(executable: str) -> ToolStatus:
    return ToolStatus(
        executable=executable,
        found=True,
        path=Path(f"/usr/bin/{executable}"),
        install_commands=(),
    )


def _missing(executable: str) -> ToolStatus:
    return ToolStatus(
        executable=executable,
        found=False,
        path=None,
        install_commands=(f"sudo apt install {executable}",),
    )


def _settings(tmp_path: Path) -> Settings:
    settings = Settings()
    settings.ATH_PIPELINE_HOME = tmp_path / ".ath-pipeline"
    return settings


# ---------------------------------------------------------------------------
# Individual check functions
# ---------------------------------------------------------------------------

class TestPythonVersionCheck:
    def test_returns_tuple(self) -> None:
        from ath_pipeline.cli.doctor import _python_version_check

        label, value, status = _python_version_check()
        assert label == "Python"
        assert isinstance(value, str)
        assert "OK" in status


class TestToolCheck:
    def test_found(self) -> None:
        from ath_pipeline.cli.doctor import _tool_check

        label, value, status = _tool_check(_found("mvn"), required=True)
        assert label == "mvn"
        assert value == str(Path("/usr/bin/mvn"))
        assert "OK" in status

    def test_required_missing_fails(self) -> None:
        from ath_pipeline.cli.doctor import _tool_check

        _, value, status = _tool_check(_missing("java"), required=True)
        assert value == "not found"
        assert "FAIL" in status

    def test_optional_missing_warns(self) -> None:
        from ath_pipeline.cli.doctor import _tool_check

        _, _, status = _tool_check(_missing("wget"), required=False)
        assert "WARN" in status


class TestHomeCheck:
    def test_writable_parent(self, tmp_path: Path) -> None:
        from ath_pipeline.cli.doctor import _home_check

        label, value, status = _home_check(_settings(tmp_path))
        assert label == "Home"
        assert value == str(tmp_path / ".ath-pipeline")
        assert "OK" in status

    def test_missing_parent(self, tmp_path: Path) -> None:
        from ath_pipeline.cli.doctor import _home_check

        settings = Settings()
        settings.ATH_PIPELINE_HOME = tmp_path / "missing" / "home"
        assert "FAIL" in _home_check(settings)[2]


class TestAthPipelineVersionCheck:
    def test_returns_current_version(self) -> None:
        from ath_pipeline.cli.doctor import _ath_pipeline_version_check
        from ath_pipeline.version import __version__

        label, value, status = _ath_pipeline_version_check()
        assert label == "ath-pipeline"
        assert value == __version__
        assert "OK" in status


# ---------------------------------------------------------------------------
# run_doctor integration
# ---------------------------------------------------------------------------

class TestRunDoctor:
    @patch("ath_pipeline.cli.doctor.detect_tool", side_effect=_found)
    def test_all_pass_returns_success(self, _mock_detect: MagicMock, tmp_path: Path) -> None:
        from ath_pipeline.cli.doctor import run_doctor

        assert run_doctor(_settings(tmp_path)) == exit_codes.SUCCESS

    @patch("ath_pipeline.cli.doctor.detect_tool")
    def test_wget_missing_still_succeeds(self, mock_detect: MagicMock, tmp_path: Path) -> None:
        """wget missing is a WARN, not a FAIL."""
        from ath_pipeline.cli.doctor import run_doctor

        mock_detect.side_effect = lambda name: _missing(name) if name == "wget" else _found(name)
        assert run_doctor(_settings(tmp_path)) == exit_codes.SUCCESS

    @patch("ath_pipeline.cli.doctor.detect_tool")
    def test_maven_missing_fails(self, mock_detect: MagicMock, tmp_path: Path) -> None:
        from ath_pipeline.cli.doctor import run_doctor

        mock_detect.side_effect = lambda name: _missing(name) if name == "mvn" else _found(name)
        with patch("ath_pipeline.cli.doctor.console") as mock_console:
            code = run_doctor(_settings(tmp_path))

        assert code == exit_codes.GENERAL_ERROR
        printed = [str(c.args[0]) for c in mock_console.print.call_args_list if c.args]
        assert any("sudo apt install mvn" in line for line in printed)

    @patch("ath_pipeline.cli.doctor.detect_tool", side_effect=_found)
    def test_probes_every_tool(self, mock_detect: MagicMock, tmp_path: Path) -> None:
        from ath_pipeline.cli.doctor import run_doctor

        run_doctor(_settings(tmp_path))
        assert [c.args[0] for c in mock_detect.call_args_list] == ["mvn", "java", "wget"]


# ---------------------------------------------------------------------------
# CLI routing
# ---------------------------------------------------------------------------

class TestDoctorRouting:
    @patch("ath_pipeline.cli.doctor.run_doctor", return_value=exit_codes.SUCCESS)
    def test_doctor_dispatches(self, mock_run: MagicMock) -> None:
        from ath_pipeline.cli.app import main

        assert main(["doctor"]) == exit_codes.SUCCESS
        mock_run.assert_called_once()

    @patch("ath_pipeline.cli.doctor.run_doctor", return_value=exit_codes.GENERAL_ERROR)
    def test_doctor_failure_propagates(self, mock_run: MagicMock) -> None:
        from ath_pipeline.cli.app import main

        assert main(["doctor"]) == exit_codes.GENERAL_ERROR
