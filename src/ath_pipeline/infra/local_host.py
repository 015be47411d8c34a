"""Local filesystem implementation of :class:`~ath_pipeline.core.protocols.PipelineHost`.

Runs the pipeline on the current machine, with a Jenkins-like layout
under ``ATH_PIPELINE_HOME``::

    workspace/<name>          named and per-lease node workspaces
    stashes/<name>/           stash contents
    archive/                  archived build artifacts
    test-reports/<ws>/        published JUnit reports (next run's history)
    fingerprints.json         MD5 fingerprints of recorded files

``copy_artifact`` reads other jobs' archives from ``JENKINS_HOME`` in
the controller's on-disk layout (``jobs/<a>/jobs/<b>/builds/<n>/archive``);
the last stable build is found through the ``lastStable`` symlink or the
``builds/permalinks`` file.

Every OS, subprocess and zip exception is caught here and re-raised as
:class:`~ath_pipeline.exceptions.HostStepError`.
"""

from __future__ import annotations

import hashlib
import itertools
import json
import logging
import os
import re
import shutil
import signal
import subprocess
import threading
import time
import xml.etree.ElementTree as ET
import zipfile
from collections.abc import Callable, Iterable, Iterator, Mapping
from concurrent.futures import ThreadPoolExecutor
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path

from ath_pipeline.config import Settings
from ath_pipeline.core.maven_env import JDK_TOOL_TYPE, MAVEN_TOOL_TYPE
from ath_pipeline.core.models import (
    BuildSelector,
    CountDrivenParallelism,
    SpecificBuildSelector,
    StatusBuildSelector,
)
from ath_pipeline.core.protocols import SplitProvider
from ath_pipeline.core.version_reader import parse_manifest
from ath_pipeline.exceptions import AthPipelineError, HostStepError
from ath_pipeline.infra.history_splitter import HistoryTestSplitter
from ath_pipeline.infra.tool_detector import require_tool

logger = logging.getLogger(__name__)

MANIFEST_ENTRY = "META-INF/MANIFEST.MF"

_TOOL_EXECUTABLES: dict[str, str] = {
    MAVEN_TOOL_TYPE: "mvn",
    JDK_TOOL_TYPE: "java",
}


# ---------------------------------------------------------------------------
# Ant-style file patterns
# ---------------------------------------------------------------------------

def ant_pattern_to_regex(pattern: str) -> re.Pattern[str]:
    """Compile an Ant-style pattern (``**/target/*.xml``) to a regex.

    ``**`` spans directories, ``*`` and ``?`` stay within one path
    segment, and a trailing ``/`` means everything below that directory.
    """
    pattern = pattern.strip().replace("\\", "/")
    if pattern.endswith("/"):
        pattern += "**"
    out: list[str] = []
    i = 0
    while i < len(pattern):
        if pattern.startswith("**/", i):
            out.append("(?:.*/)?")
            i += 3
        elif pattern.startswith("**", i):
            out.append(".*")
            i += 2
        elif pattern[i] == "*":
            out.append("[^/]*")
            i += 1
        elif pattern[i] == "?":
            out.append("[^/]")
            i += 1
        else:
            out.append(re.escape(pattern[i]))
            i += 1
    return re.compile("".join(out) + r"\Z")


def match_files(root: Path, includes: str, excludes: str = "") -> list[Path]:
    """Return files under *root* matching comma-separated *includes*.

    Paths are matched relative to *root* with ``/`` separators and are
    returned sorted.
    """
    include_res = [ant_pattern_to_regex(p) for p in includes.split(",") if p.strip()]
    exclude_res = [ant_pattern_to_regex(p) for p in excludes.split(",") if p.strip()]
    if not root.is_dir():
        return []
    matched: list[Path] = []
    for path in sorted(root.rglob("*")):
        if not path.is_file():
            continue
        rel = path.relative_to(root).as_posix()
        if any(r.match(rel) for r in include_res) and not any(r.match(rel) for r in exclude_res):
            matched.append(path)
    return matched


def apply_env_overrides(base: Mapping[str, str], overrides: Iterable[str]) -> dict[str, str]:
    """Apply ``KEY=value`` and ``PATH+NAME=dir`` entries to a copy of *base*.

    ``PATH+NAME=dir`` prepends *dir* to ``PATH``; later entries win.
    """
    env = dict(base)
    for entry in overrides:
        key, sep, value = entry.partition("=")
        if not sep:
            raise HostStepError(f"Invalid environment entry '{entry}', expected KEY=value")
        if "+" in key:
            var = key.split("+", 1)[0]
            current = env.get(var)
            env[var] = value if not current else f"{value}{os.pathsep}{current}"
        else:
            env[key] = value
    return env


# ---------------------------------------------------------------------------
# Host
# ---------------------------------------------------------------------------

class LocalPipelineHost:
    """Concrete :class:`PipelineHost` that runs every step on this machine.

    Scoping state (current directory, env overlay, deadline, timestamps)
    is thread-local, so branches run by :meth:`parallel` do not
    interfere with each other.

    Parameters
    ----------
    settings:
        Layout roots, tool homes, display and worker limits.
    splitter:
        Test splitter; defaults to :class:`HistoryTestSplitter` over
        ``ATH_TEST_HISTORY`` (or the host's own published reports).
    """

    def __init__(
        self,
        settings: Settings | None = None,
        splitter: SplitProvider | None = None,
    ) -> None:
        self._settings: Settings = settings or Settings()
        self.home: Path = Path(self._settings.ATH_PIPELINE_HOME)
        self.jenkins_home: Path = Path(self._settings.JENKINS_HOME)
        if splitter is None:
            history = self._settings.ATH_TEST_HISTORY
            splitter = HistoryTestSplitter(Path(history) if history else self.reports_dir)
        self._splitter: SplitProvider = splitter
        self._local = threading.local()
        self._lock = threading.Lock()
        self._leases = itertools.count()

    # ------------------------------------------------------------------
    # Layout
    # ------------------------------------------------------------------

    @property
    def workspace_root(self) -> Path:
        return self.home / "workspace"

    @property
    def stash_root(self) -> Path:
        return self.home / "stashes"

    @property
    def archive_dir(self) -> Path:
        return self.home / "archive"

    @property
    def reports_dir(self) -> Path:
        return self.home / "test-reports"

    @property
    def fingerprints_file(self) -> Path:
        return self.home / "fingerprints.json"

    # ------------------------------------------------------------------
    # Thread-local scope
    # ------------------------------------------------------------------

    @property
    def cwd(self) -> Path:
        """Current workspace directory of the calling thread."""
        stack: list[Path] = getattr(self._local, "dirs", [])
        return stack[-1] if stack else self.workspace_root

    @contextmanager
    def _scoped(self, attr: str, value: object) -> Iterator[None]:
        stack = getattr(self._local, attr, None)
        if stack is None:
            stack = []
            setattr(self._local, attr, stack)
        stack.append(value)
        try:
            yield
        finally:
            stack.pop()

    @contextmanager
    def _in_dir(self, directory: Path) -> Iterator[None]:
        try:
            directory.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise HostStepError(f"Cannot create workspace {directory}: {exc}") from exc
        with self._scoped("dirs", directory):
            yield

    def _environ(self) -> dict[str, str]:
        overrides = itertools.chain.from_iterable(getattr(self._local, "env", []))
        return apply_env_overrides(os.environ, overrides)

    def _remaining_seconds(self) -> float | None:
        deadlines: list[float] = getattr(self._local, "deadlines", [])
        if not deadlines:
            return None
        remaining = min(deadlines) - time.monotonic()
        if remaining <= 0:
            raise HostStepError("Timeout has been exceeded")
        return remaining

    def _resolve(self, file: str) -> Path:
        return self.cwd / file

    # ------------------------------------------------------------------
    # Scoping primitives
    # ------------------------------------------------------------------

    @contextmanager
    def node(self, label: str) -> Iterator[None]:
        lease = next(self._leases)
        directory = self.workspace_root / (f"{label}@{lease}" if lease else label)
        logger.info("Running on %s in %s", label, directory)
        with self._in_dir(directory):
            yield

    @contextmanager
    def workspace(self, name: str) -> Iterator[None]:
        directory = self.workspace_root / name
        logger.info("Running in %s", directory)
        with self._in_dir(directory):
            yield

    @contextmanager
    def timestamps(self) -> Iterator[None]:
        with self._scoped("timestamps", True):
            yield

    @contextmanager
    def timeout(self, hours: float) -> Iterator[None]:
        with self._scoped("deadlines", time.monotonic() + hours * 3600):
            yield

    @contextmanager
    def virtual_display(self) -> Iterator[None]:
        display = self._settings.ATH_DISPLAY
        if not display:
            logger.debug("No virtual display configured; using the inherited DISPLAY.")
            yield
            return
        with self.with_env([f"DISPLAY={display}"]):
            yield

    @contextmanager
    def with_env(self, overrides: Iterable[str]) -> Iterator[None]:
        with self._scoped("env", list(overrides)):
            yield

    # ------------------------------------------------------------------
    # Steps
    # ------------------------------------------------------------------

    def _log_line(self, line: str) -> None:
        if getattr(self._local, "timestamps", []):
            logger.info("[%s] %s", datetime.now().strftime("%H:%M:%S"), line)
        else:
            logger.info("%s", line)

    def sh(self, script: str) -> None:
        """Run *script* with ``/bin/sh``, logging its output as it arrives."""
        logger.info("+ %s", script)
        remaining = self._remaining_seconds()
        try:
            proc = subprocess.Popen(
                script,
                shell=True,
                cwd=self.cwd,
                env=self._environ(),
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,
                text=True,
                errors="replace",
                start_new_session=True,
            )
        except OSError as exc:
            raise HostStepError(f"Cannot run shell step: {exc}", hint=script) from exc

        expired = threading.Event()
        timer: threading.Timer | None = None
        if remaining is not None:
            timer = threading.Timer(remaining, _kill_process_group, (proc, expired))
            timer.daemon = True
            timer.start()
        try:
            if proc.stdout is not None:
                with proc.stdout:
                    for line in proc.stdout:
                        self._log_line(line.rstrip("\r\n"))
            returncode = proc.wait()
        finally:
            if timer is not None:
                timer.cancel()

        if expired.is_set():
            raise HostStepError("Timeout has been exceeded", hint=script)
        if returncode != 0:
            raise HostStepError(
                f"script returned exit code {returncode}",
                hint=script,
            )

    def write_file(self, file: str, text: str) -> None:
        target = self._resolve(file)
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_text(text, encoding="utf-8")
        except OSError as exc:
            raise HostStepError(f"Cannot write {file}: {exc}") from exc

    def checkout_scm(self) -> None:
        source = self._settings.ATH_SCM_DIR
        if not source:
            raise HostStepError(
                "No SCM configured for checkout.",
                hint="Set ATH_SCM_DIR to the acceptance-test-harness checkout.",
            )
        try:
            shutil.copytree(source, self.cwd, dirs_exist_ok=True, symlinks=True)
        except (OSError, shutil.Error) as exc:
            raise HostStepError(f"Checkout from {source} failed: {exc}") from exc

    def stash(self, name: str, *, includes: str = "**", excludes: str = "") -> None:
        files = match_files(self.cwd, includes, excludes)
        if not files:
            raise HostStepError(f"No files included in stash '{name}'")
        target = self.stash_root / name
        try:
            shutil.rmtree(target, ignore_errors=True)
            self._copy_relative(files, self.cwd, target)
        except OSError as exc:
            raise HostStepError(f"Stash '{name}' failed: {exc}") from exc
        logger.info("Stashed %d file(s) as '%s'", len(files), name)

    def unstash(self, name: str) -> None:
        source = self.stash_root / name
        if not source.is_dir():
            raise HostStepError(f"No such saved stash '{name}'")
        try:
            shutil.copytree(source, self.cwd, dirs_exist_ok=True)
        except (OSError, shutil.Error) as exc:
            raise HostStepError(f"Unstash '{name}' failed: {exc}") from exc

    def archive(self, pattern: str) -> None:
        files = match_files(self.cwd, pattern)
        if not files:
            raise HostStepError(f'No artifacts found that match the file pattern "{pattern}"')
        try:
            self._copy_relative(files, self.cwd, self.archive_dir)
        except OSError as exc:
            raise HostStepError(f"Archiving {pattern} failed: {exc}") from exc
        logger.info("Archived %d artifact(s) matching %s", len(files), pattern)

    def copy_artifact(
        self,
        *,
        project: str,
        filter: str,
        selector: BuildSelector,
    ) -> None:
        build_dir = self._build_dir(project, selector)
        archive = build_dir / "archive"
        files = match_files(archive, filter)
        if not files:
            raise HostStepError(
                f"Failed to copy artifacts from {project} with filter: {filter}",
            )
        try:
            self._copy_relative(files, archive, self.cwd)
        except OSError as exc:
            raise HostStepError(f"Copying artifacts from {project} failed: {exc}") from exc
        logger.info("Copied %d artifact(s) from %s", len(files), build_dir)

    def fingerprint(self, targets: str) -> None:
        files = match_files(self.cwd, targets)
        if not files:
            raise HostStepError(f"No files to fingerprint match '{targets}'")
        with self._lock:
            try:
                records: dict[str, str] = {}
                if self.fingerprints_file.is_file():
                    records = json.loads(self.fingerprints_file.read_text(encoding="utf-8"))
                for path in files:
                    records[path.relative_to(self.cwd).as_posix()] = _md5(path)
                self.fingerprints_file.parent.mkdir(parents=True, exist_ok=True)
                self.fingerprints_file.write_text(
                    json.dumps(records, indent=2, sort_keys=True), encoding="utf-8"
                )
            except (OSError, ValueError) as exc:
                raise HostStepError(f"Fingerprinting {targets} failed: {exc}") from exc

    def junit(self, test_results: str, *, attachments: bool = False) -> None:
        files = match_files(self.cwd, test_results)
        if not files:
            raise HostStepError("No test report files were found. Configuration error?")

        if attachments:
            # Surefire writes per-class output next to the XML report.
            outputs = match_files(self.cwd, test_results.rsplit("/", 1)[0] + "/*-output.txt")
            files = sorted(set(files) | set(outputs))

        totals = {"tests": 0, "failures": 0, "errors": 0, "skipped": 0}
        for report in files:
            if report.suffix != ".xml":
                continue
            try:
                root = ET.parse(report).getroot()
            except (ET.ParseError, OSError) as exc:
                raise HostStepError(f"Cannot parse test report {report}: {exc}") from exc
            suites = [root] if root.tag == "testsuite" else list(root.iter("testsuite"))
            for suite in suites:
                for key in totals:
                    totals[key] += int(suite.get(key, "0") or 0)

        target = self.reports_dir / self.cwd.name
        try:
            shutil.rmtree(target, ignore_errors=True)
            self._copy_relative(files, self.cwd, target)
        except OSError as exc:
            raise HostStepError(f"Publishing test reports failed: {exc}") from exc
        logger.info(
            "Test results: %(tests)d tests, %(failures)d failures, "
            "%(errors)d errors, %(skipped)d skipped",
            totals,
        )

    def zip(self, zip_file: str, glob: str) -> None:
        files = match_files(self.cwd, glob)
        if not files:
            raise HostStepError(f"Nothing to zip for '{glob}'")
        target = self._resolve(zip_file)
        try:
            with zipfile.ZipFile(target, "w", compression=zipfile.ZIP_DEFLATED) as zf:
                for path in files:
                    if path == target:
                        continue
                    zf.write(path, path.relative_to(self.cwd).as_posix())
        except (OSError, zipfile.BadZipFile) as exc:
            raise HostStepError(f"Creating {zip_file} failed: {exc}") from exc

    def unzip_test(self, zip_file: str) -> bool:
        try:
            with zipfile.ZipFile(self._resolve(zip_file)) as zf:
                bad = zf.testzip()
        except (OSError, zipfile.BadZipFile, EOFError, ValueError) as exc:
            logger.warning("Archive test of %s failed: %s", zip_file, exc)
            return False
        if bad is not None:
            logger.warning("Archive test of %s failed at entry %s", zip_file, bad)
            return False
        return True

    def unzip_read(self, zip_file: str, glob: str) -> dict[str, str]:
        regex = ant_pattern_to_regex(glob)
        try:
            with zipfile.ZipFile(self._resolve(zip_file)) as zf:
                return {
                    name: zf.read(name).decode("utf-8", errors="replace")
                    for name in zf.namelist()
                    if not name.endswith("/") and regex.match(name)
                }
        except (OSError, zipfile.BadZipFile) as exc:
            raise HostStepError(f"Cannot read {zip_file}: {exc}") from exc

    def read_manifest(self, file: str) -> dict[str, str]:
        content = self.unzip_read(file, MANIFEST_ENTRY)
        if not content:
            return {}
        return parse_manifest(content[MANIFEST_ENTRY])

    def tool(self, name: str, type: str) -> str:
        configured = self._settings.tool_homes.get(name)
        if configured:
            return configured
        executable = _TOOL_EXECUTABLES.get(type)
        if executable is None:
            raise HostStepError(f"Unsupported tool type '{type}' for '{name}'")
        status = require_tool(executable, tool_name=name)
        logger.debug("Using %s from %s", name, status.home)
        return str(status.home)

    def split_tests(self, parallelism: CountDrivenParallelism) -> list[list[str]]:
        return self._splitter.split_tests(parallelism)

    def parallel(self, branches: Mapping[str, Callable[[], None]]) -> None:
        if not branches:
            return
        workers = max(1, min(len(branches), self._settings.ATH_MAX_WORKERS))
        failures: dict[str, Exception] = {}
        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="branch") as pool:
            futures = {name: pool.submit(body) for name, body in branches.items()}
            for name, future in futures.items():
                exc = future.exception()
                if exc is None:
                    logger.info("Branch %s succeeded", name)
                    continue
                if not isinstance(exc, Exception):
                    raise exc
                logger.error("Branch %s failed: %s", name, exc)
                failures[name] = exc

        if failures:
            first = next(iter(failures.values()))
            hint = first.hint if isinstance(first, AthPipelineError) else None
            raise HostStepError(
                f"{len(failures)} of {len(branches)} parallel branches failed: "
                + ", ".join(failures),
                hint=hint,
            ) from first

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _build_dir(self, project: str, selector: BuildSelector) -> Path:
        job_dir = self.jenkins_home
        for part in project.strip("/").split("/"):
            job_dir = job_dir / "jobs" / part
        builds = job_dir / "builds"

        match selector:
            case SpecificBuildSelector(build_number=number):
                build_dir = builds / number
            case StatusBuildSelector(stable=stable):
                build_dir = self._permalink(builds, stable)
            case _:
                raise HostStepError(f"Unsupported build selector {selector!r}")

        if not build_dir.exists():
            raise HostStepError(
                f"Unable to find a build for artifact copy from: {project}",
                hint=f"Looked in {build_dir}",
            )
        return build_dir.resolve()

    @staticmethod
    def _permalink(builds: Path, stable: bool) -> Path:
        """Resolve the last stable (or successful) build directory.

        Older controllers keep ``lastStable`` / ``lastSuccessful``
        symlinks; current ones record ``lastStableBuild <n>`` lines in
        ``builds/permalinks`` (``-1`` when there is no such build).
        """
        link, key = ("lastStable", "lastStableBuild") if stable else (
            "lastSuccessful", "lastSuccessfulBuild"
        )
        legacy = builds / link
        if legacy.exists():
            return legacy
        permalinks = builds / "permalinks"
        try:
            text = permalinks.read_text(encoding="utf-8")
        except FileNotFoundError:
            return legacy
        except OSError as exc:
            raise HostStepError(f"Cannot read {permalinks}: {exc}") from exc
        for line in text.splitlines():
            name, _, number = line.strip().partition(" ")
            number = number.strip()
            if name == key and number.isdigit():
                return builds / number
        return legacy

    @staticmethod
    def _copy_relative(files: Iterable[Path], root: Path, target: Path) -> None:
        for path in files:
            dest = target / path.relative_to(root)
            dest.parent.mkdir(parents=True, exist_ok=True)
            shutil.copy2(path, dest)


def _md5(path: Path) -> str:
    digest = hashlib.md5()
    with path.open("rb") as fh:
        for chunk in iter(lambda: fh.read(1 << 16), b""):
            digest.update(chunk)
    return digest.hexdigest()


def _kill_process_group(proc: subprocess.Popen[str], expired: threading.Event) -> None:
    """Kill *proc* and everything it spawned once its deadline has passed."""
    expired.set()
    try:
        if hasattr(os, "killpg"):
            os.killpg(proc.pid, signal.SIGKILL)
        else:
            proc.kill()
    except (ProcessLookupError, PermissionError):
        pass
