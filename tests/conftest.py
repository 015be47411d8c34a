"""Shared pytest fixtures and configuration for the ath-pipeline test suite.

Guidelines
----------
* No internet access in any test.
* Core tests run against :class:`FakeHost`, a recording stand-in for the
  pipeline host.
* Local host tests work under ``tmp_path`` only.
* Tests must not depend on ambient ``ATH_*`` / ``JENKINS_HOME`` settings.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Iterator, Mapping
from contextlib import contextmanager
from dataclasses import fields
from typing import Any

import pytest

from ath_pipeline.config import Settings
from ath_pipeline.core.models import BuildSelector, CountDrivenParallelism
from ath_pipeline.exceptions import HostStepError


class FakeHost:
    """Records every host call as ``(name, args, kwargs)``.

    Steps listed in ``failing`` raise :class:`HostStepError`.  Scoping
    primitives record an ``enter`` call and an ``exit:<name>`` call.
    """

    def __init__(self) -> None:
        self.calls: list[tuple[str, tuple[Any, ...], dict[str, Any]]] = []
        self.failing: set[str] = set()
        self.splits: list[list[str]] = [[]]
        self.unzip_ok: bool = True
        self.zip_entries: dict[str, str] = {}
        self.manifest: dict[str, str] = {}
        self.tool_homes: dict[str, str] = {}

    # -- helpers --------------------------------------------------------

    def _record(self, name: str, *args: Any, **kwargs: Any) -> None:
        self.calls.append((name, args, kwargs))
        if name in self.failing:
            raise HostStepError(f"{name} failed")

    def names(self) -> list[str]:
        return [name for name, _, _ in self.calls]

    def calls_to(self, name: str) -> list[tuple[tuple[Any, ...], dict[str, Any]]]:
        return [(args, kwargs) for n, args, kwargs in self.calls if n == name]

    @contextmanager
    def _scope(self, name: str, *args: Any) -> Iterator[None]:
        self._record(name, *args)
        try:
            yield
        finally:
            self.calls.append((f"exit:{name}", args, {}))

    # -- scoping --------------------------------------------------------

    def node(self, label: str) -> Any:
        return self._scope("node", label)

    def workspace(self, name: str) -> Any:
        return self._scope("workspace", name)

    def timestamps(self) -> Any:
        return self._scope("timestamps")

    def timeout(self, hours: float) -> Any:
        return self._scope("timeout", hours)

    def virtual_display(self) -> Any:
        return self._scope("virtual_display")

    def with_env(self, overrides: Iterable[str]) -> Any:
        return self._scope("with_env", list(overrides))

    # -- steps ----------------------------------------------------------

    def sh(self, script: str) -> None:
        self._record("sh", script)

    def write_file(self, file: str, text: str) -> None:
        self._record("write_file", file, text)

    def checkout_scm(self) -> None:
        self._record("checkout_scm")

    def stash(self, name: str, *, includes: str = "**", excludes: str = "") -> None:
        self._record("stash", name, includes=includes, excludes=excludes)

    def unstash(self, name: str) -> None:
        self._record("unstash", name)

    def archive(self, pattern: str) -> None:
        self._record("archive", pattern)

    def copy_artifact(self, *, project: str, filter: str, selector: BuildSelector) -> None:
        self._record("copy_artifact", project=project, filter=filter, selector=selector)

    def fingerprint(self, targets: str) -> None:
        self._record("fingerprint", targets)

    def junit(self, test_results: str, *, attachments: bool = False) -> None:
        self._record("junit", test_results, attachments=attachments)

    def zip(self, zip_file: str, glob: str) -> None:
        self._record("zip", zip_file, glob)

    def unzip_test(self, zip_file: str) -> bool:
        self._record("unzip_test", zip_file)
        return self.unzip_ok

    def unzip_read(self, zip_file: str, glob: str) -> dict[str, str]:
        self._record("unzip_read", zip_file, glob)
        return {name: text for name, text in self.zip_entries.items() if name == glob}

    def read_manifest(self, file: str) -> dict[str, str]:
        self._record("read_manifest", file)
        return dict(self.manifest)

    def tool(self, name: str, type: str) -> str:
        self._record("tool", name, type)
        return self.tool_homes.get(name, f"/tools/{name.replace(' ', '_')}")

    def split_tests(self, parallelism: CountDrivenParallelism) -> list[list[str]]:
        self._record("split_tests", parallelism)
        return [list(split) for split in self.splits]

    def parallel(self, branches: Mapping[str, Callable[[], None]]) -> None:
        self._record("parallel", list(branches))
        for body in branches.values():
            body()


@pytest.fixture()
def fake_host() -> FakeHost:
    return FakeHost()


@pytest.fixture(autouse=True)
def _clean_settings_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep ambient configuration out of :class:`Settings`."""
    for f in fields(Settings):
        monkeypatch.delenv(f.name, raising=False)
    monkeypatch.delenv("ATH_LABEL", raising=False)
