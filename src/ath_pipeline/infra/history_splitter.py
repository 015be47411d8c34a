"""Count-driven test splitting from previous surefire reports.

The known test classes are read from the JUnit XML reports of the last
run, sorted, and cut into contiguous buckets of near-equal size.  Each
split is expressed as an exclusion list: the source and class file
patterns of every test in the *other* buckets.  Tests unknown to the
history are excluded nowhere, so they run in every split.
"""

from __future__ import annotations

import logging
import xml.etree.ElementTree as ET
from pathlib import Path

from ath_pipeline.core.models import CountDrivenParallelism

logger = logging.getLogger(__name__)


class HistoryTestSplitter:
    """Concrete :class:`~ath_pipeline.core.protocols.SplitProvider`.

    Parameters
    ----------
    history_dir:
        Directory searched recursively for ``*.xml`` JUnit reports.
    """

    def __init__(self, history_dir: Path) -> None:
        self._history_dir = history_dir

    def known_tests(self) -> list[str]:
        """Return the sorted, de-duplicated test class names in the history."""
        if not self._history_dir.is_dir():
            return []
        classes: set[str] = set()
        for report in sorted(self._history_dir.rglob("*.xml")):
            try:
                root = ET.parse(report).getroot()
            except (ET.ParseError, OSError) as exc:
                logger.warning("Skipping unreadable test report %s: %s", report, exc)
                continue
            for case in root.iter("testcase"):
                name = case.get("classname")
                if name:
                    classes.add(name)
        return sorted(classes)

    def split_tests(self, parallelism: CountDrivenParallelism) -> list[list[str]]:
        """Return one exclusion list per split (see module docstring)."""
        tests = self.known_tests()
        if not tests:
            logger.info("No test history found in %s; running a single split.", self._history_dir)
            return [[]]

        buckets = partition(tests, parallelism.size)
        logger.info(
            "Split %d known test classes into %d buckets.", len(tests), len(buckets)
        )
        splits: list[list[str]] = []
        for i in range(len(buckets)):
            excluded = [name for j, bucket in enumerate(buckets) if j != i for name in bucket]
            splits.append(exclusion_patterns(excluded))
        return splits


def partition(items: list[str], size: int) -> list[list[str]]:
    """Cut *items* into at most *size* contiguous, near-equal buckets.

    The first ``len(items) % n`` buckets get one extra item.
    """
    n = max(1, min(size, len(items)))
    n_batch, n_rest = divmod(len(items), n)
    buckets: list[list[str]] = []
    offset = 0
    for index in range(n):
        count = n_batch + (1 if index < n_rest else 0)
        buckets.append(items[offset:offset + count])
        offset += count
    return buckets


def exclusion_patterns(class_names: list[str]) -> list[str]:
    """Map fully qualified class names to surefire exclude patterns."""
    patterns: list[str] = []
    for name in class_names:
        path = name.replace(".", "/")
        patterns.append(f"{path}.java")
        patterns.append(f"{path}.class")
    return patterns
