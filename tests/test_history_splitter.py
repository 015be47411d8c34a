"""Tests for count-driven test splitting (infra/history_splitter.py).

Reports are written under ``tmp_path``, so no real test history is needed.
"""

from __future__ import annotations

from pathlib import Path

from ath_pipeline.core.models import CountDrivenParallelism
from ath_pipeline.infra.history_splitter import HistoryTestSplitter, exclusion_patterns, partition


def _report(directory: Path, *class_names: str) -> None:
    directory.mkdir(parents=True, exist_ok=True)
    cases = "".join(
        f'<testcase classname="{name}" name="test" time="1.0"/>' for name in class_names
    )
    path = directory / f"TEST-{class_names[0]}.xml"
    path.write_text(
        f'<?xml version="1.0"?><testsuite name="{class_names[0]}" tests="{len(class_names)}">'
        f"{cases}</testsuite>",
        encoding="utf-8",
    )


# ---------------------------------------------------------------------------
# partition / exclusion_patterns
# ---------------------------------------------------------------------------

class TestPartition:
    def test_near_equal_contiguous(self) -> None:
        items = [str(i) for i in range(10)]
        buckets = partition(items, 3)
        assert [len(b) for b in buckets] == [4, 3, 3]
        assert [x for b in buckets for x in b] == items

    def test_size_capped_by_items(self) -> None:
        assert partition(["a", "b"], 7) == [["a"], ["b"]]

    def test_non_positive_size_is_one_bucket(self) -> None:
        assert partition(["a", "b"], 0) == [["a", "b"]]


class TestExclusionPatterns:
    def test_source_and_class_patterns(self) -> None:
        assert exclusion_patterns(["org.example.FooTest"]) == [
            "org/example/FooTest.java",
            "org/example/FooTest.class",
        ]


# ---------------------------------------------------------------------------
# HistoryTestSplitter
# ---------------------------------------------------------------------------

class TestHistoryTestSplitter:
    def test_no_history_dir(self, tmp_path: Path) -> None:
        splitter = HistoryTestSplitter(tmp_path / "missing")
        assert splitter.split_tests(CountDrivenParallelism(7)) == [[]]

    def test_empty_history(self, tmp_path: Path) -> None:
        assert HistoryTestSplitter(tmp_path).split_tests(CountDrivenParallelism(7)) == [[]]

    def test_known_tests_deduplicated_and_sorted(self, tmp_path: Path) -> None:
        _report(tmp_path / "a", "z.ZTest", "a.ATest")
        _report(tmp_path / "b" / "nested", "a.ATest", "m.MTest")
        assert HistoryTestSplitter(tmp_path).known_tests() == ["a.ATest", "m.MTest", "z.ZTest"]

    def test_unreadable_report_is_skipped(self, tmp_path: Path) -> None:
        _report(tmp_path, "a.ATest")
        (tmp_path / "broken.xml").write_text("<testsuite", encoding="utf-8")
        assert HistoryTestSplitter(tmp_path).known_tests() == ["a.ATest"]

    def test_each_split_excludes_the_other_buckets(self, tmp_path: Path) -> None:
        names = [f"pkg.T{i}Test" for i in range(14)]
        _report(tmp_path, *names)

        splits = HistoryTestSplitter(tmp_path).split_tests(CountDrivenParallelism(7))

        assert len(splits) == 7
        owned: list[set[str]] = []
        for split in splits:
            excluded = {p[: -len(".java")].replace("/", ".") for p in split if p.endswith(".java")}
            owned.append(set(names) - excluded)
        assert all(len(bucket) == 2 for bucket in owned)
        for i, bucket in enumerate(owned):
            for j, other in enumerate(owned):
                if i != j:
                    assert not bucket & other
        assert set().union(*owned) == set(names)

    def test_fewer_tests_than_splits(self, tmp_path: Path) -> None:
        _report(tmp_path, "a.ATest", "b.BTest", "c.CTest")
        splits = HistoryTestSplitter(tmp_path).split_tests(CountDrivenParallelism(7))
        assert len(splits) == 3
        assert splits[0] == ["b/BTest.java", "b/BTest.class", "c/CTest.java", "c/CTest.class"]
