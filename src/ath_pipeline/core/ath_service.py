"""Core ATH service — splits the acceptance test harness into branches.

The split is ``parallel_count`` exclusion-list branches plus one fixed
branch for the cucumber tests.  When the splitter has no test history to
base the split on it returns a single split, giving ``1 + cucumber``.

Assumes :meth:`WarStashService.stash_jenkins_war` and
:meth:`AthService.stash_ath` have run before any branch executes.
"""

from __future__ import annotations

import functools
import logging
from collections.abc import Callable, Sequence

from ath_pipeline.config import Settings
from ath_pipeline.core.maven_env import with_maven_env
from ath_pipeline.core.models import Branch, BuildContext, CountDrivenParallelism
from ath_pipeline.core.protocols import PipelineHost
from ath_pipeline.core.war_service import WAR_STASH
from ath_pipeline.exceptions import AthPipelineError

logger = logging.getLogger(__name__)

ATH_STASH = "ath-stash"
DEFAULT_PARALLEL_COUNT = 7
CUCUMBER_BRANCH = "ath-split-cucumber"
CUCUMBER_SPLIT_ID = "split-cucumber"
EXCLUDES_FILE = "excludes.txt"
SUREFIRE_REPORTS = "target/surefire-reports/*.xml"
DIAGNOSTICS = "**/target/diagnostics/**"


class AthService:
    """Builds and runs the parallel ATH branches.

    Parameters
    ----------
    host:
        Any object satisfying the :class:`PipelineHost` protocol.
    build:
        The running build; ``ATH_LABEL`` is read from its env.
    settings:
        Tool names, default label and the per-branch timeout.
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

    def ath_label(self) -> str:
        """Node label for ATH work: ``ATH_LABEL`` when set, else the default."""
        return self._build.env.get("ATH_LABEL") or self._settings.ATH_DEFAULT_LABEL

    def stash_ath(self) -> None:
        """Check out the ATH sources and stash them as ``ath-stash``."""
        with self._host.node(self.ath_label()):
            self._host.checkout_scm()
            self._host.stash(ATH_STASH, excludes=".git/**")

    # ------------------------------------------------------------------
    # Branch construction
    # ------------------------------------------------------------------

    def get_ath_branches(
        self,
        node_label: str | None = None,
        archive_junit_reports: bool = False,
        rerun_failing_tests_count: int = 0,
        parallel_count: int = DEFAULT_PARALLEL_COUNT,
    ) -> dict[str, Branch]:
        """Provide the split branches for the acceptance test harness.

        Parameters
        ----------
        node_label:
            Label to run the tests on.  Defaults to :meth:`ath_label`.
        archive_junit_reports:
            Archive all the JUnit XML reports of a branch in one zip.
        rerun_failing_tests_count:
            Surefire reruns for failing tests; ``0`` disables reruns.
        parallel_count:
            Number of numeric splits to request.

        Returns
        -------
        dict[str, Branch]
            Branches keyed by name, numeric splits first, then
            ``ath-split-cucumber``.
        """
        if node_label is None:
            node_label = self.ath_label()

        splits = self._host.split_tests(CountDrivenParallelism(size=parallel_count))
        mvn_flags = f"-Dsurefire.rerunFailingTestsCount={rerun_failing_tests_count}"

        branches: dict[str, Branch] = {}
        for i, split in enumerate(splits):
            name = f"ath-split-{i}"
            branches[name] = Branch(
                name=name,
                split_id=f"split-{i}",
                exclusions=tuple(split),
                mvn_props=f"{mvn_flags} -DskipCucumberTests=true",
                node_label=node_label,
                archive_junit_reports=archive_junit_reports,
            )

        branches[CUCUMBER_BRANCH] = Branch(
            name=CUCUMBER_BRANCH,
            split_id=CUCUMBER_SPLIT_ID,
            exclusions=None,
            mvn_props=f"{mvn_flags} -Dcucumber.test=features",
            node_label=node_label,
            archive_junit_reports=archive_junit_reports,
        )
        return branches

    def as_steps(self, branches: dict[str, Branch]) -> dict[str, Callable[[], None]]:
        """Turn branches into the callables a ``parallel`` step expects."""
        return {name: functools.partial(self.run_branch, b) for name, b in branches.items()}

    def run_ath(
        self,
        node_label: str | None = None,
        archive_junit_reports: bool = False,
        rerun_failing_tests_count: int = 0,
        parallel_count: int = DEFAULT_PARALLEL_COUNT,
    ) -> dict[str, Branch]:
        """Build the branches and run them all in parallel on the host."""
        branches = self.get_ath_branches(
            node_label,
            archive_junit_reports,
            rerun_failing_tests_count,
            parallel_count,
        )
        logger.info("Running %d ATH branches: %s", len(branches), ", ".join(branches))
        self._host.parallel(self.as_steps(branches))
        return branches

    # ------------------------------------------------------------------
    # Branch execution
    # ------------------------------------------------------------------

    def run_branch(self, branch: Branch) -> None:
        """Execute one :class:`Branch`."""
        self.single_ath_branch(
            branch.exclusions,
            branch.mvn_props,
            branch.split_id,
            branch.node_label,
            branch.archive_junit_reports,
        )

    def single_ath_branch(
        self,
        exclusions: Sequence[str] | None,
        mvn_props: str,
        split_id: str,
        node_label: str | None,
        archive_junit_reports: bool = False,
    ) -> None:
        """Run the ATH with *exclusions* on a node and collect the results.

        Report and diagnostics collection is best-effort: a missing
        report or diagnostics directory is logged, never raised.
        """
        host = self._host
        if node_label is None:
            node_label = self.ath_label()

        with host.node(node_label):
            host.unstash(ATH_STASH)
            host.unstash(WAR_STASH)
            if exclusions is not None:
                exclude_str = "\n".join(exclusions)
                host.write_file(EXCLUDES_FILE, exclude_str)
                logger.info("%s", exclude_str)

            with host.timeout(self._settings.ATH_TIMEOUT_HOURS):
                with host.virtual_display(), with_maven_env(
                    host,
                    self._settings.ATH_DEFAULT_MAVEN,
                    self._settings.ATH_DEFAULT_JDK,
                ):
                    host.sh(self.test_command(mvn_props))

                try:
                    host.junit(SUREFIRE_REPORTS, attachments=True)
                    if archive_junit_reports:
                        zip_name = f"junitReports-{split_id}.zip"
                        host.zip(zip_name, f"**/{SUREFIRE_REPORTS}")
                        host.archive(zip_name)
                except AthPipelineError as exc:
                    logger.info("No test reports found.")
                    logger.debug("Report collection failed for %s: %s", split_id, exc)

                try:
                    host.archive(DIAGNOSTICS)
                except AthPipelineError as exc:
                    logger.info("No diagnostics found.")
                    logger.debug("Diagnostics collection failed for %s: %s", split_id, exc)

    @staticmethod
    def test_command(mvn_props: str) -> str:
        """Return the Maven test invocation for a branch."""
        return f"mvn clean test -B -Dmaven.test.failure.ignore=true -DforkCount=1 {mvn_props}"
