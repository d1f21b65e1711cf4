"""Aggregate test report shards into a single canonical report."""

import asyncio
import logging
import uuid
from collections.abc import Iterable, Mapping, Sequence
from pathlib import Path

from boostsec.report_aggregator.classifier import flaky_predicate
from boostsec.report_aggregator.models.aggregation_options import (
    AggregationOptions,
)
from boostsec.report_aggregator.models.test_report import SummaryData, TestReport
from boostsec.report_aggregator.models.test_result import TestResult
from boostsec.report_aggregator.ownership.base import OwnershipResolver
from boostsec.report_aggregator.ownership.codeowners import load_codeowners
from boostsec.report_aggregator.shard_reader import (
    Shard,
    find_shard_files,
    load_shards,
)
from boostsec.report_aggregator.source_locator import TestSourceIndex

logger = logging.getLogger(__name__)


def _min_non_empty(a: str | None, b: str | None) -> str | None:
    values = [v for v in (a, b) if v]
    return min(values) if values else None


def _merge_outputs(
    a: Mapping[str, list[str]], b: Mapping[str, list[str]]
) -> dict[str, list[str]]:
    merged = {run_id: list(lines) for run_id, lines in a.items()}
    for run_id, lines in b.items():
        if run_id not in merged:
            merged[run_id] = list(lines)
            continue
        # Shared run ID: lexicographically smaller line list first
        first, second = sorted([merged[run_id], list(lines)])
        merged[run_id] = first + second
    return dict(sorted(merged.items()))


def _merge_test_lists(
    a: Mapping[str, list[str]], b: Mapping[str, list[str]]
) -> dict[str, list[str]]:
    return {
        package: sorted(set(a.get(package, [])) | set(b.get(package, [])))
        for package in sorted(set(a) | set(b))
    }


def merge_test_results(a: TestResult, b: TestResult) -> TestResult:
    """Merge two observations of the same test.

    Counters are summed, outcome flags OR-ed, and a test stays skipped only
    if both sides were skipped. Neither input is modified.

    Raises:
        ValueError: If the results belong to different tests

    """
    if a.key != b.key:
        raise ValueError(f"Cannot merge results of {a.key_str} and {b.key_str}")

    return TestResult(
        test_name=a.test_name,
        test_package=a.test_package,
        runs=a.runs + b.runs,
        successes=a.successes + b.successes,
        failures=a.failures + b.failures,
        skips=a.skips + b.skips,
        skipped=a.skipped and b.skipped,
        panic=a.panic or b.panic,
        package_panic=a.package_panic or b.package_panic,
        race=a.race or b.race,
        timeout=a.timeout or b.timeout,
        durations=sorted(a.durations + b.durations),
        test_path=_min_non_empty(a.test_path, b.test_path),
        code_owners=sorted(set(a.code_owners) | set(b.code_owners)),
        passed_outputs=_merge_outputs(a.passed_outputs, b.passed_outputs),
        failed_outputs=_merge_outputs(a.failed_outputs, b.failed_outputs),
        package_outputs=_merge_outputs(a.package_outputs, b.package_outputs),
    )


def merge_reports(reports: Iterable[TestReport]) -> TestReport:
    """Fold reports into one, keyed by (test_package, test_name).

    Only results, race detection, excluded/selected tests and the project
    name are merged. Run metadata is attached by the caller. Output lines
    recorded under the same run ID are joined smallest list first.
    """
    merged: dict[tuple[str, str], TestResult] = {}
    project: str | None = None
    race_detection = False
    excluded_tests: dict[str, list[str]] = {}
    selected_tests: dict[str, list[str]] = {}

    for report in reports:
        for result in report.results:
            existing = merged.get(result.key)
            if existing is None:
                merged[result.key] = result.model_copy(deep=True)
            else:
                merged[result.key] = merge_test_results(existing, result)

        project = _min_non_empty(project, report.project)
        race_detection = race_detection or report.race_detection
        excluded_tests = _merge_test_lists(excluded_tests, report.excluded_tests)
        selected_tests = _merge_test_lists(selected_tests, report.selected_tests)

    return TestReport(
        project=project or "",
        race_detection=race_detection,
        excluded_tests=excluded_tests,
        selected_tests=selected_tests,
        results=[merged[key] for key in sorted(merged)],
    )


def generate_summary_data(
    results: Sequence[TestResult], max_pass_ratio: float = 1.0
) -> SummaryData:
    """Compute summary statistics over results."""
    is_flaky = flaky_predicate(max_pass_ratio)

    total_tests = len(results)
    flaky_tests = sum(1 for r in results if is_flaky(r))
    total_runs = sum(r.runs for r in results)
    passed_runs = sum(r.successes for r in results)

    return SummaryData(
        total_tests=total_tests,
        skipped_tests=sum(1 for r in results if r.skipped),
        panicked_tests=sum(1 for r in results if r.panic or r.package_panic),
        raced_tests=sum(1 for r in results if r.race),
        flaky_tests=flaky_tests,
        flaky_test_percent=(
            flaky_tests / total_tests * 100 if total_tests else 0.0
        ),
        total_runs=total_runs,
        passed_runs=passed_runs,
        failed_runs=sum(r.failures for r in results),
        skipped_runs=sum(r.skips for r in results),
        pass_percent=passed_runs / total_runs * 100 if total_runs else 100.0,
    )


def resolve_report_id(options: AggregationOptions) -> str:
    """Return the configured report ID or generate one.

    Without an explicit ID, runs that know their head SHA get an ID derived
    from the repository, commit and workflow run, so reruns of the same
    workflow run produce the same ID. Otherwise a random UUID is used.
    """
    if options.report_id:
        return options.report_id

    if options.head_sha:
        name = "|".join(
            [options.repo_url, options.head_sha, options.github_workflow_run_url]
        )
        return str(uuid.uuid5(uuid.NAMESPACE_URL, name))

    return str(uuid.uuid4())


class ReportAggregator:
    """Aggregates test report shards from a results directory."""

    def __init__(
        self,
        options: AggregationOptions,
        owner_resolver: OwnershipResolver | None = None,
    ) -> None:
        """Initialize aggregator, loading CODEOWNERS if no resolver is given."""
        self.options = options
        self.owner_resolver = owner_resolver
        if owner_resolver is None and options.codeowners_path is not None:
            self.owner_resolver = load_codeowners(options.codeowners_path)

    async def aggregate(self, results_path: Path) -> TestReport:
        """Load every shard under results_path and merge them.

        Args:
            results_path: Directory containing JSON test reports

        Returns:
            Aggregated report with metadata, owners and summary attached

        Raises:
            FileNotFoundError: If results_path is missing or has no reports
            NotADirectoryError: If results_path is not a directory
            ValueError: If no valid reports were loaded, or any report is
                invalid in strict mode

        """
        report_id = resolve_report_id(self.options)
        logger.info(f"Aggregating test reports from {results_path} as {report_id}")

        shard_paths = find_shard_files(results_path, recursive=self.options.recursive)
        if not shard_paths:
            raise FileNotFoundError(f"No JSON test reports found in {results_path}")
        logger.info(f"Found {len(shard_paths)} test reports")

        shards, failures = await load_shards(shard_paths, results_path)
        self._process_failures(failures)

        if self.options.deduplicate_shards:
            shards = self._deduplicate(shards)

        if not shards:
            raise ValueError(f"No valid test reports found in {results_path}")

        report = merge_reports(
            shard.report for shard in sorted(shards, key=lambda s: s.path)
        )
        logger.info(
            f"Merged {len(shards)} test reports into {len(report.results)} tests"
        )

        if self.options.repo_path is not None:
            await self._locate_test_sources(report, self.options.repo_path)

        self._assign_owners(report)
        self._attach_metadata(report, report_id)
        report.summary_data = generate_summary_data(
            report.results, self.options.max_pass_ratio
        )

        return report

    def _process_failures(self, failures: Mapping[Path, BaseException]) -> None:
        """Warn about shards that failed to load, or abort in strict mode."""
        for path, error in failures.items():
            if not isinstance(error, Exception):
                raise error
            logger.warning(f"Skipping invalid test report {path}: {error}")

        if not failures:
            return

        if self.options.strict:
            paths = ", ".join(str(path) for path in failures)
            raise ValueError(f"Failed to load {len(failures)} test reports: {paths}")

        logger.warning(f"Skipped {len(failures)} invalid test reports")

    def _deduplicate(self, shards: list[Shard]) -> list[Shard]:
        """Drop shards whose content matches an earlier shard."""
        seen: dict[str, Path] = {}
        unique: list[Shard] = []
        for shard in sorted(shards, key=lambda s: s.path):
            original = seen.get(shard.digest)
            if original is not None:
                logger.warning(
                    f"Ignoring duplicate test report {shard.path} (same as {original})"
                )
                continue
            seen[shard.digest] = shard.path
            unique.append(shard)
        return unique

    async def _locate_test_sources(self, report: TestReport, repo_path: Path) -> None:
        """Fill in test_path for results that don't have one."""
        missing = [r for r in report.results if not r.test_path]
        if not missing:
            return

        if not repo_path.is_dir():
            logger.warning(
                f"Repository path {repo_path} not found, skipping test paths"
            )
            return

        index = await asyncio.to_thread(TestSourceIndex.build, repo_path)
        not_found = 0
        for result in missing:
            result.test_path = index.locate(result.test_package, result.test_name)
            if result.test_path is None:
                not_found += 1

        if not_found:
            logger.warning(f"Could not locate source files for {not_found} tests")

    def _assign_owners(self, report: TestReport) -> None:
        """Attach CODEOWNERS owners to every result with a known test path."""
        if self.owner_resolver is None:
            return

        without_owner = 0
        for result in report.results:
            owners = (
                self.owner_resolver.resolve_owners(result.test_path)
                if result.test_path
                else []
            )
            if owners:
                result.code_owners = owners
            if not result.code_owners:
                without_owner += 1

        if without_owner:
            logger.warning(f"{without_owner} tests have no code owners")

    def _attach_metadata(self, report: TestReport, report_id: str) -> None:
        report.id = report_id
        report.repo_url = self.options.repo_url
        report.branch_name = self.options.branch_name
        report.head_sha = self.options.head_sha
        report.base_sha = self.options.base_sha
        report.github_workflow_name = self.options.github_workflow_name
        report.github_workflow_run_url = self.options.github_workflow_run_url
        report.max_pass_ratio = self.options.max_pass_ratio
