"""CLI entry point for test report aggregation."""

import asyncio
import json
import logging
import sys
from pathlib import Path

import typer

from boostsec.report_aggregator.aggregator import ReportAggregator
from boostsec.report_aggregator.classifier import filter_tests, flaky_predicate
from boostsec.report_aggregator.materializer import save_reports, strip_logs
from boostsec.report_aggregator.models.aggregation_options import (
    AggregationOptions,
)
from boostsec.report_aggregator.models.test_report import TestReport
from boostsec.report_aggregator.models.test_result import TestResult

# Configure logging - force reconfiguration
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    stream=sys.stderr,
    force=True,  # Force reconfiguration even if already set up
)
logger = logging.getLogger(__name__)

app = typer.Typer()

ALL_RESULTS_FILE = "all-test-results.json"
FAILED_RESULTS_WITH_LOGS_FILE = "failed-test-results-with-logs.json"
FAILED_RESULTS_FILE = "failed-test-results.json"


def get_dir_size(path: Path) -> int:
    """Get the total size in bytes of the files under a directory.

    Args:
        path: Directory to measure

    Returns:
        Size in bytes

    Raises:
        FileNotFoundError: If path doesn't exist

    """
    if not path.exists():
        raise FileNotFoundError(f"Path not found: {path}")
    return sum(p.stat().st_size for p in path.rglob("*") if p.is_file())


def byte_count_si(size: int) -> str:
    """Format a byte count using decimal SI units (e.g. "1.5 kB")."""
    unit = 1000
    if size < unit:
        return f"{size} B"

    div, exp = unit, 0
    n = size // unit
    while n >= unit:
        div *= unit
        exp += 1
        n //= unit
    return f"{size / div:.1f} {'kMGTPE'[exp]}B"


def build_artifacts(
    report: TestReport, failed_tests: list[TestResult], output_path: Path
) -> dict[Path, TestReport]:
    """Build the reports to write, keyed by destination path.

    Failed test reports keep the aggregated metadata and summary and are only
    produced when there are failed tests.
    """
    artifacts: dict[Path, TestReport] = {}

    if failed_tests:
        failed_report = report.model_copy(update={"results": failed_tests})
        artifacts[output_path / FAILED_RESULTS_WITH_LOGS_FILE] = failed_report
        artifacts[output_path / FAILED_RESULTS_FILE] = strip_logs(failed_report)

    artifacts[output_path / ALL_RESULTS_FILE] = strip_logs(report)
    return artifacts


def _remove_stale_failed_reports(output_path: Path) -> None:
    """Remove failed test reports left over from a previous run."""
    for name in (FAILED_RESULTS_WITH_LOGS_FILE, FAILED_RESULTS_FILE):
        stale = output_path / name
        if stale.exists():
            logger.info(f"Removing stale report: {stale}")
            stale.unlink()


@app.command()
def main(
    results_path: Path = typer.Option(  # noqa: B008
        ...,
        "--results-path",
        "-p",
        help="Path to the folder containing JSON test result files",
    ),
    output_path: Path = typer.Option(  # noqa: B008
        Path("./report"),
        "--output-path",
        "-o",
        help="Path to output the aggregated results (directory)",
    ),
    max_pass_ratio: float = typer.Option(
        1.0,
        min=0.0,
        max=1.0,
        help="The maximum pass ratio threshold for a test to be considered flaky",
    ),
    codeowners_path: Path | None = typer.Option(  # noqa: B008
        None, help="Path to the CODEOWNERS file"
    ),
    repo_path: Path = typer.Option(  # noqa: B008
        Path("."), help="The path to the root of the repository/project"
    ),
    repo_url: str = typer.Option("", help="The repository URL"),
    branch_name: str = typer.Option("", help="Branch name for the test report"),
    head_sha: str = typer.Option("", help="Head commit SHA for the test report"),
    base_sha: str = typer.Option("", help="Base commit SHA for the test report"),
    github_workflow_name: str = typer.Option(
        "", help="GitHub workflow name for the test report"
    ),
    github_workflow_run_url: str = typer.Option(
        "", help="GitHub workflow run URL for the test report"
    ),
    report_id: str | None = typer.Option(
        None, help="Identifier for the test report, generated if not provided"
    ),
    strict: bool = typer.Option(
        False,
        "--strict/--no-strict",
        help="Fail when any test result file is invalid instead of skipping it",
    ),
    deduplicate_shards: bool = typer.Option(
        False, help="Ignore test result files with identical content"
    ),
) -> None:
    """Aggregate test results into a single JSON report."""
    logger.info("=" * 80)
    logger.info("Test Report Aggregation - Starting")
    logger.info("=" * 80)
    logger.info(f"Results path: {results_path}")
    logger.info(f"Output path: {output_path}")
    logger.info(f"Max pass ratio: {max_pass_ratio}")

    try:
        initial_dir_size = get_dir_size(results_path)
    except OSError as e:
        logger.warning(f"Error getting initial directory size: {e}")
        initial_dir_size = 0

    options = AggregationOptions(
        repo_path=repo_path,
        codeowners_path=codeowners_path,
        report_id=report_id,
        repo_url=repo_url,
        branch_name=branch_name,
        head_sha=head_sha,
        base_sha=base_sha,
        github_workflow_name=github_workflow_name,
        github_workflow_run_url=github_workflow_run_url,
        max_pass_ratio=max_pass_ratio,
        strict=strict,
        deduplicate_shards=deduplicate_shards,
    )
    aggregator = ReportAggregator(options)

    try:
        report = asyncio.run(aggregator.aggregate(results_path))
    except Exception as e:
        logger.exception("Error aggregating test reports")
        typer.echo(f"Error aggregating test reports: {e}", err=True)
        raise typer.Exit(code=1)

    failed_tests = filter_tests(report.results, flaky_predicate(max_pass_ratio))
    if failed_tests:
        logger.info(f"Found {len(failed_tests)} failed tests")
    else:
        logger.info("No failed tests found, skipping failed test reports")

    artifacts = build_artifacts(report, failed_tests, output_path)
    try:
        save_reports(artifacts)
    except OSError as e:
        logger.error(f"Error saving test reports: {e}")
        typer.echo(f"Error saving test reports: {e}", err=True)
        raise typer.Exit(code=1)

    if not failed_tests:
        try:
            _remove_stale_failed_reports(output_path)
        except OSError as e:
            logger.error(f"Error removing stale test reports: {e}")
            typer.echo(f"Error removing stale test reports: {e}", err=True)
            raise typer.Exit(code=1)

    try:
        final_dir_size = get_dir_size(results_path)
    except OSError as e:
        logger.warning(f"Error getting final directory size: {e}")
        final_dir_size = initial_dir_size

    all_results_path = output_path / ALL_RESULTS_FILE
    disk_space_used = byte_count_si(final_dir_size - initial_dir_size)
    logger.info(
        f"Aggregation complete: {all_results_path} (disk space used: {disk_space_used})"
    )

    output = {
        "report_id": report.id,
        "summary": (
            report.summary_data.model_dump(mode="json") if report.summary_data else {}
        ),
        "failed_tests": len(failed_tests),
        "reports": [str(path) for path in artifacts],
    }
    typer.echo(json.dumps(output, indent=2))


if __name__ == "__main__":  # pragma: no cover
    app()
