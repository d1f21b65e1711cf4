"""Select failed and flaky tests from aggregated results."""

from collections.abc import Callable, Iterable

from boostsec.report_aggregator.models.test_result import TestResult

TestPredicate = Callable[[TestResult], bool]


def filter_tests(
    results: Iterable[TestResult], predicate: TestPredicate
) -> list[TestResult]:
    """Return the results matching predicate, in their original order."""
    return [result for result in results if predicate(result)]


def flaky_predicate(max_pass_ratio: float = 1.0) -> TestPredicate:
    """Build a predicate selecting tests that pass less often than a threshold.

    Skipped tests never match. With the default of 1.0 any test that failed
    at least once matches; with 0.0 nothing matches.

    Args:
        max_pass_ratio: Pass ratio threshold in [0, 1]

    Returns:
        Predicate over test results

    Raises:
        ValueError: If max_pass_ratio is outside [0, 1]

    """
    if not 0.0 <= max_pass_ratio <= 1.0:
        raise ValueError(f"max_pass_ratio must be within [0, 1], got {max_pass_ratio}")

    def is_flaky(result: TestResult) -> bool:
        return not result.skipped and result.pass_ratio < max_pass_ratio

    return is_flaky
