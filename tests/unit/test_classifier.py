"""Tests for flaky test classifier."""

import pytest

from boostsec.report_aggregator.classifier import filter_tests, flaky_predicate
from boostsec.report_aggregator.models.test_result import TestResult


def _result(
    name: str, successes: int, failures: int, skipped: bool = False
) -> TestResult:
    return TestResult(
        test_name=name,
        test_package="pkg/foo",
        runs=successes + failures,
        successes=successes,
        failures=failures,
        skipped=skipped,
    )


RESULTS = [
    _result("TestAlwaysPass", 3, 0),
    _result("TestFlaky", 2, 1),
    _result("TestMostlyFails", 1, 3),
    _result("TestAlwaysFail", 0, 2),
    _result("TestSkipped", 0, 0, skipped=True),
    _result("TestSkippedFailing", 0, 1, skipped=True),
    _result("TestNeverRan", 0, 0),
]


def test_filter_tests_default_threshold() -> None:
    """With 1.0 every non-skipped test with a failure is selected."""
    failed = filter_tests(RESULTS, flaky_predicate(1.0))
    assert [r.test_name for r in failed] == [
        "TestFlaky",
        "TestMostlyFails",
        "TestAlwaysFail",
    ]


def test_filter_tests_lower_threshold() -> None:
    """A lower threshold only selects tests passing less often."""
    failed = filter_tests(RESULTS, flaky_predicate(0.5))
    assert [r.test_name for r in failed] == ["TestMostlyFails", "TestAlwaysFail"]


def test_filter_tests_zero_threshold() -> None:
    """A zero threshold selects nothing since no ratio is below zero."""
    assert filter_tests(RESULTS, flaky_predicate(0.0)) == []


@pytest.mark.parametrize("threshold", [0.0, 0.25, 0.5, 2 / 3, 0.9, 1.0])
def test_filter_tests_matches_predicate(threshold: float) -> None:
    """Selection is exactly the non-skipped tests below the threshold."""
    failed = filter_tests(RESULTS, flaky_predicate(threshold))
    expected = [r for r in RESULTS if not r.skipped and r.pass_ratio < threshold]
    assert failed == expected


def test_filter_tests_skipped_never_selected() -> None:
    """Skipped tests are never selected regardless of threshold."""
    failed = filter_tests(RESULTS, flaky_predicate(1.0))
    assert all(not r.skipped for r in failed)


def test_filter_tests_custom_predicate() -> None:
    """filter_tests accepts any predicate."""
    failed = filter_tests(RESULTS, lambda r: r.test_name.endswith("Pass"))
    assert [r.test_name for r in failed] == ["TestAlwaysPass"]


def test_filter_tests_does_not_mutate() -> None:
    """filter_tests leaves its input untouched."""
    results = list(RESULTS)
    filter_tests(results, flaky_predicate(1.0))
    assert results == RESULTS


def test_filter_tests_empty() -> None:
    """filter_tests handles no results."""
    assert filter_tests([], flaky_predicate(1.0)) == []


@pytest.mark.parametrize("threshold", [-0.01, 1.01])
def test_flaky_predicate_rejects_invalid_threshold(threshold: float) -> None:
    """flaky_predicate rejects thresholds outside [0, 1]."""
    with pytest.raises(ValueError, match="max_pass_ratio must be within"):
        flaky_predicate(threshold)
