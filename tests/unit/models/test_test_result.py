"""Tests for test result models."""

import pytest
from pydantic import ValidationError

from boostsec.report_aggregator.models.test_result import TestResult


def test_test_result_minimal() -> None:
    """TestResult accepts minimal required fields."""
    result = TestResult(test_name="TestBar", test_package="pkg/foo", runs=0)
    assert result.test_name == "TestBar"
    assert result.test_package == "pkg/foo"
    assert result.successes == 0
    assert result.failures == 0
    assert result.skipped is False
    assert result.code_owners == []
    assert result.owner is None
    assert result.passed_outputs == {}


def test_test_result_pass_ratio() -> None:
    """pass_ratio is successes over runs."""
    result = TestResult(
        test_name="TestBar", test_package="pkg/foo", runs=3, successes=2, failures=1
    )
    assert result.pass_ratio == 2 / 3


def test_test_result_pass_ratio_no_runs() -> None:
    """pass_ratio is 1.0 for a test that never ran."""
    result = TestResult(
        test_name="TestBaz", test_package="pkg/foo", runs=0, skips=1, skipped=True
    )
    assert result.pass_ratio == 1.0


def test_test_result_ignores_input_pass_ratio() -> None:
    """pass_ratio supplied in input is ignored in favour of counters."""
    result = TestResult.model_validate(
        {
            "test_name": "TestBar",
            "test_package": "pkg/foo",
            "runs": 4,
            "successes": 1,
            "failures": 3,
            "pass_ratio": 1.0,
        }
    )
    assert result.pass_ratio == 0.25


def test_test_result_serializes_computed_fields() -> None:
    """Dumped results include pass_ratio and owner."""
    result = TestResult(
        test_name="TestBar",
        test_package="pkg/foo",
        runs=2,
        successes=1,
        failures=1,
        code_owners=["@team-a", "@team-b"],
    )
    data = result.model_dump(mode="json")
    assert data["pass_ratio"] == 0.5
    assert data["owner"] == "@team-a"


def test_test_result_keys_plain_outputs_by_run_id() -> None:
    """A plain list of outputs is keyed by the run ID from context."""
    result = TestResult.model_validate(
        {
            "test_name": "TestBar",
            "test_package": "pkg/foo",
            "runs": 1,
            "failures": 1,
            "failed_outputs": ["line 1", "line 2"],
            "package_outputs": None,
        },
        context={"run_id": "shard-3"},
    )
    assert result.failed_outputs == {"shard-3": ["line 1", "line 2"]}
    assert result.package_outputs == {}


def test_test_result_keys_plain_outputs_default_run_id() -> None:
    """Without context plain outputs use the default run ID."""
    result = TestResult.model_validate(
        {
            "test_name": "TestBar",
            "test_package": "pkg/foo",
            "runs": 1,
            "successes": 1,
            "passed_outputs": ["ok"],
        }
    )
    assert result.passed_outputs == {"0": ["ok"]}


def test_test_result_keeps_mapped_outputs() -> None:
    """Outputs already keyed by run ID are kept as-is."""
    result = TestResult.model_validate(
        {
            "test_name": "TestBar",
            "test_package": "pkg/foo",
            "runs": 2,
            "successes": 2,
            "passed_outputs": {"a": ["x"], "b": ["y"]},
        },
        context={"run_id": "ignored"},
    )
    assert result.passed_outputs == {"a": ["x"], "b": ["y"]}


def test_test_result_rejects_inconsistent_counts() -> None:
    """TestResult rejects more successes and failures than runs."""
    with pytest.raises(ValidationError, match="exceed runs"):
        TestResult(
            test_name="TestBar",
            test_package="pkg/foo",
            runs=1,
            successes=1,
            failures=1,
        )


def test_test_result_rejects_negative_counts() -> None:
    """TestResult rejects negative counters."""
    with pytest.raises(ValidationError) as exc_info:
        TestResult(test_name="TestBar", test_package="pkg/foo", runs=-1)
    assert "runs" in str(exc_info.value)


def test_test_result_missing_required_fields() -> None:
    """TestResult requires identity and run count."""
    with pytest.raises(ValidationError) as exc_info:
        TestResult.model_validate({"successes": 1})
    errors = str(exc_info.value)
    assert "test_name" in errors
    assert "test_package" in errors
    assert "runs" in errors


def test_test_result_key() -> None:
    """key identifies a test by package and name."""
    result = TestResult(test_name="TestBar", test_package="pkg/foo", runs=0)
    assert result.key == ("pkg/foo", "TestBar")
    assert result.key_str == "pkg/foo/TestBar"


def test_test_result_has_logs() -> None:
    """has_logs reports whether any output is present."""
    result = TestResult(test_name="TestBar", test_package="pkg/foo", runs=0)
    assert not result.has_logs()
    result.package_outputs = {"0": ["panic"]}
    assert result.has_logs()


def test_test_result_not_collected_by_pytest() -> None:
    """TestResult opts out of pytest collection without adding a field."""
    result = TestResult(test_name="TestBar", test_package="pkg/foo", runs=0)

    assert TestResult.__test__ is False
    assert "__test__" not in TestResult.model_fields
    assert "__test__" not in result.model_dump()
