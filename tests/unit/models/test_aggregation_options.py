"""Tests for aggregation options."""

from pathlib import Path

import pytest
from pydantic import ValidationError

from boostsec.report_aggregator.models.aggregation_options import (
    AggregationOptions,
)


def test_aggregation_options_defaults() -> None:
    """AggregationOptions has lenient, additive, recursive defaults."""
    options = AggregationOptions()
    assert options.max_pass_ratio == 1.0
    assert options.strict is False
    assert options.deduplicate_shards is False
    assert options.recursive is True
    assert options.report_id is None
    assert options.codeowners_path is None
    assert options.head_sha == ""


def test_aggregation_options_coerces_paths() -> None:
    """Path options accept strings."""
    options = AggregationOptions(
        repo_path="repo", codeowners_path="CODEOWNERS"  # type: ignore[arg-type]
    )
    assert options.repo_path == Path("repo")
    assert options.codeowners_path == Path("CODEOWNERS")


@pytest.mark.parametrize("ratio", [-0.1, 1.01])
def test_aggregation_options_rejects_invalid_ratio(ratio: float) -> None:
    """max_pass_ratio must be within [0, 1]."""
    with pytest.raises(ValidationError) as exc_info:
        AggregationOptions(max_pass_ratio=ratio)
    assert "max_pass_ratio" in str(exc_info.value)
