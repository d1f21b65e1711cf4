"""Data models for test results, reports, and aggregation options."""

from boostsec.report_aggregator.models.aggregation_options import (
    AggregationOptions,
)
from boostsec.report_aggregator.models.test_report import SummaryData, TestReport
from boostsec.report_aggregator.models.test_result import TestResult

__all__ = [
    "AggregationOptions",
    "SummaryData",
    "TestReport",
    "TestResult",
]
