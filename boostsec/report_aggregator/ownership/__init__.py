"""Test ownership resolution."""

from boostsec.report_aggregator.ownership.base import OwnershipResolver
from boostsec.report_aggregator.ownership.codeowners import (
    CodeOwnersResolver,
    load_codeowners,
)

__all__ = [
    "CodeOwnersResolver",
    "OwnershipResolver",
    "load_codeowners",
]
