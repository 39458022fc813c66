"""
Risk statistics and scenario reporting.
"""

from shocksim.statistics.report import (
    ComparisonRow,
    classify_severity,
    compare_scenarios,
    narrative_summary,
)
from shocksim.statistics.summary import DistributionSummarizer, summarize

__all__ = [
    "DistributionSummarizer",
    "summarize",
    "ComparisonRow",
    "classify_severity",
    "compare_scenarios",
    "narrative_summary",
]
