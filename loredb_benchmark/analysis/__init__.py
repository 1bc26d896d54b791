"""Statistical analysis and comparison tools."""

from .comparison import ComparisonResult, Severity, compare_entries, parse_percentage
from .statistics import entries_to_frame, summarize_suite

__all__ = [
    "ComparisonResult",
    "Severity",
    "compare_entries",
    "entries_to_frame",
    "parse_percentage",
    "summarize_suite",
]
