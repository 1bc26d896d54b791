"""Parsers turning benchmark tool output into results."""

from .custom import SUPPORTED_TOOLS, extract_results, is_bigger_better
from .googlecpp import BenchmarkContext, OutputParseError, parse_context, parse_extra

__all__ = [
    "SUPPORTED_TOOLS",
    "BenchmarkContext",
    "OutputParseError",
    "extract_results",
    "is_bigger_better",
    "parse_context",
    "parse_extra",
]
