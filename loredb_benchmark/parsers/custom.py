"""Generic JSON tools and tool dispatch."""

import json
import logging

from pydantic import ValidationError

from ..storage.models import KEEP_NULLS, BenchmarkResult
from . import googlecpp
from .googlecpp import OutputParseError

logger = logging.getLogger(__name__)

SMALLER_IS_BETTER = "customSmallerIsBetter"
BIGGER_IS_BETTER = "customBiggerIsBetter"

SUPPORTED_TOOLS = (googlecpp.TOOL_NAME, SMALLER_IS_BETTER, BIGGER_IS_BETTER)


def is_bigger_better(tool: str) -> bool:
    """Whether larger values mean better performance for a tool's results."""
    return tool == BIGGER_IS_BETTER


def extract_custom_results(tool: str, output: str) -> list[BenchmarkResult]:
    """Parse a JSON array of ``{name, value, unit, range?, extra?}`` objects."""
    try:
        items = json.loads(output)
    except ValueError as e:
        msg = f"Output file for '{tool}' must be a JSON array: {e}"
        raise OutputParseError(msg) from e

    if not isinstance(items, list):
        msg = f"Output file for '{tool}' must be a JSON array"
        raise OutputParseError(msg)

    results = []
    for index, item in enumerate(items):
        try:
            results.append(BenchmarkResult.model_validate(item, context=KEEP_NULLS))
        except ValidationError as e:
            msg = f"Item #{index} in '{tool}' output is invalid: {e}"
            raise OutputParseError(msg) from e
    return results


def extract_results(tool: str, output: str, skip_aggregates: bool = False) -> list[BenchmarkResult]:
    """Dispatch benchmark output to the parser for ``tool``."""
    if tool == googlecpp.TOOL_NAME:
        results = googlecpp.extract_results(output, skip_aggregates=skip_aggregates)
    elif tool in (SMALLER_IS_BETTER, BIGGER_IS_BETTER):
        results = extract_custom_results(tool, output)
    else:
        msg = f"Unsupported tool '{tool}' (supported: {', '.join(SUPPORTED_TOOLS)})"
        raise OutputParseError(msg)

    if not results:
        msg = f"No benchmark results found in '{tool}' output"
        raise OutputParseError(msg)
    return results
