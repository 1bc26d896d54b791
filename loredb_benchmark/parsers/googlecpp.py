"""Parser for google-benchmark JSON reports (``--benchmark_format=json``)."""

import json
import logging
from typing import Any

from pydantic import BaseModel, Field, ValidationError

from ..storage.datajs import js_number_str
from ..storage.models import BenchExtra, BenchmarkResult

logger = logging.getLogger(__name__)

TOOL_NAME = "googlecpp"

REQUIRED_KEYS = ("name", "iterations", "real_time", "cpu_time", "time_unit")


class OutputParseError(ValueError):
    """Benchmark tool output could not be converted into results."""


class BenchmarkContext(BaseModel):
    """Machine and build information from the report's ``context`` block."""

    date: str | None = None
    host_name: str | None = None
    executable: str | None = None
    num_cpus: int | None = None
    mhz_per_cpu: int | None = None
    cpu_scaling_enabled: bool | None = None
    library_build_type: str | None = None
    caches: list[dict[str, Any]] = Field(default_factory=list)


def _load_report(output: str) -> dict[str, Any]:
    try:
        report = json.loads(output)
    except ValueError as e:
        msg = (
            f"Output file for '{TOOL_NAME}' must be JSON file generated by "
            f"--benchmark_format=json option: {e}"
        )
        raise OutputParseError(msg) from e

    if not isinstance(report, dict) or not isinstance(report.get("benchmarks"), list):
        msg = f"Output for '{TOOL_NAME}' has no 'benchmarks' array"
        raise OutputParseError(msg)
    return report


def format_extra(iterations: int, cpu_time: float, time_unit: str, threads: int) -> str:
    """Build the ``extra`` text stored alongside each googlecpp result."""
    return (
        f"iterations: {js_number_str(iterations)}\n"
        f"cpu: {js_number_str(cpu_time)} {time_unit}\n"
        f"threads: {js_number_str(threads)}"
    )


def parse_extra(text: str | None) -> BenchExtra | None:
    """Parse an ``extra`` text back into its fields."""
    return BenchExtra.from_text(text)


def parse_context(output: str) -> BenchmarkContext:
    """Return the ``context`` block of a report."""
    report = _load_report(output)
    return BenchmarkContext.model_validate(report.get("context") or {})


def extract_results(output: str, skip_aggregates: bool = False) -> list[BenchmarkResult]:
    """Convert a google-benchmark JSON report into benchmark results.

    Each benchmark becomes one result whose value is the real time per
    iteration and whose unit is ``<time_unit>/iter``.

    Args:
        output: Contents of the JSON report
        skip_aggregates: Drop ``_mean``/``_median``/``_stddev`` aggregate rows

    Returns:
        Results in report order

    Raises:
        OutputParseError: If the report is not JSON or lacks required keys
    """
    report = _load_report(output)
    results: list[BenchmarkResult] = []

    for index, bench in enumerate(report["benchmarks"]):
        if not isinstance(bench, dict):
            msg = f"Benchmark #{index} in '{TOOL_NAME}' output is not an object"
            raise OutputParseError(msg)

        if bench.get("error_occurred"):
            logger.warning(
                f"Skipping {bench.get('name', f'#{index}')}: {bench.get('error_message', 'error occurred')}"
            )
            continue

        if skip_aggregates and bench.get("run_type") == "aggregate":
            logger.debug(f"Skipping aggregate {bench.get('name')}")
            continue

        missing = [key for key in REQUIRED_KEYS if key not in bench]
        if missing:
            msg = f"Benchmark #{index} in '{TOOL_NAME}' output is missing {', '.join(missing)}"
            raise OutputParseError(msg)

        time_unit = bench["time_unit"]
        try:
            result = BenchmarkResult(
                name=bench["name"],
                value=bench["real_time"],
                unit=f"{time_unit}/iter",
                extra=format_extra(
                    bench["iterations"],
                    bench["cpu_time"],
                    time_unit,
                    bench.get("threads", 1),
                ),
            )
        except (TypeError, ValidationError) as e:
            msg = f"Benchmark #{index} in '{TOOL_NAME}' output has invalid values: {e}"
            raise OutputParseError(msg) from e
        results.append(result)

    logger.info(f"Extracted {len(results)} results from {TOOL_NAME} output")
    return results
