"""Commit-to-commit comparison and regression alerts."""

import logging
import math
import re
from enum import Enum

from pydantic import BaseModel, Field

from ..parsers.custom import is_bigger_better
from ..storage.models import BenchmarkEntry

logger = logging.getLogger(__name__)

_PERCENTAGE = re.compile(r"^\d+(\.\d+)?%$")


class Severity(str, Enum):
    """Outcome for a single benchmark or a whole comparison."""

    PASS = "pass"
    ALERT = "alert"
    FAILURE = "failure"


def parse_percentage(text: str) -> float:
    """Convert ``'150%'`` into ``1.5``.

    Raises:
        ValueError: If the text is not a percentage
    """
    text = text.strip()
    if not _PERCENTAGE.match(text):
        msg = f"Threshold must be a percentage like '150%', got '{text}'"
        raise ValueError(msg)
    return float(text[:-1]) / 100.0


def compute_ratio(previous: float, current: float, bigger_is_better: bool = False) -> float:
    """Performance ratio where values above 1.0 mean the current run is worse."""
    if previous == 0 and current == 0:
        return 1.0

    numerator, denominator = (previous, current) if bigger_is_better else (current, previous)
    if denominator == 0:
        return math.inf
    return numerator / denominator


class BenchComparison(BaseModel):
    """Single benchmark compared across two commits."""

    name: str
    unit: str
    current: float
    previous: float | None = None
    ratio: float | None = None
    severity: Severity = Severity.PASS

    @property
    def is_new(self) -> bool:
        """Benchmark has no counterpart in the previous entry."""
        return self.previous is None

    @property
    def change_percent(self) -> float | None:
        """Signed change of the raw value, previous to current."""
        if self.previous is None:
            return None
        if self.previous == 0:
            return 0.0 if self.current == 0 else math.inf
        return (self.current - self.previous) / self.previous * 100.0

    @property
    def improved(self) -> bool:
        return self.ratio is not None and self.ratio < 1.0


class ComparisonResult(BaseModel):
    """Comparison of a benchmark entry against a baseline entry."""

    tool: str
    current_commit: str
    previous_commit: str
    alert_threshold: float
    fail_threshold: float
    benches: list[BenchComparison] = Field(default_factory=list)

    @property
    def alerts(self) -> list[BenchComparison]:
        """Benchmarks whose ratio exceeds the alert threshold."""
        return [b for b in self.benches if b.severity != Severity.PASS]

    @property
    def failures(self) -> list[BenchComparison]:
        return [b for b in self.benches if b.severity == Severity.FAILURE]

    @property
    def status(self) -> Severity:
        """Worst severity across all benchmarks."""
        if self.failures:
            return Severity.FAILURE
        if self.alerts:
            return Severity.ALERT
        return Severity.PASS

    def should_fail(self, fail_on_alert: bool) -> bool:
        """Whether a CI job should fail for this comparison."""
        return fail_on_alert and bool(self.failures)


def compare_entries(
    current: BenchmarkEntry,
    previous: BenchmarkEntry,
    tool: str | None = None,
    alert_threshold: float = 2.0,
    fail_threshold: float | None = None,
) -> ComparisonResult:
    """Compare every benchmark of ``current`` with the same benchmark in ``previous``.

    Args:
        current: Entry just recorded
        previous: Baseline entry (a different commit)
        tool: Tool deciding the ratio direction (defaults to current.tool)
        alert_threshold: Ratio above which a benchmark is flagged
        fail_threshold: Ratio above which a benchmark fails (defaults to alert)

    Returns:
        ComparisonResult with one row per current benchmark
    """
    tool = tool or current.tool
    if fail_threshold is None:
        fail_threshold = alert_threshold
    bigger_is_better = is_bigger_better(tool)

    rows = []
    for bench in current.benches:
        prev = previous.bench(bench.name)
        if prev is None:
            rows.append(BenchComparison(name=bench.name, unit=bench.unit, current=bench.value))
            continue

        ratio = compute_ratio(prev.value, bench.value, bigger_is_better)
        if ratio > fail_threshold:
            severity = Severity.FAILURE
        elif ratio > alert_threshold:
            severity = Severity.ALERT
        else:
            severity = Severity.PASS

        rows.append(
            BenchComparison(
                name=bench.name,
                unit=bench.unit,
                current=bench.value,
                previous=prev.value,
                ratio=ratio,
                severity=severity,
            )
        )

    result = ComparisonResult(
        tool=tool,
        current_commit=current.commit.id,
        previous_commit=previous.commit.id,
        alert_threshold=alert_threshold,
        fail_threshold=fail_threshold,
        benches=rows,
    )

    for row in result.alerts:
        logger.warning(
            f"Performance alert: {row.name} ratio {row.ratio:.2f} "
            f"(threshold {alert_threshold:.2f}, {row.severity.value})"
        )
    logger.info(
        f"Compared {len(rows)} benchmarks {current.commit.short_id} vs "
        f"{previous.commit.short_id}: {result.status.value}"
    )
    return result
