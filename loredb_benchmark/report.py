"""
Report generation for benchmark history.

Rich terminal tables for interactive use and markdown bodies for PR
comments and job summaries.
"""

import math
from decimal import ROUND_HALF_UP, Decimal
from typing import Optional

import pandas as pd
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from .analysis.comparison import BenchComparison, ComparisonResult, Severity
from .storage.datajs import js_number_str
from .storage.models import BenchmarkData, BenchmarkEntry, BenchmarkResult

DEFAULT_SUITE = "Benchmark"

SEVERITY_STYLE = {
    Severity.PASS: "green",
    Severity.ALERT: "yellow",
    Severity.FAILURE: "bold red",
}


def to_fixed(value: float, digits: int) -> str:
    """JavaScript ``Number#toFixed``: ties round away from zero on the exact binary value."""
    if abs(value) >= 1e21:
        return js_number_str(value)
    if value == 0:
        return f"{0:.{digits}f}"
    quantum = Decimal(1).scaleb(-digits)
    return str(Decimal(value).quantize(quantum, rounding=ROUND_HALF_UP))


def float_str(value: float) -> str:
    """Format a number for markdown the way the upstream action does."""
    if math.isnan(value):
        return "NaN"
    if math.isinf(value):
        return "Infinity" if value > 0 else "-Infinity"
    if float(value).is_integer():
        return to_fixed(value, 0)
    if value > 0.1:
        return to_fixed(value, 2)
    return js_number_str(value)


def _value_str(value: float, unit: str, range_: Optional[str] = None) -> str:
    text = f"`{js_number_str(value)}` {unit}"
    if range_:
        text += f" (`{range_}`)"
    return text


def _suite_text(suite: str) -> str:
    # The default suite name is left out of headings
    return "" if suite == DEFAULT_SUITE else f" **'{suite}'**"


def _footer(workflow_url: Optional[str]) -> str:
    if workflow_url:
        return f"This comment was automatically generated by [workflow]({workflow_url}) using loredb-bench."
    return "This comment was automatically generated by loredb-bench."


def _table_header(result: ComparisonResult) -> list[str]:
    return [
        f"| Benchmark suite | Current: {result.current_commit} | Previous: {result.previous_commit} | Ratio |",
        "|-|-|-|-|",
    ]


def _row(row: BenchComparison, current: Optional[BenchmarkResult] = None) -> str:
    range_ = current.range if current is not None else None
    if row.previous is None:
        return f"| `{row.name}` | {_value_str(row.current, row.unit, range_)} | | |"
    return (
        f"| `{row.name}` | {_value_str(row.current, row.unit, range_)} | "
        f"{_value_str(row.previous, row.unit)} | `{float_str(row.ratio)}` |"
    )


def build_alert_comment(
    result: ComparisonResult,
    suite: str = DEFAULT_SUITE,
    cc_users: Optional[list[str]] = None,
    workflow_url: Optional[str] = None,
) -> str:
    """Markdown body describing benchmarks that crossed the alert threshold."""
    lines = [
        "# :warning: **Performance Alert** :warning:",
        "",
        f"Possible performance regression was detected for benchmark{_suite_text(suite)}.",
        "Benchmark result of this commit is worse than the previous benchmark result "
        f"exceeding threshold `{float_str(result.alert_threshold)}`.",
        "",
        *_table_header(result),
    ]
    lines.extend(_row(row) for row in result.alerts)
    lines.extend(["", _footer(workflow_url)])

    if cc_users:
        lines.extend(["", f"CC: {' '.join(cc_users)}"])
    return "\n".join(lines)


def build_summary(
    result: ComparisonResult,
    suite: str = DEFAULT_SUITE,
    workflow_url: Optional[str] = None,
) -> str:
    """Markdown body listing every benchmark of the comparison."""
    lines = [
        f"# {suite}",
        "",
        "<details>",
        "",
        *_table_header(result),
    ]
    lines.extend(_row(row) for row in result.benches)
    lines.extend(["", "</details>", "", _footer(workflow_url)])
    return "\n".join(lines)


def build_results_summary(
    entry: BenchmarkEntry,
    suite: str = DEFAULT_SUITE,
    workflow_url: Optional[str] = None,
) -> str:
    """Markdown summary of an entry with no earlier commit to compare against."""
    lines = [
        f"# {suite}",
        "",
        "No previous benchmark result to compare with.",
        "",
        "<details>",
        "",
        f"| Benchmark suite | Current: {entry.commit.id} |",
        "|-|-|",
    ]
    lines.extend(f"| `{bench.name}` | {_value_str(bench.value, bench.unit, bench.range)} |" for bench in entry.benches)
    lines.extend(["", "</details>", "", _footer(workflow_url)])
    return "\n".join(lines)


class BenchmarkReport:
    """
    Renders benchmark history objects to the terminal.

    Every method prints through the same Console so output can be captured
    by passing ``Console(file=...)``.
    """

    def __init__(self, console: Optional[Console] = None) -> None:
        self.console = console or Console()

    def print_suites(self, data: BenchmarkData) -> None:
        """Table of suites with entry counts and latest commit."""
        table = Table(title=f"Benchmark suites ({data.repo_url or 'no repository'})", header_style="bold magenta")
        table.add_column("Suite", style="cyan")
        table.add_column("Entries", justify="right")
        table.add_column("Benchmarks", justify="right")
        table.add_column("Latest commit")
        table.add_column("Message")

        for name in data.suite_names():
            entries = data.suite(name)
            latest = entries[-1] if entries else None
            table.add_row(
                name,
                str(len(entries)),
                str(len(latest.benches)) if latest else "0",
                latest.commit.short_id if latest else "-",
                latest.commit.message.splitlines()[0] if latest and latest.commit.message else "",
            )
        self.console.print(table)

    def print_entry(self, entry: BenchmarkEntry, suite: str = DEFAULT_SUITE) -> None:
        """Commit panel followed by every measurement of the entry."""
        commit = entry.commit
        self.console.print(
            Panel.fit(
                f"[bold cyan]{suite}[/bold cyan] ({entry.tool})\n"
                f"Commit: {commit.id}\n"
                f"Author: {commit.author.name}\n"
                f"Time: {commit.timestamp}\n"
                f"Message: {commit.message.splitlines()[0] if commit.message else ''}",
                border_style="cyan",
            )
        )

        table = Table(show_header=True, header_style="bold magenta")
        table.add_column("Benchmark", style="cyan")
        table.add_column("Value", justify="right")
        table.add_column("Unit")
        table.add_column("Iterations", justify="right")
        table.add_column("CPU", justify="right")
        table.add_column("Threads", justify="right")

        for bench in entry.benches:
            extra = bench.parsed_extra()
            table.add_row(
                bench.name,
                f"{bench.value:,.2f}",
                bench.unit,
                f"{extra.iterations:,}" if extra else "-",
                f"{extra.cpu_time:,.2f} {extra.time_unit}" if extra else "-",
                str(extra.threads) if extra else "-",
            )
        self.console.print(table)

    def print_comparison(self, result: ComparisonResult) -> None:
        """Per-benchmark ratios coloured by severity."""
        table = Table(
            title=f"{result.current_commit[:7]} vs {result.previous_commit[:7]}",
            show_header=True,
            header_style="bold magenta",
        )
        table.add_column("Benchmark", style="cyan")
        table.add_column("Previous", justify="right")
        table.add_column("Current", justify="right")
        table.add_column("Change", justify="right")
        table.add_column("Ratio", justify="right")
        table.add_column("Status")

        for row in result.benches:
            if row.is_new:
                table.add_row(row.name, "-", f"{row.current:,.2f}", "-", "-", "[blue]new[/blue]")
                continue
            style = SEVERITY_STYLE[row.severity]
            change = row.change_percent
            table.add_row(
                row.name,
                f"{row.previous:,.2f}",
                f"{row.current:,.2f}",
                f"{change:+.1f}%" if change is not None and math.isfinite(change) else "N/A",
                float_str(row.ratio),
                f"[{style}]{row.severity.value}[/{style}]",
            )
        self.console.print(table)

        style = SEVERITY_STYLE[result.status]
        self.console.print(
            f"Overall: [{style}]{result.status.value.upper()}[/{style}] "
            f"({len(result.alerts)} alerts, threshold {float_str(result.alert_threshold)})"
        )

    def print_history(self, name: str, series: pd.DataFrame, trend: dict[str, float]) -> None:
        """Values of one benchmark per commit, then the fitted trend."""
        table = Table(title=name, show_header=True, header_style="bold magenta")
        table.add_column("Commit", style="cyan")
        table.add_column("Date")
        table.add_column("Value", justify="right")
        table.add_column("Unit")

        for row in series.itertuples(index=False):
            table.add_row(row.commit_id[:7], row.date.strftime("%Y-%m-%d %H:%M"), f"{row.value:,.2f}", row.unit)
        self.console.print(table)

        if math.isnan(trend["slope"]):
            self.console.print("[dim]Trend: not enough data points[/dim]")
        else:
            self.console.print(
                f"Trend: {trend['relative_slope'] * 100:+.2f}% per run "
                f"(r²={trend['r_squared']:.2f}, p={trend['p_value']:.4f})"
            )

    def print_summary(self, summary: pd.DataFrame, suite: str = DEFAULT_SUITE) -> None:
        """Statistics table produced by summarize_suite."""
        table = Table(title=f"{suite} summary", show_header=True, header_style="bold magenta")
        table.add_column("Benchmark", style="cyan")
        table.add_column("Runs", justify="right")
        table.add_column("Latest", justify="right")
        table.add_column("Mean", justify="right")
        table.add_column("CV", justify="right")
        table.add_column("Trend/run", justify="right")
        table.add_column("Outliers", justify="right")

        for name, row in summary.iterrows():
            trend = row["relative_slope"]
            table.add_row(
                str(name),
                str(int(row["count"])),
                f"{row['latest']:,.2f}",
                f"{row['mean']:,.2f}",
                f"{row['cv'] * 100:.1f}%",
                "-" if math.isnan(trend) else f"{trend * 100:+.2f}%",
                str(int(row["outliers"])),
            )
        self.console.print(table)
