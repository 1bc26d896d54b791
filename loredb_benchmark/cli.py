"""Command-line interface for LoreDB benchmark history tools."""

import logging
import sys
from pathlib import Path
from typing import NoReturn

import click
from rich.console import Console

from . import __version__
from .analysis.comparison import compare_entries
from .analysis.statistics import benchmark_series, compute_trend, entries_to_frame, summarize_suite
from .config import BenchConfig
from .gitinfo import CommitLookupError, commit_from_event, commit_from_git, load_event, resolve_repo_url
from .parsers import SUPPORTED_TOOLS, OutputParseError, extract_results
from .report import BenchmarkReport, build_alert_comment, build_results_summary, build_summary
from .storage.datajs import BenchmarkDataError, BenchmarkDataFile
from .storage.models import BenchmarkData, BenchmarkEntry, now_ms

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


def _fail(message: str) -> NoReturn:
    click.echo(f"Error: {message}", err=True)
    sys.exit(1)


def _load_data(ctx: click.Context) -> BenchmarkData:
    data_file: BenchmarkDataFile = ctx.obj["data_file"]
    try:
        return data_file.load()
    except BenchmarkDataError as e:
        _fail(str(e))


def _suite_entries(ctx: click.Context, data: BenchmarkData, suite: str | None) -> tuple[str, list[BenchmarkEntry]]:
    config: BenchConfig = ctx.obj["config"]
    suite = suite or config.suite_name
    entries = data.suite(suite)
    if not entries:
        _fail(f"Suite '{suite}' not found in {ctx.obj['data_file'].path}")
    return suite, entries


def _write_text(path: Path, text: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text + "\n", encoding="utf-8")


@click.group()
@click.version_option(version=__version__)
@click.option(
    "--config",
    "config_path",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="JSON configuration file",
)
@click.option(
    "--data",
    "data_path",
    type=click.Path(dir_okay=False, path_type=Path),
    help="Benchmark data file (default: dev/bench/data.js)",
)
@click.option(
    "--external-json",
    is_flag=True,
    help="Data file is plain JSON instead of a data.js script",
)
@click.option("-v", "--verbose", is_flag=True, help="Enable debug logging")
@click.pass_context
def cli(
    ctx: click.Context,
    config_path: Path | None,
    data_path: Path | None,
    external_json: bool,
    verbose: bool,
) -> None:
    """LoreDB Benchmark History Tool.

    Store google-benchmark results in a github-action-benchmark data file
    and detect performance regressions between commits.
    """
    if verbose:
        logging.getLogger().setLevel(logging.DEBUG)

    try:
        config = BenchConfig.load(config_path) if config_path else BenchConfig()
    except (OSError, ValueError, TypeError) as e:
        _fail(f"Cannot load config {config_path}: {e}")

    config = config.with_overrides(data_path=data_path, external_json=external_json or None)

    ctx.ensure_object(dict)
    ctx.obj["config"] = config
    ctx.obj["data_file"] = BenchmarkDataFile(config.data_path, config.external_json)
    logger.debug(f"Using data file: {config.data_path}")


@cli.command()
@click.argument("output_file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--tool", type=click.Choice(SUPPORTED_TOOLS), help="Tool that produced OUTPUT_FILE")
@click.option("--name", "suite_name", help="Suite name to store results under")
@click.option(
    "--commit-source",
    type=click.Choice(["auto", "event", "git"]),
    default="auto",
    show_default=True,
    help="Where to read the commit descriptor from",
)
@click.option(
    "--event-path",
    type=click.Path(dir_okay=False, path_type=Path),
    envvar="GITHUB_EVENT_PATH",
    help="GitHub event payload (default: $GITHUB_EVENT_PATH)",
)
@click.option("--ref", default="HEAD", show_default=True, help="Git revision for --commit-source git")
@click.option("--repo-url", help="Repository URL recorded in the data file")
@click.option("--max-items", type=int, help="Keep at most this many entries per suite")
@click.option("--alert-threshold", help="Ratio that triggers an alert, e.g. 200%")
@click.option("--fail-threshold", help="Ratio that fails the run (default: alert threshold)")
@click.option("--fail-on-alert/--no-fail-on-alert", default=None, help="Exit 1 when the fail threshold is exceeded")
@click.option("--skip-aggregates/--keep-aggregates", default=None, help="Drop googlecpp aggregate rows")
@click.option("--comment-file", type=click.Path(dir_okay=False, path_type=Path), help="Write alert markdown here")
@click.option("--summary-file", type=click.Path(dir_okay=False, path_type=Path), help="Write summary markdown here")
@click.option("--dry-run", is_flag=True, help="Compare without updating the data file")
@click.pass_context
def store(
    ctx: click.Context,
    output_file: Path,
    tool: str | None,
    suite_name: str | None,
    commit_source: str,
    event_path: Path | None,
    ref: str,
    repo_url: str | None,
    max_items: int | None,
    alert_threshold: str | None,
    fail_threshold: str | None,
    fail_on_alert: bool | None,
    skip_aggregates: bool | None,
    comment_file: Path | None,
    summary_file: Path | None,
    dry_run: bool,
) -> None:
    """Add benchmark results from OUTPUT_FILE to the history and check for regressions."""
    config: BenchConfig = ctx.obj["config"].with_overrides(
        tool=tool,
        suite_name=suite_name,
        max_items=max_items,
        alert_threshold=alert_threshold,
        fail_threshold=fail_threshold,
        fail_on_alert=fail_on_alert,
        skip_aggregates=skip_aggregates,
    )
    try:
        config.validate()
    except ValueError as e:
        _fail(str(e))

    try:
        benches = extract_results(
            config.tool,
            output_file.read_text(encoding="utf-8"),
            skip_aggregates=config.skip_aggregates,
        )
    except OutputParseError as e:
        _fail(str(e))

    if commit_source == "auto":
        commit_source = "event" if event_path else "git"

    try:
        if commit_source == "event":
            if event_path is None:
                _fail("--event-path (or GITHUB_EVENT_PATH) is required for --commit-source event")
            payload = load_event(event_path)
            commit = commit_from_event(payload)
            if repo_url is None:
                repo_url = (payload.get("repository") or {}).get("html_url")
        else:
            if repo_url is None:
                repo_url = resolve_repo_url()
            commit = commit_from_git(ref=ref, repo_url=repo_url)
    except CommitLookupError as e:
        _fail(str(e))

    entry = BenchmarkEntry(commit=commit, date=now_ms(), tool=config.tool, benches=benches)

    data_file: BenchmarkDataFile = ctx.obj["data_file"]
    data = _load_data(ctx)
    previous = data.add_entry(config.suite_name, entry, max_items=config.max_items, repo_url=repo_url)

    if dry_run:
        click.echo("Dry run: data file not modified")
    else:
        data_file.save(data)
        click.echo(f"✓ Stored {len(benches)} results for {commit.short_id} in '{config.suite_name}'")

    if previous is None:
        logger.info("No previous benchmark found, skipping comparison")
        if summary_file:
            _write_text(summary_file, build_results_summary(entry, config.suite_name))
            click.echo(f"✓ Summary written to {summary_file}")
        return

    result = compare_entries(
        entry,
        previous,
        tool=config.tool,
        alert_threshold=config.alert_ratio,
        fail_threshold=config.fail_ratio,
    )
    BenchmarkReport(Console()).print_comparison(result)

    if summary_file:
        _write_text(summary_file, build_summary(result, config.suite_name))
        click.echo(f"✓ Summary written to {summary_file}")

    if result.alerts and comment_file:
        comment = build_alert_comment(result, config.suite_name, cc_users=config.alert_cc_users)
        _write_text(comment_file, comment)
        click.echo(f"✓ Alert comment written to {comment_file}")

    if result.should_fail(config.fail_on_alert):
        names = ", ".join(row.name for row in result.failures)
        _fail(f"Performance regression exceeding {config.fail_threshold or config.alert_threshold}: {names}")


@cli.command("list")
@click.pass_context
def list_suites(ctx: click.Context) -> None:
    """List suites in the data file."""
    data = _load_data(ctx)
    if not data.entries:
        click.echo("No benchmark data found")
        return
    BenchmarkReport(Console()).print_suites(data)


@cli.command()
@click.option("--suite", help="Suite name")
@click.option("--commit", "commit_id", help="Commit SHA or prefix (default: latest)")
@click.pass_context
def show(ctx: click.Context, suite: str | None, commit_id: str | None) -> None:
    """Show the measurements recorded for a commit."""
    data = _load_data(ctx)
    suite, entries = _suite_entries(ctx, data, suite)

    entry = data.find_entry(suite, commit_id) if commit_id else entries[-1]
    if entry is None:
        _fail(f"Commit {commit_id} not found in suite '{suite}'")

    BenchmarkReport(Console()).print_entry(entry, suite)


@cli.command()
@click.argument("baseline_commit")
@click.argument("current_commit")
@click.option("--suite", help="Suite name")
@click.option("--alert-threshold", help="Ratio that marks a regression, e.g. 150%")
@click.option(
    "--markdown",
    type=click.Path(dir_okay=False, path_type=Path),
    help="Write the markdown summary to this file",
)
@click.pass_context
def compare(
    ctx: click.Context,
    baseline_commit: str,
    current_commit: str,
    suite: str | None,
    alert_threshold: str | None,
    markdown: Path | None,
) -> None:
    """Compare CURRENT_COMMIT against BASELINE_COMMIT."""
    config: BenchConfig = ctx.obj["config"].with_overrides(alert_threshold=alert_threshold)
    data = _load_data(ctx)
    suite, _ = _suite_entries(ctx, data, suite)

    baseline = data.find_entry(suite, baseline_commit)
    current = data.find_entry(suite, current_commit)
    if baseline is None or current is None:
        _fail("One or both commits not found")

    try:
        ratio = config.alert_ratio
    except ValueError as e:
        _fail(str(e))

    result = compare_entries(current, baseline, alert_threshold=ratio)
    BenchmarkReport(Console()).print_comparison(result)

    if markdown:
        _write_text(markdown, build_summary(result, suite))
        click.echo(f"✓ Report saved to {markdown}")


@cli.command()
@click.argument("bench_name")
@click.option("--suite", help="Suite name")
@click.pass_context
def history(ctx: click.Context, bench_name: str, suite: str | None) -> None:
    """Show BENCH_NAME across all recorded commits."""
    data = _load_data(ctx)
    _, entries = _suite_entries(ctx, data, suite)

    series = benchmark_series(entries, bench_name)
    if series.empty:
        _fail(f"Benchmark '{bench_name}' not found")

    trend = compute_trend(series["value"].to_numpy(dtype=float))
    BenchmarkReport(Console()).print_history(bench_name, series, trend)


@cli.command()
@click.option("--suite", help="Suite name")
@click.pass_context
def summary(ctx: click.Context, suite: str | None) -> None:
    """Per-benchmark statistics and trends for a suite."""
    data = _load_data(ctx)
    suite, entries = _suite_entries(ctx, data, suite)
    BenchmarkReport(Console()).print_summary(summarize_suite(entries), suite)


@cli.command()
@click.option("--suite", help="Suite name")
@click.option(
    "--format",
    "fmt",
    type=click.Choice(["csv", "json"]),
    default="csv",
    help="Export format",
)
@click.option(
    "--output",
    type=click.Path(dir_okay=False, path_type=Path),
    required=True,
    help="Output file path",
)
@click.pass_context
def export(ctx: click.Context, suite: str | None, fmt: str, output: Path) -> None:
    """Export a suite as one row per commit and benchmark."""
    data = _load_data(ctx)
    _, entries = _suite_entries(ctx, data, suite)

    df = entries_to_frame(entries)
    output.parent.mkdir(parents=True, exist_ok=True)
    if fmt == "csv":
        df.to_csv(output, index=False)
    else:  # json
        df.to_json(output, orient="records", indent=2, date_format="iso")

    click.echo(f"✓ Exported {len(df)} rows to {output}")


@cli.command()
@click.argument("commit_id")
@click.option("--suite", help="Suite name")
@click.option("--yes", is_flag=True, help="Do not ask for confirmation")
@click.pass_context
def delete(ctx: click.Context, commit_id: str, suite: str | None, yes: bool) -> None:
    """Delete the entries recorded for COMMIT_ID."""
    data = _load_data(ctx)
    suite, entries = _suite_entries(ctx, data, suite)

    matches = [e for e in entries if e.commit.id.startswith(commit_id)]
    if not matches:
        _fail(f"Commit {commit_id} not found in suite '{suite}'")

    if not yes:
        click.confirm(f"Delete {len(matches)} entries for {commit_id} from '{suite}'?", abort=True)

    removed = data.remove_entries(suite, commit_id)
    ctx.obj["data_file"].save(data)
    click.echo(f"✓ Deleted {removed} entries")


@cli.command()
@click.pass_context
def validate(ctx: click.Context) -> None:
    """Check that the data file loads and report its size."""
    data_file: BenchmarkDataFile = ctx.obj["data_file"]
    if not data_file.exists():
        _fail(f"{data_file.path} does not exist")

    data = _load_data(ctx)
    entry_count = sum(len(entries) for entries in data.entries.values())
    bench_count = sum(len(e.benches) for entries in data.entries.values() for e in entries)
    click.echo(
        f"✓ {data_file.path}: {len(data.entries)} suites, {entry_count} entries, {bench_count} results"
    )


if __name__ == "__main__":
    cli()
