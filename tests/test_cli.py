"""Tests for the loredb-bench command line."""

import json

import pytest
from click.testing import CliRunner

from loredb_benchmark.cli import cli
from loredb_benchmark.storage.datajs import BenchmarkDataFile

RECORDED_SHA = "8c3f263de688f5e3ed84c03dffed02211e43717a"
PUSH_SHA = "5d1f0a9c2b7e4f3a8c6d0e1b2a3f4c5d6e7f8a9b"


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ("GITHUB_EVENT_PATH", "GITHUB_REPOSITORY", "GITHUB_SERVER_URL"):
        monkeypatch.delenv(name, raising=False)
    # Keep rich tables from wrapping benchmark names
    monkeypatch.setenv("COLUMNS", "200")


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def output_file(tmp_path, googlecpp_output):
    path = tmp_path / "benchmark_result.json"
    path.write_text(googlecpp_output)
    return path


@pytest.fixture
def slow_output_file(tmp_path, googlecpp_output):
    """Same report with GetNodeById roughly three times slower."""
    report = json.loads(googlecpp_output)
    report["benchmarks"][0]["real_time"] = 9000.0
    report["benchmarks"][0]["cpu_time"] = 8999.5
    path = tmp_path / "slow_result.json"
    path.write_text(json.dumps(report))
    return path


def test_version(runner):
    result = runner.invoke(cli, ["--version"])
    assert result.exit_code == 0
    assert "0.1.0" in result.output


class TestStore:
    """store command."""

    def test_first_run_creates_history(self, runner, tmp_path, output_file, fixtures_dir):
        data_path = tmp_path / "dev" / "bench" / "data.js"

        result = runner.invoke(
            cli,
            [
                "--data", str(data_path),
                "store", str(output_file),
                "--commit-source", "event",
                "--event-path", str(fixtures_dir / "pull_request_event.json"),
            ],
        )

        assert result.exit_code == 0, result.output
        assert "✓ Stored 4 results for 8c3f263 in 'Benchmark'" in result.output

        text = data_path.read_text(encoding="utf-8")
        assert text.startswith("window.BENCHMARK_DATA = {")
        assert not text.endswith("\n")

        data = BenchmarkDataFile(data_path).load()
        assert data.repo_url == "https://github.com/buddy-computer/loredb"
        entry = data.latest("Benchmark")
        assert entry.commit.id == RECORDED_SHA
        assert entry.tool == "googlecpp"
        assert entry.bench_names()[-1] == "BenchmarkFixture/PathFinding/1000_mean"

    def test_first_run_writes_results_summary(self, runner, tmp_path, output_file, fixtures_dir):
        summary_file = tmp_path / "summary.md"

        result = runner.invoke(
            cli,
            [
                "--data", str(tmp_path / "data.js"),
                "store", str(output_file),
                "--event-path", str(fixtures_dir / "pull_request_event.json"),
                "--summary-file", str(summary_file),
            ],
        )

        assert result.exit_code == 0, result.output
        summary = summary_file.read_text(encoding="utf-8")
        assert summary.startswith("# Benchmark\n\nNo previous benchmark result to compare with.")
        assert "| `QueryBenchmarkFixture/GetNodeById` | `2911.5398846966286` ns/iter |" in summary

    def test_event_path_from_environment(self, runner, tmp_path, output_file, fixtures_dir, monkeypatch):
        monkeypatch.setenv("GITHUB_EVENT_PATH", str(fixtures_dir / "push_event.json"))
        data_path = tmp_path / "data.js"

        result = runner.invoke(cli, ["--data", str(data_path), "store", str(output_file), "--name", "Query"])

        assert result.exit_code == 0, result.output
        assert BenchmarkDataFile(data_path).load().latest("Query").commit.id == PUSH_SHA

    def test_regression_writes_comment_and_fails(
        self, runner, tmp_path, data_js_copy, slow_output_file, fixtures_dir
    ):
        comment_file = tmp_path / "comment.md"
        summary_file = tmp_path / "summary.md"

        result = runner.invoke(
            cli,
            [
                "--data", str(data_js_copy),
                "store", str(slow_output_file),
                "--commit-source", "event",
                "--event-path", str(fixtures_dir / "push_event.json"),
                "--alert-threshold", "200%",
                "--fail-on-alert",
                "--comment-file", str(comment_file),
                "--summary-file", str(summary_file),
            ],
        )

        assert result.exit_code == 1
        assert "Performance regression exceeding 200%: QueryBenchmarkFixture/GetNodeById" in result.output

        comment = comment_file.read_text(encoding="utf-8")
        assert comment.startswith("# :warning: **Performance Alert** :warning:")
        assert f"| Benchmark suite | Current: {PUSH_SHA} | Previous: {RECORDED_SHA} | Ratio |" in comment
        assert "| `QueryBenchmarkFixture/GetNodeById` | `9000` ns/iter | `2911.5398846966286` ns/iter |" in comment

        assert "| `BenchmarkFixture/PathFinding/1000_mean` |" in summary_file.read_text(encoding="utf-8")

        # The entry is recorded even though the run fails
        suite = BenchmarkDataFile(data_js_copy).load().suite("Benchmark")
        assert [e.commit.id for e in suite] == [RECORDED_SHA, PUSH_SHA]

    def test_alert_without_fail_on_alert(self, runner, tmp_path, data_js_copy, slow_output_file, fixtures_dir):
        comment_file = tmp_path / "comment.md"

        result = runner.invoke(
            cli,
            [
                "--data", str(data_js_copy),
                "store", str(slow_output_file),
                "--event-path", str(fixtures_dir / "push_event.json"),
                "--comment-file", str(comment_file),
            ],
        )

        assert result.exit_code == 0, result.output
        assert comment_file.exists()

    def test_dry_run_leaves_file_untouched(self, runner, data_js_copy, output_file, fixtures_dir):
        before = data_js_copy.read_bytes()

        result = runner.invoke(
            cli,
            [
                "--data", str(data_js_copy),
                "store", str(output_file),
                "--event-path", str(fixtures_dir / "push_event.json"),
                "--dry-run",
            ],
        )

        assert result.exit_code == 0, result.output
        assert "Dry run: data file not modified" in result.output
        assert data_js_copy.read_bytes() == before

    def test_max_items(self, runner, data_js_copy, output_file, fixtures_dir):
        result = runner.invoke(
            cli,
            [
                "--data", str(data_js_copy),
                "store", str(output_file),
                "--event-path", str(fixtures_dir / "push_event.json"),
                "--max-items", "1",
            ],
        )

        assert result.exit_code == 0, result.output
        suite = BenchmarkDataFile(data_js_copy).load().suite("Benchmark")
        assert [e.commit.id for e in suite] == [PUSH_SHA]

    def test_invalid_output(self, runner, tmp_path, fixtures_dir):
        bad = tmp_path / "out.txt"
        bad.write_text("GetNodeById  2911 ns  2911 ns  232257")

        result = runner.invoke(
            cli,
            ["--data", str(tmp_path / "data.js"), "store", str(bad), "--event-path", str(fixtures_dir / "push_event.json")],
        )

        assert result.exit_code == 1
        assert "--benchmark_format=json" in result.output
        assert not (tmp_path / "data.js").exists()

    def test_event_source_requires_path(self, runner, tmp_path, output_file):
        result = runner.invoke(
            cli, ["--data", str(tmp_path / "data.js"), "store", str(output_file), "--commit-source", "event"]
        )

        assert result.exit_code == 1
        assert "GITHUB_EVENT_PATH" in result.output

    def test_bad_threshold(self, runner, tmp_path, output_file):
        result = runner.invoke(
            cli, ["--data", str(tmp_path / "data.js"), "store", str(output_file), "--alert-threshold", "2"]
        )

        assert result.exit_code == 1
        assert "percentage" in result.output


class TestQueries:
    """Read-only commands against the recorded history."""

    def test_list(self, runner, data_js_copy):
        result = runner.invoke(cli, ["--data", str(data_js_copy), "list"])

        assert result.exit_code == 0, result.output
        assert "Benchmark" in result.output
        assert "8c3f263" in result.output

    def test_list_empty(self, runner, tmp_path):
        result = runner.invoke(cli, ["--data", str(tmp_path / "data.js"), "list"])

        assert result.exit_code == 0
        assert "No benchmark data found" in result.output

    def test_show(self, runner, data_js_copy):
        result = runner.invoke(cli, ["--data", str(data_js_copy), "show", "--commit", "8c3f"])

        assert result.exit_code == 0, result.output
        assert RECORDED_SHA in result.output
        assert "QueryBenchmarkFixture/GetNodeById" in result.output

    def test_show_unknown_commit(self, runner, data_js_copy):
        result = runner.invoke(cli, ["--data", str(data_js_copy), "show", "--commit", "deadbeef"])

        assert result.exit_code == 1
        assert "Commit deadbeef not found in suite 'Benchmark'" in result.output

    def test_unknown_suite(self, runner, data_js_copy):
        result = runner.invoke(cli, ["--data", str(data_js_copy), "summary", "--suite", "Storage"])

        assert result.exit_code == 1
        assert "Suite 'Storage' not found" in result.output

    def test_history(self, runner, data_js_copy):
        result = runner.invoke(cli, ["--data", str(data_js_copy), "history", "QueryBenchmarkFixture/GetNodeById"])

        assert result.exit_code == 0, result.output
        assert "8c3f263" in result.output
        assert "not enough data points" in result.output

    def test_history_unknown_bench(self, runner, data_js_copy):
        result = runner.invoke(cli, ["--data", str(data_js_copy), "history", "NoSuchBench"])

        assert result.exit_code == 1
        assert "Benchmark 'NoSuchBench' not found" in result.output

    def test_summary(self, runner, data_js_copy):
        result = runner.invoke(cli, ["--data", str(data_js_copy), "summary"])

        assert result.exit_code == 0, result.output
        assert "Benchmark summary" in result.output

    def test_validate(self, runner, data_js_copy):
        result = runner.invoke(cli, ["--data", str(data_js_copy), "validate"])

        assert result.exit_code == 0, result.output
        assert ": 1 suites, 1 entries, 70 results" in result.output

    def test_validate_missing(self, runner, tmp_path):
        result = runner.invoke(cli, ["--data", str(tmp_path / "data.js"), "validate"])

        assert result.exit_code == 1
        assert "does not exist" in result.output

    def test_validate_corrupt(self, runner, tmp_path):
        path = tmp_path / "data.js"
        path.write_text("var x = 1;")

        result = runner.invoke(cli, ["--data", str(path), "validate"])

        assert result.exit_code == 1
        assert "Error:" in result.output


class TestExport:
    """export command."""

    def test_csv(self, runner, data_js_copy, tmp_path):
        output = tmp_path / "out" / "history.csv"

        result = runner.invoke(cli, ["--data", str(data_js_copy), "export", "--output", str(output)])

        assert result.exit_code == 0, result.output
        assert "✓ Exported 70 rows" in result.output
        lines = output.read_text().splitlines()
        assert lines[0].startswith("commit_id,commit_timestamp,date,tool,name,value,unit")
        assert len(lines) == 71

    def test_json(self, runner, data_js_copy, tmp_path):
        output = tmp_path / "history.json"

        result = runner.invoke(
            cli, ["--data", str(data_js_copy), "export", "--format", "json", "--output", str(output)]
        )

        assert result.exit_code == 0, result.output
        rows = json.loads(output.read_text())
        assert len(rows) == 70
        assert rows[0]["name"] == "QueryBenchmarkFixture/GetNodeById"
        assert rows[0]["iterations"] == 232257


class TestCompareAndDelete:
    """Commands that need two recorded commits."""

    @pytest.fixture
    def two_commits(self, runner, data_js_copy, slow_output_file, fixtures_dir):
        result = runner.invoke(
            cli,
            [
                "--data", str(data_js_copy),
                "store", str(slow_output_file),
                "--event-path", str(fixtures_dir / "push_event.json"),
            ],
        )
        assert result.exit_code == 0, result.output
        return data_js_copy

    def test_compare(self, runner, two_commits, tmp_path):
        report = tmp_path / "report.md"

        result = runner.invoke(
            cli, ["--data", str(two_commits), "compare", "8c3f263", "5d1f0a9", "--markdown", str(report)]
        )

        assert result.exit_code == 0, result.output
        assert "QueryBenchmarkFixture/GetNodeById" in result.output
        assert f"✓ Report saved to {report}" in result.output
        assert report.read_text(encoding="utf-8").startswith("# Benchmark\n")

    def test_compare_unknown_commit(self, runner, two_commits):
        result = runner.invoke(cli, ["--data", str(two_commits), "compare", "8c3f263", "ffffff"])

        assert result.exit_code == 1
        assert "One or both commits not found" in result.output

    def test_delete(self, runner, two_commits):
        result = runner.invoke(cli, ["--data", str(two_commits), "delete", "5d1f0a9", "--yes"])

        assert result.exit_code == 0, result.output
        assert "✓ Deleted 1 entries" in result.output
        suite = BenchmarkDataFile(two_commits).load().suite("Benchmark")
        assert [e.commit.id for e in suite] == [RECORDED_SHA]

    def test_delete_every_entry_removes_suite(self, runner, data_js_copy):
        result = runner.invoke(cli, ["--data", str(data_js_copy), "delete", "8c3f263", "--yes"])

        assert result.exit_code == 0, result.output
        assert BenchmarkDataFile(data_js_copy).load().entries == {}
        assert '"entries": {}' in data_js_copy.read_text(encoding="utf-8")

    def test_delete_aborted(self, runner, two_commits):
        before = two_commits.read_bytes()

        result = runner.invoke(cli, ["--data", str(two_commits), "delete", "5d1f0a9"], input="n\n")

        assert result.exit_code == 1
        assert two_commits.read_bytes() == before


def test_config_file(runner, tmp_path, data_js_copy):
    config_path = tmp_path / "bench.json"
    config_path.write_text(json.dumps({"data_path": str(data_js_copy), "suite_name": "Benchmark"}))

    result = runner.invoke(cli, ["--config", str(config_path), "validate"])

    assert result.exit_code == 0, result.output
    assert "70 results" in result.output


def test_bad_config_file(runner, tmp_path):
    config_path = tmp_path / "bench.json"
    config_path.write_text(json.dumps({"gh_pages_branch": "gh-pages"}))

    result = runner.invoke(cli, ["--config", str(config_path), "list"])

    assert result.exit_code == 1
    assert "Unknown configuration keys" in result.output
