"""Tests for commit-to-commit comparison."""

import math

import pytest

from loredb_benchmark.analysis.comparison import Severity, compare_entries, compute_ratio, parse_percentage

from conftest import make_entry


@pytest.mark.parametrize(
    ("text", "expected"),
    [("200%", 2.0), ("150%", 1.5), ("100%", 1.0), ("112.5%", 1.125), (" 300% ", 3.0)],
)
def test_parse_percentage(text, expected):
    assert parse_percentage(text) == pytest.approx(expected)


@pytest.mark.parametrize("text", ["2.0", "200", "-50%", "%", "abc%", ""])
def test_parse_percentage_invalid(text):
    with pytest.raises(ValueError, match="percentage"):
        parse_percentage(text)


class TestComputeRatio:
    """Ratio direction and zero handling."""

    def test_smaller_is_better(self):
        assert compute_ratio(100.0, 250.0) == pytest.approx(2.5)

    def test_bigger_is_better(self):
        assert compute_ratio(100.0, 250.0, bigger_is_better=True) == pytest.approx(0.4)

    def test_both_zero(self):
        assert compute_ratio(0, 0) == 1.0

    def test_zero_previous(self):
        assert math.isinf(compute_ratio(0, 5.0))

    def test_zero_current_bigger_is_better(self):
        assert math.isinf(compute_ratio(5.0, 0, bigger_is_better=True))

    def test_zero_current_smaller_is_better(self):
        assert compute_ratio(5.0, 0) == 0.0


class TestCompareEntries:
    """Severity classification across two entries."""

    @pytest.fixture
    def previous(self):
        return make_entry(
            "aaa",
            {
                "QueryBenchmarkFixture/GetNodeById": 2911.54,
                "QueryBenchmarkFixture/FindShortestPath": 2009795.24,
                "QueryBenchmarkFixture/GetEdgeById": 0,
                "BenchmarkFixture/NodeLookup/1000": 100.0,
            },
        )

    @pytest.fixture
    def current(self):
        return make_entry(
            "bbb",
            {
                "QueryBenchmarkFixture/GetNodeById": 2900.0,
                "QueryBenchmarkFixture/FindShortestPath": 5000000.0,
                "QueryBenchmarkFixture/GetEdgeById": 0,
                "BenchmarkFixture/NodeLookup/1000": 350.0,
                "BenchmarkFixture/PropertyIndexLookup/1000": 42.0,
            },
        )

    def test_alert_severities(self, current, previous):
        result = compare_entries(current, previous, alert_threshold=2.0, fail_threshold=3.0)
        by_name = {row.name: row for row in result.benches}

        assert by_name["QueryBenchmarkFixture/GetNodeById"].severity == Severity.PASS
        assert by_name["QueryBenchmarkFixture/GetNodeById"].improved
        assert by_name["QueryBenchmarkFixture/FindShortestPath"].severity == Severity.ALERT
        assert by_name["QueryBenchmarkFixture/GetEdgeById"].ratio == 1.0
        assert by_name["BenchmarkFixture/NodeLookup/1000"].severity == Severity.FAILURE
        assert by_name["BenchmarkFixture/NodeLookup/1000"].ratio == pytest.approx(3.5)

        assert result.status == Severity.FAILURE
        assert [row.name for row in result.alerts] == [
            "QueryBenchmarkFixture/FindShortestPath",
            "BenchmarkFixture/NodeLookup/1000",
        ]

    def test_new_benchmark_never_alerts(self, current, previous):
        result = compare_entries(current, previous)
        new = result.benches[-1]

        assert new.is_new
        assert new.ratio is None
        assert new.change_percent is None
        assert new.severity == Severity.PASS

    def test_rows_follow_current_order(self, current, previous):
        result = compare_entries(current, previous)
        assert [row.name for row in result.benches] == current.bench_names()

    def test_fail_threshold_defaults_to_alert(self, current, previous):
        result = compare_entries(current, previous, alert_threshold=2.0)

        assert result.fail_threshold == 2.0
        assert len(result.failures) == 2
        assert result.should_fail(fail_on_alert=True)
        assert not result.should_fail(fail_on_alert=False)

    def test_only_alerts_do_not_fail(self, current, previous):
        result = compare_entries(current, previous, alert_threshold=2.0, fail_threshold=10.0)

        assert result.status == Severity.ALERT
        assert not result.should_fail(fail_on_alert=True)

    def test_no_regressions(self, previous):
        result = compare_entries(previous, previous)

        assert result.status == Severity.PASS
        assert result.alerts == []

    def test_bigger_is_better_tool(self):
        prev = make_entry("aaa", {"throughput": 1000.0}, tool="customBiggerIsBetter")
        curr = make_entry("bbb", {"throughput": 400.0}, tool="customBiggerIsBetter")

        result = compare_entries(curr, prev, alert_threshold=2.0)

        assert result.benches[0].ratio == pytest.approx(2.5)
        assert result.status == Severity.FAILURE

    def test_change_percent(self, current, previous):
        result = compare_entries(current, previous)
        row = next(r for r in result.benches if r.name == "BenchmarkFixture/NodeLookup/1000")

        assert row.change_percent == pytest.approx(250.0)
