"""Shared fixtures for loredb_benchmark tests."""

import shutil
from pathlib import Path

import pytest

from loredb_benchmark.storage.models import Actor, BenchmarkEntry, BenchmarkResult, Commit

FIXTURES = Path(__file__).parent / "fixtures"


def make_commit(sha: str, message: str = "Update storage engine") -> Commit:
    user = Actor(name="buddy-computer", username="buddy-computer")
    return Commit(
        author=user,
        committer=user,
        id=sha,
        message=message,
        timestamp="2025-07-10T16:55:21Z",
        url=f"https://github.com/buddy-computer/loredb/commit/{sha}",
    )


def make_entry(sha: str, values: dict[str, float], date: int = 1752251944303, tool: str = "googlecpp") -> BenchmarkEntry:
    """Entry with one ns/iter result per name/value pair."""
    benches = [
        BenchmarkResult(
            name=name,
            value=value,
            unit="ns/iter",
            extra=f"iterations: 1000\ncpu: {value} ns\nthreads: 1",
        )
        for name, value in values.items()
    ]
    return BenchmarkEntry(commit=make_commit(sha), date=date, tool=tool, benches=benches)


@pytest.fixture
def fixtures_dir() -> Path:
    return FIXTURES


@pytest.fixture
def data_js_text() -> str:
    """The recorded loredb history file."""
    return (FIXTURES / "data.js").read_text(encoding="utf-8")


@pytest.fixture
def data_js_copy(tmp_path: Path) -> Path:
    """Writable copy of the recorded history file."""
    target = tmp_path / "dev" / "bench" / "data.js"
    target.parent.mkdir(parents=True)
    shutil.copy(FIXTURES / "data.js", target)
    return target


@pytest.fixture
def googlecpp_output() -> str:
    return (FIXTURES / "googlecpp_output.json").read_text(encoding="utf-8")
