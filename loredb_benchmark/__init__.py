"""
LoreDB Benchmark History Tooling

Converts google-benchmark output into github-action-benchmark history entries,
maintains the dev/bench/data.js file and reports regressions between commits.
"""

__version__ = "0.1.0"

from loredb_benchmark.storage.datajs import BenchmarkDataError, BenchmarkDataFile
from loredb_benchmark.storage.models import (
    Actor,
    BenchExtra,
    BenchmarkData,
    BenchmarkEntry,
    BenchmarkResult,
    Commit,
)

__all__ = [
    "__version__",
    "Actor",
    "BenchExtra",
    "BenchmarkData",
    "BenchmarkDataError",
    "BenchmarkDataFile",
    "BenchmarkEntry",
    "BenchmarkResult",
    "Commit",
]
