"""Models and file layer for benchmark history data."""

from .datajs import BenchmarkDataError, BenchmarkDataFile, dumps_data, loads_data
from .models import Actor, BenchExtra, BenchmarkData, BenchmarkEntry, BenchmarkResult, Commit

__all__ = [
    "Actor",
    "BenchExtra",
    "BenchmarkData",
    "BenchmarkDataError",
    "BenchmarkDataFile",
    "BenchmarkEntry",
    "BenchmarkResult",
    "Commit",
    "dumps_data",
    "loads_data",
]
