"""Statistical analysis of benchmark history."""

import logging

import numpy as np
import pandas as pd
from numpy.typing import NDArray
from scipy import stats

from ..storage.models import BenchmarkEntry

logger = logging.getLogger(__name__)

FRAME_COLUMNS = [
    "commit_id",
    "commit_timestamp",
    "date",
    "tool",
    "name",
    "value",
    "unit",
    "iterations",
    "cpu_time",
    "threads",
]


def entries_to_frame(entries: list[BenchmarkEntry]) -> pd.DataFrame:
    """Flatten entries into one row per (entry, benchmark).

    Args:
        entries: Suite entries, oldest first

    Returns:
        DataFrame with FRAME_COLUMNS; googlecpp extra fields are split out
        and left empty for other tools
    """
    rows = []
    for entry in entries:
        for bench in entry.benches:
            extra = bench.parsed_extra()
            rows.append(
                {
                    "commit_id": entry.commit.id,
                    "commit_timestamp": entry.commit.timestamp,
                    "date": pd.to_datetime(entry.date, unit="ms", utc=True),
                    "tool": entry.tool,
                    "name": bench.name,
                    "value": bench.value,
                    "unit": bench.unit,
                    "iterations": extra.iterations if extra else None,
                    "cpu_time": extra.cpu_time if extra else None,
                    "threads": extra.threads if extra else None,
                }
            )
    return pd.DataFrame(rows, columns=FRAME_COLUMNS)


def compute_percentiles(
    data: NDArray[np.float64],
    percentiles: list[float] | None = None,
) -> dict[str, float]:
    """Compute percentiles for a data array.

    Args:
        data: NumPy array of values
        percentiles: List of percentiles to compute (default: [50, 95, 99])

    Returns:
        Dictionary mapping percentile to value
    """
    if percentiles is None:
        percentiles = [50.0, 95.0, 99.0]

    if len(data) == 0:
        return {f"p{int(p)}": 0.0 for p in percentiles}

    values = np.percentile(data, percentiles)
    return {f"p{int(p)}": float(v) for p, v in zip(percentiles, values, strict=True)}


def compute_descriptive_stats(data: NDArray[np.float64]) -> dict[str, float]:
    """Mean, standard deviation, range, percentiles and coefficient of variation."""
    if len(data) == 0:
        return {
            "count": 0,
            "mean": 0.0,
            "std": 0.0,
            "cv": 0.0,
            "min": 0.0,
            "max": 0.0,
            "p50": 0.0,
            "p95": 0.0,
        }

    mean = float(np.mean(data))
    std = float(np.std(data))
    return {
        "count": int(len(data)),
        "mean": mean,
        "std": std,
        "cv": std / mean if mean else 0.0,
        "min": float(np.min(data)),
        "max": float(np.max(data)),
        **compute_percentiles(data, [50.0, 95.0]),
    }


def detect_outliers(
    data: NDArray[np.float64],
    threshold: float = 3.5,
) -> tuple[NDArray[np.int_], NDArray[np.float64]]:
    """Detect outliers using modified Z-score method.

    Args:
        data: NumPy array of values
        threshold: Modified Z-score threshold

    Returns:
        Tuple of (outlier_indices, outlier_values)
    """
    if len(data) == 0:
        return np.array([], dtype=np.int_), np.array([])

    median = np.median(data)
    mad = np.median(np.abs(data - median))

    if mad == 0:
        return np.array([], dtype=np.int_), np.array([])

    modified_z_scores = 0.6745 * (data - median) / mad
    outlier_mask = np.abs(modified_z_scores) > threshold

    return np.where(outlier_mask)[0], data[outlier_mask]


def compute_trend(data: NDArray[np.float64]) -> dict[str, float]:
    """Fit a least-squares line through values ordered by run.

    Returns:
        slope (units per run), relative_slope (slope / mean, per run),
        r_squared and p_value; NaN where fewer than 3 points exist
    """
    nan = float("nan")
    if len(data) < 3:
        return {"slope": nan, "relative_slope": nan, "r_squared": nan, "p_value": nan}

    x = np.arange(len(data), dtype=np.float64)
    if np.all(data == data[0]):
        return {"slope": 0.0, "relative_slope": 0.0, "r_squared": 0.0, "p_value": 1.0}

    fit = stats.linregress(x, data)
    mean = float(np.mean(data))
    return {
        "slope": float(fit.slope),
        "relative_slope": float(fit.slope) / mean if mean else nan,
        "r_squared": float(fit.rvalue) ** 2,
        "p_value": float(fit.pvalue),
    }


def benchmark_series(entries: list[BenchmarkEntry], name: str) -> pd.DataFrame:
    """Values of one benchmark across the suite history."""
    frame = entries_to_frame(entries)
    return frame[frame["name"] == name].reset_index(drop=True)


def summarize_suite(entries: list[BenchmarkEntry]) -> pd.DataFrame:
    """Per-benchmark statistics and trend across a suite.

    Returns:
        DataFrame indexed by benchmark name, in first-seen order
    """
    frame = entries_to_frame(entries)
    if frame.empty:
        return pd.DataFrame()

    logger.info(f"Summarizing {frame['name'].nunique()} benchmarks over {len(entries)} entries")

    rows = []
    for name, group in frame.groupby("name", sort=False):
        values = group["value"].to_numpy(dtype=np.float64)
        outlier_idx, _ = detect_outliers(values)
        rows.append(
            {
                "name": name,
                "unit": group["unit"].iloc[-1],
                "latest": float(values[-1]),
                **compute_descriptive_stats(values),
                **compute_trend(values),
                "outliers": int(len(outlier_idx)),
            }
        )
    return pd.DataFrame(rows).set_index("name")
