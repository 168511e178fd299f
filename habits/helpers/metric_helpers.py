"""
Metric helper functions for behavior analytics.
Implements the numeric building blocks shared by the engines: streak
run-length encoding, trend lines, Pearson correlation and spread.

All statistical methods use pure numpy - NO heavy dependencies (scipy/statsmodels/sklearn).
"""
import numpy as np
from typing import Dict, List, Sequence, Tuple


def clamp(value: float, lower: float = 0.0, upper: float = 1.0) -> float:
    return float(max(lower, min(upper, value)))


def find_runs(flags: Sequence[bool]) -> List[Tuple[int, int]]:
    """
    Run-length encode the True runs of a boolean sequence.

    Returns:
        [(start_index, length), ...] in order of appearance
    """
    completed = np.asarray(flags, dtype=bool)
    if completed.size == 0:
        return []

    # Find where value changes
    changes = np.diff(np.concatenate(([False], completed, [False])).astype(int))
    run_starts = np.where(changes == 1)[0]
    run_ends = np.where(changes == -1)[0]

    return [(int(s), int(e - s)) for s, e in zip(run_starts, run_ends)]


def compute_trend_line(x_values: np.ndarray, y_values: np.ndarray) -> Dict[str, float]:
    """
    Computes linear regression trend line.

    Returns:
        {
            'slope': float,
            'intercept': float,
            'r_squared': float
        }
    """
    x_values = np.asarray(x_values, dtype=float)
    y_values = np.asarray(y_values, dtype=float)
    if len(x_values) < 2:
        return {'slope': 0.0, 'intercept': 0.0, 'r_squared': 0.0}

    # Use numpy polyfit for linear regression
    slope, intercept = np.polyfit(x_values, y_values, 1)

    y_pred = slope * x_values + intercept
    ss_res = np.sum((y_values - y_pred) ** 2)
    ss_tot = np.sum((y_values - np.mean(y_values)) ** 2)
    r_squared = 1 - (ss_res / ss_tot) if ss_tot > 0 else 0.0

    return {
        'slope': float(slope),
        'intercept': float(intercept),
        'r_squared': float(r_squared)
    }


def pearson_correlation(x_values: Sequence[float], y_values: Sequence[float]) -> float:
    """
    Pearson coefficient of two equal-length series.

    Zero-variance or too-short input has no defined correlation and
    yields 0.0; the result is clamped to [-1, 1].
    """
    x = np.asarray(x_values, dtype=float)
    y = np.asarray(y_values, dtype=float)
    if x.size < 2 or x.size != y.size:
        return 0.0

    # Check for constant arrays (no variance) - correlation undefined
    if np.std(x) == 0 or np.std(y) == 0:
        return 0.0

    x_dev = x - x.mean()
    y_dev = y - y.mean()
    denominator = np.sqrt(np.sum(x_dev ** 2) * np.sum(y_dev ** 2))
    if denominator == 0:
        return 0.0
    return clamp(np.sum(x_dev * y_dev) / denominator, -1.0, 1.0)


def population_std(values: Sequence[float]) -> float:
    """Population standard deviation (ddof=0); 0.0 for empty input."""
    if len(values) == 0:
        return 0.0
    return float(np.std(np.asarray(values, dtype=float)))


def jaccard_similarity(first: set, second: set) -> float:
    """|A ∩ B| / |A ∪ B|; 0.0 when both are empty."""
    union = first | second
    if not union:
        return 0.0
    return len(first & second) / len(union)
