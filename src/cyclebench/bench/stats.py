"""Statistical estimation for adaptive benchmarks.

Turns the samples collected so far into a mean and a two-sided 95%
confidence margin based on Student's t distribution.  The estimator is a
pure function of the sample list: the runner calls it again after every
cycle with the grown list, and merging results just re-runs it over the
concatenated samples.

The standard deviation deliberately uses the population formula (the sum
of squared deviations divided by n, not n - 1) for every sample size.
This is slightly biased for small n.  It is kept so that reported margins
of error stay comparable with earlier measurements; do not switch it to
the sample formula without treating that as a behaviour change.

References:
    Critical values: NIST/SEMATECH e-Handbook of Statistical Methods,
        section 1.3.6.7.2, "Critical Values of the Student's t
        Distribution".
"""

from __future__ import annotations

import math
import statistics
from dataclasses import dataclass
from typing import Any, Sequence


# ---------------------------------------------------------------------------
# Critical values
# ---------------------------------------------------------------------------

# Two-tailed 95% critical values of Student's t, indexed by degrees of freedom.
T_TABLE: dict[int, float] = {
    1: 12.706,
    2: 4.303,
    3: 3.182,
    4: 2.776,
    5: 2.571,
    6: 2.447,
    7: 2.365,
    8: 2.306,
    9: 2.262,
    10: 2.228,
    11: 2.201,
    12: 2.179,
    13: 2.16,
    14: 2.145,
    15: 2.131,
    16: 2.12,
    17: 2.11,
    18: 2.101,
    19: 2.093,
    20: 2.086,
    21: 2.08,
    22: 2.074,
    23: 2.069,
    24: 2.064,
    25: 2.06,
    26: 2.056,
    27: 2.052,
    28: 2.048,
    29: 2.045,
    30: 2.042,
}

# Normal approximation, used for any df past the end of T_TABLE.
NORMAL_CRITICAL_VALUE = 1.96


def critical_value(degrees_of_freedom: float) -> float:
    """Return the two-tailed 95% critical value for *degrees_of_freedom*.

    The value is rounded to the nearest integer first.  Anything at or
    below zero is looked up as df = 1; anything above 30 falls back to
    the normal approximation.
    """
    df = round(degrees_of_freedom)
    if df <= 0:
        df = 1
    if df in T_TABLE:
        return T_TABLE[df]
    return NORMAL_CRITICAL_VALUE


# ---------------------------------------------------------------------------
# Timings
# ---------------------------------------------------------------------------


def json_float(value: float, ndigits: int | None = None) -> float | None:
    """*value* as a strict-JSON number: ``None`` for NaN and infinities."""
    if not math.isfinite(value):
        return None
    return value if ndigits is None else round(value, ndigits)


@dataclass(frozen=True)
class Timings:
    """Mean time per iteration and how precisely it is known."""

    sample_count: int
    mean_time: float
    relative_margin_of_error: float
    stdev: float = 0.0
    standard_error: float = 0.0
    critical_value: float = NORMAL_CRITICAL_VALUE
    margin_of_error: float = math.inf

    @property
    def converged(self) -> bool:
        """True once a finite relative margin of error exists."""
        return math.isfinite(self.relative_margin_of_error)

    def to_dict(self) -> dict[str, Any]:
        """Serialize to a JSON-compatible dict; undefined values become None."""
        return {
            "sample_count": self.sample_count,
            "mean_time": json_float(self.mean_time),
            "relative_margin_of_error": json_float(self.relative_margin_of_error),
            "stdev": self.stdev,
            "standard_error": self.standard_error,
            "critical_value": self.critical_value,
            "margin_of_error": json_float(self.margin_of_error),
        }


def estimate(samples: Sequence[float]) -> Timings:
    """Estimate the mean of *samples* and its 95% margin of error.

    Args:
        samples: Per-iteration durations in seconds, in collection order.

    Returns:
        Timings for the whole sequence.  ``relative_margin_of_error`` is
        ``inf`` when there are fewer than two samples or the mean is zero:
        callers treat that as "keep sampling", not as an error.
    """
    n = len(samples)
    if n == 0:
        return Timings(
            sample_count=0,
            mean_time=float("nan"),
            relative_margin_of_error=math.inf,
        )

    mean = statistics.fmean(samples)
    # Population formula; see the module docstring.
    sd = statistics.pstdev(samples) if n > 1 else 0.0
    sem = sd / math.sqrt(n)
    t = critical_value(n - 1)
    moe = sem * t

    if n < 2 or mean == 0:
        rme = math.inf
    else:
        rme = moe / mean

    return Timings(
        sample_count=n,
        mean_time=mean,
        relative_margin_of_error=rme,
        stdev=sd,
        standard_error=sem,
        critical_value=t,
        margin_of_error=moe,
    )


# ---------------------------------------------------------------------------
# Sample summary
# ---------------------------------------------------------------------------


@dataclass
class SampleSummary:
    """Order statistics of the raw samples, for reports."""

    n: int
    min: float
    max: float
    median: float
    q1: float  # 25th percentile
    q3: float  # 75th percentile

    @property
    def iqr(self) -> float:
        return self.q3 - self.q1

    def to_dict(self) -> dict[str, float | int | None]:
        """Serialize to a dict with rounded values; an empty summary gives None."""
        return {
            "n": self.n,
            "min": json_float(self.min, 9),
            "max": json_float(self.max, 9),
            "median": json_float(self.median, 9),
            "q1": json_float(self.q1, 9),
            "q3": json_float(self.q3, 9),
        }


def summarize(samples: Sequence[float]) -> SampleSummary:
    """Compute order statistics for *samples*.

    Empty input gives NaN for every value.
    """
    if not samples:
        nan = float("nan")
        return SampleSummary(n=0, min=nan, max=nan, median=nan, q1=nan, q3=nan)

    sorted_v = sorted(samples)
    return SampleSummary(
        n=len(sorted_v),
        min=sorted_v[0],
        max=sorted_v[-1],
        median=statistics.median(sorted_v),
        q1=_percentile(sorted_v, 0.25),
        q3=_percentile(sorted_v, 0.75),
    )


def _percentile(sorted_values: list[float], p: float) -> float:
    """Compute the p-th percentile using linear interpolation.

    Assumes sorted_values is already sorted in ascending order.
    """
    n = len(sorted_values)
    if n == 0:
        return float("nan")
    if n == 1:
        return sorted_values[0]

    k = (n - 1) * p
    f = math.floor(k)
    c = math.ceil(k)
    if f == c:
        return sorted_values[int(k)]
    d = k - f
    return sorted_values[int(f)] * (1 - d) + sorted_values[int(c)] * d
