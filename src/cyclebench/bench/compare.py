"""Side-by-side comparison of benchmark configurations.

Each configuration gets its own full adaptive run, one after another, so
transient load on the machine affects every candidate in a similar way.
Candidates are then ranked by mean time, and each is reported with its
overhead relative to the fastest one as a range: both means carry a
margin of error, so the difference is only known to within the worst
case combination of the two.
"""

from __future__ import annotations

import asyncio
import math
from dataclasses import dataclass, field
from typing import Callable, Sequence

from cyclebench.bench.clock import DEFAULT_CLOCK, Clock
from cyclebench.bench.config import BenchmarkConfig
from cyclebench.bench.results import BenchmarkResult, CycleDetails
from cyclebench.bench.runner import BenchmarkRunner
from cyclebench.bench.stats import Timings, json_float
from cyclebench.logging import get_logger

log = get_logger(__name__)


# ---------------------------------------------------------------------------
# Progress callback
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ComparisonProgress:
    """Progress info passed to the comparison callback."""

    details: CycleDetails
    global_index: int  # 0-based cycle number across all configurations
    candidate_index: int  # 0-based position of the configuration
    candidates_total: int

    @property
    def name(self) -> str:
        return self.details.name


ProgressCallback = Callable[[ComparisonProgress], None]


# ---------------------------------------------------------------------------
# Result structures
# ---------------------------------------------------------------------------


@dataclass
class ComparisonCandidate:
    """One successfully benchmarked configuration, ranked."""

    config: BenchmarkConfig
    result: BenchmarkResult
    rank: int = 0  # 0 = fastest
    is_fastest: bool = False
    overhead_min: float = 0.0  # seconds slower than the fastest, best case
    overhead_max: float = 0.0  # seconds slower than the fastest, worst case
    relative_overhead_min: float = 0.0  # fraction of the fastest mean time
    relative_overhead_max: float = 0.0

    @property
    def name(self) -> str:
        return self.config.name

    @property
    def mean_time(self) -> float:
        return self.result.mean_time

    def to_dict(self) -> dict[str, object]:
        """Serialize to a JSON-compatible dict; unbounded overheads become None."""
        return {
            "name": self.name,
            "rank": self.rank,
            "is_fastest": self.is_fastest,
            "overhead_min": json_float(self.overhead_min),
            "overhead_max": json_float(self.overhead_max),
            "relative_overhead_min": json_float(self.relative_overhead_min),
            "relative_overhead_max": json_float(self.relative_overhead_max),
            "result": self.result.to_dict(),
        }


@dataclass
class ComparisonError:
    """A configuration whose run failed."""

    config: BenchmarkConfig
    error: BaseException

    @property
    def name(self) -> str:
        return self.config.name

    @property
    def message(self) -> str:
        return f"{type(self.error).__name__}: {self.error}"


@dataclass
class ComparisonReport:
    """Ranked candidates plus the configurations that failed."""

    candidates: list[ComparisonCandidate] = field(default_factory=list)
    errors: list[ComparisonError] = field(default_factory=list)
    elapsed_time: float = 0.0

    @property
    def total(self) -> int:
        return len(self.candidates) + len(self.errors)

    @property
    def succeeded_count(self) -> int:
        return len(self.candidates)

    @property
    def errored_count(self) -> int:
        return len(self.errors)

    @property
    def has_errors(self) -> bool:
        return bool(self.errors)

    @property
    def fastest(self) -> ComparisonCandidate | None:
        return self.candidates[0] if self.candidates else None

    def to_dict(self) -> dict[str, object]:
        """Serialize to a JSON-compatible dict."""
        return {
            "elapsed_time": self.elapsed_time,
            "succeeded": self.succeeded_count,
            "errored": self.errored_count,
            "candidates": [c.to_dict() for c in self.candidates],
            "errors": [{"name": e.name, "error": e.message} for e in self.errors],
        }


# ---------------------------------------------------------------------------
# Overhead computation
# ---------------------------------------------------------------------------


def absolute_margin(timings: Timings) -> float:
    """Margin of error in seconds, infinite while the estimate is unstable."""
    if not timings.converged:
        return math.inf
    return timings.mean_time * timings.relative_margin_of_error


def overhead_range(
    candidate: Timings,
    fastest: Timings,
) -> tuple[float, float, float, float]:
    """Range of the overhead of *candidate* relative to *fastest*.

    Combines each end of the candidate's confidence interval with each end
    of the fastest's.  The widest spread comes from the candidate at its
    lower bound against the fastest at its upper bound, and vice versa.

    Returns:
        ``(overhead_min, overhead_max, relative_min, relative_max)``;
        absolute values in seconds, relative values as fractions of the
        fastest mean time.  Unstable estimates give infinite bounds.
    """
    c_margin = absolute_margin(candidate)
    f_margin = absolute_margin(fastest)
    if math.isinf(c_margin) or math.isinf(f_margin):
        return -math.inf, math.inf, -math.inf, math.inf

    overheads: list[float] = []
    relatives: list[float] = []
    for c_sign in (-1, 1):
        for f_sign in (-1, 1):
            c_value = candidate.mean_time + c_sign * c_margin
            f_value = fastest.mean_time + f_sign * f_margin
            diff = c_value - f_value
            overheads.append(diff)
            if f_value > 0:
                relatives.append(diff / f_value)
            elif diff == 0:
                relatives.append(0.0)
            else:
                relatives.append(math.copysign(math.inf, diff))

    return min(overheads), max(overheads), min(relatives), max(relatives)


def rank_candidates(candidates: list[ComparisonCandidate]) -> list[ComparisonCandidate]:
    """Sort by ascending mean time and fill in ranks and overheads.

    Ties keep their input order.  Returns the sorted list.
    """
    ranked = sorted(candidates, key=lambda c: c.mean_time)
    if not ranked:
        return ranked

    fastest = ranked[0]
    for rank, cand in enumerate(ranked):
        cand.rank = rank
        cand.is_fastest = rank == 0
        if cand.is_fastest:
            cand.overhead_min = cand.overhead_max = 0.0
            cand.relative_overhead_min = cand.relative_overhead_max = 0.0
            continue
        (
            cand.overhead_min,
            cand.overhead_max,
            cand.relative_overhead_min,
            cand.relative_overhead_max,
        ) = overhead_range(cand.result.timings, fastest.result.timings)
    return ranked


# ---------------------------------------------------------------------------
# Comparison runner
# ---------------------------------------------------------------------------


async def run_comparison(
    configs: Sequence[BenchmarkConfig],
    on_cycle_done: ProgressCallback | None = None,
    *,
    clock: Clock | None = None,
) -> ComparisonReport:
    """Benchmark every configuration and rank the results.

    Configurations run sequentially in the given order, each to
    completion.  A configuration that fails is logged, recorded in
    ``report.errors`` and left out of the ranking; the others still run.

    Args:
        configs: The configurations to compare.
        on_cycle_done: Called after every cycle of every configuration.
        clock: Time source shared by all runs (defaults to the real clock).
    """
    report = ComparisonReport()
    candidates: list[ComparisonCandidate] = []
    global_index = 0
    clock = clock or DEFAULT_CLOCK
    wall_start = clock.now()

    for idx, config in enumerate(configs):
        log.info("[%d/%d] %s...", idx + 1, len(configs), config.name)

        def forward(details: CycleDetails, _idx: int = idx) -> None:
            nonlocal global_index
            progress = ComparisonProgress(
                details=details,
                global_index=global_index,
                candidate_index=_idx,
                candidates_total=len(configs),
            )
            global_index += 1
            if on_cycle_done is not None:
                on_cycle_done(progress)

        runner = BenchmarkRunner(config, forward, clock=clock)
        try:
            result = await runner.run()
        except Exception as exc:  # noqa: BLE001
            log.error("Benchmark '%s' failed: %s: %s", config.name, type(exc).__name__, exc)
            log.debug("Traceback for '%s'", config.name, exc_info=exc)
            report.errors.append(ComparisonError(config=config, error=exc))
            continue
        candidates.append(ComparisonCandidate(config=config, result=result))

    report.candidates = rank_candidates(candidates)
    report.elapsed_time = clock.elapsed_since(wall_start)
    if report.has_errors:
        log.warning("%d of %d benchmarks reported an error.", report.errored_count, report.total)
    return report


def compare_sync(
    configs: Sequence[BenchmarkConfig],
    on_cycle_done: ProgressCallback | None = None,
    *,
    clock: Clock | None = None,
) -> ComparisonReport:
    """Run a comparison from non-async code."""
    return asyncio.run(run_comparison(configs, on_cycle_done, clock=clock))
