"""Benchmark result data structures.

Hierarchy::

    BenchmarkResult (one completed run of one configuration)
      → timings: Timings (recomputed from samples)
      → cycle_details: list[CycleDetails]
      → samples: list[float]

Results of several runs of the same configuration can be merged; the
merged result is equivalent to one longer run because its Timings are
recomputed from the concatenated samples.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from cyclebench.bench.stats import SampleSummary, Timings, estimate, summarize
from cyclebench.logging import get_logger

log = get_logger(__name__)


# ---------------------------------------------------------------------------
# Cycle-level record
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class CycleDetails:
    """Progress snapshot produced after each cycle."""

    name: str
    index: int  # 0-based cycle number within the run
    iteration_count: int
    net_time: float  # time inside the operation during this cycle
    gross_time: float  # wall time of this cycle, setup_per_cycle included
    elapsed_time: float  # total time of the run so far
    setup_time: float  # elapsed_time minus all net time so far
    timings_so_far: Timings

    def to_dict(self) -> dict[str, Any]:
        """Serialize to a JSON-compatible dict."""
        return {
            "name": self.name,
            "index": self.index,
            "iteration_count": self.iteration_count,
            "net_time": self.net_time,
            "gross_time": self.gross_time,
            "elapsed_time": self.elapsed_time,
            "setup_time": self.setup_time,
            "timings_so_far": self.timings_so_far.to_dict(),
        }


# ---------------------------------------------------------------------------
# Run-level result
# ---------------------------------------------------------------------------


@dataclass
class BenchmarkResult:
    """Aggregate of a completed benchmark run."""

    name: str
    cycles: int
    iteration_count: int
    elapsed_time: float  # seconds, initial setup included
    setup_time: float  # elapsed_time minus time spent inside the operation
    timings: Timings
    initial_setup_time: float = 0.0
    cycle_details: list[CycleDetails] = field(default_factory=list)
    samples: list[float] = field(default_factory=list)

    @property
    def mean_time(self) -> float:
        """Mean time per iteration, in seconds."""
        return self.timings.mean_time

    @property
    def relative_margin_of_error(self) -> float:
        return self.timings.relative_margin_of_error

    @property
    def net_time(self) -> float:
        """Total time spent inside the operation."""
        return self.elapsed_time - self.setup_time

    @property
    def summary(self) -> SampleSummary:
        return summarize(self.samples)

    def __str__(self) -> str:
        return (
            f"{self.mean_time * 1000:.3f} ms per iteration "
            f"(±{self.relative_margin_of_error * 100:.2f}%)"
        )

    @classmethod
    def merge(cls, *results: BenchmarkResult) -> BenchmarkResult:
        """Combine runs of the same configuration into one result.

        Samples and cycle details are concatenated in argument order and
        the Timings are recomputed from the merged samples.  Counters and
        times are summed.

        Raises:
            ValueError: If no results are given.
        """
        if not results:
            raise ValueError("merge() needs at least one BenchmarkResult")

        names = {r.name for r in results}
        if len(names) > 1:
            log.warning("Merging results with different names: %s", ", ".join(sorted(names)))

        samples: list[float] = []
        cycle_details: list[CycleDetails] = []
        for r in results:
            samples.extend(r.samples)
            cycle_details.extend(r.cycle_details)

        return cls(
            name=results[0].name,
            cycles=sum(r.cycles for r in results),
            iteration_count=sum(r.iteration_count for r in results),
            elapsed_time=sum(r.elapsed_time for r in results),
            setup_time=sum(r.setup_time for r in results),
            timings=estimate(samples),
            initial_setup_time=sum(r.initial_setup_time for r in results),
            cycle_details=cycle_details,
            samples=samples,
        )

    def to_dict(self, *, include_samples: bool = False) -> dict[str, Any]:
        """Serialize to a JSON-compatible dict.

        Raw samples are large; they are only included on request.
        """
        d: dict[str, Any] = {
            "name": self.name,
            "cycles": self.cycles,
            "iteration_count": self.iteration_count,
            "elapsed_time": self.elapsed_time,
            "setup_time": self.setup_time,
            "initial_setup_time": self.initial_setup_time,
            "timings": self.timings.to_dict(),
            "summary": self.summary.to_dict(),
            "cycle_details": [c.to_dict() for c in self.cycle_details],
        }
        if include_samples:
            d["samples"] = list(self.samples)
        return d
