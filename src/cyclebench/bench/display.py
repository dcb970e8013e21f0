"""Terminal display formatting for benchmark results.

Produces plain text; colouring is left to the CLI.  Times are shown in
milliseconds with three decimals and margins of error as percentages,
so results from different benchmarks line up when printed one after
another.
"""

from __future__ import annotations

import math
from typing import Protocol

from cyclebench.bench.compare import ComparisonCandidate, ComparisonReport
from cyclebench.bench.results import BenchmarkResult, CycleDetails
from cyclebench.bench.suite import SuiteResult


class _HasTimings(Protocol):
    @property
    def mean_time(self) -> float: ...

    @property
    def relative_margin_of_error(self) -> float: ...


# ---------------------------------------------------------------------------
# Value formatting
# ---------------------------------------------------------------------------


def _format_non_finite(value: float) -> str | None:
    if math.isnan(value):
        return "N/A"
    if math.isinf(value):
        return "inf" if value > 0 else "-inf"
    return None


def format_ms(seconds: float) -> str:
    """Format seconds as milliseconds: ``'12.345ms'``."""
    special = _format_non_finite(seconds)
    if special is not None:
        return special
    return f"{seconds * 1000:.3f}ms"


def format_percent(fraction: float) -> str:
    """Format a fraction as a percentage: ``'1.23%'``."""
    special = _format_non_finite(fraction)
    if special is not None:
        return special
    return f"{fraction * 100:.2f}%"


def format_duration(seconds: float) -> str:
    """Format a wall-clock total: ``'2 minutes, 5 seconds'``."""
    total = int(seconds)
    return f"{total // 60} minutes, {total % 60} seconds"


def format_timings(timings: _HasTimings) -> str:
    """Mean and relative margin: ``'12.345ms (±1.23%)'``."""
    return (
        f"{format_ms(timings.mean_time)} "
        f"(±{format_percent(timings.relative_margin_of_error)})"
    )


def format_elapsed(elapsed_time: float, setup_time: float) -> str:
    """Elapsed time and the share of it not spent in the operation."""
    share = setup_time / elapsed_time * 100 if elapsed_time > 0 else 0.0
    return f"{elapsed_time:.0f}s elapsed ({share:.0f}% setup)"


def format_overhead(candidate: ComparisonCandidate) -> str:
    """Overhead range: ``'4.000ms – 4.100ms (400.00% – 410.00%)'``."""
    return (
        f"{format_ms(candidate.overhead_min)} – {format_ms(candidate.overhead_max)} "
        f"({format_percent(candidate.relative_overhead_min)} – "
        f"{format_percent(candidate.relative_overhead_max)})"
    )


# ---------------------------------------------------------------------------
# Progress and results
# ---------------------------------------------------------------------------


def format_cycle(details: CycleDetails) -> str:
    """One line of progress for a finished cycle."""
    return (
        f"  Cycle {details.index + 1} of {details.name}: "
        f"{details.iteration_count} iterations, "
        f"current estimate: {format_timings(details.timings_so_far)} per iteration, "
        f"{format_elapsed(details.elapsed_time, details.setup_time)}"
    )


def format_result(result: BenchmarkResult) -> str:
    """Summary lines for a single benchmark result."""
    return "\n".join(
        [
            f"  {format_timings(result)} per iteration",
            f"  {format_elapsed(result.elapsed_time, result.setup_time)} "
            f"for {result.iteration_count} iterations in {result.cycles} cycles",
        ]
    )


def format_suite_result(suite: SuiteResult) -> str:
    """Format every result of a suite followed by a footer."""
    lines: list[str] = []
    for idx, result in enumerate(suite.results, start=1):
        lines.append(f"[{idx} / {len(suite.results)}] {result.name}")
        lines.append(format_result(result))
        lines.append("")

    if suite.errors:
        lines.append("Errors:")
        for err in suite.errors:
            lines.append(f"  {err.name}: {err.message}")
        lines.append("")

    lines.extend(_format_footer(suite.total, suite.elapsed_time, len(suite.errors)))
    return "\n".join(lines)


def format_comparison_report(report: ComparisonReport) -> str:
    """Format a ranked comparison, fastest first."""
    if not report.candidates and not report.errors:
        return "No benchmarks were compared."

    lines: list[str] = []
    for cand in report.candidates:
        lines.append(f"[{cand.rank + 1} / {len(report.candidates)}] {cand.name}")
        lines.append(format_result(cand.result))
        if cand.is_fastest:
            lines.append("  Fastest result.")
        else:
            lines.append(f"  Slower than fastest by {format_overhead(cand)}")
        lines.append("")

    if report.errors:
        lines.append("Errors (not ranked):")
        for err in report.errors:
            lines.append(f"  {err.name}: {err.message}")
        lines.append("")

    lines.extend(_format_footer(report.total, report.elapsed_time, report.errored_count))
    return "\n".join(lines)


def _format_footer(total: int, elapsed_time: float, errored: int) -> list[str]:
    lines = [
        "Done.",
        f"Executed {total} benchmarks in {format_duration(elapsed_time)}",
    ]
    if errored:
        lines.append(f"{errored} benchmarks reported an error.")
    return lines
