"""Sequential benchmark suites.

A suite is an ordered list of factories, each building the
BenchmarkConfig for one benchmark when its turn comes, so resources an
operation closes over are created just before they are measured.  Every
benchmark runs independently: a failing factory or run is logged and
counted, and the suite moves on.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from typing import Callable, Sequence

from cyclebench.bench.clock import DEFAULT_CLOCK, Clock
from cyclebench.bench.config import BenchmarkConfig
from cyclebench.bench.results import BenchmarkResult
from cyclebench.bench.runner import BenchmarkRunner, CycleCallback
from cyclebench.logging import get_logger

log = get_logger(__name__)

BenchmarkFactory = Callable[[], BenchmarkConfig]


@dataclass
class SuiteError:
    """A benchmark that could not be built or run."""

    name: str
    error: BaseException

    @property
    def message(self) -> str:
        return f"{type(self.error).__name__}: {self.error}"


@dataclass
class SuiteResult:
    """Outcome of a suite run, in execution order."""

    results: list[BenchmarkResult] = field(default_factory=list)
    errors: list[SuiteError] = field(default_factory=list)
    elapsed_time: float = 0.0

    @property
    def total(self) -> int:
        return len(self.results) + len(self.errors)

    @property
    def has_errors(self) -> bool:
        return bool(self.errors)

    def to_dict(self) -> dict[str, object]:
        """Serialize to a JSON-compatible dict."""
        return {
            "elapsed_time": self.elapsed_time,
            "results": [r.to_dict() for r in self.results],
            "errors": [{"name": e.name, "error": e.message} for e in self.errors],
        }


def _factory_name(factory: BenchmarkFactory, position: int) -> str:
    return getattr(factory, "__name__", None) or f"benchmark #{position}"


async def run_suite(
    factories: Sequence[BenchmarkFactory],
    on_cycle_done: CycleCallback | None = None,
    *,
    clock: Clock | None = None,
) -> SuiteResult:
    """Build and run each benchmark in turn.

    Args:
        factories: Zero-argument callables returning a BenchmarkConfig.
        on_cycle_done: Called after every cycle of every benchmark.
        clock: Time source for all runs (defaults to the real clock).
    """
    clock = clock or DEFAULT_CLOCK
    suite = SuiteResult()
    start = clock.now()

    for idx, factory in enumerate(factories, start=1):
        name = _factory_name(factory, idx)
        try:
            config = factory()
            name = config.name
            log.info("[%d / %d] %s...", idx, len(factories), name)
            result = await BenchmarkRunner(config, on_cycle_done, clock=clock).run()
        except Exception as exc:  # noqa: BLE001
            log.error("Benchmark '%s' failed: %s: %s", name, type(exc).__name__, exc)
            log.debug("Traceback for '%s'", name, exc_info=exc)
            suite.errors.append(SuiteError(name=name, error=exc))
            continue
        suite.results.append(result)

    suite.elapsed_time = clock.elapsed_since(start)
    if suite.has_errors:
        log.warning("%d benchmarks reported an error.", len(suite.errors))
    return suite


def run_suite_sync(
    factories: Sequence[BenchmarkFactory],
    on_cycle_done: CycleCallback | None = None,
    *,
    clock: Clock | None = None,
) -> SuiteResult:
    """Run a suite from non-async code."""
    return asyncio.run(run_suite(factories, on_cycle_done, clock=clock))
