"""Benchmark execution engine.

Orchestrates one benchmark configuration end to end:
1. Configuration validation
2. One-time setup (timed, but not charged to the time budget)
3. Cycles sized by the adaptive scheduler, each preceded by the
   per-cycle setup hook
4. Sample accumulation and re-estimation after every cycle
5. Progress reporting through an ``on_cycle_done`` callback

Everything runs on one asyncio task with at most one operation in
flight: concurrent iterations would compete for the same resources and
bias the latency being measured.  Any exception from the operation, a
setup hook or the callback propagates and aborts the run; no partial
result is returned.
"""

from __future__ import annotations

import asyncio
import inspect
from typing import Any, Callable

from cyclebench.bench.clock import DEFAULT_CLOCK, Clock
from cyclebench.bench.config import BenchmarkConfig, check_config
from cyclebench.bench.results import BenchmarkResult, CycleDetails
from cyclebench.bench.scheduler import BenchmarkState, plan_next_cycle
from cyclebench.bench.stats import estimate
from cyclebench.logging import get_logger

log = get_logger(__name__)

# Above this many iterations per cycle only the cycle's average is kept,
# so per-iteration bookkeeping does not dominate very cheap operations.
DETAILED_CYCLE_LIMIT = 10000

CycleCallback = Callable[[CycleDetails], None]


async def _resolve(value: Any) -> Any:
    """Await *value* if it is awaitable, otherwise return it unchanged."""
    if inspect.isawaitable(value):
        return await value
    return value


# ---------------------------------------------------------------------------
# BenchmarkRunner
# ---------------------------------------------------------------------------


class BenchmarkRunner:
    """Runs one BenchmarkConfig until the scheduler says stop.

    Usage::

        runner = BenchmarkRunner(config, on_cycle_done=print)
        result = await runner.run()

    A runner owns its sample list for the duration of ``run()``; create a
    new runner for every run.
    """

    def __init__(
        self,
        config: BenchmarkConfig,
        on_cycle_done: CycleCallback | None = None,
        *,
        clock: Clock | None = None,
    ) -> None:
        self.config = config
        self.on_cycle_done = on_cycle_done
        self.clock = clock or DEFAULT_CLOCK

    async def run(self) -> BenchmarkResult:
        """Execute the benchmark.

        Returns:
            The aggregate BenchmarkResult.

        Raises:
            ConfigurationError: If the configuration is invalid.  Raised
                before ``setup_once`` is called.
        """
        config = self.config
        clock = self.clock
        check_config(config)

        log.info(
            "Benchmark '%s': budget %gs, first cycle of %d iteration(s)%s",
            config.name,
            config.max_time,
            config.initial_count,
            " (synchronous)" if config.synchronous else "",
        )

        start_time = clock.now()
        if config.setup_once is not None:
            await _resolve(config.setup_once())
        initial_setup_time = clock.now() - start_time
        if config.setup_once is not None:
            log.debug("'%s': one-time setup took %.3fs", config.name, initial_setup_time)

        samples: list[float] = []
        cycle_details: list[CycleDetails] = []
        state = BenchmarkState(
            timings=estimate(samples),
            cycles=0,
            iteration_count=0,
            elapsed_time=initial_setup_time,
            elapsed_net_time=0.0,
            initial_setup_time=initial_setup_time,
            elapsed_cycle_gross_time=0.0,
            config=config,
        )

        while True:
            decision = plan_next_cycle(state)
            if not decision.should_continue:
                log.debug(
                    "'%s': stopping after %d cycle(s): %s",
                    config.name,
                    state.cycles,
                    decision.reason,
                )
                break

            iteration_count = decision.iteration_count
            cycle_start = clock.now()
            cycle_samples, net_time = await self._run_cycle(iteration_count)
            cycle_gross_time = clock.now() - cycle_start

            samples.extend(cycle_samples)
            state = BenchmarkState(
                timings=estimate(samples),
                cycles=state.cycles + 1,
                iteration_count=state.iteration_count + iteration_count,
                elapsed_time=clock.now() - start_time,
                elapsed_net_time=state.elapsed_net_time + net_time,
                initial_setup_time=initial_setup_time,
                elapsed_cycle_gross_time=state.elapsed_cycle_gross_time + cycle_gross_time,
                config=config,
            )

            details = CycleDetails(
                name=config.name,
                index=state.cycles - 1,
                iteration_count=iteration_count,
                net_time=net_time,
                gross_time=cycle_gross_time,
                elapsed_time=state.elapsed_time,
                setup_time=state.elapsed_time - state.elapsed_net_time,
                timings_so_far=state.timings,
            )
            cycle_details.append(details)
            log.debug(
                "'%s': cycle %d, %d iteration(s) [%s], mean %.6fs, rme %.4f",
                config.name,
                details.index + 1,
                iteration_count,
                decision.reason,
                state.timings.mean_time,
                state.timings.relative_margin_of_error,
            )

            if self.on_cycle_done is not None:
                self.on_cycle_done(details)

        result = BenchmarkResult(
            name=config.name,
            cycles=len(cycle_details),
            iteration_count=state.iteration_count,
            elapsed_time=state.elapsed_time,
            setup_time=state.elapsed_time - state.elapsed_net_time,
            timings=state.timings,
            initial_setup_time=initial_setup_time,
            cycle_details=cycle_details,
            samples=samples,
        )
        log.info("Benchmark '%s': %s", config.name, result)
        return result

    async def _run_cycle(self, count: int) -> tuple[list[float], float]:
        """Run one cycle of *count* iterations.

        Returns the samples to record and the cycle's net time.  Detailed
        cycles record every iteration; large or synchronous cycles record
        one sample, the net time divided evenly across the iterations.
        """
        config = self.config
        if config.setup_per_cycle is not None:
            await _resolve(config.setup_per_cycle(count))

        detailed = not config.synchronous and count <= DETAILED_CYCLE_LIMIT
        if detailed:
            times = [await self._iterate() for _ in range(count)]
            return times, sum(times)

        net_time = 0.0
        if config.synchronous:
            for _ in range(count):
                net_time += self._iterate_sync()
        else:
            for _ in range(count):
                net_time += await self._iterate()
        return [net_time / count], net_time

    async def _iterate(self) -> float:
        """Invoke the operation once, awaiting it if needed."""
        start = self.clock.now()
        value = await _resolve(self.config.operation())
        elapsed = self.clock.now() - start
        return self._duration(value, elapsed)

    def _iterate_sync(self) -> float:
        """Invoke the operation once without suspending."""
        start = self.clock.now()
        value = self.config.operation()
        elapsed = self.clock.now() - start
        if inspect.isawaitable(value):
            if inspect.iscoroutine(value):
                value.close()
            raise TypeError(
                f"Benchmark '{self.config.name}' is synchronous but its operation "
                f"returned an awaitable"
            )
        return self._duration(value, elapsed)

    def _duration(self, value: Any, measured: float) -> float:
        """Pick the iteration duration: reported by the operation, or measured."""
        if value is None:
            return measured
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise TypeError(
                f"Operation of '{self.config.name}' must return a duration in seconds "
                f"or None (got {type(value).__name__})"
            )
        if value < 0:
            raise ValueError(
                f"Operation of '{self.config.name}' reported a negative duration: {value}"
            )
        return float(value)


# ---------------------------------------------------------------------------
# Convenience wrappers
# ---------------------------------------------------------------------------


async def benchmark(
    config: BenchmarkConfig,
    on_cycle_done: CycleCallback | None = None,
    *,
    clock: Clock | None = None,
) -> BenchmarkResult:
    """Run a single benchmark and return its result."""
    return await BenchmarkRunner(config, on_cycle_done, clock=clock).run()


def benchmark_sync(
    config: BenchmarkConfig,
    on_cycle_done: CycleCallback | None = None,
    *,
    clock: Clock | None = None,
) -> BenchmarkResult:
    """Run a single benchmark from non-async code."""
    return asyncio.run(benchmark(config, on_cycle_done, clock=clock))
