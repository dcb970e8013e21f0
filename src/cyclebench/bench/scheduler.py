"""Adaptive cycle sizing.

After every cycle the runner asks the scheduler how many iterations the
next cycle should run.  The answer balances the time left in the budget
against how precise the current estimate already is:

- the first cycle always runs ``initial_count`` iterations;
- sampling stops once the relative margin of error drops below 2%, or
  when the budget (excluding one-time setup) is spent;
- otherwise the next cycle is sized to fill the remaining time, shrunk by
  an error factor while the estimate is still uncertain and capped at a
  tenth of the total budget so progress stays observable.

Returning 0 means "stop".  The budget is a soft limit evaluated only
between cycles; a single slow cycle can overrun it.
"""

from __future__ import annotations

from dataclasses import dataclass

from cyclebench.bench.config import BenchmarkConfig
from cyclebench.bench.stats import Timings

TARGET_RELATIVE_MARGIN_OF_ERROR = 0.02
MAX_ERROR_FACTOR = 10.0


@dataclass(frozen=True)
class BenchmarkState:
    """Everything the scheduler knows after the cycles run so far.

    All times are in seconds.  ``elapsed_time`` includes the initial
    setup; ``elapsed_cycle_gross_time`` covers only the cycles themselves
    (setup_per_cycle plus iterations).
    """

    timings: Timings
    cycles: int
    iteration_count: int
    elapsed_time: float
    elapsed_net_time: float
    initial_setup_time: float
    elapsed_cycle_gross_time: float
    config: BenchmarkConfig

    @property
    def remaining_time(self) -> float:
        """Budget left, with the initial setup given back."""
        return self.config.max_time - self.elapsed_time + self.initial_setup_time

    @property
    def mean_setup_time_per_cycle(self) -> float:
        """Average overhead per cycle spent outside the cycles themselves."""
        if self.cycles == 0:
            return 0.0
        overhead = self.elapsed_time - self.elapsed_cycle_gross_time - self.initial_setup_time
        return overhead / self.cycles


@dataclass(frozen=True)
class SchedulerDecision:
    """Size of the next cycle and why it was chosen."""

    iteration_count: int
    reason: str

    @property
    def should_continue(self) -> bool:
        return self.iteration_count > 0


def plan_next_cycle(state: BenchmarkState) -> SchedulerDecision:
    """Decide the size of the next cycle.

    Reasons: ``first-cycle``, ``time-exhausted``, ``precise-enough``,
    ``no-time-for-setup``, ``unmeasurable``, ``rounded-to-zero`` and
    ``continue``.
    """
    config = state.config
    remaining_time = state.remaining_time

    # Always measure at least once, whatever the budget says.
    if state.cycles == 0:
        return SchedulerDecision(config.initial_count, "first-cycle")

    if remaining_time <= 0:
        return SchedulerDecision(0, "time-exhausted")

    rme = state.timings.relative_margin_of_error
    if rme < TARGET_RELATIVE_MARGIN_OF_ERROR:
        return SchedulerDecision(0, "precise-enough")

    # The less we trust the estimate, the smaller the next step.
    error_factor = min(rme + 1, MAX_ERROR_FACTOR)

    mean_setup_time = state.mean_setup_time_per_cycle
    if remaining_time < mean_setup_time:
        return SchedulerDecision(0, "no-time-for-setup")

    if state.elapsed_cycle_gross_time <= 0 or state.iteration_count <= 0:
        return SchedulerDecision(0, "unmeasurable")

    remaining_net_time = remaining_time - mean_setup_time
    # The error factor only guards the remaining budget; a long iteration
    # is fine as long as the cycle fits.
    target_net_time = min(remaining_net_time / error_factor, config.target_cycle_time)
    gross_time_per_iteration = state.elapsed_cycle_gross_time / state.iteration_count

    count = max(round(target_net_time / gross_time_per_iteration), 0)
    if count == 0:
        return SchedulerDecision(0, "rounded-to-zero")
    return SchedulerDecision(count, "continue")


def next_iteration_count(state: BenchmarkState) -> int:
    """Number of iterations for the next cycle; 0 means stop."""
    return plan_next_cycle(state).iteration_count
