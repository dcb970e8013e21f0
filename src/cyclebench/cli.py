"""Command-line interface for cyclebench.

Subcommands:
    cyclebench run       Run every benchmark of a profile as a suite
    cyclebench compare   Run a profile's benchmarks side by side and rank them
    cyclebench check     Validate a profile without running anything
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import click

from cyclebench import __version__
from cyclebench.bench.config import BenchmarkConfig, configs_from_profile, load_profile
from cyclebench.logging import setup_logging


@click.group()
@click.version_option(version=__version__)
def main() -> None:
    """cyclebench: adaptive latency benchmarks with confidence intervals."""


# ---------------------------------------------------------------------------
# Shared options
# ---------------------------------------------------------------------------


def _common_options(fn: Any) -> Any:
    """Options shared by the commands that run benchmarks."""
    decorators = [
        click.argument("profile", type=click.Path(exists=True, dir_okay=False, path_type=Path)),
        click.option(
            "--max-time",
            type=float,
            default=None,
            help="Time budget per benchmark in seconds (overrides the profile).",
        ),
        click.option(
            "--initial-count",
            type=int,
            default=None,
            help="Iterations in the first cycle (overrides the profile).",
        ),
        click.option("--cycles", "show_cycles", is_flag=True, help="Print every cycle."),
        click.option("--json", "as_json", is_flag=True, help="Output results as JSON."),
        click.option("-v", "--verbose", is_flag=True, help="Show debug output."),
        click.option("-q", "--quiet", is_flag=True, help="Only show warnings and errors."),
        click.option(
            "--log-file",
            type=click.Path(dir_okay=False, path_type=Path),
            default=None,
            help="Also write a DEBUG log to this file.",
        ),
        click.option(
            "--log-module",
            "log_modules",
            multiple=True,
            help="Only write these components (runner, compare, suite...) to --log-file.",
        ),
    ]
    for decorator in reversed(decorators):
        fn = decorator(fn)
    return fn


def _load_configs(
    profile: Path,
    max_time: float | None,
    initial_count: int | None,
) -> list[BenchmarkConfig]:
    """Load a profile, turning profile errors into a clean exit."""
    try:
        data = load_profile(profile)
        return configs_from_profile(
            data,
            cli_overrides={"max_time": max_time, "initial_count": initial_count},
        )
    except (ValueError, FileNotFoundError) as exc:
        click.echo(f"Error: {exc}", err=True)
        raise SystemExit(1) from exc


# ---------------------------------------------------------------------------
# run
# ---------------------------------------------------------------------------


@main.command()
@_common_options
def run(
    profile: Path,
    max_time: float | None,
    initial_count: int | None,
    show_cycles: bool,
    as_json: bool,
    verbose: bool,
    quiet: bool,
    log_file: Path | None,
    log_modules: tuple[str, ...],
) -> None:
    """Run every benchmark in PROFILE, one after another.

    \b
    Examples:
        cyclebench run benchmarks.yaml
        cyclebench run benchmarks.yaml --max-time 5 --cycles
    """
    from cyclebench.bench.display import format_cycle, format_suite_result
    from cyclebench.bench.results import CycleDetails
    from cyclebench.bench.suite import run_suite_sync

    setup_logging(
        verbose=verbose, quiet=quiet or as_json, log_file=log_file, log_modules=log_modules
    )
    configs = _load_configs(profile, max_time, initial_count)

    def on_cycle_done(details: CycleDetails) -> None:
        if show_cycles and not as_json:
            click.secho(format_cycle(details), fg="bright_black")

    factories = [lambda config=config: config for config in configs]
    try:
        suite = run_suite_sync(factories, on_cycle_done)
    except KeyboardInterrupt:
        click.echo("\nBenchmark interrupted.", err=True)
        raise SystemExit(130)  # noqa: B904

    if as_json:
        click.echo(json.dumps(suite.to_dict(), indent=2, allow_nan=False))
    else:
        click.echo()
        click.echo(format_suite_result(suite))

    if suite.has_errors:
        raise SystemExit(1)


# ---------------------------------------------------------------------------
# compare
# ---------------------------------------------------------------------------


@main.command()
@_common_options
def compare(
    profile: Path,
    max_time: float | None,
    initial_count: int | None,
    show_cycles: bool,
    as_json: bool,
    verbose: bool,
    quiet: bool,
    log_file: Path | None,
    log_modules: tuple[str, ...],
) -> None:
    """Benchmark everything in PROFILE and rank it against the fastest.

    Each benchmark still gets its own full adaptive run; the report shows
    how much slower each one is than the fastest, as a range that accounts
    for both margins of error.

    \b
    Examples:
        cyclebench compare benchmarks.yaml
        cyclebench compare benchmarks.yaml --json > ranking.json
    """
    from cyclebench.bench.compare import ComparisonProgress, compare_sync
    from cyclebench.bench.display import format_comparison_report, format_cycle

    setup_logging(
        verbose=verbose, quiet=quiet or as_json, log_file=log_file, log_modules=log_modules
    )
    configs = _load_configs(profile, max_time, initial_count)

    def on_cycle_done(progress: ComparisonProgress) -> None:
        if show_cycles and not as_json:
            click.secho(format_cycle(progress.details), fg="bright_black")

    try:
        report = compare_sync(configs, on_cycle_done)
    except KeyboardInterrupt:
        click.echo("\nComparison interrupted.", err=True)
        raise SystemExit(130)  # noqa: B904

    if as_json:
        click.echo(json.dumps(report.to_dict(), indent=2, allow_nan=False))
    else:
        click.echo()
        click.echo(format_comparison_report(report))

    if report.has_errors:
        raise SystemExit(1)


# ---------------------------------------------------------------------------
# check
# ---------------------------------------------------------------------------


@main.command()
@click.argument("profile", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--max-time", type=float, default=None, help="Time budget override.")
@click.option("--initial-count", type=int, default=None, help="First cycle size override.")
def check(profile: Path, max_time: float | None, initial_count: int | None) -> None:
    """Load and validate PROFILE without running any benchmark."""
    from cyclebench.bench.config import validate_config

    configs = _load_configs(profile, max_time, initial_count)

    fatal = 0
    for config in configs:
        hooks = [
            hook
            for hook, present in (
                ("setup_once", config.setup_once is not None),
                ("setup_per_cycle", config.setup_per_cycle is not None),
            )
            if present
        ]
        mode = "sync" if config.synchronous else "async"
        click.echo(
            f"{config.name}: budget {config.max_time}s, "
            f"first cycle {config.initial_count}, {mode}"
            + (f", hooks: {', '.join(hooks)}" if hooks else "")
        )
        for err in validate_config(config):
            click.echo(f"  {err.severity}: {err.field}: {err.message}")
            if err.severity == "error":
                fatal += 1

    if fatal:
        click.echo(f"{fatal} configuration error(s).", err=True)
        raise SystemExit(1)
    click.echo(f"{len(configs)} benchmark(s) OK.")
