"""Benchmark configuration and profile loading.

Handles:
- The immutable BenchmarkConfig handed to the runner.
- Validating a configuration before any setup hook runs.
- Loading benchmark profiles from YAML files.
- Resolving ``module:attribute`` references to the callables under test.
- Merging CLI options with profile defaults.
"""

from __future__ import annotations

import importlib
import math
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Any, Callable

from cyclebench.logging import get_logger

log = get_logger(__name__)

DEFAULT_MAX_TIME = 30.0
DEFAULT_INITIAL_COUNT = 1


# ---------------------------------------------------------------------------
# BenchmarkConfig
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class BenchmarkConfig:
    """Description of one unit of work to benchmark.

    ``operation`` is called once per iteration with no arguments.  It may
    be a coroutine function or a plain callable, and either returns the
    iteration's duration in seconds (measured by the caller) or ``None``,
    in which case the runner times the call itself.

    ``setup_per_cycle`` receives the number of iterations about to run, so
    it can prepare a batch.  ``setup_once`` runs before the first cycle and
    its cost does not count against ``max_time``.
    """

    name: str
    operation: Callable[[], Any]
    setup_per_cycle: Callable[[int], Any] | None = None
    setup_once: Callable[[], Any] | None = None
    max_time: float = DEFAULT_MAX_TIME  # seconds
    initial_count: int = DEFAULT_INITIAL_COUNT
    synchronous: bool = False

    @property
    def target_cycle_time(self) -> float:
        """Upper bound for the net time of a single cycle."""
        return self.max_time / 10


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------


@dataclass
class ValidationError:
    """A single configuration validation error."""

    field: str
    message: str
    severity: str = "error"  # "error" or "warning"


class ConfigurationError(ValueError):
    """Raised when a benchmark configuration cannot be run."""

    def __init__(self, name: str, errors: list[ValidationError]) -> None:
        self.name = name
        self.errors = errors
        messages = [f"  {e.field}: {e.message}" for e in errors]
        super().__init__(f"Invalid benchmark configuration '{name}':\n" + "\n".join(messages))


def validate_config(config: BenchmarkConfig) -> list[ValidationError]:
    """Validate a benchmark configuration.

    Returns a list of validation errors.  Empty list means valid.
    """
    errors: list[ValidationError] = []

    if not config.name or not config.name.strip():
        errors.append(
            ValidationError(
                field="name",
                message="Benchmark names should be non-empty.",
                severity="warning",
            )
        )

    if not callable(config.operation):
        errors.append(
            ValidationError(
                field="operation",
                message=f"Operation must be callable (got {type(config.operation).__name__}).",
            )
        )

    for hook_name in ("setup_per_cycle", "setup_once"):
        hook = getattr(config, hook_name)
        if hook is not None and not callable(hook):
            errors.append(
                ValidationError(
                    field=hook_name,
                    message=f"{hook_name} must be callable (got {type(hook).__name__}).",
                )
            )

    # bool is an int subclass; reject it explicitly.
    if isinstance(config.max_time, bool) or not isinstance(config.max_time, (int, float)):
        errors.append(
            ValidationError(
                field="max_time",
                message=f"Time budget must be a number (got {config.max_time!r}).",
            )
        )
    elif not math.isfinite(config.max_time) or config.max_time <= 0:
        errors.append(
            ValidationError(
                field="max_time",
                message=f"Time budget must be positive and finite (got {config.max_time}).",
            )
        )

    if isinstance(config.initial_count, bool) or not isinstance(config.initial_count, int):
        errors.append(
            ValidationError(
                field="initial_count",
                message=f"Initial iteration count must be an integer (got {config.initial_count!r}).",
            )
        )
    elif config.initial_count <= 0:
        errors.append(
            ValidationError(
                field="initial_count",
                message=f"Initial iteration count must be positive (got {config.initial_count}).",
            )
        )

    return errors


def check_config(config: BenchmarkConfig) -> None:
    """Log warnings and raise ConfigurationError on fatal problems."""
    errors = validate_config(config)
    for w in errors:
        if w.severity == "warning":
            log.warning("Config warning: %s: %s", w.field, w.message)
    fatal = [e for e in errors if e.severity == "error"]
    if fatal:
        raise ConfigurationError(config.name, fatal)


# ---------------------------------------------------------------------------
# Callable resolution
# ---------------------------------------------------------------------------


def resolve_callable(reference: str) -> Callable[..., Any]:
    """Import the callable named by a ``"package.module:attribute"`` string.

    Dotted attributes after the colon are followed, so
    ``"pkg.mod:Suite.insert"`` resolves a class attribute.

    Raises:
        ValueError: If the reference is malformed, cannot be imported,
            or does not name a callable.
    """
    if ":" not in reference:
        raise ValueError(f"Invalid callable reference: '{reference}'. Expected 'module:attribute'.")

    module_name, attr_path = reference.split(":", 1)
    module_name = module_name.strip()
    attr_path = attr_path.strip()
    if not module_name or not attr_path:
        raise ValueError(f"Invalid callable reference: '{reference}'. Expected 'module:attribute'.")

    try:
        target: Any = importlib.import_module(module_name)
    except ImportError as exc:
        raise ValueError(f"Cannot import module '{module_name}': {exc}") from exc

    for part in attr_path.split("."):
        try:
            target = getattr(target, part)
        except AttributeError as exc:
            raise ValueError(f"'{module_name}' has no attribute '{attr_path}'") from exc

    if not callable(target):
        raise ValueError(f"'{reference}' is not callable (got {type(target).__name__}).")
    return target


# ---------------------------------------------------------------------------
# YAML profile loading
# ---------------------------------------------------------------------------


def load_profile(profile_path: Path) -> dict[str, Any]:
    """Load a benchmark profile from a YAML file.

    Profile format::

        name: "collections"
        max_time: 10
        initial_count: 1

        benchmarks:
          - name: list-append
            operation: "mybench.lists:append_one"
            setup_once: "mybench.lists:prepare"
            setup_per_cycle: "mybench.lists:refill"
            synchronous: true
            max_time: 5
          - factory: "mybench.dicts:make_config"

    Returns:
        The parsed YAML as a dict.
    """
    import yaml

    if not profile_path.exists():
        raise FileNotFoundError(f"Profile not found: {profile_path}")

    data = yaml.safe_load(profile_path.read_text())

    if not isinstance(data, dict):
        raise ValueError(f"Profile must be a YAML mapping, got {type(data).__name__}")

    return data


def configs_from_profile(
    profile_data: dict[str, Any],
    *,
    cli_overrides: dict[str, Any] | None = None,
) -> list[BenchmarkConfig]:
    """Build BenchmarkConfigs from a parsed YAML profile.

    Precedence for ``max_time`` and ``initial_count``: CLI override, then
    the benchmark entry, then the profile top level, then the defaults.
    A ``factory`` entry is called to build its config; overrides are
    applied to the config it returns.

    Args:
        profile_data: Parsed YAML profile dict.
        cli_overrides: Dict of CLI option values; ``None`` values are ignored.

    Returns:
        One BenchmarkConfig per ``benchmarks`` entry, in profile order.
    """
    cli = {k: v for k, v in (cli_overrides or {}).items() if v is not None}

    entries = profile_data.get("benchmarks")
    if not isinstance(entries, list) or not entries:
        raise ValueError("Profile 'benchmarks' must be a non-empty list of benchmark definitions")

    defaults = {
        "max_time": profile_data.get("max_time", DEFAULT_MAX_TIME),
        "initial_count": profile_data.get("initial_count", DEFAULT_INITIAL_COUNT),
    }

    configs: list[BenchmarkConfig] = []
    for idx, entry in enumerate(entries):
        if not isinstance(entry, dict):
            raise ValueError(
                f"Benchmark #{idx + 1} must be a mapping, got {type(entry).__name__}"
            )

        settings = {k: entry.get(k, defaults[k]) for k in defaults}
        settings.update({k: cli[k] for k in defaults if k in cli})

        if "factory" in entry:
            factory = resolve_callable(str(entry["factory"]))
            config = factory()
            if not isinstance(config, BenchmarkConfig):
                raise ValueError(
                    f"Factory '{entry['factory']}' returned {type(config).__name__}, "
                    f"expected BenchmarkConfig"
                )
            # Profile-level values only apply where the entry or CLI says so.
            explicit = {k: v for k, v in entry.items() if k in defaults}
            explicit.update({k: cli[k] for k in defaults if k in cli})
            if "name" in entry:
                explicit["name"] = str(entry["name"])
            configs.append(replace(config, **explicit) if explicit else config)
            continue

        if "operation" not in entry:
            raise ValueError(f"Benchmark #{idx + 1} needs either 'operation' or 'factory'")

        operation_ref = str(entry["operation"])
        configs.append(
            BenchmarkConfig(
                name=str(entry.get("name") or operation_ref),
                operation=resolve_callable(operation_ref),
                setup_per_cycle=(
                    resolve_callable(str(entry["setup_per_cycle"]))
                    if entry.get("setup_per_cycle")
                    else None
                ),
                setup_once=(
                    resolve_callable(str(entry["setup_once"])) if entry.get("setup_once") else None
                ),
                max_time=settings["max_time"],
                initial_count=settings["initial_count"],
                synchronous=bool(entry.get("synchronous", False)),
            )
        )

    return configs
