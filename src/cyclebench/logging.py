"""Logging setup for cyclebench.

Every package module logs through ``get_logger(__name__)``, which puts it
under the ``cyclebench`` namespace with a short component name (``runner``,
``compare``, ``suite``...).  The console shows progress at a level chosen by
the CLI flags; ``--log-file`` keeps the per-cycle DEBUG trail, optionally
restricted to some components with ``--log-module``.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterable

ROOT_LOGGER = "cyclebench"

_FILE_FORMAT = "%(asctime)s %(levelname)-8s %(component)-8s %(message)s"
_CONSOLE_FORMAT = "%(levelname)-8s %(message)s"
_VERBOSE_CONSOLE_FORMAT = "%(levelname)-8s [%(component)s] %(message)s"


def component_name(logger_name: str) -> str:
    """Short component name for a logger: ``cyclebench.bench.runner`` -> ``runner``."""
    return logger_name.rsplit(".", 1)[-1]


class ComponentFilter(logging.Filter):
    """Tag records with ``component`` and optionally keep only some components."""

    def __init__(self, components: Iterable[str] = ()) -> None:
        super().__init__()
        self.components = frozenset(components)

    def filter(self, record: logging.LogRecord) -> bool:
        record.component = component_name(record.name)
        return not self.components or record.component in self.components


def setup_logging(
    *,
    verbose: bool = False,
    quiet: bool = False,
    log_file: Path | None = None,
    log_modules: Iterable[str] = (),
) -> logging.Logger:
    """Configure and return the ``cyclebench`` namespace logger.

    Args:
        verbose: Console shows DEBUG records, tagged with their component.
        quiet: Console shows only warnings and errors.  *verbose* wins.
        log_file: Also write every DEBUG record to this file.
        log_modules: Component names to keep in *log_file*; empty keeps all.

    Returns:
        The namespace logger, with any previous handlers replaced.
    """
    logger = logging.getLogger(ROOT_LOGGER)
    logger.setLevel(logging.DEBUG)
    logger.handlers.clear()

    console = logging.StreamHandler()
    console.addFilter(ComponentFilter())
    if verbose:
        console.setLevel(logging.DEBUG)
        console.setFormatter(logging.Formatter(_VERBOSE_CONSOLE_FORMAT))
    else:
        console.setLevel(logging.WARNING if quiet else logging.INFO)
        console.setFormatter(logging.Formatter(_CONSOLE_FORMAT))
    logger.addHandler(console)

    if log_file is not None:
        fh = logging.FileHandler(log_file, encoding="utf-8")
        fh.setLevel(logging.DEBUG)
        fh.addFilter(ComponentFilter(log_modules))
        fh.setFormatter(logging.Formatter(_FILE_FORMAT))
        logger.addHandler(fh)

    return logger


def get_logger(name: str) -> logging.Logger:
    """Logger for module *name*, placed under the ``cyclebench`` namespace.

    Package modules pass ``__name__``; other names (plugins, tests) are
    prefixed so they still reach the handlers set up above.
    """
    if name == ROOT_LOGGER or name.startswith(ROOT_LOGGER + "."):
        return logging.getLogger(name)
    return logging.getLogger(f"{ROOT_LOGGER}.{name}")
