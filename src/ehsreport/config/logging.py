"""Logging setup for the command line entry point."""

from __future__ import annotations

import logging

from .env import optional_env_var
from .errors import ConfigurationError

LOG_LEVEL_ENV = "EHSREPORT_LOG_LEVEL"


def resolve_log_level(*, verbose: bool = False) -> int:
    """Pick the root level: ``--verbose`` beats ``EHSREPORT_LOG_LEVEL`` beats INFO."""

    if verbose:
        return logging.DEBUG
    name = optional_env_var(LOG_LEVEL_ENV)
    if name is None:
        return logging.INFO
    level = logging.getLevelNamesMapping().get(name.upper())
    if level is None:
        raise ConfigurationError(f"{LOG_LEVEL_ENV} is not a logging level: {name!r}")
    return level


def configure_logging(*, level: int = logging.INFO, force: bool = False) -> None:
    """Initialise the root logger once with a terse CLI format.

    Pass ``force=True`` to reconfigure during tests or specialised entry points.
    """

    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
        datefmt="%H:%M:%S",
        force=force,
    )
