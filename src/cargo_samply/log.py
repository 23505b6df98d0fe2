"""Logging setup for the CLI."""

from __future__ import annotations

import logging
import sys

LOG_FORMAT = "%(levelname)s: %(message)s"

log = logging.getLogger("cargo_samply")
log.setLevel(logging.INFO)
log.propagate = False


def configure(*, verbose: bool = False, quiet: bool = False) -> None:
    """Attach the stderr handler and pick a level from the verbosity toggles."""
    if verbose:
        level = logging.DEBUG
    elif quiet:
        level = logging.WARNING
    else:
        level = logging.INFO

    if not log.handlers:
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        log.addHandler(handler)
    log.setLevel(level)
    for h in log.handlers:
        h.setLevel(level)
