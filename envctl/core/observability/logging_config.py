"""
Logging configuration — central setup for the CLI.

Called once at startup by main.py. Every module that does
``logger = logging.getLogger(__name__)`` inherits this config.

Console level, highest precedence first:
    --debug / --verbose / --quiet  >  ENVCTL_LOG_LEVEL  >  WARNING

A second, usually more verbose, destination can be added with
ENVCTL_LOG_FILE (and ENVCTL_LOG_FILE_LEVEL). Batch rollouts with
``--workers`` log from pool threads, so the detailed formats carry the
thread name.
"""

from __future__ import annotations

import logging
import os
import sys
from collections.abc import Mapping

# ── Formats per console tier ────────────────────────────────────

# (upper level bound, format, datefmt), checked in order
_CONSOLE_TIERS: tuple[tuple[int, str, str | None], ...] = (
    (logging.DEBUG, "%(asctime)s %(levelname)-5s %(threadName)s %(name)s:%(lineno)d  %(message)s", "%H:%M:%S"),
    (logging.INFO, "%(asctime)s [%(name)s] %(message)s", "%H:%M:%S"),
)
_CONSOLE_DEFAULT = "%(message)s"

_FILE_FORMAT = "%(asctime)s %(levelname)-5s %(threadName)s %(name)s:%(lineno)d  %(message)s"
_FILE_DATEFMT = "%Y-%m-%d %H:%M:%S"

_LEVEL_VAR = "ENVCTL_LOG_LEVEL"
_FILE_VAR = "ENVCTL_LOG_FILE"
_FILE_LEVEL_VAR = "ENVCTL_LOG_FILE_LEVEL"

# Held at WARNING unless the console runs at DEBUG
_NOISY_LOGGERS = ("concurrent.futures", "asyncio")


def resolve_level(
    cli_level: str | None = None,
    environ: Mapping[str, str] | None = None,
) -> str:
    """Pick the console level name: CLI flag, then ENVCTL_LOG_LEVEL, then WARNING."""
    if cli_level:
        return cli_level.upper()
    env = os.environ if environ is None else environ
    return (env.get(_LEVEL_VAR) or "WARNING").upper()


def setup_logging(
    level: str = "WARNING",
    log_file: str | None = None,
    log_file_level: str | None = None,
    quiet_third_party: bool = True,
) -> int:
    """Replace the root handlers with envctl's console (and file) output.

    Args:
        level: Console level name. Unknown names mean WARNING.
        log_file: Also write to this path when set.
        log_file_level: Level for the file. Defaults to ``level``.
        quiet_third_party: Keep pool and event-loop loggers at WARNING
            unless the console is at DEBUG.

    Returns:
        The numeric level the root logger was set to.
    """
    console_level = _parse_level(level)
    handlers = [_console_handler(console_level)]
    root_level = console_level

    if log_file:
        file_level = _parse_level(log_file_level) if log_file_level else console_level
        handlers.append(_file_handler(log_file, file_level))
        root_level = min(root_level, file_level)

    root = logging.getLogger()
    root.handlers.clear()
    for handler in handlers:
        root.addHandler(handler)
    root.setLevel(root_level)

    if quiet_third_party and console_level > logging.DEBUG:
        for name in _NOISY_LOGGERS:
            logging.getLogger(name).setLevel(logging.WARNING)

    logging.raiseExceptions = False
    return root_level


def setup_from_environment(cli_level: str | None = None) -> int:
    """``setup_logging`` with the level and file taken from ENVCTL_* variables."""
    return setup_logging(
        level=resolve_level(cli_level),
        log_file=os.environ.get(_FILE_VAR),
        log_file_level=os.environ.get(_FILE_LEVEL_VAR),
    )


# ── Handlers ────────────────────────────────────────────────────


def _console_handler(level: int) -> logging.Handler:
    fmt, datefmt = _CONSOLE_DEFAULT, None
    for bound, tier_fmt, tier_datefmt in _CONSOLE_TIERS:
        if level <= bound:
            fmt, datefmt = tier_fmt, tier_datefmt
            break

    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(fmt, datefmt=datefmt))
    return handler


def _file_handler(path: str, level: int) -> logging.Handler:
    handler = logging.FileHandler(path, encoding="utf-8")
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(_FILE_FORMAT, datefmt=_FILE_DATEFMT))
    return handler


def _parse_level(level: str | None) -> int:
    """Level name to its numeric value; blank or unknown names mean WARNING."""
    numeric = logging.getLevelName(level.strip().upper()) if level else None
    return numeric if isinstance(numeric, int) else logging.WARNING
