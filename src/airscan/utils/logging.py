from __future__ import annotations

import logging
import os
from typing import Literal, get_args

import coloredlogs  # type: ignore[import]

LogLevel = Literal["CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG"]

DEFAULT_FORMAT = "%(asctime)s %(threadName)s %(name)s %(levelname)s %(message)s"
DEFAULT_DATE_FORMAT = "%H:%M:%S"

# HTTP and mDNS traffic, silenced below WARNING unless wire logging is on
WIRE_LOGGERS = ("httpx", "httpcore", "zeroconf")
WIRE_LOG_ENV_VAR = "AIRSCAN_WIRE_LOG"


def resolve_level(level: str | None = None) -> str:
    resolved = (level or os.environ.get("LOGLEVEL") or "INFO").upper()
    if resolved not in get_args(LogLevel):
        raise ValueError(f"unknown log level {resolved!r}")
    return resolved


def setup_logging(level: str | None = None, wire: bool | None = None) -> None:
    """Install colored console logging for airscan.

    The thread name is part of every line, since device management runs on
    the event loop thread and zeroconf reports from its own threads.
    """
    resolved = resolve_level(level)
    if wire is None:
        wire = bool(os.environ.get(WIRE_LOG_ENV_VAR))

    coloredlogs.install(level=resolved, fmt=DEFAULT_FORMAT, datefmt=DEFAULT_DATE_FORMAT)

    wire_level = logging.getLevelName(resolved) if wire else logging.WARNING
    for name in WIRE_LOGGERS:
        logging.getLogger(name).setLevel(wire_level)
