"""Logging configuration for the API process and cron runs."""

from __future__ import annotations

import logging
import os
import sys
from pathlib import Path

_APP_LOGGER_PREFIXES = ("taskboard", "core", "api")


class _ThirdPartyNoiseFilter(logging.Filter):
    """
    Keep application logs, but only let warnings and above through from
    third-party libraries (sqlalchemy, httpx, uvicorn access logs, ...).
    """

    def filter(self, record: logging.LogRecord) -> bool:
        name = record.name
        if name.split(".", 1)[0] in _APP_LOGGER_PREFIXES:
            return True
        if name == "py.warnings":
            return record.levelno >= logging.ERROR
        return record.levelno >= logging.WARNING


def setup_logging(
    *,
    level: int | str | None = None,
    log_file: str | Path | None = None,
) -> None:
    """
    Configure root logging with:
    - Console handler: filtered for third-party noise
    - Optional file handler: full logs for debugging

    Call this once, early in process startup.
    """
    if level is None:
        level = os.getenv("LOG_LEVEL", "INFO").upper()

    root = logging.getLogger()
    root.setLevel(logging.DEBUG)

    # Remove any pre-existing handlers to avoid duplicates on reload.
    for h in list(root.handlers):
        root.removeHandler(h)

    fmt = logging.Formatter(
        fmt="%(asctime)s.%(msecs)03d %(levelname)s %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    ch = logging.StreamHandler(sys.stderr)
    ch.setLevel(level)
    ch.setFormatter(fmt)
    ch.addFilter(_ThirdPartyNoiseFilter())
    root.addHandler(ch)

    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        fh = logging.FileHandler(str(log_path), encoding="utf-8")
        fh.setLevel(logging.DEBUG)
        fh.setFormatter(fmt)
        root.addHandler(fh)

    logging.captureWarnings(True)
