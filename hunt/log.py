"""Logging setup shared by every hunt module.

The first `get_logger()` call attaches a stdout handler and, unless
HUNT_LOG_FILE=0, a per-day file under logs/ (or HUNT_LOG_DIR). Level comes
from LOG_LEVEL and can be changed later with `set_level()`.
"""
from __future__ import annotations

import logging
import os
import sys
from datetime import datetime
from pathlib import Path

_DEFAULT_LOG_DIR = Path(__file__).resolve().parent.parent / "logs"
_FORMAT = "%(asctime)s  %(levelname)-8s  %(name)s  %(message)s"
_DATE_FMT = "%Y-%m-%d %H:%M:%S"
_configured = False
_console: logging.Handler | None = None
_file: logging.Handler | None = None


def get_logger(name: str) -> logging.Logger:
    global _configured
    if not _configured:
        _configure()
        _configured = True
    return logging.getLogger(name)


def set_level(level: int | str) -> None:
    """Change the console verbosity; the file handler keeps DEBUG."""
    if isinstance(level, str):
        level = getattr(logging, level.upper(), logging.INFO)
    logging.getLogger().setLevel(logging.DEBUG if _file is not None else level)
    if _console is not None:
        _console.setLevel(level)


def _log_dir() -> Path:
    override = os.environ.get("HUNT_LOG_DIR", "").strip()
    return Path(override).expanduser() if override else _DEFAULT_LOG_DIR


def _file_logging_enabled() -> bool:
    return os.environ.get("HUNT_LOG_FILE", "1").strip().lower() not in ("0", "false", "no")


def _file_handler() -> logging.Handler | None:
    try:
        log_dir = _log_dir()
        log_dir.mkdir(parents=True, exist_ok=True)
        fh = logging.FileHandler(log_dir / f"hunt_{datetime.now():%Y-%m-%d}.log", encoding="utf-8")
    except OSError:
        # read-only checkout; console logging still works
        return None
    fh.setLevel(logging.DEBUG)
    fh.setFormatter(logging.Formatter(_FORMAT, datefmt=_DATE_FMT))
    return fh


def _configure() -> None:
    global _console, _file
    level = getattr(logging, os.environ.get("LOG_LEVEL", "INFO").upper(), logging.INFO)
    root = logging.getLogger()
    root.setLevel(level)
    # something else (a test runner, an embedding app) already owns the root logger
    if root.handlers:
        return

    _console = logging.StreamHandler(sys.stdout)
    _console.setLevel(level)
    _console.setFormatter(logging.Formatter(_FORMAT, datefmt=_DATE_FMT))
    root.addHandler(_console)

    if _file_logging_enabled():
        _file = _file_handler()
        if _file is not None:
            root.addHandler(_file)
            root.setLevel(logging.DEBUG)
