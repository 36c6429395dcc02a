"""Process-wide logging for applyflow runs.

Every module asks for ``get_logger(__name__)``. The first call wires the root
logger: a stdout handler at ``LOG_LEVEL`` (default INFO) and, unless
``APPLYFLOW_NO_LOG_FILE`` is set, a DEBUG-level file per day under
``APPLYFLOW_LOG_DIR`` (default ``<project>/logs``).
"""
from __future__ import annotations

import logging
import os
import sys
from datetime import date
from pathlib import Path

DEFAULT_LOG_DIR = Path(__file__).resolve().parent.parent / "logs"
_FORMAT = "%(asctime)s  %(levelname)-8s  %(name)s  %(message)s"
_DATE_FMT = "%Y-%m-%d %H:%M:%S"
_QUIET_LIBRARIES = ("httpx", "httpcore", "openai")
_configured = False


def get_logger(name: str) -> logging.Logger:
    global _configured
    if not _configured:
        _configure()
        _configured = True
    return logging.getLogger(name)


def run_log_path(day: date | None = None) -> Path:
    """Daily log file for *day* (today by default)."""
    log_dir = Path(os.environ.get("APPLYFLOW_LOG_DIR") or DEFAULT_LOG_DIR)
    return log_dir / f"applyflow_{(day or date.today()).isoformat()}.log"


def _configure() -> None:
    level = getattr(logging, os.environ.get("LOG_LEVEL", "INFO").upper(), logging.INFO)
    root = logging.getLogger()
    root.setLevel(level)

    # client libraries log every request at INFO
    for name in _QUIET_LIBRARIES:
        logging.getLogger(name).setLevel(logging.WARNING)

    if root.handlers:
        return

    formatter = logging.Formatter(_FORMAT, datefmt=_DATE_FMT)
    console = logging.StreamHandler(sys.stdout)
    console.setLevel(level)
    console.setFormatter(formatter)
    root.addHandler(console)

    if os.environ.get("APPLYFLOW_NO_LOG_FILE"):
        return
    path = run_log_path()
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(path, encoding="utf-8")
    except OSError as exc:
        root.warning("File logging disabled, cannot open %s: %s", path, exc)
        return
    file_handler.setLevel(logging.DEBUG)
    file_handler.setFormatter(formatter)
    root.addHandler(file_handler)
