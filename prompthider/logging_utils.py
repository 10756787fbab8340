from __future__ import annotations

import logging
import os
from logging.handlers import RotatingFileHandler
from pathlib import Path

ROOT_LOGGER_NAME = "prompthider"
DEFAULT_LEVEL = "WARNING"


def _log_dir() -> Path:
    configured = os.getenv("PROMPTHIDER_LOG_DIR")
    if configured:
        return Path(configured)
    return Path.cwd() / ".prompthider" / "logs"


def get_logger(name: str = ROOT_LOGGER_NAME) -> logging.Logger:
    """
    Return a logger under the 'prompthider' hierarchy.

    The first call configures the root 'prompthider' logger with a rotating
    'prompthider.log' file (in PROMPTHIDER_LOG_DIR, or '.prompthider/logs'
    under the working directory) and a console handler. Child loggers such
    as 'prompthider.engine' propagate to it. The level comes from
    PROMPTHIDER_LOG_LEVEL and defaults to WARNING.

    Messages logged through these loggers must never contain literals,
    only counts, rule patterns and token names.
    """
    if name != ROOT_LOGGER_NAME and not name.startswith(ROOT_LOGGER_NAME + "."):
        name = f"{ROOT_LOGGER_NAME}.{name}"

    root = logging.getLogger(ROOT_LOGGER_NAME)
    if not root.handlers:
        level = os.getenv("PROMPTHIDER_LOG_LEVEL", DEFAULT_LEVEL).upper()
        root.setLevel(level)

        formatter = logging.Formatter(
            "%(asctime)s | %(levelname)s | %(name)s | %(message)s"
        )

        try:
            logs_dir = _log_dir()
            logs_dir.mkdir(parents=True, exist_ok=True)
            handler = RotatingFileHandler(
                logs_dir / "prompthider.log", maxBytes=5 * 1024 * 1024, backupCount=5
            )
            handler.setFormatter(formatter)
            root.addHandler(handler)
        except OSError:
            # Read-only working directories still get console logging.
            pass

        console = logging.StreamHandler()
        console.setFormatter(formatter)
        root.addHandler(console)

    return logging.getLogger(name)
