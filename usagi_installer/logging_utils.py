from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Optional

from .lib.env import PATHS

DEFAULT_LOG_PATH = PATHS.log_default


def configure_logging(
    log_path: str = DEFAULT_LOG_PATH,
    level: int = logging.INFO,
    also_console: bool = True,
) -> str:
    """Send the installer log to a file and, optionally, the console.

    The file records every command line (never its stdin), each gate prompt
    with its answer, and when each stage starts and how it ended. The run
    journal holds the full status history. Tool output is only kept at DEBUG.

    If log_path cannot be created the log goes to ./usagi-installer.log.
    Returns the path actually in use.
    """

    logger = logging.getLogger()
    logger.setLevel(level)

    # Avoid duplicate handlers if configure_logging() is called multiple times.
    if getattr(logger, "_usagi_configured", False):
        return getattr(logger, "_usagi_log_path", log_path)

    chosen_path = log_path
    handlers: list[logging.Handler] = []

    fmt = logging.Formatter(
        fmt="%(asctime)s %(levelname)s %(name)s: %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S%z",
    )

    file_handler: Optional[logging.Handler] = None
    try:
        Path(os.path.dirname(log_path) or ".").mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_path)
    except OSError:
        chosen_path = str(Path.cwd() / "usagi-installer.log")
        file_handler = logging.FileHandler(chosen_path)
    file_handler.setFormatter(fmt)
    handlers.append(file_handler)

    if also_console:
        console = logging.StreamHandler()
        console.setFormatter(fmt)
        handlers.append(console)

    for h in handlers:
        logger.addHandler(h)

    setattr(logger, "_usagi_configured", True)
    setattr(logger, "_usagi_log_path", chosen_path)

    logging.getLogger(__name__).info(
        "Logging initialized (requested=%s, actual=%s)", log_path, chosen_path
    )
    return chosen_path
