"""Logging setup shared by the library engine and the CLI."""

import logging
import logging.handlers
from pathlib import Path
from typing import Optional

ROOT_LOGGER = "src"
LOG_FORMAT = "%(asctime)s %(levelname)-7s %(name)s: %(message)s"

logger = logging.getLogger(ROOT_LOGGER)


def setup_logging(log_dir: Optional[Path] = None, level: int = logging.INFO) -> logging.Logger:
    """Configure console logging and, if ``log_dir`` is given, a rotating log file.

    Calling this again replaces the handlers installed by the previous call.
    """
    logger.setLevel(level)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    formatter = logging.Formatter(LOG_FORMAT)

    console = logging.StreamHandler()
    console.setLevel(level)
    console.setFormatter(formatter)
    logger.addHandler(console)

    if log_dir is not None:
        log_dir = Path(log_dir)
        log_dir.mkdir(parents=True, exist_ok=True)
        file_handler = logging.handlers.RotatingFileHandler(
            log_dir / "library.log", maxBytes=1024 * 1024, backupCount=3, encoding="utf-8"
        )
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)
        # let debug records through to the file even when the console is quieter
        logger.setLevel(logging.DEBUG)

    logger.propagate = False
    return logger
