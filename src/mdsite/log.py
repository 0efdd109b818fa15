"""Logging setup for the CLI: console plus an optional log file"""

import logging
from pathlib import Path
from typing import Optional


LOGGER_NAME = "mdsite"
FORMAT = "%(asctime)s - %(levelname)s - %(name)s - %(message)s"


def setup_logging(level: str = "INFO", log_file: Optional[str] = None) -> logging.Logger:
    """Configure the package logger. Console shows messages only; the file gets full records."""
    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(getattr(logging, level.upper(), logging.INFO))
    logger.handlers.clear()

    ch = logging.StreamHandler()
    ch.setLevel(logger.level)
    ch.setFormatter(logging.Formatter("%(levelname)s: %(message)s"))
    logger.addHandler(ch)

    if log_file:
        Path(log_file).parent.mkdir(parents=True, exist_ok=True)
        fh = logging.FileHandler(log_file, encoding="utf-8")
        fh.setLevel(logging.DEBUG)
        fh.setFormatter(logging.Formatter(FORMAT))
        logger.addHandler(fh)
        logger.setLevel(logging.DEBUG)
        ch.setLevel(getattr(logging, level.upper(), logging.INFO))

    logger.debug("logging initialized (level=%s, file=%s)", level, log_file)
    return logger
