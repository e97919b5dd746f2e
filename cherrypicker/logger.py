"""Logging setup for the CLI."""

import logging
import sys


def setup_logger(log_level: str = "WARNING", name: str = "cherrypicker") -> logging.Logger:
    """Configure the root logger and return the package logger.

    Logs go to stderr; stdout is reserved for tables and YAML plans.
    """
    numeric_level = getattr(logging, log_level.upper(), logging.WARNING)

    logging.basicConfig(
        level=numeric_level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        stream=sys.stderr,
        force=True,
    )

    logger = logging.getLogger(name)
    logger.setLevel(numeric_level)
    return logger
