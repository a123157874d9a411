"""
Logging configuration using loguru.

The CLI calls setup_logging() once at startup.  Library code just does
``from loguru import logger`` and never configures sinks itself.
"""

import sys

from loguru import logger

CONSOLE_FORMAT = "<green>{time:HH:mm:ss}</green> <level>{level: <7}</level> {message}"
FILE_FORMAT = "{time:YYYY-MM-DD HH:mm:ss} | {level} | {name}:{line} | {message}"


def setup_logging(
    level: str = "INFO",
    log_file: str | None = None,
    fmt: str = CONSOLE_FORMAT,
    rotation: str = "10 MB",
    retention: str = "7 days",
) -> None:
    """
    Replace loguru's default sink with a console sink and an optional file sink.

    Args:
        level: Minimum log level (DEBUG, INFO, WARNING, ERROR).
        log_file: Path to a log file. Per-chunk upload failures are only
            reported through logs, so keep one for long runs.
        fmt: Console format string.
        rotation: Log file rotation size.
        retention: How long to keep rotated logs.
    """
    logger.remove()
    logger.add(sys.stderr, level=level.upper(), format=fmt)

    if log_file:
        logger.add(
            log_file,
            level=level.upper(),
            format=FILE_FORMAT,
            rotation=rotation,
            retention=retention,
        )
