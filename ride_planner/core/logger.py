"""Loguru setup for the Ride Planner API.

Console output always; a rotating file sink when LOG_FILE is configured.
"""

import sys
from pathlib import Path

from loguru import logger

CONSOLE_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - <level>{message}</level>"
)
FILE_FORMAT = "{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {name}:{function}:{line} - {message}"


def setup_logger(
    level: str = "INFO",
    log_file: str | None = None,
    rotation: str = "10 MB",
    retention: str = "7 days",
) -> None:
    """Replace loguru's default handler with the app's sinks.

    Args:
        level: Minimum level for every sink
        log_file: Path of the log file; parent directories are created
        rotation: When to start a new file (e.g. "10 MB", "1 day")
        retention: How long rotated files are kept (e.g. "7 days")
    """
    logger.remove()
    logger.add(sys.stderr, format=CONSOLE_FORMAT, level=level, colorize=True)

    if not log_file:
        logger.info(f"Logging to console at level={level}")
        return

    log_path = Path(log_file)
    log_path.parent.mkdir(parents=True, exist_ok=True)
    logger.add(
        log_path,
        format=FILE_FORMAT,
        level=level,
        rotation=rotation,
        retention=retention,
        compression="zip",
    )
    logger.info(f"Logging to console and {log_path} at level={level}")
