"""
Loguru configuration for command-line runs.

Library modules only call ``logger.<level>``; sinks are configured here, once,
by whoever owns the process.
"""

from datetime import datetime, timezone
from pathlib import Path
from typing import Optional
import sys

from loguru import logger


CONSOLE_FORMAT = (
    "<green>{time:HH:mm:ss.SSS}</green> | "
    "<level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<blue>{function}</blue> | "
    "<level>{message}</level>"
)

FILE_FORMAT = "{time:YYYY-MM-DD HH:mm:ss.SSS} | {level: <8} | {name}:{function}:{line} | {message}"


def setup_logger(
    log_dir: Optional[str] = None,
    level: str = "INFO",
    rotation: str = "50 MB",
    retention: str = "30 days",
) -> Optional[Path]:
    """
    Configure console logging and, optionally, a timestamped log file.

    Args:
        log_dir: Directory for the log file (no file sink when None)
        level: Minimum level for both sinks
        rotation: Loguru rotation policy for the file sink
        retention: Loguru retention policy for the file sink

    Returns:
        Path of the log file, or None when only the console is used
    """
    logger.remove()
    logger.add(
        sys.stderr,
        format=CONSOLE_FORMAT,
        level=level,
        colorize=sys.stderr.isatty(),
    )

    if log_dir is None:
        return None

    directory = Path(log_dir)
    directory.mkdir(parents=True, exist_ok=True)
    timestamp = datetime.now(timezone.utc).strftime("%Y%m%d_%H%M%S")
    log_file = directory / f"hyperneat_{timestamp}.log"
    logger.add(
        str(log_file),
        format=FILE_FORMAT,
        level=level,
        rotation=rotation,
        retention=retention,
        encoding="utf-8",
    )
    logger.info(f"Logging to {log_file}")
    return log_file
