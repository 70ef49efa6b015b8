"""Logging setup.

The terminal belongs to the full screen application, so log records go to a file.
"""

import logging
from pathlib import Path
from typing import Optional, Union

LOG_FORMAT = '%(asctime)s - %(levelname)s - %(message)s'

logger = logging.getLogger("termpad")
logger.addHandler(logging.NullHandler())


def setup_logging(level: str = "WARNING", log_file: Optional[Union[str, Path]] = None) -> logging.Logger:
    """
    Configure the termpad logger.

    Args:
        level: Level name such as "INFO" or "DEBUG".
        log_file: Destination file. Nothing is written when omitted.

    Returns:
        The configured logger.
    """
    logger.setLevel(getattr(logging, level.upper(), logging.WARNING))

    for handler in list(logger.handlers):
        if isinstance(handler, logging.FileHandler):
            logger.removeHandler(handler)
            handler.close()

    if log_file:
        path = Path(log_file).expanduser()
        path.parent.mkdir(parents=True, exist_ok=True)
        handler = logging.FileHandler(path, encoding="utf-8")
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        logger.addHandler(handler)

    return logger
