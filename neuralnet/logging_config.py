"""
logging_config.py
~~~~~~~~~~~~~~~~~

Logging setup for applications embedding the network engine.

The library only creates module loggers; nothing is configured on import.
"""

import os
import logging
from typing import Optional

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


def configure_logging(level: Optional[str] = None) -> int:
    """
    Set up logging for the ``neuralnet`` package.

    Args:
        level: Level name such as ``'DEBUG'``. Falls back to the
            ``LOG_LEVEL`` environment variable, then ``INFO``.

    Returns:
        int: The numeric level applied
    """
    log_level_str = (level or os.getenv('LOG_LEVEL', 'INFO')).upper()
    log_level = getattr(logging, log_level_str, None)
    if not isinstance(log_level, int):
        log_level = logging.INFO

    logging.basicConfig(level=log_level, format=LOG_FORMAT)

    # basicConfig is a no-op when the root logger already has handlers
    logging.getLogger('neuralnet').setLevel(log_level)
    return log_level
