import logging
import sys
from typing import Optional

from config import LOG_LEVEL

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'

# Client libraries under the Groq SDK log every request at INFO
NOISY_LOGGERS = ("httpx", "httpcore", "groq")

def setup_logger(name: str, level: Optional[str] = None):
    """
    Returns the named service logger, attaching a stdout handler on first use.
    ``level`` overrides LOG_LEVEL for this logger only.
    """
    logger = logging.getLogger(name)
    logger.setLevel(level or LOG_LEVEL)
    logger.propagate = False

    if not logger.handlers:
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt='%Y-%m-%d %H:%M:%S'))
        logger.addHandler(handler)

    for noisy in NOISY_LOGGERS:
        logging.getLogger(noisy).setLevel(logging.WARNING)

    return logger
