# tempchat/utils/logger.py

import logging
import sys

from tempchat.core.config import LOG_LEVEL

LOG_FORMAT = "%(asctime)s %(levelname)-7s [%(name)s] %(message)s"


def setup_logger(level: str = LOG_LEVEL) -> logging.Logger:
    """
    Configure the root logger once per process.
    Calling it again only adjusts the level.
    """
    root = logging.getLogger()
    root.setLevel(level.upper())

    if not any(getattr(h, "_tempchat", False) for h in root.handlers):
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        handler._tempchat = True
        root.addHandler(handler)

    # uvicorn access logs duplicate what the routes already log
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    return root
