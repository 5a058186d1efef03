"""
Logging for falcon_state.

Everything logs through the one "falcon_state" logger:
    from falcon_state.logging_config import logger

The level comes from FALCON_STATE_LOG_LEVEL (default INFO). Records go to
stderr so a configuration-management engine capturing stdout is unaffected.
"""

import logging
import os

LOG_FORMAT = "[%(asctime)s] [%(levelname)-5s] [%(name)s] %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def _resolve_level(name: str) -> int:
    level = logging.getLevelName(name.upper())
    return level if isinstance(level, int) else logging.INFO


def build_logger(name: str = "falcon_state") -> logging.Logger:
    """Return the package logger, attaching the stderr handler only once."""
    log = logging.getLogger(name)
    level = _resolve_level(os.environ.get("FALCON_STATE_LOG_LEVEL", "INFO"))
    log.setLevel(level)

    if not log.handlers:
        handler = logging.StreamHandler()
        handler.setLevel(level)
        handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT))
        log.addHandler(handler)

    # Records stay out of the root logger's handlers
    log.propagate = False
    return log


logger = build_logger()
