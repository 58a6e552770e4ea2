# listing_engine/utils.py
"""Logging setup.

Modules take a child of the ``listing_engine`` logger with
``get_logger(__name__)``; level comes from `LOG_LEVEL` (environment or `.env`).
"""
import os
import logging
from dotenv import load_dotenv

load_dotenv()

ROOT_LOGGER = "listing_engine"
LOG_FORMAT = "%(asctime)s | %(levelname)-7s | %(name)s | %(message)s"


def _configure(logger: logging.Logger) -> logging.Logger:
    if not logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        logger.addHandler(handler)
        logger.propagate = False
    level = os.getenv("LOG_LEVEL", "INFO").upper()
    logger.setLevel(getattr(logging, level, logging.INFO))
    return logger


def get_logger(name: str = ROOT_LOGGER) -> logging.Logger:
    root = _configure(logging.getLogger(ROOT_LOGGER))
    if name == ROOT_LOGGER:
        return root
    if not name.startswith(ROOT_LOGGER + "."):
        name = f"{ROOT_LOGGER}.{name}"
    return logging.getLogger(name)
