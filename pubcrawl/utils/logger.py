from __future__ import annotations
import logging, os, sys

_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"


def get_logger(name: str = "pubcrawl", level: str | None = None) -> logging.Logger:
    """Stdout logger under the ``pubcrawl`` namespace; handlers are installed once."""
    if not name.startswith("pubcrawl"):
        name = f"pubcrawl.{name}"
    logger = logging.getLogger(name)
    if logger.handlers:
        return logger
    logger.setLevel(level or os.getenv("PUBCRAWL_LOG_LEVEL", "INFO"))
    h = logging.StreamHandler(sys.stdout)
    h.setFormatter(logging.Formatter(fmt=_FORMAT, datefmt="%Y-%m-%d %H:%M:%S"))
    logger.addHandler(h)
    logger.propagate = False
    return logger


def set_level(level: str) -> None:
    """Apply ``level`` to every pubcrawl logger created so far."""
    for name, obj in logging.Logger.manager.loggerDict.items():
        if name.startswith("pubcrawl") and isinstance(obj, logging.Logger):
            obj.setLevel(level)
