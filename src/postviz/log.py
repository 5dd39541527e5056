"""
Central logger setup for postviz.

Modules get their logger with:

    from postviz.log import get_logger
    logger = get_logger(__name__)

and the walkthrough (or any application) calls configure_logging() once.
"""
from __future__ import annotations
import logging, sys
from typing import Union

PACKAGE_LOGGER = "postviz"
LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"

_configured = False


def configure_logging(level: Union[int, str] = logging.INFO, force: bool = False) -> logging.Logger:
    """
    Attach a single stdout handler to the package logger.
    Calling it again is a no-op unless force=True (then the handler is replaced
    and the level updated).
    """
    global _configured
    root = logging.getLogger(PACKAGE_LOGGER)
    if isinstance(level, str):
        name = level
        level = logging.getLevelName(name.strip().upper())
        if not isinstance(level, int):
            raise ValueError(f"Unknown log level: {name!r}")
    if _configured and not force:
        return root

    for h in list(root.handlers):
        root.removeHandler(h)
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt="%Y-%m-%d %H:%M:%S"))
    root.addHandler(handler)
    root.setLevel(level)
    root.propagate = False
    _configured = True
    return root


def get_logger(name: str) -> logging.Logger:
    if name != PACKAGE_LOGGER and not name.startswith(PACKAGE_LOGGER + "."):
        name = f"{PACKAGE_LOGGER}.{name}"
    return logging.getLogger(name)
