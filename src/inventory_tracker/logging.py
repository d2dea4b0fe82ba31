import logging
import os
from typing import Optional, Union


_LEVELS = {
    "CRITICAL": logging.CRITICAL,
    "ERROR": logging.ERROR,
    "WARN": logging.WARNING,
    "WARNING": logging.WARNING,
    "INFO": logging.INFO,
    "DEBUG": logging.DEBUG,
}

_FORMAT = "%(asctime)s [%(name)s] %(levelname)s: %(message)s"
_DATEFMT = "%Y-%m-%d %H:%M:%S"


def _coerce_level(value: Optional[Union[str, int]]) -> int:
    if isinstance(value, str):
        return _LEVELS.get(value.upper().strip(), logging.INFO)
    if isinstance(value, int):
        return value
    return logging.INFO


def get_logger(name: str) -> logging.Logger:
    """Return a console logger for one inventory component.

    - Honors LOG_LEVEL (default INFO) and LOG_FILE (optional path).
    - Configures each named logger once; repeated calls return it unchanged.
    """
    logger = logging.getLogger(f"inventory.{name}")
    if getattr(logger, "_inventory_configured", False):
        return logger

    level = _coerce_level(os.environ.get("LOG_LEVEL", "INFO"))
    logger.setLevel(level)
    formatter = logging.Formatter(fmt=_FORMAT, datefmt=_DATEFMT)

    sh = logging.StreamHandler()
    sh.setLevel(level)
    sh.setFormatter(formatter)
    logger.addHandler(sh)

    log_file = os.environ.get("LOG_FILE")
    if log_file:
        try:
            fh = logging.FileHandler(log_file, encoding="utf-8")
            fh.setLevel(level)
            fh.setFormatter(formatter)
            logger.addHandler(fh)
        except OSError:
            logger.warning("LOG_FILE %s could not be opened; continuing without file logging", log_file)

    logger.propagate = False
    setattr(logger, "_inventory_configured", True)
    return logger


def set_level(level: Union[str, int]) -> None:
    """Apply a level to every inventory logger created so far (CLI --log-level)."""
    resolved = _coerce_level(level)
    for name, logger in logging.root.manager.loggerDict.items():
        if not name.startswith("inventory.") or not isinstance(logger, logging.Logger):
            continue
        logger.setLevel(resolved)
        for handler in logger.handlers:
            handler.setLevel(resolved)
