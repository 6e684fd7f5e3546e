"""
Logging Configuration

Library modules under ``orbit_engine`` only create loggers with
``logging.getLogger(__name__)``; entry points call ``configure_logging``
once. The engine logs a DEBUG summary per batch pass, so the package logger
can be held at a different level than the root logger.

Usage:
    from logging_config import configure_logging, get_logger

    configure_logging(level="INFO", engine_level="DEBUG")
    logger = get_logger(__name__)
"""

import logging
import os
import sys
from typing import Optional, Union

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

ENGINE_LOGGER = "orbit_engine"
LOG_LEVEL_ENV = "ORBIT_ENGINE_LOG_LEVEL"

Level = Union[int, str]


def resolve_level(level: Optional[Level], default: int = logging.INFO) -> int:
    """Accept a numeric level or a name such as ``'debug'``."""
    if level is None:
        return default
    if isinstance(level, int):
        return level
    value = logging.getLevelName(level.strip().upper())
    if not isinstance(value, int):
        raise ValueError(f"Unknown log level {level!r}")
    return value


def configure_logging(
    level: Optional[Level] = None,
    log_file: Optional[str] = None,
    engine_level: Optional[Level] = None,
) -> None:
    """
    Configure root logging for an entry point.

    Parameters
    ----------
    level : int or str, optional
        Root level. Defaults to ``$ORBIT_ENGINE_LOG_LEVEL`` or INFO.
    log_file : str, optional
        Also write records to this file.
    engine_level : int or str, optional
        Level of the ``orbit_engine`` package logger; inherits the root
        level when omitted.
    """
    root_level = resolve_level(level if level is not None else os.environ.get(LOG_LEVEL_ENV))

    handlers = [logging.StreamHandler(sys.stdout)]
    if log_file:
        handlers.append(logging.FileHandler(log_file))

    logging.basicConfig(
        level=root_level,
        format=LOG_FORMAT,
        datefmt=DATE_FORMAT,
        handlers=handlers,
        force=True,
    )
    logging.getLogger(ENGINE_LOGGER).setLevel(
        resolve_level(engine_level) if engine_level is not None else logging.NOTSET
    )


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)
