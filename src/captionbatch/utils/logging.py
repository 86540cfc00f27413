from __future__ import annotations

import logging
from typing import Optional

LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"


def resolve_log_level(level: Optional[str], *, verbose: bool = False) -> str:
    """Explicit level wins; --verbose means DEBUG; otherwise WARNING keeps quiet runs to one line per job."""
    if level:
        return level.upper()
    return "DEBUG" if verbose else "WARNING"


def configure_logging(level: Optional[str] = None, *, verbose: bool = False) -> str:
    effective = resolve_log_level(level, verbose=verbose)
    logging.basicConfig(
        level=getattr(logging, effective, logging.WARNING),
        format=LOG_FORMAT,
        force=True,
    )
    return effective


def get_logger(name: str, level: Optional[str] = None) -> logging.Logger:
    logger = logging.getLogger(name)
    if level:
        logger.setLevel(getattr(logging, level.upper(), logger.level))
    return logger
