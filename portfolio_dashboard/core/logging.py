"""
Process logging for the API server.
"""

import logging
import sys
from typing import Iterable

LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"

# Market data client libraries; at INFO they log every upstream request
UPSTREAM_LOGGERS = ("httpx", "httpcore", "yfinance", "urllib3", "peewee")


def _resolve_level(level: str) -> int:
    return getattr(logging, level.upper(), logging.INFO)


def setup_logging(
    level: str = "INFO",
    upstream_level: str = "WARNING",
    upstream_loggers: Iterable[str] = UPSTREAM_LOGGERS,
) -> None:
    """
    Log to stdout at ``level``. Upstream client libraries are held at
    ``upstream_level`` so a portfolio refresh doesn't print one line per
    quote request.
    """
    root_level = _resolve_level(level)
    logging.basicConfig(
        level=root_level,
        format=LOG_FORMAT,
        handlers=[logging.StreamHandler(sys.stdout)],
    )
    # basicConfig is a no-op once handlers exist (reload, test runners)
    logging.getLogger().setLevel(root_level)

    quiet_level = _resolve_level(upstream_level)
    for name in upstream_loggers:
        logging.getLogger(name).setLevel(quiet_level)
