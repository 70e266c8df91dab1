"""Logging setup shared by the API and the fetch layer."""
from __future__ import annotations

import logging


def configure_logging(level: str) -> None:
    """Initialize basic logging with a shared format at ``level``.

    The level normally comes from ``Settings.log_level`` (``DASHFEED_LOG_LEVEL``).
    """

    logging.basicConfig(
        level=level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
