"""planchain — floor-plan identity resolution for homesite inventory data."""
from __future__ import annotations

import logging

__version__ = "0.1.0"


def configure_logging(level: str | None = None) -> None:
    """Apply the configured log level to the root logger."""
    from planchain.config import settings

    logging.basicConfig(level=level or settings.LOG_LEVEL)
