"""Logging setup shared by the scripts."""

import logging
import sys
from typing import Optional

from .settings import settings


def setup_logging(level: Optional[str] = None) -> None:
    """Configure root logging to stdout at the given (or configured) level."""
    logging.basicConfig(
        level=getattr(logging, (level or settings.LOG_LEVEL).upper(), logging.INFO),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=[
            logging.StreamHandler(sys.stdout),
        ]
    )
