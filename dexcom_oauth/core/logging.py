"""
Logging utilities for the OAuth gateway and the MCP bridge.

Provides a consistent logging format and configuration.
"""

import logging
import sys
from typing import TextIO


def configure_logging(level: str = "INFO", *, stream: TextIO | None = None) -> None:
    """Configure root logging with a sensible default format.

    The stdio MCP transport owns stdout, so callers running it pass ``sys.stderr``.
    """
    logging.basicConfig(
        level=level.upper(),
        format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
        stream=stream or sys.stdout,
        force=True,
    )
    # httpx logs full request URLs at INFO, which include OAuth codes.
    logging.getLogger("httpx").setLevel(logging.WARNING)


__all__ = ["configure_logging"]
