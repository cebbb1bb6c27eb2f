"""Process-wide logging setup shared by the API and the CLI."""

import logging
import sys
from typing import Optional

import structlog

from tool_monitoring.core.config import get_settings

_configured = False


def configure_logging(level: Optional[str] = None) -> None:
    """Send stdlib records to stdout and apply the same level to structlog loggers."""
    global _configured
    if _configured:
        return
    numeric_level = logging.getLevelName((level or get_settings().log_level).upper())
    if not isinstance(numeric_level, int):
        numeric_level = logging.INFO

    logging.basicConfig(
        level=numeric_level,
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
        handlers=[logging.StreamHandler(sys.stdout)],
    )
    structlog.configure(wrapper_class=structlog.make_filtering_bound_logger(numeric_level))
    _configured = True
