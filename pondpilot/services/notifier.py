"""User-facing notifications"""

import logging
from typing import Callable

logger = logging.getLogger("pondpilot.notifications")

# level is one of "success", "info", "warning", "error"
Notifier = Callable[[str, str], None]

_LOG_LEVELS = {
    "success": logging.INFO,
    "info": logging.INFO,
    "warning": logging.WARNING,
    "error": logging.ERROR,
}


def log_notifier(level: str, message: str) -> None:
    """Default notifier: write the notification to the log"""
    logger.log(_LOG_LEVELS.get(level, logging.INFO), f"[{level.upper()}] {message}")
