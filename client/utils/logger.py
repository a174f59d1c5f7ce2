"""
Client logging module.

This module handles client-side logging functionality.
"""

import logging
import sys

from common.constants import LOGGER_NAME


class ClientLogger:
    """Client logging class."""

    def __init__(self, log_level: int = logging.INFO):
        self.logger = logging.getLogger(LOGGER_NAME)
        self.logger.setLevel(log_level)

        # Remove existing handlers
        for handler in self.logger.handlers[:]:
            self.logger.removeHandler(handler)

        # Create console handler
        self.console_handler = logging.StreamHandler(sys.stdout)
        self.console_handler.setLevel(log_level)

        # Create formatter
        formatter = logging.Formatter(
            '%(asctime)s [%(levelname)s] %(message)s',
            datefmt='%Y-%m-%d %H:%M:%S'
        )
        self.console_handler.setFormatter(formatter)

        # Add handler to logger
        self.logger.addHandler(self.console_handler)

    def set_level(self, log_level: int):
        """Change the level of the logger and its console handler."""
        self.logger.setLevel(log_level)
        self.console_handler.setLevel(log_level)

    def info(self, message: str):
        """Log info message."""
        self.logger.info(message)

    def error(self, message: str):
        """Log error message."""
        self.logger.error(message)

    def warning(self, message: str):
        """Log warning message."""
        self.logger.warning(message)

    def debug(self, message: str):
        """Log debug message."""
        self.logger.debug(message)

    def log_connection(self, url: str, state: str):
        """Log connection state change."""
        self.info(f"[SESSION] {url}: {state}")

    def log_frame(self, direction: str, raw: str):
        """Trace a raw frame ('->' inbound, '<-' outbound)."""
        self.debug(f"{direction} {raw}")

    def log_dropped_frame(self, raw, reason: Exception):
        """Log a malformed inbound frame that was dropped."""
        self.warning(f"[SESSION] Dropped malformed frame {raw!r}: {reason}")

    def log_join(self, nickname: str, room: str, success: bool):
        """Log join attempt or acknowledgement."""
        status = "Joined" if success else "Requesting join of"
        self.info(f"[CHAT] {status} room '{room}' as '{nickname}'")

    def log_error(self, operation: str, error):
        """Log error with operation context."""
        self.error(f"Error in {operation}: {error}")


# Global logger instance
logger = ClientLogger()
