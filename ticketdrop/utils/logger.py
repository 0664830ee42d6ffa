"""
Client logging module.

This module handles client-side logging functionality.
"""

import logging
import sys


class ClientLogger:
    """Client logging class."""

    def __init__(self, log_level: int = logging.INFO):
        self.logger = logging.getLogger('ticketdrop')
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

    def log_share(self, path: str, generation: int):
        """Log a share request."""
        self.info(f"[SEND] Sharing {path} (generation={generation})")

    def log_ticket_issued(self, ticket: str, generation: int):
        """Log ticket issuance."""
        self.info(f"[SEND] Ticket issued (generation={generation}): {ticket}")

    def log_receive(self, dest_dir: str, generation: int):
        """Log a receive request."""
        self.info(f"[RECEIVE] Receiving into {dest_dir} (generation={generation})")

    def log_progress(self, role: str, done: int, total: int):
        """Log a progress sample."""
        self.debug(f"[{role.upper()}] Progress: {done}/{total}")

    def log_disconnect(self, generation: int):
        """Log a disconnect."""
        self.info(f"[SESSION] Disconnected (generation={generation})")

    def log_stale_event(self, kind: str, generation: int, current: int):
        """Log a discarded event from a superseded session."""
        self.debug(f"[SESSION] Dropped stale {kind} (generation={generation}, current={current})")

    def log_error(self, operation: str, error):
        """Log error with operation context."""
        self.error(f"Error in {operation}: {error}")


# Global logger instance
logger = ClientLogger()
