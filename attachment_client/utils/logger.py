"""
Client logging module.

This module handles client-side logging functionality.
"""

import logging
import sys


class ClientLogger:
    """Client logging class."""

    def __init__(self, log_level: int = logging.INFO):
        self.logger = logging.getLogger('attachment_client')
        self.logger.setLevel(log_level)

        # Remove existing handlers
        for handler in self.logger.handlers[:]:
            self.logger.removeHandler(handler)

        # Create console handler
        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setLevel(logging.DEBUG)

        # Create formatter
        formatter = logging.Formatter(
            '%(asctime)s [%(levelname)s] %(message)s',
            datefmt='%Y-%m-%d %H:%M:%S'
        )
        console_handler.setFormatter(formatter)

        # Add handler to logger
        self.logger.addHandler(console_handler)

    def set_level(self, log_level: int):
        """Change the log level."""
        self.logger.setLevel(log_level)

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

    def log_connection(self, host: str, port: int, success: bool):
        """Log connection attempt."""
        status = "Connected" if success else "Failed to connect"
        self.info(f"{status} to attachment server at {host}:{port}")

    def log_disconnect(self, reason: str):
        """Log connection teardown."""
        self.info(f"Disconnected from attachment server ({reason})")

    def log_file_request(self, path: str):
        """Log file request."""
        self.info(f"Requesting attachment: {path}")

    def log_frame(self, direction: str, frame: bytes):
        """Log a frame at debug level, truncated."""
        if self.logger.isEnabledFor(logging.DEBUG):
            preview = frame[:64]
            suffix = '...' if len(frame) > 64 else ''
            self.debug(f"{direction} {len(frame)} bytes: {preview!r}{suffix}")

    def log_transfer_started(self, name: str, size: int, path: str):
        """Log transfer start."""
        self.info(f"Receiving attachment '{name}' ({size} bytes) -> {path}")

    def log_transfer_finished(self, name: str, size: int):
        """Log transfer completion."""
        self.info(f"Attachment '{name}' complete ({size} bytes)")

    def log_integrity_error(self, name: str, declared: int, actual: int):
        """Log size mismatch after a transfer finished."""
        self.error(f"Invalid file length for attachment '{name}': declared {declared} bytes, received {actual} bytes")

    def log_error(self, operation: str, error: Exception):
        """Log error with operation context."""
        self.error(f"Error in {operation}: {error}")


# Global logger instance
logger = ClientLogger()
