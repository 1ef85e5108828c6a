"""
Client configuration module.

This module handles client-side configuration settings.
"""

from pathlib import Path

from attachment_protocol.constants import (
    DEFAULT_HOST, DEFAULT_PORT, DEFAULT_CONNECT_TIMEOUT, MAX_FRAME_LENGTH,
    READ_BUFFER_SIZE, ATTACHMENT_DIR, CLOSE_TIMEOUT, WRITE_TIMEOUT
)


class ClientConfig:
    """Client configuration class."""

    def __init__(self, host: str = DEFAULT_HOST, port: int = DEFAULT_PORT,
                 connect_timeout: int = DEFAULT_CONNECT_TIMEOUT, attachment_dir: str = ATTACHMENT_DIR):
        if int(connect_timeout) != connect_timeout or connect_timeout <= 0:
            raise ValueError(f"connect_timeout must be a positive whole number of seconds, got {connect_timeout!r}")

        self.host = host
        self.port = port
        self.connect_timeout = int(connect_timeout)
        self.attachment_dir = Path(attachment_dir)

        # Transfer settings
        self.max_frame_length = MAX_FRAME_LENGTH
        self.read_buffer_size = READ_BUFFER_SIZE

        # Connection settings
        self.keep_alive = True
        self.close_timeout = CLOSE_TIMEOUT
        self.write_timeout = WRITE_TIMEOUT

    def get_connection_info(self):
        """Get connection information."""
        return {
            'host': self.host,
            'port': self.port,
            'connect_timeout': self.connect_timeout,
            'keep_alive': self.keep_alive
        }

    def get_transfer_settings(self):
        """Get transfer settings."""
        return {
            'attachment_dir': str(self.attachment_dir),
            'max_frame_length': self.max_frame_length,
            'read_buffer_size': self.read_buffer_size
        }
