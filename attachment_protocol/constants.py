"""
Shared constants for the attachment transfer protocol.

This module contains the wire constants shared with the attachment server and
the client-side defaults.
"""

# Network Configuration
DEFAULT_HOST = 'localhost'
DEFAULT_PORT = 5300

# Timeouts
DEFAULT_CONNECT_TIMEOUT = 5  # seconds
CLOSE_TIMEOUT = 5.0  # seconds to wait for the transport to close
WRITE_TIMEOUT = 30.0  # seconds to wait for a request to be flushed

# Framing
MAX_FRAME_LENGTH = 8192  # bytes per line, terminator excluded
FRAME_DELIMITER = b'\n'
READ_BUFFER_SIZE = 8192
TEXT_ENCODING = 'utf-8'

# File Transfer
ATTACHMENT_DIR = 'attachments'


# Message Prefixes
class MessagePrefixes:
    # Server to Client
    BEGIN = '<FILE_START>'
    CHUNK = '<FILE_CHUNK>'
    END = '<FILE_END>'

    # Separates the attachment name from the rest of the payload
    FIELD_SEPARATOR = ':'


class MessageKinds:
    BEGIN = 'begin'
    CHUNK = 'chunk'
    END = 'end'
    UNKNOWN = 'unknown'
