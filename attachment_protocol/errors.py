"""
Exceptions raised by the attachment transfer client.
"""


class AttachmentTransferError(Exception):
    """Base class for attachment transfer errors."""
    pass


class ConnectionStateError(AttachmentTransferError):
    """Operation is not valid in the current connection state."""
    pass


class NotConnectedError(ConnectionStateError):
    """Raised when an operation needs a live connection and there is none."""

    def __init__(self, operation: str = 'operation'):
        super().__init__(f"Cannot perform {operation}: not connected to the attachment server")
        self.operation = operation


class AlreadyConnectedError(ConnectionStateError):
    """Raised when connect is called on a client that is already connected."""
    pass


class ProtocolError(AttachmentTransferError):
    """The server sent something that breaks the framing rules. Session-fatal."""
    pass


class FrameTooLongError(ProtocolError):
    """A frame exceeded the maximum frame length."""

    def __init__(self, length: int, max_length: int):
        super().__init__(f"Frame length {length} exceeds maximum of {max_length} bytes")
        self.length = length
        self.max_length = max_length


class MalformedFrameError(ProtocolError):
    """A frame could not be base64-decoded."""
    pass
