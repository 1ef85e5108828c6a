"""
Transcoding pipeline for the attachment transfer protocol.

Outbound text is UTF-8 encoded, base64 encoded and terminated with a newline.
Inbound bytes are split into newline-terminated frames and each frame is
base64 decoded back to its payload bytes.
"""

import base64
import binascii
from typing import Iterator

from attachment_protocol.constants import FRAME_DELIMITER, MAX_FRAME_LENGTH, TEXT_ENCODING
from attachment_protocol.errors import FrameTooLongError, MalformedFrameError


def encode_frame(text: str) -> bytes:
    """Encode a logical message into a wire frame."""
    return base64.b64encode(text.encode(TEXT_ENCODING)) + FRAME_DELIMITER


def decode_frame(frame: bytes) -> bytes:
    """Decode a single wire frame (terminator already removed) into payload bytes."""
    try:
        return base64.b64decode(frame, validate=True)
    except (binascii.Error, ValueError) as e:
        raise MalformedFrameError(f"Frame is not valid base64: {e}") from e


class LineFrameDecoder:
    """Splits a byte stream into newline-terminated frames.

    Partial frames are buffered across calls to ``feed``. A frame longer than
    ``max_frame_length`` (terminator and any trailing carriage return
    excluded) raises ``FrameTooLongError`` when it is reached, after every
    frame before it has been yielded.
    """

    def __init__(self, max_frame_length: int = MAX_FRAME_LENGTH):
        self.max_frame_length = max_frame_length
        self._buffer = bytearray()

    def feed(self, data: bytes) -> Iterator[bytes]:
        """Add bytes read from the network and iterate over every complete frame."""
        self._buffer.extend(data)
        return self._frames()

    def _frames(self) -> Iterator[bytes]:
        while True:
            index = self._buffer.find(FRAME_DELIMITER)
            if index < 0:
                break

            frame = bytes(self._buffer[:index])
            del self._buffer[:index + len(FRAME_DELIMITER)]

            if frame.endswith(b'\r'):
                frame = frame[:-1]
            if len(frame) > self.max_frame_length:
                raise FrameTooLongError(len(frame), self.max_frame_length)

            yield frame

        # An unterminated frame may hold one extra byte for a pending '\r'
        if len(self._buffer) > self.max_frame_length + 1:
            raise FrameTooLongError(len(self._buffer), self.max_frame_length)

    @property
    def buffered(self) -> int:
        """Number of bytes held for an incomplete frame."""
        return len(self._buffer)

    def reset(self):
        """Drop any buffered partial frame."""
        self._buffer.clear()


class TranscodingPipeline:
    """Frame splitting followed by base64 decoding, for inbound data."""

    def __init__(self, max_frame_length: int = MAX_FRAME_LENGTH):
        self.frame_decoder = LineFrameDecoder(max_frame_length)

    def feed(self, data: bytes) -> Iterator[bytes]:
        """Iterate over the decoded payload of every frame completed by ``data``."""
        return (decode_frame(frame) for frame in self.frame_decoder.feed(data))

    @staticmethod
    def encode(text: str) -> bytes:
        """Encode an outbound message."""
        return encode_frame(text)
