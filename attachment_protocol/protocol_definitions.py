"""
Protocol definitions for the attachment transfer protocol.

This module defines the control messages exchanged between the attachment
server and the client, and the functions that parse and build them.
"""

from typing import Optional, Union
from dataclasses import dataclass

from attachment_protocol.constants import MessageKinds, MessagePrefixes, TEXT_ENCODING

_BEGIN = MessagePrefixes.BEGIN.encode(TEXT_ENCODING)
_CHUNK = MessagePrefixes.CHUNK.encode(TEXT_ENCODING)
_END = MessagePrefixes.END.encode(TEXT_ENCODING)
_SEPARATOR = MessagePrefixes.FIELD_SEPARATOR.encode(TEXT_ENCODING)


@dataclass(frozen=True)
class BeginMessage:
    """Announces a new attachment and its size in bytes."""
    name: str
    size: int
    kind: str = MessageKinds.BEGIN


@dataclass(frozen=True)
class ChunkMessage:
    """A piece of attachment content."""
    name: str
    data: bytes
    kind: str = MessageKinds.CHUNK


@dataclass(frozen=True)
class EndMessage:
    """Marks the end of an attachment."""
    name: str
    kind: str = MessageKinds.END


@dataclass(frozen=True)
class UnknownMessage:
    """Any frame that is not part of the control vocabulary."""
    raw: bytes
    reason: str = ''
    kind: str = MessageKinds.UNKNOWN


Message = Union[BeginMessage, ChunkMessage, EndMessage, UnknownMessage]


def validate_attachment_name(name: str) -> Optional[str]:
    """Return why ``name`` cannot be used as an attachment name, or None if it can."""
    if not name:
        return "empty name"
    if MessagePrefixes.FIELD_SEPARATOR in name:
        return f"name contains '{MessagePrefixes.FIELD_SEPARATOR}'"
    if name in ('.', '..') or '/' in name or '\\' in name or '\x00' in name:
        return "name is not a bare file name"
    return None


def _decode_name(raw: bytes) -> Optional[str]:
    try:
        return raw.decode(TEXT_ENCODING)
    except UnicodeDecodeError:
        return None


def _parse_begin(payload: bytes, frame: bytes) -> Message:
    # The size is all digits, so the last separator is unambiguous
    raw_name, separator, raw_size = payload.rpartition(_SEPARATOR)
    if not separator:
        return UnknownMessage(frame, "begin without size")

    name = _decode_name(raw_name)
    if name is None:
        return UnknownMessage(frame, "begin name is not valid text")

    size_text = raw_size.decode('ascii', errors='replace').strip()
    if not size_text.isdigit():
        return UnknownMessage(frame, f"invalid size '{size_text}'")

    return BeginMessage(name, int(size_text))


def _parse_chunk(payload: bytes, frame: bytes) -> Message:
    # Chunk data may contain the separator, so split on the first one
    raw_name, separator, data = payload.partition(_SEPARATOR)
    if not separator:
        return UnknownMessage(frame, "chunk without data separator")

    name = _decode_name(raw_name)
    if name is None:
        return UnknownMessage(frame, "chunk name is not valid text")

    return ChunkMessage(name, data)


def _parse_end(payload: bytes, frame: bytes) -> Message:
    name = _decode_name(payload)
    if name is None:
        return UnknownMessage(frame, "end name is not valid text")
    return EndMessage(name)


def parse_message(frame: bytes) -> Message:
    """Classify a decoded frame into one of the control messages."""
    if frame.startswith(_BEGIN):
        return _parse_begin(frame[len(_BEGIN):], frame)
    if frame.startswith(_CHUNK):
        return _parse_chunk(frame[len(_CHUNK):], frame)
    if frame.startswith(_END):
        return _parse_end(frame[len(_END):], frame)
    return UnknownMessage(frame, "unrecognized prefix")


def create_file_request_message(file_path) -> str:
    """Create a file request message."""
    return str(file_path)


def create_begin_message(name: str, size: int) -> bytes:
    """Create a begin message."""
    return _BEGIN + f"{name}{MessagePrefixes.FIELD_SEPARATOR}{size}".encode(TEXT_ENCODING)


def create_chunk_message(name: str, data: Union[bytes, str]) -> bytes:
    """Create a chunk message."""
    if isinstance(data, str):
        data = data.encode(TEXT_ENCODING)
    return _CHUNK + name.encode(TEXT_ENCODING) + _SEPARATOR + data


def create_end_message(name: str) -> bytes:
    """Create an end message."""
    return _END + name.encode(TEXT_ENCODING)
