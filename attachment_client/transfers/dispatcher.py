"""
Protocol dispatcher module.

Consumes decoded frames in arrival order, classifies them into control
messages and applies them to the transfer registry. The dispatcher never
writes to the network.
"""

import asyncio
from typing import Callable, Optional

from attachment_protocol.protocol_definitions import (
    BeginMessage, ChunkMessage, EndMessage, Message, UnknownMessage,
    parse_message, validate_attachment_name
)
from attachment_client.transfers.registry import TransferRecord, TransferRegistry, TransferResult
from attachment_client.utils.attachments import AttachmentDirectory
from attachment_client.utils.logger import logger


class ProtocolDispatcher:
    """Drives the transfer registry from BEGIN / CHUNK / END messages."""

    def __init__(self, registry: TransferRegistry, attachment_dir: AttachmentDirectory,
                 on_transfer_started: Optional[Callable[[TransferRecord], None]] = None,
                 on_transfer_finished: Optional[Callable[[TransferResult], None]] = None,
                 on_integrity_error: Optional[Callable[[TransferResult], None]] = None):
        self.registry = registry
        self.attachment_dir = attachment_dir

        # Listener callbacks
        self.on_transfer_started = on_transfer_started
        self.on_transfer_finished = on_transfer_finished
        self.on_integrity_error = on_integrity_error

    async def run(self, queue: asyncio.Queue):
        """Dispatch frames from ``queue`` until a ``None`` sentinel is received."""
        while True:
            frame = await queue.get()
            try:
                if frame is None:
                    break
                self.handle_frame(frame)
            except Exception as e:
                logger.log_error("dispatching attachment message", e)
            finally:
                queue.task_done()

    def handle_frame(self, frame: bytes):
        """Parse and dispatch one decoded frame."""
        self.dispatch(parse_message(frame))

    def dispatch(self, message: Message):
        """Apply one control message to the registry."""
        if isinstance(message, BeginMessage):
            self._begin(message)
        elif isinstance(message, ChunkMessage):
            self.registry.append_chunk(message.name, message.data)
        elif isinstance(message, EndMessage):
            self._end(message)
        elif isinstance(message, UnknownMessage):
            logger.debug(f"Ignoring message ({message.reason}): {message.raw[:32]!r}")

    def _begin(self, message: BeginMessage):
        problem = validate_attachment_name(message.name)
        if problem:
            logger.warning(f"Rejecting attachment {message.name!r}: {problem}")
            return

        if not self.attachment_dir.create():
            logger.error(f"Dropping attachment '{message.name}': attachment directory unavailable")
            return

        destination = self.attachment_dir.resolve(message.name)
        try:
            record = self.registry.begin_transfer(message.name, destination, message.size)
        except OSError as e:
            logger.log_error(f"opening {destination}", e)
            return

        logger.log_transfer_started(message.name, message.size, str(destination))
        self._notify(self.on_transfer_started, record)

    def _end(self, message: EndMessage):
        result = self.registry.end_transfer(message.name)
        if result is None:
            return

        if result.ok:
            logger.log_transfer_finished(result.name, result.actual_size)
        else:
            logger.log_integrity_error(result.name, result.declared_size, result.actual_size)
            self._notify(self.on_integrity_error, result)

        self._notify(self.on_transfer_finished, result)

    @staticmethod
    def _notify(callback, *args):
        if callback is None:
            return
        try:
            callback(*args)
        except Exception as e:
            logger.log_error("transfer listener", e)
