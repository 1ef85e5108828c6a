"""
Attachment transfer client.

Keeps a connection to the attachment server, sends file requests and
reconstructs the attachments the server streams back. Network I/O and message
dispatch run on a background asyncio event loop; the public methods are
blocking and meant to be called from the application's own thread.
"""

import asyncio
import concurrent.futures
import socket
import threading
from pathlib import Path
from typing import Callable, List, Optional, Union

from attachment_protocol.errors import AlreadyConnectedError, ConnectionStateError, NotConnectedError, ProtocolError
from attachment_protocol.protocol_definitions import create_file_request_message
from attachment_protocol.transcoding import TranscodingPipeline, encode_frame
from attachment_client.transfers.dispatcher import ProtocolDispatcher
from attachment_client.transfers.registry import TransferRecord, TransferRegistry, TransferResult
from attachment_client.utils.attachments import AttachmentDirectory
from attachment_client.utils.config import ClientConfig
from attachment_client.utils.logger import logger


class _Session:
    """Everything that exists only while connected."""

    def __init__(self, loop: asyncio.AbstractEventLoop, thread: threading.Thread):
        self.loop = loop
        self.thread = thread
        self.reader: Optional[asyncio.StreamReader] = None
        self.writer: Optional[asyncio.StreamWriter] = None
        self.queue: Optional[asyncio.Queue] = None
        self.tasks: List[asyncio.Task] = []
        self.close_reason = 'connection closed by server'
        self.torn_down = threading.Event()


class AttachmentTransferClient:
    """Client for receiving attachments from the attachment server."""

    def __init__(self, config: Optional[ClientConfig] = None, registry: Optional[TransferRegistry] = None):
        self.config = config or ClientConfig()
        self.registry = registry or TransferRegistry()
        self.attachment_dir = AttachmentDirectory(self.config.attachment_dir)
        self.dispatcher = ProtocolDispatcher(self.registry, self.attachment_dir)
        self.on_disconnected: Optional[Callable[[str], None]] = None

        self._session: Optional[_Session] = None
        self._retired: Optional[_Session] = None
        self._state_lock = threading.Lock()
        self._connect_lock = threading.Lock()

    def set_transfer_listeners(self,
                               on_transfer_started: Optional[Callable[[TransferRecord], None]] = None,
                               on_transfer_finished: Optional[Callable[[TransferResult], None]] = None,
                               on_integrity_error: Optional[Callable[[TransferResult], None]] = None,
                               on_disconnected: Optional[Callable[[str], None]] = None):
        """Set the callbacks for transfer events. Callbacks run on the network thread."""
        if on_transfer_started is not None:
            self.dispatcher.on_transfer_started = on_transfer_started
        if on_transfer_finished is not None:
            self.dispatcher.on_transfer_finished = on_transfer_finished
        if on_integrity_error is not None:
            self.dispatcher.on_integrity_error = on_integrity_error
        if on_disconnected is not None:
            self.on_disconnected = on_disconnected

    @property
    def is_connected(self) -> bool:
        with self._state_lock:
            return self._session is not None

    def connect(self, host: Optional[str] = None, port: Optional[int] = None) -> bool:
        """Connect to the attachment server.

        Returns True on success. On failure any partially built connection
        is torn down, so ``connect`` can simply be called again.
        """
        host = host or self.config.host
        port = port or self.config.port

        with self._connect_lock:
            if self.is_connected:
                raise AlreadyConnectedError("Already connected to the attachment server")
            self._wait_for_teardown()

            session = self._start_event_loop()
            future = asyncio.run_coroutine_threadsafe(self._open_connection(session, host, port), session.loop)
            try:
                future.result()
            except Exception as e:
                logger.log_connection(host, port, False)
                logger.log_error("connection", e)
                self._stop_event_loop(session)
                return False

            # The session must be visible before inbound processing starts
            with self._state_lock:
                self._session = session
            session.loop.call_soon_threadsafe(self._start_processing, session)

        logger.log_connection(host, port, True)
        return True

    def request_file(self, path: Union[str, Path]) -> bool:
        """Ask the server to send ``path``. Blocks until the request is flushed.

        Returns False if the write failed or was interrupted; the failure is
        logged and not raised.
        """
        with self._state_lock:
            session = self._session
        if session is None:
            raise NotConnectedError('request_file')

        frame = encode_frame(create_file_request_message(path))
        logger.log_file_request(str(path))
        logger.log_frame('>>', frame)

        try:
            future = asyncio.run_coroutine_threadsafe(self._write(session, frame), session.loop)
        except RuntimeError as e:
            logger.log_error("requesting file", e)
            return False

        try:
            future.result(timeout=self.config.write_timeout)
            return True
        except concurrent.futures.TimeoutError:
            future.cancel()
            logger.error(f"Timed out sending request for {path}")
        except concurrent.futures.CancelledError:
            logger.error(f"Request for {path} was interrupted")
        except (ConnectionError, OSError) as e:
            logger.log_error("requesting file", e)
        return False

    def disconnect(self):
        """Close the connection, stop the network thread and close unfinished transfers."""
        with self._state_lock:
            session = self._session
            if session is None:
                raise NotConnectedError('disconnect')
            if threading.current_thread() is session.thread:
                raise ConnectionStateError("disconnect() cannot be called from a transfer listener")
            self._retire(session)

        try:
            future = asyncio.run_coroutine_threadsafe(self._close_connection(session), session.loop)
            try:
                future.result(timeout=self.config.close_timeout * 2)
            except concurrent.futures.TimeoutError:
                future.cancel()
                logger.error("Timed out closing the connection to the attachment server")
            except concurrent.futures.CancelledError:
                logger.error("Closing the connection to the attachment server was interrupted")

            self._stop_event_loop(session)
            self.registry.close_all()
        finally:
            session.torn_down.set()
        logger.log_disconnect("client disconnect")

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_value, traceback):
        if self.is_connected:
            self.disconnect()

    # Session teardown

    def _retire(self, session: _Session):
        """Drop ``session`` as the current one. Caller holds ``_state_lock``."""
        self._session = None
        self._retired = session

    def _wait_for_teardown(self):
        """Block until the previous session has closed its transfers.

        The registry is shared between sessions, so a new session must not
        open records before the old one has run ``close_all``.
        """
        with self._state_lock:
            retired = self._retired
        if retired is None or threading.current_thread() is retired.thread:
            return
        if not retired.torn_down.is_set():
            logger.debug("Waiting for the previous connection to finish closing")
        retired.torn_down.wait()

    # Event loop thread

    def _start_event_loop(self) -> _Session:
        loop = asyncio.new_event_loop()
        thread = threading.Thread(target=self._run_event_loop, args=(loop,),
                                  name='attachment-transfer-io', daemon=True)
        thread.start()
        return _Session(loop, thread)

    @staticmethod
    def _run_event_loop(loop: asyncio.AbstractEventLoop):
        asyncio.set_event_loop(loop)
        try:
            loop.run_forever()
        finally:
            try:
                pending = asyncio.all_tasks(loop)
                for task in pending:
                    task.cancel()
                if pending:
                    loop.run_until_complete(asyncio.gather(*pending, return_exceptions=True))
                loop.run_until_complete(loop.shutdown_asyncgens())
            finally:
                asyncio.set_event_loop(None)
                loop.close()

    @staticmethod
    def _stop_event_loop(session: _Session):
        session.loop.call_soon_threadsafe(session.loop.stop)
        session.thread.join()

    # Coroutines run on the event loop

    async def _open_connection(self, session: _Session, host: str, port: int):
        reader, writer = await asyncio.wait_for(
            asyncio.open_connection(host, port, limit=self.config.read_buffer_size),
            timeout=self.config.connect_timeout
        )

        sock = writer.get_extra_info('socket')
        if sock is not None and self.config.keep_alive:
            try:
                sock.setsockopt(socket.SOL_SOCKET, socket.SO_KEEPALIVE, 1)
            except OSError:
                writer.close()
                raise

        session.reader = reader
        session.writer = writer
        session.queue = asyncio.Queue()

    def _start_processing(self, session: _Session):
        session.tasks = [
            session.loop.create_task(self._read_frames(session)),
            session.loop.create_task(self._dispatch_frames(session)),
        ]

    async def _read_frames(self, session: _Session):
        """Feed network data through the pipeline and queue the decoded frames."""
        pipeline = TranscodingPipeline(self.config.max_frame_length)
        try:
            while True:
                data = await session.reader.read(self.config.read_buffer_size)
                if not data:
                    break
                for frame in pipeline.feed(data):
                    logger.log_frame('<<', frame)
                    session.queue.put_nowait(frame)
        except ProtocolError as e:
            logger.log_error("reading from attachment server", e)
            session.close_reason = f"protocol violation: {e}"
        except (ConnectionError, OSError) as e:
            logger.log_error("reading from attachment server", e)
            session.close_reason = f"transport error: {e}"

        session.queue.put_nowait(None)

    async def _dispatch_frames(self, session: _Session):
        await self.dispatcher.run(session.queue)
        await self._connection_lost(session)

    async def _connection_lost(self, session: _Session):
        with self._state_lock:
            if self._session is not session:
                return
            self._retire(session)

        try:
            await self._close_writer(session)
            self.registry.close_all()
        finally:
            session.torn_down.set()
        logger.log_disconnect(session.close_reason)

        if self.on_disconnected:
            try:
                self.on_disconnected(session.close_reason)
            except Exception as e:
                logger.log_error("disconnect listener", e)

        session.loop.stop()

    async def _write(self, session: _Session, frame: bytes):
        session.writer.write(frame)
        await session.writer.drain()

    async def _close_connection(self, session: _Session):
        for task in session.tasks:
            task.cancel()
        await asyncio.gather(*session.tasks, return_exceptions=True)
        await self._close_writer(session)

    async def _close_writer(self, session: _Session):
        session.writer.close()
        try:
            await asyncio.wait_for(session.writer.wait_closed(), timeout=self.config.close_timeout)
        except (asyncio.TimeoutError, ConnectionError, OSError) as e:
            logger.warning(f"Connection did not close cleanly: {e!r}")
