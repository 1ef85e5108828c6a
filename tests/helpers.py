"""
Test helpers: an in-process attachment server and polling utilities.
"""

import asyncio
import base64
import socket
import threading
import time

from attachment_protocol.protocol_definitions import (
    create_begin_message, create_chunk_message, create_end_message
)


def wait_until(predicate, timeout: float = 5.0, interval: float = 0.01) -> bool:
    """Poll ``predicate`` until it returns true or ``timeout`` expires."""
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(interval)
    return predicate()


def unused_port() -> int:
    """Return a local port nothing is listening on."""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
        sock.bind(('127.0.0.1', 0))
        return sock.getsockname()[1]


def wire(payload: bytes) -> bytes:
    """Encode a payload the way the server puts it on the wire."""
    return base64.b64encode(payload) + b'\n'


def attachment_messages(name: str, content: bytes, declared_size: int = None, chunk_size: int = 4):
    """BEGIN, CHUNK... and END payloads for one attachment."""
    size = len(content) if declared_size is None else declared_size
    messages = [create_begin_message(name, size)]
    for start in range(0, len(content), chunk_size):
        messages.append(create_chunk_message(name, content[start:start + chunk_size]))
    messages.append(create_end_message(name))
    return messages


class FakeAttachmentServer:
    """A minimal attachment server running on its own event loop thread.

    Requests are recorded in ``requests``. ``connection_count`` counts accepted
    connections. ``files`` maps a requested path to
    the bytes sent back as BEGIN / CHUNK / END; unknown paths get no reply.
    """

    def __init__(self, files: dict = None):
        self.files = files or {}
        self.requests = []
        self.host = '127.0.0.1'
        self.port = None
        self.connection_count = 0
        self._writers = []
        self._loop = asyncio.new_event_loop()
        self._thread = threading.Thread(target=self._loop.run_forever, daemon=True)
        self._server = None

    def start(self):
        self._thread.start()
        self._call(self._start())
        return self

    def stop(self):
        self._call(self._stop())
        self._loop.call_soon_threadsafe(self._loop.stop)
        self._thread.join(timeout=5)
        self._loop.close()

    def __enter__(self):
        return self.start()

    def __exit__(self, exc_type, exc_value, traceback):
        self.stop()

    @property
    def client_count(self) -> int:
        return len([w for w in self._writers if not w.is_closing()])

    def send(self, *payloads: bytes):
        """Send encoded frames to every connected client."""
        self.send_raw(b''.join(wire(p) for p in payloads))

    def send_raw(self, data: bytes):
        """Send bytes to every connected client as they are."""
        self._call(self._send_raw(data))

    def close_clients(self):
        """Close every client connection from the server side."""
        self._call(self._close_clients())

    def _call(self, coro):
        return asyncio.run_coroutine_threadsafe(coro, self._loop).result(timeout=5)

    async def _start(self):
        self._server = await asyncio.start_server(self._handle_client, self.host, 0)
        self.port = self._server.sockets[0].getsockname()[1]

    async def _stop(self):
        await self._close_clients()
        self._server.close()
        await self._server.wait_closed()

    async def _send_raw(self, data: bytes):
        for writer in self._writers:
            if not writer.is_closing():
                writer.write(data)
                await writer.drain()

    async def _close_clients(self):
        for writer in self._writers:
            writer.close()
        self._writers = []

    async def _handle_client(self, reader, writer):
        self._writers.append(writer)
        self.connection_count += 1
        try:
            while True:
                line = await reader.readline()
                if not line:
                    break
                path = base64.b64decode(line.strip()).decode('utf-8')
                self.requests.append(path)

                content = self.files.get(path)
                if content is not None:
                    name = path.replace('\\', '/').rsplit('/', 1)[-1]
                    writer.write(b''.join(wire(m) for m in attachment_messages(name, content)))
                    await writer.drain()
        except (ConnectionError, OSError):
            pass
        finally:
            writer.close()
