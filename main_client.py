#!/usr/bin/env python3
"""
Attachment Transfer Client - Main Entry Point

Connects to an attachment server, requests one or more attachments and
writes them into the local attachment directory.

Usage:
    python main_client.py [--server-ip HOST] [--port PORT] [--attachment-dir DIR] FILE [FILE ...]

Exit status is 0 when every requested attachment arrived intact, 1 when the
connection failed, and 2 when an attachment failed its size check or did not
arrive before the wait expired.
"""

import argparse
import logging
import sys
import threading

from attachment_protocol.constants import (
    DEFAULT_HOST, DEFAULT_PORT, DEFAULT_CONNECT_TIMEOUT, ATTACHMENT_DIR
)
from attachment_protocol.errors import NotConnectedError
from attachment_client.transfer_client import AttachmentTransferClient
from attachment_client.utils.config import ClientConfig
from attachment_client.utils.logger import logger


class TransferWaiter:
    """Counts finished transfers so the CLI can stop once everything arrived."""

    def __init__(self, expected: int):
        self.expected = expected
        self.finished = 0
        self.failed = []
        self._done = threading.Event()
        self._lock = threading.Lock()

    def on_finished(self, result):
        with self._lock:
            self.finished += 1
            if not result.ok:
                self.failed.append(result.name)
            if self.finished >= self.expected:
                self._done.set()

    def on_disconnected(self, reason):
        self._done.set()

    def wait(self, timeout: float) -> bool:
        return self._done.wait(timeout)


def run_cli_client(files, server_host: str = DEFAULT_HOST, server_port: int = DEFAULT_PORT,
                   attachment_dir: str = ATTACHMENT_DIR, timeout: int = DEFAULT_CONNECT_TIMEOUT,
                   wait: float = 30.0) -> int:
    """Run the CLI client and return the process exit status."""
    config = ClientConfig(server_host, server_port, connect_timeout=timeout, attachment_dir=attachment_dir)
    client = AttachmentTransferClient(config)
    waiter = TransferWaiter(len(files))
    client.set_transfer_listeners(on_transfer_finished=waiter.on_finished,
                                  on_disconnected=waiter.on_disconnected)

    if not client.connect():
        logger.error(f"[ERROR] Could not reach attachment server at {server_host}:{server_port}")
        return 1

    try:
        for path in files:
            client.request_file(path)

        if not waiter.wait(wait):
            logger.warning(f"[WARNING] Gave up after {wait}s with {waiter.finished}/{waiter.expected} attachment(s) received")
    finally:
        try:
            client.disconnect()
        except NotConnectedError:
            logger.info(f"[INFO] Connection to {server_host}:{server_port} already closed")

    if waiter.failed:
        logger.error(f"[ERROR] Size check failed for: {', '.join(waiter.failed)}")
        return 2
    if waiter.finished < waiter.expected:
        return 2

    logger.info(f"[INFO] Received {waiter.finished} attachment(s) into {config.attachment_dir}")
    return 0


def main(argv=None) -> int:
    """Main entry point."""
    parser = argparse.ArgumentParser(description='Attachment Transfer Client')
    parser.add_argument('files', nargs='+',
                        help='Attachment paths to request from the server')
    parser.add_argument('--server-ip', type=str, default=DEFAULT_HOST,
                        help=f'Server IP address (default: {DEFAULT_HOST})')
    parser.add_argument('--port', type=int, default=DEFAULT_PORT,
                        help=f'Server port (default: {DEFAULT_PORT})')
    parser.add_argument('--attachment-dir', type=str, default=ATTACHMENT_DIR,
                        help=f'Directory attachments are written to (default: {ATTACHMENT_DIR})')
    parser.add_argument('--timeout', type=int, default=DEFAULT_CONNECT_TIMEOUT,
                        help=f'Connect timeout in seconds (default: {DEFAULT_CONNECT_TIMEOUT})')
    parser.add_argument('--wait', type=float, default=30.0,
                        help='Seconds to wait for the attachments to arrive (default: 30)')
    parser.add_argument('--verbose', action='store_true',
                        help='Log every frame sent and received')

    args = parser.parse_args(argv)

    if args.verbose:
        logger.set_level(logging.DEBUG)

    try:
        return run_cli_client(args.files, args.server_ip, args.port,
                              args.attachment_dir, args.timeout, args.wait)
    except KeyboardInterrupt:
        print("\n[INFO] Interrupted by user")
        return 130


if __name__ == "__main__":
    sys.exit(main())
