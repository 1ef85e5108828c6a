#!/usr/bin/env python3
"""
Unit tests for client configuration and the attachment directory.
"""

import tempfile
import unittest
import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).parent.parent))

from attachment_protocol.constants import DEFAULT_CONNECT_TIMEOUT, MAX_FRAME_LENGTH
from attachment_client.utils.attachments import AttachmentDirectory
from attachment_client.utils.config import ClientConfig


class TestClientConfig(unittest.TestCase):
    """Test cases for ClientConfig."""

    def test_defaults(self):
        config = ClientConfig()
        self.assertEqual(config.connect_timeout, DEFAULT_CONNECT_TIMEOUT)
        self.assertEqual(config.max_frame_length, MAX_FRAME_LENGTH)
        self.assertTrue(config.keep_alive)

    def test_connect_timeout_must_be_whole_seconds(self):
        for value in (0, -1, 1.5):
            with self.subTest(value=value):
                with self.assertRaises(ValueError):
                    ClientConfig(connect_timeout=value)

    def test_settings_accessors(self):
        config = ClientConfig('files.local', 6000, connect_timeout=3, attachment_dir='att')
        self.assertEqual(config.get_connection_info(),
                         {'host': 'files.local', 'port': 6000, 'connect_timeout': 3, 'keep_alive': True})
        self.assertEqual(config.get_transfer_settings()['attachment_dir'], 'att')


class TestAttachmentDirectory(unittest.TestCase):
    """Test cases for AttachmentDirectory."""

    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.base = Path(self._tmp.name)

    def tearDown(self):
        self._tmp.cleanup()

    def test_create_nested_directory(self):
        directory = AttachmentDirectory(self.base / 'data' / 'attachments')
        self.assertTrue(directory.create())
        self.assertTrue(directory.create())
        self.assertTrue((self.base / 'data' / 'attachments').is_dir())

    def test_create_fails_when_path_is_a_file(self):
        (self.base / 'taken').write_text('x')
        with self.assertLogs('attachment_client', level='ERROR'):
            self.assertFalse(AttachmentDirectory(self.base / 'taken').create())

    def test_resolve_stays_inside_directory(self):
        directory = AttachmentDirectory(self.base)
        self.assertEqual(directory.resolve('a.txt'), (self.base / 'a.txt').resolve())


if __name__ == '__main__':
    unittest.main()
