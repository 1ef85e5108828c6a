"""
Transfer registry module.

Keeps one open transfer record per attachment name and owns the file handles
those records write to.
"""

import threading
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Optional

from attachment_client.utils.logger import logger

LOCK_STRIPES = 16


@dataclass(frozen=True)
class TransferResult:
    """Outcome of a finished transfer."""
    name: str
    path: Path
    declared_size: int
    actual_size: int

    @property
    def ok(self) -> bool:
        return self.actual_size == self.declared_size


class TransferRecord:
    """An attachment being written to disk."""

    def __init__(self, name: str, destination_path: Path, declared_size: int):
        if declared_size < 0:
            raise ValueError(f"declared_size must be non-negative, got {declared_size}")

        self.name = name
        self.destination_path = Path(destination_path)
        self.declared_size = declared_size
        self.bytes_written = 0
        self.output_handle = open(self.destination_path, 'wb')

    @property
    def closed(self) -> bool:
        return self.output_handle.closed

    def write(self, data: bytes):
        self.output_handle.write(data)
        self.bytes_written += len(data)

    def close(self) -> bool:
        """Close the handle. Returns False if it was already closed."""
        if self.output_handle.closed:
            return False
        self.output_handle.close()
        return True

    def actual_size(self) -> int:
        """Size of the file on disk, or -1 if it cannot be read."""
        try:
            return self.destination_path.stat().st_size
        except OSError as e:
            logger.log_error(f"reading size of {self.destination_path}", e)
            return -1

    def __repr__(self):
        return (f"TransferRecord(name={self.name!r}, path={str(self.destination_path)!r}, "
                f"declared_size={self.declared_size}, bytes_written={self.bytes_written})")


class TransferRegistry:
    """Thread-safe map of attachment name to open transfer record.

    The map itself is guarded by a single lock that is only held for lookups
    and updates. File I/O for a name runs under one of a fixed set of striped
    locks chosen by the name, so operations on the same name never interleave
    while different names can proceed in parallel.
    """

    def __init__(self, stripes: int = LOCK_STRIPES):
        self._records: Dict[str, TransferRecord] = {}
        self._lock = threading.Lock()
        self._stripes = [threading.Lock() for _ in range(stripes)]

    def _name_lock(self, name: str) -> threading.Lock:
        return self._stripes[hash(name) % len(self._stripes)]

    def begin_transfer(self, name: str, destination_path: Path, declared_size: int) -> TransferRecord:
        """Open a new record for ``name``, closing any record it replaces.

        Raises OSError if the destination cannot be opened for writing.
        """
        with self._name_lock(name):
            with self._lock:
                previous = self._records.pop(name, None)

            if previous is not None:
                logger.warning(f"Attachment '{name}' restarted before it finished; "
                               f"discarding {previous.bytes_written} bytes already received")
                self._close_record(previous)

            record = TransferRecord(name, destination_path, declared_size)

            with self._lock:
                self._records[name] = record
            return record

    def append_chunk(self, name: str, data: bytes) -> bool:
        """Append ``data`` to the named transfer. Unknown names are ignored."""
        with self._name_lock(name):
            with self._lock:
                record = self._records.get(name)

            if record is None:
                logger.debug(f"Ignoring chunk for unknown attachment '{name}'")
                return False

            try:
                record.write(data)
            except (OSError, ValueError) as e:
                logger.log_error(f"writing chunk for attachment '{name}'", e)
                return False
            return True

    def end_transfer(self, name: str) -> Optional[TransferResult]:
        """Close and remove the named transfer and compare its size to the declared size.

        Returns None if no transfer with that name is open.
        """
        with self._name_lock(name):
            with self._lock:
                record = self._records.pop(name, None)

            if record is None:
                logger.debug(f"Ignoring end of unknown attachment '{name}'")
                return None

            self._close_record(record)
            return TransferResult(name, record.destination_path, record.declared_size, record.actual_size())

    def close_all(self) -> int:
        """Close every open handle without verification and empty the registry."""
        with self._lock:
            records = list(self._records.values())
            self._records.clear()

        closed = 0
        for record in records:
            with self._name_lock(record.name):
                if self._close_record(record):
                    closed += 1

        if records:
            logger.info(f"Closed {closed} unfinished attachment transfer(s)")
        return closed

    @staticmethod
    def _close_record(record: TransferRecord) -> bool:
        try:
            return record.close()
        except OSError as e:
            logger.log_error(f"closing attachment '{record.name}'", e)
            return False

    def get(self, name: str) -> Optional[TransferRecord]:
        with self._lock:
            return self._records.get(name)

    def names(self) -> List[str]:
        with self._lock:
            return list(self._records)

    def __contains__(self, name: str) -> bool:
        with self._lock:
            return name in self._records

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)
