"""
Qt signals for attachment transfer events.

The transfer client reports events on its network thread. Binding a
TransferSignals object to a client re-emits those events as Qt signals so
widgets can react to them on the GUI thread through queued connections.
"""

from PyQt6.QtCore import QObject, pyqtSignal

from attachment_client.transfers.registry import TransferRecord, TransferResult


class TransferSignals(QObject):
    """Qt signal bridge for an AttachmentTransferClient."""

    transfer_started = pyqtSignal(str, object)  # name, declared size
    transfer_finished = pyqtSignal(str, str, object)  # name, path, size on disk
    integrity_error = pyqtSignal(str, object, object)  # name, declared size, actual size
    disconnected = pyqtSignal(str)  # reason

    def bind(self, client):
        """Route the client's transfer events to this object's signals."""
        client.set_transfer_listeners(
            on_transfer_started=self._on_transfer_started,
            on_transfer_finished=self._on_transfer_finished,
            on_integrity_error=self._on_integrity_error,
            on_disconnected=self.disconnected.emit
        )
        return self

    def _on_transfer_started(self, record: TransferRecord):
        self.transfer_started.emit(record.name, record.declared_size)

    def _on_transfer_finished(self, result: TransferResult):
        self.transfer_finished.emit(result.name, str(result.path), result.actual_size)

    def _on_integrity_error(self, result: TransferResult):
        self.integrity_error.emit(result.name, result.declared_size, result.actual_size)
