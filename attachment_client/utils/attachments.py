"""
Attachment directory handling.

Attachments are written into a single managed directory that is created on
demand the first time a transfer begins.
"""

from pathlib import Path
from typing import Union

from attachment_client.utils.logger import logger


class AttachmentDirectory:
    """The local directory received attachments are written to."""

    def __init__(self, base_dir: Union[str, Path]):
        self.path = Path(base_dir).expanduser()

    def create(self) -> bool:
        """Create the directory if it is missing. Returns False if it cannot be created."""
        try:
            self.path.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            logger.error(f"Could not create attachment directory {self.path}: {e}")
            return False

        if not self.path.is_dir():
            logger.error(f"Could not create attachment directory {self.path}: not a directory")
            return False
        return True

    def resolve(self, name: str) -> Path:
        """Return the path an attachment called ``name`` is written to."""
        return (self.path / name).resolve()

    def __repr__(self):
        return f"AttachmentDirectory({str(self.path)!r})"
