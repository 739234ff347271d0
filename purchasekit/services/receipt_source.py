"""
Receipt sources - where the local receipt blob is read from.
"""

from pathlib import Path
from typing import Protocol

from structlog import get_logger

logger = get_logger(__name__)


class ReceiptSource(Protocol):
    """Provides the raw local receipt issued by the storefront."""

    def read_receipt(self) -> bytes | None:
        """Return the receipt bytes, or None when no receipt exists."""
        ...


class FileReceiptSource:
    """Reads the receipt from a file on disk, as the device receipt URL does."""

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)

    def read_receipt(self) -> bytes | None:
        try:
            data = self.path.read_bytes()
        except FileNotFoundError:
            logger.info("receipt_file_missing", path=str(self.path))
            return None
        except OSError as exc:
            logger.warning("receipt_file_unreadable", path=str(self.path), error=str(exc))
            return None
        return data or None
