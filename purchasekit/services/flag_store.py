"""
Durable flag store - product identifier to "owned" boolean.

A write is not durable until synchronize() returns.
"""

import json
import os
import tempfile
from pathlib import Path
from typing import Protocol

from structlog import get_logger

from purchasekit.exceptions import FlagStoreError

logger = get_logger(__name__)


class FlagStore(Protocol):
    """
    Key-value persistence for ownership flags.

    Any backend (user defaults, keychain, file, database) must implement this
    interface.
    """

    def get_bool(self, key: str) -> bool:
        """Return the flag for key, False when unset."""
        ...

    def set_bool(self, key: str, value: bool) -> None:
        """Set the flag for key. Not durable until synchronize()."""
        ...

    def synchronize(self) -> None:
        """
        Flush pending writes to durable storage.

        On failure the pending writes are discarded, so get_bool() reports
        the last persisted value again.

        Raises:
            FlagStoreError: If the flags cannot be persisted
        """
        ...


class InMemoryFlagStore:
    """Flag store kept in process memory. Used in tests and when no path is configured."""

    def __init__(self, initial: dict[str, bool] | None = None) -> None:
        self._flags: dict[str, bool] = dict(initial or {})
        self.sync_count = 0

    def get_bool(self, key: str) -> bool:
        return self._flags.get(key, False)

    def set_bool(self, key: str, value: bool) -> None:
        self._flags[key] = value

    def synchronize(self) -> None:
        self.sync_count += 1


class JsonFileFlagStore:
    """
    Flag store persisted as a JSON object in a single file.

    synchronize() writes a temporary file, fsyncs it and atomically replaces
    the target, so a crash leaves either the old or the new file.
    """

    def __init__(self, path: str | Path) -> None:
        self._path = Path(path)
        self._durable: dict[str, bool] = self._read()
        self._flags: dict[str, bool] = dict(self._durable)

    @property
    def path(self) -> Path:
        return self._path

    def _read(self) -> dict[str, bool]:
        if not self._path.exists():
            return {}
        try:
            raw = json.loads(self._path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as exc:
            raise FlagStoreError(str(self._path), f"Unreadable flag file: {exc}") from exc
        if not isinstance(raw, dict):
            raise FlagStoreError(str(self._path), "Flag file must contain a JSON object")
        return {str(k): bool(v) for k, v in raw.items()}

    def get_bool(self, key: str) -> bool:
        return self._flags.get(key, False)

    def set_bool(self, key: str, value: bool) -> None:
        self._flags[key] = value

    def synchronize(self) -> None:
        tmp_name: str | None = None
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(
                prefix=f".{self._path.name}.", suffix=".tmp", dir=self._path.parent
            )
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                json.dump(self._flags, fh, indent=2, sort_keys=True)
                fh.flush()
                os.fsync(fh.fileno())
            os.replace(tmp_name, self._path)
            self._durable = dict(self._flags)
        except OSError as exc:
            logger.error("flag_store_sync_failed", path=str(self._path), error=str(exc))
            if tmp_name is not None:
                Path(tmp_name).unlink(missing_ok=True)
            self._flags = dict(self._durable)
            raise FlagStoreError(str(self._path), f"Could not persist flags: {exc}") from exc

        logger.debug("flag_store_synchronized", path=str(self._path), count=len(self._flags))
