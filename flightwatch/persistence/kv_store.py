"""Key-value persistence backends for watchlist and entitlement blobs."""

import os
import re
import tempfile
import threading
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Optional

from ..errors import PersistenceError
from ..logging.config import get_logger

_KEY_PATTERN = re.compile(r"^[A-Za-z0-9_.-]+$")


class KeyValueStore(ABC):
    """Blob store addressed by stable string keys."""

    @abstractmethod
    def save(self, key: str, blob: bytes) -> None:
        """Persist ``blob`` under ``key``, replacing any previous value."""
        pass

    @abstractmethod
    def load(self, key: str) -> Optional[bytes]:
        """Return the blob stored under ``key``, or None if absent."""
        pass

    @abstractmethod
    def delete(self, key: str) -> None:
        """Remove ``key``; missing keys are ignored."""
        pass


class MemoryStore(KeyValueStore):
    """In-process store, used for tests and ephemeral sessions."""

    def __init__(self) -> None:
        self._data: dict[str, bytes] = {}
        self._lock = threading.Lock()

    def save(self, key: str, blob: bytes) -> None:
        with self._lock:
            self._data[key] = bytes(blob)

    def load(self, key: str) -> Optional[bytes]:
        with self._lock:
            return self._data.get(key)

    def delete(self, key: str) -> None:
        with self._lock:
            self._data.pop(key, None)


class JsonFileStore(KeyValueStore):
    """
    File-backed store writing one ``<key>.json`` file per key.

    Writes go to a temporary file in the same directory and are moved into
    place with ``os.replace`` so a crash never leaves a half-written blob.

    ``save`` blocks until the data is fsynced. The engines call it from
    their event-loop thread while holding their state lock, so a write
    briefly stalls the loop; blobs are a few hundred bytes.
    """

    def __init__(self, directory: "str | Path"):
        self.directory = Path(directory).expanduser()
        self.logger = get_logger("flightwatch.persistence.file")
        self._lock = threading.Lock()

    def _path_for(self, key: str) -> Path:
        if not _KEY_PATTERN.match(key):
            raise PersistenceError(f"Invalid store key: {key!r}", operation="path", target=key)
        return self.directory / f"{key}.json"

    def save(self, key: str, blob: bytes) -> None:
        path = self._path_for(key)
        with self._lock:
            try:
                self.directory.mkdir(parents=True, exist_ok=True)
                fd, tmp_name = tempfile.mkstemp(dir=self.directory, prefix=f".{key}.", suffix=".tmp")
                try:
                    with os.fdopen(fd, "wb") as f:
                        f.write(blob)
                        f.flush()
                        os.fsync(f.fileno())
                    os.replace(tmp_name, path)
                except BaseException:
                    Path(tmp_name).unlink(missing_ok=True)
                    raise
            except OSError as e:
                self.logger.error("Failed to save blob", key=key, path=str(path), error=str(e))
                raise PersistenceError(
                    f"Failed to save {key}: {e}", operation="save", target=str(path)
                ) from e

        self.logger.debug("Blob saved", key=key, path=str(path), size=len(blob))

    def load(self, key: str) -> Optional[bytes]:
        path = self._path_for(key)
        with self._lock:
            try:
                return path.read_bytes()
            except FileNotFoundError:
                return None
            except OSError as e:
                self.logger.error("Failed to load blob", key=key, path=str(path), error=str(e))
                raise PersistenceError(
                    f"Failed to load {key}: {e}", operation="load", target=str(path)
                ) from e

    def delete(self, key: str) -> None:
        path = self._path_for(key)
        with self._lock:
            try:
                path.unlink(missing_ok=True)
            except OSError as e:
                raise PersistenceError(
                    f"Failed to delete {key}: {e}", operation="delete", target=str(path)
                ) from e
