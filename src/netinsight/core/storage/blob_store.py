"""Key/value blob stores used to persist opaque JSON envelopes.

Callers treat the store as a dumb ``key -> str`` map. Which backend sits
behind it (memory, SQLite, plain files, Fernet-encrypted wrapper) is a
configuration decision made in the server factory.
"""

from __future__ import annotations

import logging
import os
import re
import sqlite3
import tempfile
import threading
from pathlib import Path
from typing import Protocol, runtime_checkable

from cryptography.fernet import Fernet, InvalidToken

from netinsight.core.storage.database import DatabaseError, InsightDatabase

logger = logging.getLogger(__name__)


class StorageError(Exception):
    """Raised when a blob backend cannot read or write."""


class EncryptionError(StorageError):
    """Raised when encryption/decryption fails."""


@runtime_checkable
class BlobStore(Protocol):
    """Minimal persistence port: read/write/delete one string blob per key."""

    def read(self, key: str) -> str | None:
        """Return the stored blob, or None when the key is absent."""
        ...

    def write(self, key: str, value: str) -> None:
        """Store ``value`` under ``key``, replacing any previous blob."""
        ...

    def delete(self, key: str) -> None:
        """Remove ``key``. Missing keys are not an error."""
        ...


class MemoryBlobStore:
    """Process-local store. Used for tests and the ``memory`` backend."""

    def __init__(self, initial: dict[str, str] | None = None) -> None:
        self._data: dict[str, str] = dict(initial or {})
        self._lock = threading.Lock()
        self.write_count = 0

    def read(self, key: str) -> str | None:
        with self._lock:
            return self._data.get(key)

    def write(self, key: str, value: str) -> None:
        with self._lock:
            self._data[key] = value
            self.write_count += 1

    def delete(self, key: str) -> None:
        with self._lock:
            self._data.pop(key, None)


class SqliteBlobStore:
    """Blob store backed by the ``kv_blobs`` table of an InsightDatabase."""

    def __init__(self, database: InsightDatabase) -> None:
        self._db = database

    def read(self, key: str) -> str | None:
        try:
            return self._db.get_blob(key)
        except (sqlite3.Error, DatabaseError) as exc:
            raise StorageError(f"Failed to read blob {key!r}: {exc}") from exc

    def write(self, key: str, value: str) -> None:
        try:
            self._db.put_blob(key, value)
        except (sqlite3.Error, DatabaseError) as exc:
            raise StorageError(f"Failed to write blob {key!r}: {exc}") from exc

    def delete(self, key: str) -> None:
        try:
            self._db.delete_blob(key)
        except (sqlite3.Error, DatabaseError) as exc:
            raise StorageError(f"Failed to delete blob {key!r}: {exc}") from exc


_SAFE_KEY = re.compile(r"[^A-Za-z0-9_.-]")


class FileBlobStore:
    """One ``<key>.json`` file per key inside a directory.

    Writes go to a temporary file in the same directory followed by
    ``os.replace`` so a crash mid-write never leaves a truncated blob.
    """

    def __init__(self, directory: str | Path) -> None:
        self._dir = Path(directory).expanduser()
        self._dir.mkdir(parents=True, exist_ok=True)

    def _path(self, key: str) -> Path:
        return self._dir / f"{_SAFE_KEY.sub('_', key)}.json"

    def read(self, key: str) -> str | None:
        path = self._path(key)
        if not path.exists():
            return None
        try:
            return path.read_text(encoding="utf-8")
        except OSError as exc:
            raise StorageError(f"Failed to read {path}: {exc}") from exc

    def write(self, key: str, value: str) -> None:
        path = self._path(key)
        try:
            fd, tmp = tempfile.mkstemp(dir=self._dir, prefix=".tmp-", suffix=".json")
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(value)
            os.replace(tmp, path)
        except OSError as exc:
            raise StorageError(f"Failed to write {path}: {exc}") from exc

    def delete(self, key: str) -> None:
        try:
            self._path(key).unlink(missing_ok=True)
        except OSError as exc:
            raise StorageError(f"Failed to delete blob {key!r}: {exc}") from exc


class EncryptedBlobStore:
    """Wraps another BlobStore and Fernet-encrypts every blob at rest.

    Usage::

        store = EncryptedBlobStore(SqliteBlobStore(db), key="...")
        store.write("edge_ai_baseline_v1", json.dumps(envelope))
    """

    def __init__(self, inner: BlobStore, key: str) -> None:
        """Initialize with a Fernet key.

        Args:
            inner: The backend that receives ciphertext.
            key: A valid Fernet key string. Generate with
                :meth:`EncryptedBlobStore.generate_key`.

        Raises:
            EncryptionError: If the key is empty or invalid.
        """
        if not key or not key.strip():
            raise EncryptionError("Encryption key must not be empty")
        try:
            self._fernet = Fernet(key.encode())
        except Exception as exc:
            raise EncryptionError(f"Invalid encryption key: {exc}") from exc
        self._inner = inner

    def read(self, key: str) -> str | None:
        token = self._inner.read(key)
        if not token:
            return None
        try:
            return self._fernet.decrypt(token.encode("utf-8")).decode("utf-8")
        except InvalidToken as exc:
            raise EncryptionError("Decryption failed: invalid token or wrong key") from exc

    def write(self, key: str, value: str) -> None:
        token = self._fernet.encrypt(value.encode("utf-8")).decode("utf-8")
        self._inner.write(key, token)

    def delete(self, key: str) -> None:
        self._inner.delete(key)

    @staticmethod
    def generate_key() -> str:
        """Generate a new URL-safe base64 Fernet key."""
        return Fernet.generate_key().decode("utf-8")
