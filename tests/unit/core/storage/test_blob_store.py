"""Tests for the blob store backends."""

from __future__ import annotations

import pytest

from netinsight.core.storage.blob_store import (
    BlobStore,
    EncryptedBlobStore,
    EncryptionError,
    FileBlobStore,
    MemoryBlobStore,
    SqliteBlobStore,
    StorageError,
)
from netinsight.core.storage.database import InsightDatabase


@pytest.fixture(params=["memory", "sqlite", "file"])
def backend(request, tmp_path):
    if request.param == "memory":
        yield MemoryBlobStore()
    elif request.param == "sqlite":
        db = InsightDatabase(":memory:")
        db.initialize()
        yield SqliteBlobStore(db)
        db.close()
    else:
        yield FileBlobStore(tmp_path / "blobs")


class TestBackends:
    def test_satisfies_protocol(self, backend):
        assert isinstance(backend, BlobStore)

    def test_missing_key_reads_none(self, backend):
        assert backend.read("nope") is None

    def test_write_then_read(self, backend):
        backend.write("edge_ai_baseline_v1", '{"samples": []}')
        assert backend.read("edge_ai_baseline_v1") == '{"samples": []}'

    def test_overwrite_replaces(self, backend):
        backend.write("k", "one")
        backend.write("k", "two")
        assert backend.read("k") == "two"

    def test_delete(self, backend):
        backend.write("k", "v")
        backend.delete("k")
        assert backend.read("k") is None

    def test_delete_missing_is_not_an_error(self, backend):
        backend.delete("never-written")


class TestMemoryBlobStore:
    def test_counts_writes(self):
        store = MemoryBlobStore()
        store.write("a", "1")
        store.write("a", "2")
        assert store.write_count == 2

    def test_initial_contents(self):
        store = MemoryBlobStore({"a": "1"})
        assert store.read("a") == "1"


class TestSqliteBlobStore:
    def test_uninitialized_database_raises_storage_error(self):
        store = SqliteBlobStore(InsightDatabase(":memory:"))
        with pytest.raises(StorageError):
            store.read("k")


class TestFileBlobStore:
    def test_key_is_sanitized_into_directory(self, tmp_path):
        store = FileBlobStore(tmp_path)
        store.write("../escape/key", "v")
        assert store.read("../escape/key") == "v"
        files = [p.name for p in tmp_path.iterdir()]
        assert files == [".._escape_key.json"]

    def test_no_temp_files_left_behind(self, tmp_path):
        store = FileBlobStore(tmp_path)
        store.write("k", "v")
        assert [p.name for p in tmp_path.iterdir()] == ["k.json"]


class TestEncryptedBlobStore:
    def test_ciphertext_at_rest(self):
        inner = MemoryBlobStore()
        store = EncryptedBlobStore(inner, EncryptedBlobStore.generate_key())
        store.write("k", "secret telemetry")
        assert "secret" not in inner.read("k")
        assert store.read("k") == "secret telemetry"

    def test_missing_key_reads_none(self):
        store = EncryptedBlobStore(MemoryBlobStore(), EncryptedBlobStore.generate_key())
        assert store.read("k") is None

    def test_empty_key_rejected(self):
        with pytest.raises(EncryptionError, match="must not be empty"):
            EncryptedBlobStore(MemoryBlobStore(), "  ")

    def test_invalid_key_rejected(self):
        with pytest.raises(EncryptionError, match="Invalid encryption key"):
            EncryptedBlobStore(MemoryBlobStore(), "not-a-fernet-key")

    def test_wrong_key_fails_to_decrypt(self):
        inner = MemoryBlobStore()
        EncryptedBlobStore(inner, EncryptedBlobStore.generate_key()).write("k", "v")
        other = EncryptedBlobStore(inner, EncryptedBlobStore.generate_key())
        with pytest.raises(EncryptionError, match="Decryption failed"):
            other.read("k")

    def test_encryption_error_is_a_storage_error(self):
        assert issubclass(EncryptionError, StorageError)
