"""Tests for the storage backends."""

import pytest

from drivejsondb import ChecksumError, DocumentNotFoundError, FolderStorage, MemoryStorage, StorageError
from drivejsondb.storage import BlobBuffer


class TestMemoryStorage:
    @pytest.fixture
    def storage(self):
        return MemoryStorage()

    def test_write_then_read(self, storage):
        location_id = storage.write_document("db.json", storage.root_id, b'{"a": 1}')
        assert storage.read_document(location_id) == b'{"a": 1}'
        assert storage.document_exists("db.json", storage.root_id) == location_id

    def test_overwrite_keeps_location(self, storage):
        first = storage.write_document("db.json", storage.root_id, b"1")
        second = storage.write_document("db.json", storage.root_id, b"2")
        assert first == second
        assert storage.read_document(first) == b"2"

    def test_missing_document(self, storage):
        assert storage.document_exists("db.json", storage.root_id) is False
        with pytest.raises(DocumentNotFoundError):
            storage.read_document("nope")

    def test_unknown_folder(self, storage):
        with pytest.raises(StorageError):
            storage.write_document("db.json", "nope", b"{}")

    def test_app_folder_created_once(self, storage):
        folder_id = storage.app_folder_id("app")
        assert storage.folder_exists("app", storage.root_id) == folder_id
        assert storage.app_folder_id("app") == folder_id

    def test_delete_folder_removes_children(self, storage):
        folder_id = storage.create_folder("app", storage.root_id)
        location_id = storage.write_document("db.json", folder_id, b"{}")
        assert storage.delete(folder_id)
        assert storage.document_exists("db.json", folder_id) is False
        assert storage.delete(location_id) is False


class TestFolderStorage:
    @pytest.fixture
    def storage(self, tmp_path):
        return FolderStorage(tmp_path / "drive")

    def test_write_then_read(self, storage):
        location_id = storage.write_document("db.json", storage.root_id, b'{"a": 1}')
        assert location_id == "db.json"
        assert storage.read_document(location_id) == b'{"a": 1}'

    def test_blob_is_compressed_with_header(self, storage):
        payload = b'{"version": "1.0", "tables": {}}' * 50
        location_id = storage.write_document("db.json", storage.root_id, payload)
        raw = (storage.root / location_id).read_bytes()
        assert len(raw) > BlobBuffer.HEADER_SIZE
        assert len(raw) < len(payload)

    def test_checksum_mismatch(self, storage):
        location_id = storage.write_document("db.json", storage.root_id, b"{}")
        path = storage.root / location_id
        raw = bytearray(path.read_bytes())
        raw[8] ^= 0xFF
        path.write_bytes(bytes(raw))
        with pytest.raises(ChecksumError):
            storage.read_document(location_id)

    def test_truncated_blob(self, storage):
        (storage.root / "db.json").write_bytes(b"short")
        with pytest.raises(ChecksumError):
            storage.read_document("db.json")

    def test_nested_folders(self, storage):
        folder_id = storage.app_folder_id("app")
        assert folder_id == "app"
        location_id = storage.write_document("db.json", folder_id, b"{}")
        assert location_id == "app/db.json"
        assert storage.document_exists("db.json", folder_id) == location_id
        assert storage.document_exists("db.json", storage.root_id) is False

    def test_rejects_escaping_paths(self, storage):
        with pytest.raises(StorageError):
            storage.read_document("../secret")
        with pytest.raises(StorageError):
            storage.write_document("../db.json", storage.root_id, b"{}")

    def test_missing_document(self, storage):
        with pytest.raises(DocumentNotFoundError):
            storage.read_document("db.json")

    def test_delete(self, storage):
        folder_id = storage.create_folder("app", storage.root_id)
        storage.write_document("db.json", folder_id, b"{}")
        assert storage.delete(folder_id)
        assert storage.folder_exists("app", storage.root_id) is False
        assert storage.delete(storage.root_id) is False
