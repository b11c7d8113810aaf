import os
import struct
from abc import ABC, abstractmethod
from pathlib import Path, PurePosixPath
from typing import BinaryIO, Dict, Optional, Tuple, Union

import logging

import lz4.frame
import xxhash

from .errors import ChecksumError, DocumentNotFoundError, StorageError

logger = logging.getLogger(__name__)

LocationId = str


class StorageBackend(ABC):
    """Remote blob store holding the serialized document.

    Modeled on a drive-like service: folders are containers identified by
    an id, files live in one folder and are addressed by a location id.
    """

    @property
    @abstractmethod
    def root_id(self) -> str:
        """Id of the top level folder"""

    @abstractmethod
    def read_document(self, location_id: LocationId) -> bytes:
        """Return the exact bytes last written at ``location_id``"""

    @abstractmethod
    def write_document(self, name: str, container_id: str, payload: bytes) -> LocationId:
        """Create or overwrite ``name`` inside ``container_id``, returns its location"""

    @abstractmethod
    def document_exists(self, name: str, container_id: str) -> Union[LocationId, bool]:
        """Location of ``name`` inside ``container_id`` or False"""

    @abstractmethod
    def folder_exists(self, name: str, parent_id: str) -> Union[str, bool]:
        """Id of the folder ``name`` inside ``parent_id`` or False"""

    @abstractmethod
    def create_folder(self, name: str, parent_id: str) -> str:
        """Create a folder and return its id"""

    @abstractmethod
    def delete(self, location_id: str) -> bool:
        """Remove a file or folder, False when nothing was there"""

    def app_folder_id(self, name: str, parent_id: Optional[str] = None) -> str:
        """Id of the application folder, created on first use"""
        parent_id = self.root_id if parent_id is None else parent_id
        found = self.folder_exists(name, parent_id)
        if found is not False:
            return found
        logger.debug(f"Creating app folder {name}")
        return self.create_folder(name, parent_id)


def location_hash(container_id: str, name: str) -> str:
    return xxhash.xxh64(f"{container_id}/{name}").hexdigest()


class MemoryStorage(StorageBackend):
    """In-process blob store, ids are hashes of ``container/name``"""

    ROOT = "root"

    def __init__(self):
        self.folders: Dict[str, Tuple[str, Optional[str]]] = {self.ROOT: ("", None)}
        self.files: Dict[LocationId, Tuple[str, str]] = {}
        self.blobs: Dict[LocationId, bytes] = {}
        self.writes = 0

    @property
    def root_id(self) -> str:
        return self.ROOT

    def read_document(self, location_id: LocationId) -> bytes:
        if location_id not in self.blobs:
            raise DocumentNotFoundError(location_id)
        return self.blobs[location_id]

    def write_document(self, name: str, container_id: str, payload: bytes) -> LocationId:
        if container_id not in self.folders:
            raise StorageError(f"Folder {container_id} not found")
        location_id = location_hash(container_id, name)
        self.files[location_id] = (name, container_id)
        self.blobs[location_id] = bytes(payload)
        self.writes += 1
        return location_id

    def document_exists(self, name: str, container_id: str) -> Union[LocationId, bool]:
        location_id = location_hash(container_id, name)
        return location_id if location_id in self.blobs else False

    def folder_exists(self, name: str, parent_id: str) -> Union[str, bool]:
        for folder_id, (folder_name, folder_parent) in self.folders.items():
            if folder_name == name and folder_parent == parent_id:
                return folder_id
        return False

    def create_folder(self, name: str, parent_id: str) -> str:
        if parent_id not in self.folders:
            raise StorageError(f"Folder {parent_id} not found")
        folder_id = location_hash(parent_id, name)
        self.folders[folder_id] = (name, parent_id)
        return folder_id

    def delete(self, location_id: str) -> bool:
        if location_id in self.blobs:
            del self.blobs[location_id]
            del self.files[location_id]
            return True
        if location_id in self.folders and location_id != self.ROOT:
            children = [
                key for key, (_, parent) in self.files.items() if parent == location_id
            ]
            children += [
                key for key, (_, parent) in self.folders.items() if parent == location_id
            ]
            for child in children:
                self.delete(child)
            del self.folders[location_id]
            return True
        return False


class BlobBuffer:
    """Checksummed, lz4 compressed blob file"""

    HEADER_FORMAT = "!QQ"  # compressed length, xxh64 of the raw payload
    HEADER_SIZE = struct.calcsize(HEADER_FORMAT)

    def __init__(self, file_path: Union[str, Path], mode: str = "rb", buffer_size: int = 8192):
        self.file_path = file_path
        self.mode = mode
        self.buffer_size = buffer_size
        self.file: Optional[BinaryIO] = None

    def __enter__(self):
        self.file = open(self.file_path, self.mode, buffering=self.buffer_size)
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        if self.file:
            self.file.close()

    def write_blob(self, payload: bytes):
        compressed = lz4.frame.compress(payload)
        header = struct.pack(
            self.HEADER_FORMAT, len(compressed), xxhash.xxh64(payload).intdigest()
        )
        self.file.write(header + compressed)

    def read_blob(self) -> bytes:
        header = self.file.read(self.HEADER_SIZE)
        if len(header) != self.HEADER_SIZE:
            raise ChecksumError(f"{self.file_path}: truncated header")
        length, checksum = struct.unpack(self.HEADER_FORMAT, header)
        compressed = self.file.read(length)
        if len(compressed) != length:
            raise ChecksumError(f"{self.file_path}: truncated payload")

        try:
            payload = lz4.frame.decompress(compressed)
        except RuntimeError as e:
            raise ChecksumError(f"{self.file_path}: corrupt payload ({e})") from e
        if xxhash.xxh64(payload).intdigest() != checksum:
            raise ChecksumError(f"{self.file_path}: checksum mismatch")
        return payload


class FolderStorage(StorageBackend):
    """Blob store on a local directory tree.

    Folder and location ids are POSIX paths relative to ``root``; the root
    folder itself is ``"."``.
    """

    ROOT = "."

    def __init__(self, root: Union[str, Path]):
        self.root = Path(root)
        self.root.mkdir(parents=True, exist_ok=True)

    @property
    def root_id(self) -> str:
        return self.ROOT

    def _path(self, location_id: str) -> Path:
        relative = PurePosixPath(location_id or self.ROOT)
        if relative.is_absolute() or ".." in relative.parts:
            raise StorageError(f"Invalid location {location_id}")
        return self.root.joinpath(*relative.parts)

    @staticmethod
    def _join(container_id: str, name: str) -> str:
        if "/" in name or name in ("", ".", ".."):
            raise StorageError(f"Invalid name {name!r}")
        return str(PurePosixPath(container_id or FolderStorage.ROOT) / name)

    def read_document(self, location_id: LocationId) -> bytes:
        path = self._path(location_id)
        if not path.is_file():
            raise DocumentNotFoundError(location_id)
        with BlobBuffer(path) as buf:
            return buf.read_blob()

    def write_document(self, name: str, container_id: str, payload: bytes) -> LocationId:
        folder = self._path(container_id)
        if not folder.is_dir():
            raise StorageError(f"Folder {container_id} not found")

        location_id = self._join(container_id, name)
        path = self._path(location_id)
        temp_file = path.with_name(path.name + ".tmp")
        try:
            with BlobBuffer(temp_file, "wb") as buf:
                buf.write_blob(payload)
            temp_file.replace(path)
        except OSError as e:
            raise StorageError(f"Could not write {location_id}: {e}") from e
        logger.debug(f"Wrote {len(payload)} bytes to {location_id}")
        return location_id

    def document_exists(self, name: str, container_id: str) -> Union[LocationId, bool]:
        location_id = self._join(container_id, name)
        return location_id if self._path(location_id).is_file() else False

    def folder_exists(self, name: str, parent_id: str) -> Union[str, bool]:
        folder_id = self._join(parent_id, name)
        return folder_id if self._path(folder_id).is_dir() else False

    def create_folder(self, name: str, parent_id: str) -> str:
        folder_id = self._join(parent_id, name)
        try:
            self._path(folder_id).mkdir(parents=False, exist_ok=True)
        except OSError as e:
            raise StorageError(f"Could not create folder {folder_id}: {e}") from e
        return folder_id

    def delete(self, location_id: str) -> bool:
        path = self._path(location_id)
        if path == self.root:
            return False
        if path.is_file():
            path.unlink()
            return True
        if path.is_dir():
            for child in sorted(path.rglob("*"), key=lambda p: len(p.parts), reverse=True):
                if child.is_dir():
                    child.rmdir()
                else:
                    child.unlink()
            path.rmdir()
            return True
        return False

    def __repr__(self) -> str:
        return f"FolderStorage({os.fspath(self.root)!r})"
