# 1.0
import threading
from typing import Any, Callable, Mapping, Optional, Union

import logging

from .codec import dumps_document, loads_document
from .config import StoreConfig
from .document import VERSION, Document, sanitize_document
from .storage import LocationId, StorageBackend
from .table import TableHandle, TablesHandle

logger = logging.getLogger(__name__)


class DB:
    """JSON document database held in memory and persisted wholesale.

    The whole database is one immutable ``Document`` snapshot. Every accepted
    mutation replaces the snapshot with a new one derived from the current
    value and, with ``autosave`` on, writes the entire document back to the
    storage backend and reloads it from there.
    """

    def __init__(
        self,
        storage: Optional[StorageBackend] = None,
        config: Optional[StoreConfig] = None,
    ):
        """Initialize an empty database

        Args:
            storage: Blob store the document is persisted to, None keeps it in memory
            config: Store settings, defaults to ``StoreConfig()``
        """
        self.config = config or StoreConfig()
        self.config.apply_logging()
        self.storage = storage

        self.folder_id = self.config.folder_id
        if self.folder_id is None and storage is not None:
            self.folder_id = storage.root_id

        self._document = Document(version=VERSION, tables={})
        self._loaded = False
        self._dirty = False
        self._location_id: Optional[LocationId] = None
        self._lock = threading.RLock()

    @property
    def loaded(self) -> bool:
        return self._loaded

    @property
    def location_id(self) -> Optional[LocationId]:
        return self._location_id

    def get(self) -> Document:
        return self._document

    def version(self) -> str:
        return self._document.version or VERSION

    def set(self, new_document: Union[Document, Mapping[str, Any]]) -> bool:
        """Replace the whole database.

        Rejected (nothing changes, nothing is saved) unless the incoming
        document carries the current version. Accepted documents are
        sanitized before they replace the snapshot and are saved right away.
        """
        if isinstance(new_document, Document):
            version = new_document.version
        elif isinstance(new_document, Mapping):
            version = new_document.get("version")
        else:
            return False

        if (version or "") != VERSION:
            logger.debug(f"Rejected document with version {version!r}, expected {VERSION}")
            return False

        document = sanitize_document(new_document)
        with self._lock:
            self._document = document
            self._dirty = True
        self.save()
        return True

    def commit(self, apply: Callable[[Document], Document]) -> bool:
        """Swap in the snapshot derived by ``apply`` from the current one"""
        with self._lock:
            document = apply(self._document)
            if document is self._document:
                return False
            self._document = document
            self._dirty = True

        if self.config.autosave and self.storage is not None:
            self.save()
        return True

    def save(self) -> Optional[LocationId]:
        """Write the entire snapshot and reload it from where it was written"""
        if self.storage is None:
            logger.debug("No storage attached, keeping document in memory")
            return None

        payload = dumps_document(self.get())
        location_id = self.storage.write_document(self.config.filename, self.folder_id, payload)
        logger.debug(f"Saved {self.config.filename} ({len(payload)} bytes) to {location_id}")
        self.load(location_id)
        return location_id

    def load(self, location_id: LocationId) -> Document:
        """Read, decode and sanitize the stored document, then make it current"""
        if self.storage is None:
            raise ValueError("Cannot load without a storage backend")

        raw = loads_document(self.storage.read_document(location_id))
        stored_version = raw.get("version")
        if stored_version != VERSION:
            logger.warning(f"Upgrading stored document from version {stored_version!r} to {VERSION}")

        document = sanitize_document(raw)
        with self._lock:
            self._document = document
            self._location_id = location_id
            self._loaded = True
            self._dirty = False
        logger.debug(f"Loaded {len(document.tables)} table(s) from {location_id}")
        return document

    def open(self) -> "DB":
        """Load the database file, creating it first when it does not exist"""
        if self.storage is None:
            self._loaded = True
            return self

        found = self.storage.document_exists(self.config.filename, self.folder_id)
        if found is False:
            logger.debug(f"Creating {self.config.filename} in {self.folder_id}")
            self.save()
        else:
            self.load(found)
        return self

    def close(self) -> None:
        """Persist pending changes and discard the snapshot"""
        if self._dirty and self.storage is not None:
            self.save()
        with self._lock:
            self._document = Document(version=VERSION, tables={})
            self._loaded = False
            self._dirty = False
            self._location_id = None

    def __enter__(self) -> "DB":
        return self.open()

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()

    def tables(self) -> TablesHandle:
        return TablesHandle(self)

    def table(self, name: str) -> Optional[TableHandle]:
        if name not in self._document.tables:
            return None
        return TableHandle(self, name)
