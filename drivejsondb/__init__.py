from .coercion import INVALID_DATE, ColumnType, coerce
from .config import StoreConfig
from .document import VERSION, Document, Table, coerce_rows, sanitize_document
from .errors import (
    ChecksumError,
    DocumentDecodeError,
    DocumentNotFoundError,
    DriveJsonDBError,
    StorageError,
)
from .main import DB
from .query import QueryCondition, Selection, all_of, any_of
from .schema import Column, sanitize_columns
from .storage import FolderStorage, MemoryStorage, StorageBackend

__version__ = "1.0.0"

__all__ = [
    "DB",
    "VERSION",
    "INVALID_DATE",
    "ChecksumError",
    "Column",
    "ColumnType",
    "Document",
    "DocumentDecodeError",
    "DocumentNotFoundError",
    "DriveJsonDBError",
    "FolderStorage",
    "MemoryStorage",
    "QueryCondition",
    "Selection",
    "StorageBackend",
    "StorageError",
    "StoreConfig",
    "Table",
    "all_of",
    "any_of",
    "coerce",
    "coerce_rows",
    "sanitize_columns",
    "sanitize_document",
]
