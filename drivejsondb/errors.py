class DriveJsonDBError(Exception):
    """Base class for every error raised by drivejsondb"""


class StorageError(DriveJsonDBError):
    """The storage backend could not read or write a document"""


class DocumentNotFoundError(StorageError):
    """No document is stored under the requested location"""

    def __init__(self, location_id: str):
        super().__init__(f"Document {location_id} not found")
        self.location_id = location_id


class ChecksumError(StorageError):
    """A stored blob does not match its recorded checksum"""


class DocumentDecodeError(DriveJsonDBError, ValueError):
    """Stored bytes are not a serialized document"""
