import os
from dataclasses import dataclass
from typing import Mapping, Optional

import logging

PACKAGE_LOGGER = "drivejsondb"
EXTENSION = "json"

ENV_PREFIX = "DRIVEJSONDB_"
TRUE_VALUES = ("1", "true", "yes", "on")


def database_filename(database: Optional[str]) -> str:
    """Trimmed database name with a ``.json`` extension, ``db.json`` when empty"""
    name = (database or "").strip() or "db"
    if name.lower().endswith(f".{EXTENSION}"):
        return name
    return f"{name}.{EXTENSION}"


def _flag(value: Optional[str], default: bool) -> bool:
    if value is None:
        return default
    return value.strip().lower() in TRUE_VALUES


@dataclass
class StoreConfig:
    """Database store settings

    Args:
        database: Database name, the stored file gets a .json extension
        folder_id: Storage container of the document, storage root when None
        autosave: Persist the whole document after every accepted mutation
        debug: Log store activity at DEBUG level
    """

    database: str = "db"
    folder_id: Optional[str] = None
    autosave: bool = True
    debug: bool = False

    @property
    def filename(self) -> str:
        return database_filename(self.database)

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "StoreConfig":
        environ = os.environ if environ is None else environ
        return cls(
            database=environ.get(f"{ENV_PREFIX}DATABASE", "db"),
            folder_id=environ.get(f"{ENV_PREFIX}FOLDER_ID") or None,
            autosave=_flag(environ.get(f"{ENV_PREFIX}AUTOSAVE"), True),
            debug=_flag(environ.get(f"{ENV_PREFIX}DEBUG"), False),
        )

    def apply_logging(self) -> None:
        if self.debug:
            logging.getLogger(PACKAGE_LOGGER).setLevel(logging.DEBUG)
