"""Tests for store configuration."""

import logging

import pytest

from drivejsondb import StoreConfig
from drivejsondb.config import database_filename


class TestDatabaseFilename:
    @pytest.mark.parametrize(
        "database, expected",
        [
            ("db", "db.json"),
            ("  shop  ", "shop.json"),
            ("data.JSON", "data.JSON"),
            ("archive.txt", "archive.txt.json"),
            ("", "db.json"),
            (None, "db.json"),
        ],
    )
    def test_extension(self, database, expected):
        assert database_filename(database) == expected


class TestStoreConfig:
    def test_defaults(self):
        config = StoreConfig()
        assert config.filename == "db.json"
        assert config.folder_id is None
        assert config.autosave is True
        assert config.debug is False

    def test_from_env(self):
        config = StoreConfig.from_env({
            "DRIVEJSONDB_DATABASE": "notes",
            "DRIVEJSONDB_FOLDER_ID": "app",
            "DRIVEJSONDB_AUTOSAVE": "off",
            "DRIVEJSONDB_DEBUG": "yes",
        })
        assert config == StoreConfig(database="notes", folder_id="app", autosave=False, debug=True)

    def test_from_empty_env(self):
        assert StoreConfig.from_env({}) == StoreConfig()

    def test_debug_lowers_package_log_level(self):
        logger = logging.getLogger("drivejsondb")
        previous = logger.level
        try:
            StoreConfig(debug=True).apply_logging()
            assert logger.level == logging.DEBUG
        finally:
            logger.setLevel(previous)
