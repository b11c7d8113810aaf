import math
from typing import TYPE_CHECKING, Any, Dict, Iterable, List, Mapping, Optional, Sequence

import logging

from .codec import to_storage
from .coercion import coerce
from .document import Table
from .query import Predicate, Query
from .schema import Column, duplicate_names, sanitize_columns

if TYPE_CHECKING:
    from .main import DB

logger = logging.getLogger(__name__)

# First value handed out by an auto-increment column of an empty table
AUTOINCREMENT_START = 1


class ColumnsHandle:
    """Read-only access to a table schema"""

    def __init__(self, columns: Sequence[Column]):
        self._columns = list(columns)

    def get(self) -> List[Column]:
        return list(self._columns)


def next_autoincrement(values: Iterable[Any]) -> int:
    """One more than the largest finite number already stored"""
    numbers = [
        value
        for value in values
        if isinstance(value, (int, float))
        and not isinstance(value, bool)
        and math.isfinite(value)
    ]
    if not numbers:
        return AUTOINCREMENT_START
    highest = max(numbers)
    if isinstance(highest, float) and highest.is_integer():
        highest = int(highest)
    return highest + 1


class TableHandle:
    """Query and mutation surface of one table.

    The handle keeps only the table name; every call reads the owning
    database's current snapshot and mutations commit a new one.
    """

    def __init__(self, db: "DB", name: str):
        self._db = db
        self.name = name

    def snapshot(self) -> Optional[Table]:
        return self._db.get().tables.get(self.name)

    def column_names(self) -> List[str]:
        table = self.snapshot()
        return table.column_names if table is not None else []

    def columns(self) -> ColumnsHandle:
        table = self.snapshot()
        return ColumnsHandle(table.columns if table is not None else ())

    def replace_data(self, rows: Iterable[Sequence[Any]]) -> None:
        """Commit ``rows`` as the table's whole data"""
        rows = list(rows)

        def apply(document):
            table = document.tables.get(self.name)
            if table is None:
                return document
            return document.with_table(self.name, table.with_data(rows))

        self._db.commit(apply)

    def delete(self) -> None:
        """Drop this table from the database"""
        name = self.name.strip()
        self._db.commit(lambda document: document.without_table(name))
        logger.debug(f"Deleted table {name}")

    def find(self, predicate: Predicate) -> Optional[Query]:
        if not callable(predicate):
            return None
        return Query(self, predicate)

    def all(self) -> Query:
        return Query(self, lambda row: True)

    def build_row(self, table: Table, new_row: Mapping[str, Any]) -> Dict[str, Any]:
        """Defaults, then the supplied values, then auto-increment counters"""
        row = {column.name: column.default_value() for column in table.columns}

        for key, value in new_row.items():
            column = table.column(key)
            if column is not None:
                row[key] = coerce(column.type, value)

        for position, column in enumerate(table.columns):
            if column.autoincrement:
                row[column.name] = next_autoincrement(
                    stored[position] for stored in table.data
                )
        return row

    def insert(self, new_row: Optional[Mapping[str, Any]] = None) -> bool:
        """Append a row built from defaults and ``new_row``.

        Unknown keys are ignored and a ``new_row`` that is not a mapping counts
        as empty.
        """
        if not isinstance(new_row, Mapping):
            new_row = {}
        inserted = {}

        def apply(document):
            table = document.tables.get(self.name)
            if table is None:
                return document
            row = self.build_row(table, new_row)
            inserted["row"] = row
            data = table.data + (to_storage(row, table.column_names),)
            return document.with_table(self.name, Table(columns=table.columns, data=data))

        self._db.commit(apply)
        logger.debug(f"Inserted into {self.name}: {inserted.get('row')}")
        return True

    def __repr__(self) -> str:
        return f"TableHandle({self.name!r})"


class TablesHandle:
    """Table lifecycle: list and create"""

    def __init__(self, db: "DB"):
        self._db = db

    def get(self) -> List[str]:
        return list(self._db.get().tables.keys())

    def add(self, name: str, columns: Optional[Sequence[Any]] = None) -> bool:
        """Create (or replace) a table with an empty data set.

        Fails when the trimmed name is empty, no column survives sanitization
        or two columns share a name.
        """
        name = (name or "").strip()
        sanitized = sanitize_columns(columns or [])
        if not name or not sanitized:
            return False

        duplicates = duplicate_names(sanitized)
        if duplicates:
            logger.warning(f"Table {name} rejected, duplicate columns: {', '.join(duplicates)}")
            return False

        table = Table(columns=tuple(sanitized), data=())
        self._db.commit(lambda document: document.with_table(name, table))
        logger.debug(f"Created table {name} with {len(sanitized)} column(s)")
        return True
