from dataclasses import dataclass, field, replace
from types import MappingProxyType
from typing import Any, Dict, List, Mapping, Optional, Tuple

import logging

from .coercion import coerce
from .schema import Column, sanitize_columns

logger = logging.getLogger(__name__)

VERSION = "1.0"

Row = Tuple[Any, ...]


@dataclass(frozen=True)
class Table:
    """Columns plus positional rows, each row aligned to column order"""

    columns: Tuple[Column, ...]
    data: Tuple[Row, ...] = ()

    @property
    def column_names(self) -> List[str]:
        return [column.name for column in self.columns]

    def column(self, name: str) -> Optional[Column]:
        for column in self.columns:
            if column.name == name:
                return column
        return None

    def with_data(self, data) -> "Table":
        return replace(self, data=tuple(tuple(row) for row in data))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "columns": [column.to_dict() for column in self.columns],
            "data": [list(row) for row in self.data],
        }


@dataclass(frozen=True)
class Document:
    """Whole database snapshot.

    Instances are never mutated; every change produces a new Document that
    shares the untouched Table objects with its predecessor. ``tables`` is a
    read-only mapping.
    """

    version: str = VERSION
    tables: Mapping[str, Table] = field(default_factory=dict)

    def __post_init__(self):
        object.__setattr__(self, "tables", MappingProxyType(dict(self.tables)))

    def with_table(self, name: str, table: Table) -> "Document":
        tables = dict(self.tables)
        tables[name] = table
        return replace(self, tables=tables)

    def without_table(self, name: str) -> "Document":
        tables = {key: value for key, value in self.tables.items() if key != name}
        return replace(self, tables=tables)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "version": self.version,
            "tables": {name: table.to_dict() for name, table in self.tables.items()},
        }


def coerce_rows(columns: List[Column], raw_data: Any) -> List[Row]:
    """Keep rows whose length matches the schema, coercing every cell.

    Anything else (non-list data, non-list rows, rows of the wrong length) is
    silently dropped.
    """
    if not isinstance(raw_data, (list, tuple)):
        return []

    rows = []
    for raw_row in raw_data:
        if not isinstance(raw_row, (list, tuple)) or len(raw_row) != len(columns):
            continue
        rows.append(
            tuple(coerce(column.type, value) for column, value in zip(columns, raw_row))
        )
    return rows


def sanitize_table(name: str, raw: Any) -> Optional[Table]:
    """Sanitize one table, None when its schema ends up empty"""
    if isinstance(raw, Table):
        raw = raw.to_dict()
    if not isinstance(raw, Mapping):
        return None

    columns = sanitize_columns(raw.get("columns") or [])
    if not columns:
        return None

    raw_data = raw.get("data") or []
    rows = coerce_rows(columns, raw_data)
    if isinstance(raw_data, (list, tuple)) and len(rows) != len(raw_data):
        logger.warning(
            f"Table {name}: dropped {len(raw_data) - len(rows)} malformed row(s)"
        )
    return Table(columns=tuple(columns), data=tuple(rows))


def sanitize_document(raw: Any) -> Document:
    """Validate a whole loaded document.

    The version is stamped to the current engine version, every table schema
    is sanitized, tables whose schema becomes empty are removed and every row
    is coerced against its table's columns. The input is never modified.
    """
    if isinstance(raw, Document):
        raw = raw.to_dict()
    if not isinstance(raw, Mapping):
        raw = {}

    raw_tables = raw.get("tables") or {}
    if not isinstance(raw_tables, Mapping):
        raw_tables = {}

    tables = {}
    removed = []
    for name, raw_table in raw_tables.items():
        table = sanitize_table(name, raw_table)
        if table is None:
            removed.append(name)
            continue
        tables[str(name)] = table

    if removed:
        logger.warning(f"Removed tables without a valid schema: {', '.join(map(str, removed))}")

    return Document(version=VERSION, tables=tables)
