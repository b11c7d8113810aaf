from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Mapping, Optional

import logging

from .coercion import ColumnType, coerce

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Column:
    """Sanitized table column description"""

    name: str
    type: ColumnType = ColumnType.STRING
    ai: Optional[bool] = None  # Only set for number columns
    default: Any = None
    has_default: bool = False

    @property
    def autoincrement(self) -> bool:
        return self.type is ColumnType.NUMBER and self.ai is True

    def default_value(self) -> Any:
        """Coerced default for a freshly inserted row, None when undeclared"""
        if not self.has_default:
            return None
        return coerce(self.type, self.default)

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"name": self.name, "type": self.type.value}
        if self.type is ColumnType.NUMBER:
            data["ai"] = bool(self.ai)
        if self.has_default:
            data["default"] = self.default
        return data


def _clean_text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, ColumnType):
        return value.value
    return str(value).strip()


def sanitize_column(raw: Any) -> Optional[Column]:
    """Normalize one raw column description, None when it must be dropped"""
    if isinstance(raw, Column):
        return raw
    if not isinstance(raw, Mapping):
        return None

    name = _clean_text(raw.get("name"))
    type_name = _clean_text(raw.get("type")).lower()
    if not name or not type_name:
        return None

    column_type = ColumnType.parse(type_name)
    ai = None
    if column_type is ColumnType.NUMBER:
        ai = raw.get("ai") is True

    default = raw.get("default")
    if default is None:
        return Column(name=name, type=column_type, ai=ai)
    return Column(
        name=name,
        type=column_type,
        ai=ai,
        default=coerce(column_type, default),
        has_default=True,
    )


def sanitize_columns(raw_columns: Any) -> List[Column]:
    """Validate a raw column list.

    Entries without a name or a type are dropped, unknown types fall back to
    ``string`` and declared defaults are coerced to the resolved type. Order
    is preserved and duplicate names are kept as they are.
    """
    if not isinstance(raw_columns, (list, tuple)):
        return []

    columns = []
    for raw in raw_columns:
        column = sanitize_column(raw)
        if column is None:
            logger.debug(f"Dropping invalid column definition {raw!r}")
            continue
        columns.append(column)
    return columns


def duplicate_names(columns: Iterable[Column]) -> List[str]:
    seen = set()
    duplicates = []
    for column in columns:
        if column.name in seen and column.name not in duplicates:
            duplicates.append(column.name)
        seen.add(column.name)
    return duplicates
