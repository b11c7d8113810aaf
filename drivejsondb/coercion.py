import math
from datetime import date, datetime, timezone
from email.utils import parsedate_to_datetime
from enum import Enum
from typing import Any, Callable, Dict, List, Mapping, Union

import logging

logger = logging.getLogger(__name__)


class ColumnType(str, Enum):
    """The five column types a table schema can declare"""

    STRING = "string"
    NUMBER = "number"
    BOOLEAN = "boolean"
    ARRAY = "array"
    DATE = "date"

    @classmethod
    def parse(cls, name: Any) -> "ColumnType":
        """Resolve a raw type name, falling back to STRING for unknown names"""
        if isinstance(name, cls):
            return name
        try:
            return cls(str(name).strip().lower())
        except ValueError:
            return cls.STRING


class _InvalidDate:
    """Result of coercing an unparsable value to a date"""

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __bool__(self) -> bool:
        return False

    def __repr__(self) -> str:
        return "Invalid Date"

    def __reduce__(self):
        return (_InvalidDate, ())


INVALID_DATE = _InvalidDate()

# Tried in order after ISO-8601
DATE_FORMATS = (
    "%Y/%m/%d",
    "%Y/%m/%d %H:%M:%S",
    "%m/%d/%Y",
    "%m/%d/%Y %H:%M",
    "%m/%d/%Y %H:%M:%S",
    "%d %B %Y",
    "%d %b %Y",
    "%B %d, %Y",
    "%b %d, %Y",
    "%b %d %Y",
)


def as_text(value: Any) -> str:
    """Text form of any value, the string column conversion"""
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float):
        if math.isnan(value):
            return "NaN"
        if math.isinf(value):
            return "Infinity" if value > 0 else "-Infinity"
        if value.is_integer():
            return str(int(value))
        return repr(value)
    if isinstance(value, (list, tuple)):
        return ",".join(as_text(item) for item in value)
    if isinstance(value, datetime):
        return value.isoformat()
    if value is INVALID_DATE:
        return "Invalid Date"
    return str(value)


def _parse_number_text(text: str) -> Union[int, float]:
    text = text.strip()
    if not text:
        return 0
    if "_" in text:
        return math.nan

    prefix = text[:2].lower()
    if prefix in ("0x", "0o", "0b"):
        try:
            return int(text, 0)
        except ValueError:
            return math.nan

    try:
        return int(text)
    except ValueError:
        pass
    try:
        return float(text)
    except ValueError:
        return math.nan


def _to_number(value: Any) -> Union[int, float]:
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, (int, float)):
        return value
    if isinstance(value, str):
        return _parse_number_text(value)
    if isinstance(value, datetime):
        return int(value.timestamp() * 1000)
    if isinstance(value, (list, tuple)):
        if not value:
            return 0
        if len(value) == 1:
            return _to_number(as_text(value[0]))
        return math.nan
    return math.nan


def _to_boolean(value: Any) -> bool:
    return as_text(value).strip().lower() == "true"


def _to_array(value: Any) -> List[Any]:
    if isinstance(value, (list, tuple, set, frozenset)):
        return list(value)
    if isinstance(value, Mapping):
        return list(value.values())
    if isinstance(value, str):
        return list(value)
    return []


def as_utc(moment: datetime) -> datetime:
    """Aware UTC datetime, naive values are read as UTC"""
    if moment.tzinfo is None or moment.utcoffset() is None:
        return moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(timezone.utc)


def _to_date(value: Any) -> Union[datetime, _InvalidDate]:
    if value is INVALID_DATE:
        return INVALID_DATE
    if isinstance(value, datetime):
        return as_utc(value)
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day, tzinfo=timezone.utc)

    text = as_text(value).strip()
    if not text:
        return INVALID_DATE

    iso = text[:-1] + "+00:00" if text.endswith(("Z", "z")) else text
    try:
        return as_utc(datetime.fromisoformat(iso))
    except ValueError:
        pass

    for fmt in DATE_FORMATS:
        try:
            return as_utc(datetime.strptime(text, fmt))
        except ValueError:
            continue

    try:
        return as_utc(parsedate_to_datetime(text))
    except (TypeError, ValueError, IndexError):
        return INVALID_DATE


CONVERTERS: Dict[ColumnType, Callable[[Any], Any]] = {
    ColumnType.STRING: as_text,
    ColumnType.NUMBER: _to_number,
    ColumnType.BOOLEAN: _to_boolean,
    ColumnType.ARRAY: _to_array,
    ColumnType.DATE: _to_date,
}


def coerce(column_type: Union[ColumnType, str], value: Any) -> Any:
    """Convert ``value`` to ``column_type``.

    Never raises: when the conversion itself fails the raw value is returned
    unchanged, so callers must tolerate uncoerced values in typed columns.
    ``None`` marks a missing value and passes through every type.
    Unparsable numbers become ``NaN`` and unparsable dates ``INVALID_DATE``;
    both are valid stored values rather than failures.
    """
    if value is None:
        return None
    if not isinstance(column_type, ColumnType):
        column_type = ColumnType.parse(column_type)

    try:
        return CONVERTERS[column_type](value)
    except (TypeError, ValueError, OverflowError, OSError, RecursionError) as e:
        logger.debug(f"Keeping raw value {value!r} for {column_type.value}: {e}")
        return value
