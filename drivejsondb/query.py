import re
import unicodedata
from datetime import date, datetime
from functools import cmp_to_key
from typing import (
    TYPE_CHECKING,
    Any,
    Callable,
    Dict,
    Iterable,
    Iterator,
    List,
    Mapping,
    Optional,
    Tuple,
)

import logging

from .codec import to_storage, to_view
from .coercion import ColumnType, as_text, coerce

if TYPE_CHECKING:
    from .table import TableHandle

logger = logging.getLogger(__name__)

Predicate = Callable[[Dict[str, Any]], Any]

DEFAULT_ORDER = {"id": "asc"}
DIRECTIONS = ("asc", "desc")


class Selection:
    """Rows returned by a query, optionally projected, with pagination"""

    def __init__(self, rows: List[Dict[str, Any]]):
        self._rows = rows

    def rows(self) -> List[Dict[str, Any]]:
        return list(self._rows)

    def limit(self, offset: int = 0, length: int = -1) -> "Selection":
        """Slice ``length`` rows starting at ``offset``.

        A negative offset starts at the beginning, a negative length takes
        everything after the offset; the window is clamped to the rows
        available.
        """
        start = offset if offset >= 0 else 0
        count = length if length >= 0 else len(self._rows) - start
        if start + count > len(self._rows):
            count = len(self._rows) - start
        if count <= 0:
            return Selection([])
        return Selection(self._rows[start:start + count])

    def __iter__(self) -> Iterator[Dict[str, Any]]:
        return iter(self.rows())

    def __len__(self) -> int:
        return len(self._rows)

    def __bool__(self) -> bool:
        return bool(self._rows)

    def __repr__(self) -> str:
        return f"Selection({self._rows!r})"


def project(
    rows: List[Dict[str, Any]], keys: Optional[Iterable[str]], column_names: List[str]
) -> List[Dict[str, Any]]:
    """Keep only the requested schema keys, dropping rows left empty.

    Anything other than a key or a collection of keys leaves rows unprojected.
    """
    if keys is None:
        return rows
    if isinstance(keys, str):
        keys = [keys]
    elif not isinstance(keys, Iterable):
        return rows

    wanted = [key for key in keys if isinstance(key, str) and key in column_names]
    selected = []
    for row in rows:
        selected_row = {key: row[key] for key in wanted if key in row}
        if selected_row:
            selected.append(selected_row)
    return selected


def normalize_orders(orders: Any, column_names: List[str]) -> Dict[str, str]:
    """Keep valid ``column -> asc|desc`` entries, falling back to id ascending"""
    normalized: Dict[str, str] = {}
    if isinstance(orders, Mapping):
        for by, order in orders.items():
            direction = str(order).strip().lower()
            if by in column_names and direction in DIRECTIONS and by not in normalized:
                normalized[by] = direction
    return normalized or dict(DEFAULT_ORDER)


def collation_key(text: str) -> Tuple[str, str, Tuple[bool, ...], str]:
    """Sort key for text: letters first, then accents, then case (lower first)"""
    decomposed = unicodedata.normalize("NFKD", text)
    base = "".join(ch for ch in decomposed if not unicodedata.combining(ch))
    return (
        base.casefold(),
        decomposed.casefold(),
        tuple(ch.isupper() for ch in decomposed),
        text,
    )


def _compare_values(a: Any, b: Any) -> int:
    if isinstance(a, str) or isinstance(b, str):
        key_a = collation_key(as_text(a))
        key_b = collation_key(as_text(b))
        return (key_a > key_b) - (key_a < key_b)
    try:
        if a < b:
            return -1
        if a > b:
            return 1
    except TypeError:
        pass
    return 0


def row_comparator(orders: Dict[str, str]) -> Callable[[Dict[str, Any], Dict[str, Any]], int]:
    """Multi-key comparison: first key decides, ties fall through to the next"""
    keys: List[Tuple[str, str]] = list(orders.items())

    def compare(a: Dict[str, Any], b: Dict[str, Any]) -> int:
        for by, direction in keys:
            result = _compare_values(a.get(by), b.get(by))
            if direction == "desc":
                result = -result
            if result:
                return result
        return 0

    return compare


class Query:
    """Rows of one table matching a predicate.

    Matches are evaluated against the table's current snapshot each time a
    method is called.
    """

    def __init__(self, table: "TableHandle", predicate: Predicate):
        self._table = table
        self._predicate = predicate

    def _matching(self) -> List[Dict[str, Any]]:
        snapshot = self._table.snapshot()
        if snapshot is None:
            return []
        names = snapshot.column_names
        views = (to_view(row, names) for row in snapshot.data)
        return [view for view in views if self._predicate(view)]

    def _rows(self) -> List[Dict[str, Any]]:
        return self._matching()

    def get(self, keys: Optional[Iterable[str]] = None) -> Selection:
        return Selection(project(self._rows(), keys, self._table.column_names()))

    def first(self, keys: Optional[Iterable[str]] = None) -> Selection:
        rows = self._rows()[:1]
        return Selection(project(rows, keys, self._table.column_names()))

    def order_by(self, orders: Optional[Mapping[str, str]] = None) -> "OrderedQuery":
        normalized = normalize_orders(orders or {}, self._table.column_names())
        return OrderedQuery(self._table, self._predicate, normalized)

    orderBy = order_by

    def delete(self) -> int:
        """Remove every matching row from the table, returns the count removed"""
        snapshot = self._table.snapshot()
        if snapshot is None:
            return 0
        names = snapshot.column_names
        found = [to_storage(view, names) for view in self._matching()]
        if not found:
            return 0

        kept = [row for row in snapshot.data if row not in found]
        self._table.replace_data(kept)
        removed = len(snapshot.data) - len(kept)
        logger.debug(f"Deleted {removed} row(s) from {self._table.name}")
        return removed

    def update(self, patch: Optional[Mapping[str, Any]] = None) -> bool:
        """Merge ``patch`` over every matching row.

        Unknown columns are ignored; returns False without touching the table
        when nothing is left to apply.
        """
        snapshot = self._table.snapshot()
        if snapshot is None or not isinstance(patch, Mapping):
            return False

        names = snapshot.column_names
        changes = {}
        for key, value in patch.items():
            column = snapshot.column(key)
            if column is None:
                continue
            changes[key] = coerce(column.type, value)
        if not changes:
            return False

        found = [to_storage(view, names) for view in self._matching()]
        data = []
        for row in snapshot.data:
            if row in found:
                row = to_storage({**to_view(row, names), **changes}, names)
            data.append(row)

        self._table.replace_data(data)
        logger.debug(f"Updated {len(found)} row(s) in {self._table.name}")
        return True


class OrderedQuery(Query):
    """Query whose rows come back sorted by one or more columns"""

    def __init__(self, table: "TableHandle", predicate: Predicate, orders: Dict[str, str]):
        super().__init__(table, predicate)
        self.orders = orders

    def _rows(self) -> List[Dict[str, Any]]:
        return sorted(self._matching(), key=cmp_to_key(row_comparator(self.orders)))


def _contains(x: Any, y: Any) -> bool:
    return y in x if isinstance(x, (list, str)) else False


def _startswith(x: Any, y: Any) -> bool:
    return x.startswith(y) if isinstance(x, str) else False


def _endswith(x: Any, y: Any) -> bool:
    return x.endswith(y) if isinstance(x, str) else False


def _regex(x: Any, y: Any) -> bool:
    return bool(re.search(y, x)) if isinstance(x, str) else False


OPERATORS: Dict[str, Callable[[Any, Any], bool]] = {
    "=": lambda x, y: x == y,
    ">": lambda x, y: x > y,
    "<": lambda x, y: x < y,
    ">=": lambda x, y: x >= y,
    "<=": lambda x, y: x <= y,
    "!=": lambda x, y: x != y,
    "in": lambda x, y: x in y,
    "not in": lambda x, y: x not in y,
    "contains": _contains,
    "startswith": _startswith,
    "endswith": _endswith,
    "regex": _regex,
}


class QueryCondition:
    """Declarative predicate for ``find``: ``QueryCondition("id", ">", 0)``"""

    def __init__(self, field: str, operator: str, value: Any):
        if operator not in OPERATORS:
            raise ValueError(f"Unsupported operator: {operator}")
        self.field = field
        self.operator = operator
        self.value = value

    def evaluate(self, record: Mapping[str, Any]) -> bool:
        """Evaluates condition against a view row, mismatched types never match"""
        if self.field not in record:
            return False

        record_value = record[self.field]
        value = self.value
        if isinstance(record_value, datetime) and isinstance(value, (str, date)):
            value = coerce(ColumnType.DATE, value)

        try:
            return bool(OPERATORS[self.operator](record_value, value))
        except (TypeError, re.error):
            return False

    __call__ = evaluate

    def __repr__(self) -> str:
        return f"QueryCondition({self.field!r}, {self.operator!r}, {self.value!r})"


def all_of(*conditions: Predicate) -> Predicate:
    return lambda row: all(condition(row) for condition in conditions)


def any_of(*conditions: Predicate) -> Predicate:
    return lambda row: any(condition(row) for condition in conditions)
