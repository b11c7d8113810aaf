import copy
from typing import Any, Dict, Mapping, Sequence, Tuple, Union

import orjson

from .coercion import INVALID_DATE
from .document import Document
from .errors import DocumentDecodeError


def to_view(row: Sequence[Any], column_names: Sequence[str]) -> Dict[str, Any]:
    """Positional storage row -> row keyed by column name

    Array cells are copied so callers cannot reach into the stored snapshot.
    """
    return {
        name: copy.deepcopy(value) if isinstance(value, list) else value
        for name, value in zip(column_names, row)
    }


def to_storage(view: Mapping[str, Any], column_names: Sequence[str]) -> Tuple[Any, ...]:
    """Keyed row -> positional storage row, always in column order"""
    return tuple(view.get(name) for name in column_names)


def _default(value: Any) -> Any:
    if value is INVALID_DATE:
        return None
    if isinstance(value, (set, frozenset)):
        return list(value)
    raise TypeError(f"Type is not JSON serializable: {type(value).__name__}")


def dumps_document(document: Union[Document, Mapping[str, Any]]) -> bytes:
    """Serialize the whole document.

    NaN and infinities are written as null, UTC datetimes as RFC 3339 strings
    with a ``Z`` suffix and invalid dates as null.
    """
    if isinstance(document, Document):
        document = document.to_dict()
    return orjson.dumps(
        document,
        default=_default,
        option=orjson.OPT_NON_STR_KEYS | orjson.OPT_UTC_Z,
    )


def loads_document(payload: Union[bytes, bytearray, memoryview, str]) -> Dict[str, Any]:
    try:
        data = orjson.loads(payload)
    except orjson.JSONDecodeError as e:
        raise DocumentDecodeError(f"Stored document is not valid JSON: {e}") from e
    if not isinstance(data, dict):
        raise DocumentDecodeError(
            f"Stored document must be a JSON object, got {type(data).__name__}"
        )
    return data
