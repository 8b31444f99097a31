"""
Property Flattener Module for LTM Report Renderer
Turns a single record into ordered (label, value) pairs for vertical tables.

Contract: when a collection is supplied only its FIRST record is flattened.
Vertical sections call this once per record, so a collection here always
means "the entity this section describes".
"""

import logging
from collections.abc import Mapping
from typing import Any, Iterable, List, Optional, Sequence, Tuple


logger = logging.getLogger(__name__)


_MISSING = object()


def resolve_field(record: Any, name: str, default: Any = "") -> Any:
    """
    Look up a named field on a record.

    Mappings are read by key, anything else by attribute. Lookup never
    raises; unresolved fields return `default`.
    """
    if record is None:
        return default

    if isinstance(record, Mapping):
        value = record.get(name, _MISSING)
    else:
        try:
            value = getattr(record, name, _MISSING)
        except Exception as e:
            logger.debug("Attribute %r raised during lookup: %s", name, e)
            value = _MISSING

    if value is _MISSING or value is None:
        return default
    return value


def field_names(record: Any) -> List[str]:
    """Declared field order of a record (mapping keys or instance attributes)."""
    if isinstance(record, Mapping):
        return [str(key) for key in record.keys()]
    if hasattr(record, "__dataclass_fields__"):
        return list(record.__dataclass_fields__.keys())
    if hasattr(record, "_fields"):
        return list(record._fields)
    if hasattr(record, "__dict__"):
        return [key for key in vars(record) if not key.startswith("_")]
    return []


def _is_record(value: Any) -> bool:
    """Mappings, namedtuples and non-iterables are single records."""
    if isinstance(value, (Mapping, str)) or hasattr(value, "_fields"):
        return True
    return not isinstance(value, Iterable)


def _first_record(record_or_records: Any) -> Any:
    if _is_record(record_or_records):
        return record_or_records
    if isinstance(record_or_records, (list, tuple)):
        return record_or_records[0] if record_or_records else None
    return next(iter(record_or_records), None)


def flatten(
    record_or_records: Any,
    fields: Optional[Sequence[str]] = None,
) -> List[Tuple[str, str]]:
    """
    Flatten one record into (label, value) rows.

    Args:
        record_or_records: A record, or a collection whose first record is used
        fields: Field names to emit, in order (defaults to the record's own order)

    Returns:
        One (label, value) pair per field; unresolved values become ""
    """
    record = _first_record(record_or_records)
    names = list(fields) if fields is not None else field_names(record)

    rows = []
    for name in names:
        value = resolve_field(record, name)
        rows.append((str(name), "" if value is None else str(value)))
    return rows
