"""Narrow inspection helpers for Mongo filter and update documents."""

import json
from datetime import date, datetime
from typing import Any, Dict, Mapping, Optional

ID_FIELD = "_id"


def direct_id(document: Optional[Mapping[str, Any]]) -> Optional[Any]:
    """Return the `_id` a filter/item names directly, or None.

    Operator expressions such as `{"_id": {"$in": [...]}}` do not name a
    single document and yield None.
    """
    if not document:
        return None
    value = document.get(ID_FIELD)
    if value is None or isinstance(value, (dict, list, tuple, set)):
        return None
    return value


def is_id_only_filter(filter: Optional[Mapping[str, Any]]) -> bool:
    """True when the filter is exactly `{"_id": X}` with X a direct id."""
    return bool(filter) and len(filter) == 1 and direct_id(filter) is not None


def has_operator(update: Optional[Mapping[str, Any]], operator: str) -> bool:
    """True when an update document carries a non-empty `operator` clause (e.g. "$set")."""
    return bool(update) and bool(update.get(operator))


def cache_key(entity_id: Any) -> str:
    return str(entity_id)


def serialize_filter(filter: Optional[Mapping[str, Any]]) -> str:
    """Stable cache key for a filter document."""
    return json.dumps(filter or {}, sort_keys=True, default=str, separators=(",", ":"))


def flatten(document: Mapping[str, Any]) -> Dict[str, Any]:
    """Flatten nested mappings into dotted paths.

    Lists, dates and scalars are leaves:
    `{"_id": 1, "profile": {"name": "x"}}` -> `{"_id": 1, "profile.name": "x"}`.
    """
    flat: Dict[str, Any] = {}

    def _walk(value: Mapping[str, Any], prefix: Optional[str]) -> None:
        for key, val in value.items():
            path = f"{prefix}.{key}" if prefix else key
            if isinstance(val, Mapping) and val and not isinstance(val, (datetime, date)):
                _walk(val, path)
            else:
                flat[path] = val

    _walk(document, None)
    return flat
