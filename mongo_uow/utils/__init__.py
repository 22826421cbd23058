from .events import EventEmitter
from .filters import (
    ID_FIELD,
    cache_key,
    direct_id,
    flatten,
    has_operator,
    is_id_only_filter,
    serialize_filter,
)

__all__ = [
    "EventEmitter",
    "ID_FIELD",
    "cache_key",
    "direct_id",
    "flatten",
    "has_operator",
    "is_id_only_filter",
    "serialize_filter",
]
