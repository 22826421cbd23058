"""In-process LRU cache backend with optional TTL."""

import time
from collections import OrderedDict
from typing import Any, Awaitable, Callable, Dict, List, Optional, Sequence, Set, Tuple
from mongo_uow.config import settings
from mongo_uow.logging.logger import get_logger
from mongo_uow.utils.events import EventEmitter
from .base import CacheEntry, ICache

logger = get_logger("memory_cache")

DISPOSE = "dispose"
RESET = "reset"

# Awaited for every non-local invalidation: publisher("dispose", key) / publisher("reset", None)
Publisher = Callable[[str, Optional[str]], Awaitable[None]]


class MemoryCache(ICache):
    """
    Bounded in-memory cache.

    Removing an entity (invalidation, expiry or LRU eviction) drops every
    cached query whose result list references it, so a query entry never
    outlives an entity it was built from.
    """

    def __init__(
        self,
        max_entries: Optional[int] = None,
        ttl_seconds: Optional[float] = None,
        publisher: Optional[Publisher] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.max_entries = max_entries if max_entries is not None else settings.CACHE_MAX_ENTRIES
        self.ttl_seconds = ttl_seconds if ttl_seconds is not None else settings.CACHE_TTL_SECONDS
        self._publisher = publisher
        self._clock = clock
        self._entities: "OrderedDict[str, Tuple[Any, Optional[float]]]" = OrderedDict()
        self._queries: "OrderedDict[str, Tuple[List[CacheEntry], Optional[float]]]" = OrderedDict()
        self._dependents: Dict[str, Set[str]] = {}
        self._events = EventEmitter()

    def __len__(self) -> int:
        return len(self._entities)

    def __contains__(self, key: str) -> bool:
        return self.get(key) is not None

    @property
    def query_count(self) -> int:
        return len(self._queries)

    def on(self, event: str, callback: Callable[..., Any]) -> None:
        if event not in (DISPOSE, RESET):
            raise ValueError(f"Unsupported cache event: {event}")
        self._events.on(event, callback)

    # Entity index --------------------------------------------------------
    def get(self, key: str) -> Optional[Any]:
        record = self._entities.get(key)
        if record is None:
            return None
        value, expires_at = record
        if self._expired(expires_at):
            self._remove(key)
            return None
        self._entities.move_to_end(key)
        return value

    def set(self, key: str, value: Any) -> None:
        self._entities[key] = (value, self._deadline())
        self._entities.move_to_end(key)
        while len(self._entities) > self.max_entries:
            oldest = next(iter(self._entities))
            logger.trace(f"evict {oldest}")
            self._remove(oldest)

    # Query index ---------------------------------------------------------
    def get_query(self, query: str) -> Optional[List[Any]]:
        record = self._queries.get(query)
        if record is None:
            return None
        entries, expires_at = record
        if self._expired(expires_at):
            self._drop_query(query)
            return None
        self._queries.move_to_end(query)
        return [value for _, value in entries]

    def set_query(self, query: str, entries: Sequence[CacheEntry]) -> None:
        self._drop_query(query)
        entries = [(key, value) for key, value in entries]
        self._queries[query] = (entries, self._deadline())
        for key, _ in entries:
            self._dependents.setdefault(key, set()).add(query)
        while len(self._queries) > self.max_entries:
            self._drop_query(next(iter(self._queries)))

    # Invalidation --------------------------------------------------------
    async def invalidate_key(self, key: str, local_only: bool = False) -> None:
        logger.trace(f"invalidate_key {key} local_only={local_only}")
        self._remove(key)
        if not local_only and self._publisher is not None:
            await self._publisher(DISPOSE, key)

    async def invalidate_all(self, local_only: bool = False) -> None:
        logger.trace(f"invalidate_all local_only={local_only}")
        self._entities.clear()
        self._queries.clear()
        self._dependents.clear()
        self._events.emit(RESET)
        if not local_only and self._publisher is not None:
            await self._publisher(RESET, None)

    # Internals -----------------------------------------------------------
    def _deadline(self) -> Optional[float]:
        if self.ttl_seconds is None:
            return None
        return self._clock() + self.ttl_seconds

    def _expired(self, expires_at: Optional[float]) -> bool:
        return expires_at is not None and self._clock() >= expires_at

    def _remove(self, key: str) -> None:
        self._entities.pop(key, None)
        for query in self._dependents.pop(key, set()):
            self._drop_query(query)
        self._events.emit(DISPOSE, key)

    def _drop_query(self, query: str) -> None:
        record = self._queries.pop(query, None)
        if record is None:
            return
        for key, _ in record[0]:
            queries = self._dependents.get(key)
            if queries is not None:
                queries.discard(query)
                if not queries:
                    del self._dependents[key]
