"""
Cache backend interface consumed by CachedRepository.
"""

from abc import ABC, abstractmethod
from typing import Any, Callable, List, Optional, Sequence, Tuple

CacheEntry = Tuple[str, Any]


class ICache(ABC):
    """
    Two logical indices: entities by id (`get`/`set`) and result lists by
    serialized query (`get_query`/`set_query`).

    `invalidate_key`/`invalidate_all` are coroutines so a backend may
    coordinate with peers; `local_only=True` restricts the eviction to this
    process. Backends emit `dispose(key)` and `reset()` through `on`.
    """

    @abstractmethod
    def get(self, key: str) -> Optional[Any]:
        pass

    @abstractmethod
    def set(self, key: str, value: Any) -> None:
        pass

    @abstractmethod
    async def invalidate_key(self, key: str, local_only: bool = False) -> None:
        pass

    @abstractmethod
    async def invalidate_all(self, local_only: bool = False) -> None:
        pass

    @abstractmethod
    def get_query(self, query: str) -> Optional[List[Any]]:
        pass

    @abstractmethod
    def set_query(self, query: str, entries: Sequence[CacheEntry]) -> None:
        pass

    @abstractmethod
    def on(self, event: str, callback: Callable[..., Any]) -> None:
        """Subscribe to `dispose` (key) or `reset` () events."""
