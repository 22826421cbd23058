"""
Cache-aside repository wrapper.

Reads consult the cache before the store; every mutation invalidates the
affected keys (or the whole cache when they cannot be determined) before
the store call. Cache entries are a best-effort hint: a read that misses
may populate the cache after a concurrent mutation has already finished.
"""

from typing import Any, List, Mapping, Optional, Sequence
from pymongo import ReturnDocument
from mongo_uow.cache.base import ICache
from mongo_uow.logging.logger import get_logger
from mongo_uow.utils.filters import ID_FIELD, cache_key, direct_id, is_id_only_filter, serialize_filter
from .base import Filter, IRepository, Projection, T
from .wrapper import RepositoryWrapper

logger = get_logger("cached_repository")


class CachedRepository(RepositoryWrapper[T]):
    """Cache-aside decorator over any repository."""

    def __init__(self, inner: IRepository[T], cache: ICache):
        super().__init__(inner)
        self._cache = cache

    @property
    def cache(self) -> ICache:
        return self._cache

    def get(self, id: Any) -> Optional[T]:
        return self._cache.get(cache_key(id))

    def cache_item(self, item: T) -> None:
        # The cache holds its own copy, detached from the caller's dict
        self._cache.set(cache_key(item[ID_FIELD]), dict(item))

    async def invalidate_key(self, id: Any, local_only: bool = False) -> None:
        await self._cache.invalidate_key(cache_key(id), local_only)

    async def invalidate_all(self, local_only: bool = False) -> None:
        await self._cache.invalidate_all(local_only)

    async def _invalidate_for(self, *documents: Optional[Mapping[str, Any]]) -> None:
        """Invalidate the first direct id found in `documents`, else everything."""
        for document in documents:
            entity_id = direct_id(document)
            if entity_id is not None:
                await self.invalidate_key(entity_id, False)
                return
        await self.invalidate_all(False)

    # Writes --------------------------------------------------------------
    async def add(self, item: T) -> T:
        result = await self._inner.add(item)
        self.cache_item(result)
        return result

    async def add_many(self, items: Sequence[T], ordered: bool = True) -> List[T]:
        results = await self._inner.add_many(items, ordered)
        for item in results:
            self.cache_item(item)
        return results

    async def patch(self, filter: Filter, item: Mapping[str, Any], upsert: bool = False) -> Optional[T]:
        await self._invalidate_for(filter, item)
        return await self._inner.patch(filter, item, upsert)

    async def update(self, filter: Filter, update: Mapping[str, Any], **options) -> Any:
        await self._invalidate_for(filter)
        return await self._inner.update(filter, update, **options)

    async def delete_one(self, filter: Filter) -> Optional[T]:
        await self._invalidate_for(filter)
        return await self._inner.delete_one(filter)

    async def delete_many(self, filter: Filter) -> int:
        await self._invalidate_for(filter)
        return await self._inner.delete_many(filter)

    async def find_one_and_update(self, filter: Filter, update: Mapping[str, Any], **options) -> Optional[T]:
        entity_id = direct_id(filter)
        if entity_id is not None:
            await self.invalidate_key(entity_id, False)
        result = await self._inner.find_one_and_update(filter, update, **options)
        if result is None:
            return None
        if entity_id is None:
            await self.invalidate_key(result[ID_FIELD], False)
        if options.get("return_document") == ReturnDocument.AFTER:
            self.cache_item(result)
        return result

    # Reads ---------------------------------------------------------------
    async def find_by_id(self, id: Any, projection: Projection = None) -> Optional[T]:
        if projection is None:
            cached = self.get(id)
            if cached is not None:
                logger.trace(f"find_by_id cache hit {self.name} {id}")
                return cached
            logger.trace(f"find_by_id cache miss {self.name} {id}")
        result = await self._inner.find_by_id(id, projection)
        if result is not None and projection is None and result.get(ID_FIELD) is not None:
            self.cache_item(result)
        return result

    async def find_one(self, filter: Filter, projection: Projection = None) -> Optional[T]:
        if is_id_only_filter(filter):
            return await self.find_by_id(direct_id(filter), projection)
        if projection is not None:
            return await self._inner.find_one(filter, projection)
        query = serialize_filter(filter)
        cached = self._cache.get_query(query)
        if cached:
            logger.trace(f"find_one cache hit {self.name} {query}")
            return cached[0]
        logger.trace(f"find_one cache miss {self.name} {query}")
        result = await self._inner.find_one(filter)
        if result is not None and result.get(ID_FIELD) is not None:
            key = cache_key(result[ID_FIELD])
            self._cache.set(key, result)
            self._cache.set_query(query, [(key, result)])
        return result

    async def find_many(self, filter: Filter, projection: Projection = None) -> List[T]:
        if projection is not None:
            return await self._inner.find_many(filter, projection)
        query = serialize_filter(filter)
        cached = self._cache.get_query(query)
        if cached is not None:
            logger.trace(f"find_many cache hit {self.name} {query}")
            return list(cached)
        logger.trace(f"find_many cache miss {self.name} {query}")
        results = await self._inner.find_many(filter)
        if results and all(item.get(ID_FIELD) is not None for item in results):
            entries = []
            for item in results:
                key = cache_key(item[ID_FIELD])
                if self._cache.get(key) is None:
                    self._cache.set(key, item)
                entries.append((key, item))
            self._cache.set_query(query, entries)
        return results
