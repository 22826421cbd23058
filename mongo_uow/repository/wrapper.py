"""
Delegating base for composable repository wrappers (cache, audit, access control).
"""

from typing import Any, Dict, List, Mapping, Optional, Sequence
from mongo_uow.utils.events import EventEmitter
from .base import Filter, IRepository, Projection, T
from .paging import Page, Paging


class RepositoryWrapper(IRepository[T]):
    """Forwards every contract operation to `inner`; subclasses override what they change."""

    def __init__(self, inner: IRepository[T]):
        self._inner = inner

    @property
    def inner(self) -> IRepository[T]:
        return self._inner

    @property
    def name(self) -> str:
        return self._inner.name

    @property
    def changes(self) -> EventEmitter:
        return self._inner.changes

    @property
    def session(self):
        return self._inner.session

    async def add(self, item: T) -> T:
        return await self._inner.add(item)

    async def add_many(self, items: Sequence[T], ordered: bool = True) -> List[T]:
        return await self._inner.add_many(items, ordered)

    async def patch(self, filter: Filter, item: Mapping[str, Any], upsert: bool = False) -> Optional[T]:
        return await self._inner.patch(filter, item, upsert)

    async def update(self, filter: Filter, update: Mapping[str, Any], **options) -> Any:
        return await self._inner.update(filter, update, **options)

    async def delete_one(self, filter: Filter) -> Optional[T]:
        return await self._inner.delete_one(filter)

    async def delete_many(self, filter: Filter) -> int:
        return await self._inner.delete_many(filter)

    async def find_one_and_update(self, filter: Filter, update: Mapping[str, Any], **options) -> Optional[T]:
        return await self._inner.find_one_and_update(filter, update, **options)

    async def find_one(self, filter: Filter, projection: Projection = None) -> Optional[T]:
        return await self._inner.find_one(filter, projection)

    async def find_by_id(self, id: Any, projection: Projection = None) -> Optional[T]:
        return await self._inner.find_by_id(id, projection)

    async def find_many(self, filter: Filter, projection: Projection = None) -> List[T]:
        return await self._inner.find_many(filter, projection)

    async def find_many_page(self, filter: Filter, paging: Paging, projection: Projection = None) -> Page:
        return await self._inner.find_many_page(filter, paging, projection)

    async def count(self, filter: Filter) -> int:
        return await self._inner.count(filter)

    async def aggregate(self, pipeline: Sequence[Mapping[str, Any]], **options) -> List[Dict[str, Any]]:
        return await self._inner.aggregate(pipeline, **options)
