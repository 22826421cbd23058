"""
Repository contract and the pass-through MongoDB implementation.
"""

from abc import ABC, abstractmethod
from enum import Enum
from typing import Any, Callable, Dict, Generic, List, Mapping, Optional, Sequence, TypeVar
from pymongo import ReturnDocument
from pymongo.errors import BulkWriteError
from mongo_uow.logging.logger import get_logger
from mongo_uow.exceptions.errors import ValidationError
from mongo_uow.utils.events import EventEmitter
from mongo_uow.utils.filters import ID_FIELD, flatten
from .paging import Page, Paging

logger = get_logger("repository")

T = TypeVar("T", bound=Dict[str, Any])

Filter = Mapping[str, Any]
Projection = Optional[Mapping[str, Any]]


class ChangeKind(str, Enum):
    ADD = "add"
    UPDATE = "update"
    DELETE = "delete"


class IRepository(ABC, Generic[T]):
    """Repository interface; defines the data access API every repository variant exposes."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Repository (collection) name."""

    @property
    @abstractmethod
    def changes(self) -> EventEmitter:
        """Change events (add/update/delete) owned by this repository."""

    @property
    def session(self) -> Optional[Any]:
        """Store session the repository runs in, if any."""
        return None

    def on(self, kind: str, callback: Callable[[T], Any]) -> None:
        """Subscribe to add/update/delete events."""
        self.changes.on(ChangeKind(kind).value, callback)

    @abstractmethod
    async def add(self, item: T) -> T:
        pass

    @abstractmethod
    async def add_many(self, items: Sequence[T], ordered: bool = True) -> List[T]:
        pass

    @abstractmethod
    async def patch(self, filter: Filter, item: Mapping[str, Any], upsert: bool = False) -> Optional[T]:
        pass

    @abstractmethod
    async def update(self, filter: Filter, update: Mapping[str, Any], **options) -> Any:
        pass

    @abstractmethod
    async def delete_one(self, filter: Filter) -> Optional[T]:
        pass

    @abstractmethod
    async def delete_many(self, filter: Filter) -> int:
        pass

    @abstractmethod
    async def find_one_and_update(self, filter: Filter, update: Mapping[str, Any], **options) -> Optional[T]:
        pass

    @abstractmethod
    async def find_one(self, filter: Filter, projection: Projection = None) -> Optional[T]:
        pass

    @abstractmethod
    async def find_by_id(self, id: Any, projection: Projection = None) -> Optional[T]:
        pass

    @abstractmethod
    async def find_many(self, filter: Filter, projection: Projection = None) -> List[T]:
        pass

    @abstractmethod
    async def find_many_page(self, filter: Filter, paging: Paging, projection: Projection = None) -> Page:
        pass

    @abstractmethod
    async def count(self, filter: Filter) -> int:
        pass

    @abstractmethod
    async def aggregate(self, pipeline: Sequence[Mapping[str, Any]], **options) -> List[Dict[str, Any]]:
        pass


class BaseRepository(IRepository[T]):
    """Pass-through repository over one collection, optionally bound to a session."""

    def __init__(self, name: str, collection, session=None):
        """Initialize repository with collection and optional session."""
        self._name = name
        self._collection = collection
        self._session = session
        self._events = EventEmitter()

    @property
    def name(self) -> str:
        return self._name

    @property
    def changes(self) -> EventEmitter:
        return self._events

    @property
    def session(self):
        return self._session

    async def add(self, item: T) -> T:
        logger.trace(f"add {self._name} {item}")
        await self._collection.insert_one(item, session=self._session)
        self._events.emit(ChangeKind.ADD.value, item)
        return item

    async def add_many(self, items: Sequence[T], ordered: bool = True) -> List[T]:
        """
        Insert many items.

        When the store reports per-item failures by batch index,
        only the inserted subset is returned (and announced); any other
        failure propagates unchanged.
        """
        logger.trace(f"add_many {self._name} count={len(items)} ordered={ordered}")
        items = list(items)
        try:
            await self._collection.insert_many(items, ordered=ordered, session=self._session)
            inserted = items
        except BulkWriteError as exc:
            details = exc.details or {}
            write_errors = details.get("writeErrors") or []
            if not write_errors or details.get("writeConcernErrors"):
                raise
            failed = set()
            for error in write_errors:
                index = error.get("index")
                if not isinstance(index, int) or not 0 <= index < len(items):
                    raise
                failed.add(index)
            if ordered:
                # Ordered inserts stop at the first failure
                inserted = items[:min(failed)]
            else:
                inserted = [item for i, item in enumerate(items) if i not in failed]
            logger.warning(
                f"add_many {self._name}: {len(failed)} item(s) rejected, {len(inserted)} inserted"
            )
        for item in inserted:
            self._events.emit(ChangeKind.ADD.value, item)
        return inserted

    async def patch(self, filter: Filter, item: Mapping[str, Any], upsert: bool = False) -> Optional[T]:
        """Set the given (flattened) fields; None values are unset. Raises ValidationError if nothing changes."""
        logger.trace(f"patch {self._name} {filter} {item} upsert={upsert}")
        flat = flatten(item or {})
        flat.pop(ID_FIELD, None)
        set_fields = {key: value for key, value in flat.items() if value is not None}
        unset_fields = {key: "" for key, value in flat.items() if value is None}
        update: Dict[str, Any] = {}
        if set_fields:
            update["$set"] = set_fields
        if unset_fields:
            update["$unset"] = unset_fields
        if not update:
            raise ValidationError("No changes submitted", detail={"repository": self._name})
        result = await self.find_one_and_update(
            filter, update, upsert=upsert, return_document=ReturnDocument.AFTER
        )
        if result:
            self._events.emit(ChangeKind.UPDATE.value, result)
        return result

    async def update(self, filter: Filter, update: Mapping[str, Any], **options) -> Any:
        logger.trace(f"update {self._name} {filter} {update} {options}")
        return await self._collection.update_many(filter, update, session=self._session, **options)

    async def delete_one(self, filter: Filter) -> Optional[T]:
        logger.trace(f"delete_one {self._name} {filter}")
        deleted = await self._collection.find_one_and_delete(filter, session=self._session)
        if deleted:
            self._events.emit(ChangeKind.DELETE.value, deleted)
        return deleted or None

    async def delete_many(self, filter: Filter) -> int:
        logger.trace(f"delete_many {self._name} {filter}")
        result = await self._collection.delete_many(filter, session=self._session)
        return result.deleted_count

    async def find_one_and_update(self, filter: Filter, update: Mapping[str, Any], **options) -> Optional[T]:
        logger.trace(f"find_one_and_update {self._name} {filter} {update} {options}")
        result = await self._collection.find_one_and_update(
            filter, update, session=self._session, **options
        )
        return result or None

    async def find_one(self, filter: Filter, projection: Projection = None) -> Optional[T]:
        logger.trace(f"find_one {self._name} {filter} {projection}")
        result = await self._collection.find_one(filter, projection=projection, session=self._session)
        return result or None

    async def find_by_id(self, id: Any, projection: Projection = None) -> Optional[T]:
        logger.trace(f"find_by_id {self._name} {id} {projection}")
        result = await self._collection.find_one({ID_FIELD: id}, projection=projection, session=self._session)
        return result or None

    async def find_many(self, filter: Filter, projection: Projection = None) -> List[T]:
        logger.trace(f"find_many {self._name} {filter} {projection}")
        cursor = self._collection.find(filter, projection=projection, session=self._session)
        return await cursor.to_list(None)

    async def find_many_page(self, filter: Filter, paging: Paging, projection: Projection = None) -> Page:
        logger.trace(f"find_many_page {self._name} {filter} {paging} {projection}")
        total = await self._collection.count_documents(filter, session=self._session)
        cursor = (
            self._collection.find(filter, projection=projection, session=self._session)
            .skip(paging.index * paging.size)
            .limit(paging.size)
        )
        if paging.sorter:
            cursor = cursor.sort(list(paging.sorter.items()))
        items = await cursor.to_list(None)
        return Page(index=paging.index, size=paging.size, sorter=paging.sorter, total=total, items=items)

    async def count(self, filter: Filter) -> int:
        logger.trace(f"count {self._name} {filter}")
        return await self._collection.count_documents(filter, session=self._session)

    async def aggregate(self, pipeline: Sequence[Mapping[str, Any]], **options) -> List[Dict[str, Any]]:
        logger.trace(f"aggregate {self._name} {pipeline} {options}")
        cursor = await self._collection.aggregate(list(pipeline), session=self._session, **options)
        return await cursor.to_list(None)
