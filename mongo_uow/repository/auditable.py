"""
Audit-stamping and soft-delete repository wrapper.
"""

from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence
from pydantic import BaseModel, Field
from pymongo import ReturnDocument
from mongo_uow.config import settings
from mongo_uow.utils.filters import has_operator
from .base import Filter, IRepository, Projection, T
from .paging import Page, Paging
from .wrapper import RepositoryWrapper

NOT_DELETED = {"$exists": False}


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class AuditConfig(BaseModel):
    """How audit objects are built and whether deletes are soft."""
    get_user_id: Callable[[], Optional[str]] = lambda: None
    get_current_time: Callable[[], datetime] = _utcnow
    soft_delete: bool = Field(default_factory=lambda: settings.SOFT_DELETE)


class AuditableRepository(RepositoryWrapper[T]):
    """Stamps created/updated/deleted metadata and hides soft-deleted documents."""

    def __init__(self, inner: IRepository[T], config: Optional[AuditConfig] = None):
        super().__init__(inner)
        self._config = config or AuditConfig()

    @property
    def config(self) -> AuditConfig:
        return self._config

    def audit_object(self) -> Dict[str, Any]:
        """{"at": now, "by": user_id} (`by` omitted when there is no current user)."""
        audit: Dict[str, Any] = {"at": self._config.get_current_time()}
        user_id = self._config.get_user_id()
        if user_id:
            audit["by"] = user_id
        return audit

    def not_deleted(self, filter: Filter) -> Dict[str, Any]:
        if self._config.soft_delete:
            return {**filter, "deleted": NOT_DELETED}
        return dict(filter)

    def with_audit_fields(self, update: Mapping[str, Any], upsert: bool = False) -> Dict[str, Any]:
        """Add `updated` to $set and, for upserts, `created` to $setOnInsert."""
        new_update = dict(update)
        set_fields = {"updated": self.audit_object()}
        if has_operator(update, "$set"):
            set_fields.update(update["$set"])
        new_update["$set"] = set_fields
        if upsert:
            insert_fields = {"created": self.audit_object()}
            if has_operator(update, "$setOnInsert"):
                insert_fields.update(update["$setOnInsert"])
            new_update["$setOnInsert"] = insert_fields
        return new_update

    async def add(self, item: T) -> T:
        item["created"] = self.audit_object()
        return await self._inner.add(item)

    async def add_many(self, items: Sequence[T], ordered: bool = False) -> List[T]:
        for item in items:
            item["created"] = self.audit_object()
        return await self._inner.add_many(items, ordered)

    async def count(self, filter: Filter) -> int:
        return await self._inner.count(self.not_deleted(filter))

    async def patch(self, filter: Filter, item: Mapping[str, Any], upsert: bool = False) -> Optional[T]:
        new_item = dict(item or {})
        if new_item:
            new_item["updated"] = self.audit_object()
        return await self._inner.patch(self.not_deleted(filter), new_item, upsert)

    async def delete_many(self, filter: Filter) -> int:
        if not self._config.soft_delete:
            return await self._inner.delete_many(filter)
        result = await self._inner.update(
            self.not_deleted(filter), {"$set": {"deleted": self.audit_object()}}
        )
        return result.modified_count

    async def delete_one(self, filter: Filter) -> Optional[T]:
        if not self._config.soft_delete:
            return await self._inner.delete_one(filter)
        deleted = await self._inner.find_one_and_update(
            self.not_deleted(filter),
            {"$set": {"deleted": self.audit_object()}},
            return_document=ReturnDocument.AFTER,
        )
        if deleted:
            self.changes.emit("delete", deleted)
        return deleted

    async def find_one(self, filter: Filter, projection: Projection = None) -> Optional[T]:
        return await self._inner.find_one(self.not_deleted(filter), projection)

    async def find_by_id(self, id: Any, projection: Projection = None) -> Optional[T]:
        if self._config.soft_delete:
            return await self.find_one({"_id": id}, projection)
        return await self._inner.find_by_id(id, projection)

    async def find_many(self, filter: Filter, projection: Projection = None) -> List[T]:
        return await self._inner.find_many(self.not_deleted(filter), projection)

    async def find_many_page(self, filter: Filter, paging: Paging, projection: Projection = None) -> Page:
        return await self._inner.find_many_page(self.not_deleted(filter), paging, projection)

    async def update(self, filter: Filter, update: Mapping[str, Any], **options) -> Any:
        new_update = self.with_audit_fields(update, options.get("upsert", False))
        return await self._inner.update(self.not_deleted(filter), new_update, **options)

    async def find_one_and_update(self, filter: Filter, update: Mapping[str, Any], **options) -> Optional[T]:
        new_update = self.with_audit_fields(update, options.get("upsert", False))
        return await self._inner.find_one_and_update(self.not_deleted(filter), new_update, **options)

    async def aggregate(self, pipeline: Sequence[Mapping[str, Any]], **options) -> List[Dict[str, Any]]:
        new_pipeline = list(pipeline)
        if self._config.soft_delete:
            if new_pipeline and isinstance(new_pipeline[0], Mapping) and "$match" in new_pipeline[0]:
                first, rest = new_pipeline[0], new_pipeline[1:]
                new_pipeline = [{"$match": {"deleted": NOT_DELETED, **first["$match"]}}, *rest]
            else:
                new_pipeline = [{"$match": {"deleted": NOT_DELETED}}, *new_pipeline]
        return await self._inner.aggregate(new_pipeline, **options)
