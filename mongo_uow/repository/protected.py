"""
Access-controlled repository wrapper.

Documents carry an access control list:

    {"acl": {"type": "<resource type>", "users": {"<user id>": <Access bits>}}}

Authorized operations narrow the filter to documents where the current
user holds every requested access bit, unless the user has global access
to the resource type.
"""

from enum import IntFlag
from typing import Any, Callable, Dict, List, Mapping, Optional
from pydantic import BaseModel
from pymongo import ReturnDocument
from mongo_uow.logging.logger import get_logger
from .base import Filter, IRepository, Projection, T
from .paging import Page, Paging, default_paging
from .wrapper import RepositoryWrapper

logger = get_logger("protected_repository")


class Access(IntFlag):
    """Access bits, up to 8."""
    NONE = 0
    READ = 1 << 0
    WRITE = 1 << 1
    ADD = 1 << 2
    DELETE = 1 << 3
    ALL = 0xFF


class AccessConfig(BaseModel):
    get_user_id: Callable[[], Optional[str]] = lambda: None
    # (resource_type, needed_access) -> bool
    has_global_access: Callable[[str, int], bool] = lambda resource_type, needed_access: False
    allow_remove_own_access: bool = False


class ProtectedRepository(RepositoryWrapper[T]):
    """Access-control operations on top of any repository (usually an AuditableRepository)."""

    def __init__(self, inner: IRepository[T], resource_type: str, config: Optional[AccessConfig] = None):
        super().__init__(inner)
        self.resource_type = resource_type
        self._config = config or AccessConfig()

    @property
    def config(self) -> AccessConfig:
        return self._config

    def authorized_filter(self, filter: Filter, needed_access: int) -> Optional[Dict[str, Any]]:
        """Narrow `filter` to what the current user may access; None when there is no current user."""
        user_id = self._config.get_user_id()
        if not user_id:
            return None
        if self._config.has_global_access(self.resource_type, int(needed_access)):
            return dict(filter)
        return {**filter, f"acl.users.{user_id}": {"$bitsAllSet": int(needed_access)}}

    def _access_update(self, users: Mapping[str, int]) -> Dict[str, Any]:
        current_user = self._config.get_user_id()
        set_fields: Dict[str, int] = {}
        unset_fields: Dict[str, str] = {}
        for user_id, access in users.items():
            path = f"acl.users.{user_id}"
            if (int(access) & Access.WRITE) == Access.NONE:
                # The current user keeps their own write access unless explicitly allowed
                if user_id == current_user and not self._config.allow_remove_own_access:
                    logger.warning(f"{self.name}: refusing to remove own write access for {user_id}")
                    continue
                unset_fields[path] = ""
            else:
                set_fields[path] = int(access)
        update: Dict[str, Any] = {}
        if set_fields:
            update["$set"] = set_fields
        if unset_fields:
            update["$unset"] = unset_fields
        return update

    async def get_one_if_authorized(
        self, filter: Filter, needed_access: int, projection: Projection = None
    ) -> Optional[T]:
        authorized = self.authorized_filter(filter, needed_access)
        if authorized is None:
            return None
        return await self.find_one(authorized, projection)

    async def find_many_authorized(
        self, filter: Filter, needed_access: int, projection: Projection = None
    ) -> List[T]:
        authorized = self.authorized_filter(filter, needed_access)
        if authorized is None:
            return []
        return await self.find_many(authorized, projection)

    async def find_many_page_authorized(
        self,
        filter: Filter,
        needed_access: int,
        paging: Optional[Paging] = None,
        projection: Projection = None,
    ) -> Page:
        paging = paging or default_paging()
        authorized = self.authorized_filter(filter, needed_access)
        if authorized is None:
            return Page.empty(paging)
        return await self.find_many_page(authorized, paging, projection)

    async def count_authorized(self, filter: Filter, needed_access: int) -> int:
        authorized = self.authorized_filter(filter, needed_access)
        if authorized is None:
            return 0
        return await self.count(authorized)

    async def update_one_access(self, filter: Filter, users: Mapping[str, int]) -> Optional[T]:
        """Apply `users` access bits to one document the current user can write."""
        authorized = self.authorized_filter(filter, Access.WRITE)
        if authorized is None:
            return None
        update = self._access_update(users)
        if not update:
            return None
        return await self.find_one_and_update(authorized, update, return_document=ReturnDocument.AFTER)

    async def update_many_access(self, filter: Filter, users: Mapping[str, int]) -> int:
        """Apply `users` access bits to every writable match; returns the modified count."""
        authorized = self.authorized_filter(filter, Access.WRITE)
        if authorized is None:
            return 0
        update = self._access_update(users)
        if not update:
            return 0
        result = await self.update(authorized, update)
        return result.modified_count

    async def delete_one_authorized(self, filter: Filter) -> Optional[T]:
        authorized = self.authorized_filter(filter, Access.DELETE)
        if authorized is None:
            return None
        return await self.delete_one(authorized)

    async def delete_many_authorized(self, filter: Filter) -> int:
        authorized = self.authorized_filter(filter, Access.DELETE)
        if authorized is None:
            return 0
        return await self.delete_many(authorized)
