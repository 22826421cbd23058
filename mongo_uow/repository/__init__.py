"""
Repository pattern: data access abstraction over MongoDB collections, with a
unit of work sharing one transaction and composable cache/audit/access wrappers.
"""

from .auditable import AuditableRepository, AuditConfig
from .base import BaseRepository, ChangeKind, IRepository
from .cached import CachedRepository
from .factory import RepositoryFactory, get_factory
from .paging import Page, Paging, default_paging
from .protected import Access, AccessConfig, ProtectedRepository
from .unit_of_work import RepositoryKey, UnitOfWork, UnitOfWorkOptions, UnitOfWorkState
from .wrapper import RepositoryWrapper

__all__ = [
    "Access",
    "AccessConfig",
    "AuditConfig",
    "AuditableRepository",
    "BaseRepository",
    "CachedRepository",
    "ChangeKind",
    "IRepository",
    "Page",
    "Paging",
    "ProtectedRepository",
    "RepositoryFactory",
    "RepositoryKey",
    "RepositoryWrapper",
    "UnitOfWork",
    "UnitOfWorkOptions",
    "UnitOfWorkState",
    "default_paging",
    "get_factory",
]
