"""
mongo_uow: unit of work and cache-aside repositories over MongoDB.
"""

from .cache import ICache, MemoryCache
from .logging import LogConfig, get_logger
from .exceptions import (
    RepositoryError,
    SessionLifecycleError,
    StoreOperationError,
    UnknownRepositoryError,
    ValidationError,
)
from .repository import (
    Access,
    AccessConfig,
    AuditableRepository,
    AuditConfig,
    BaseRepository,
    CachedRepository,
    ChangeKind,
    IRepository,
    Page,
    Paging,
    ProtectedRepository,
    RepositoryFactory,
    RepositoryWrapper,
    UnitOfWork,
    UnitOfWorkOptions,
    UnitOfWorkState,
    get_factory,
)

__version__ = "1.0.0"

__all__ = [
    "Access",
    "AccessConfig",
    "AuditConfig",
    "AuditableRepository",
    "BaseRepository",
    "CachedRepository",
    "ChangeKind",
    "ICache",
    "LogConfig",
    "IRepository",
    "MemoryCache",
    "Page",
    "Paging",
    "ProtectedRepository",
    "RepositoryError",
    "RepositoryFactory",
    "RepositoryWrapper",
    "SessionLifecycleError",
    "StoreOperationError",
    "UnitOfWork",
    "UnitOfWorkOptions",
    "UnitOfWorkState",
    "UnknownRepositoryError",
    "ValidationError",
    "get_factory",
    "get_logger",
]
