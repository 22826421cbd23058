from .errors import (
    RepositoryError,
    SessionLifecycleError,
    StoreOperationError,
    UnknownRepositoryError,
    ValidationError,
)

__all__ = [
    "RepositoryError",
    "SessionLifecycleError",
    "StoreOperationError",
    "UnknownRepositoryError",
    "ValidationError",
]
