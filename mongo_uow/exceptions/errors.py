from typing import Any
from pymongo.errors import PyMongoError

# Store-level failures are raised by the driver and propagate unmodified.
StoreOperationError = PyMongoError


class RepositoryError(Exception):
    """Base class for data-access exceptions."""
    def __init__(self, message: str, code: int = 400, detail: Any = None):
        super().__init__(message)
        self.message = message
        self.code = code
        self.detail = detail


class ValidationError(RepositoryError):
    """A mutation was rejected before reaching the store (e.g. no effective changes)."""


class SessionLifecycleError(RepositoryError):
    """Ending or using a unit-of-work session failed."""
    def __init__(self, message: str, code: int = 500, detail: Any = None):
        super().__init__(message, code=code, detail=detail)


class UnknownRepositoryError(RepositoryError):
    """The repository factory has no entry for the requested name."""
    def __init__(self, name: str):
        super().__init__(f"unknown repository '{name}'", code=404, detail={"name": name})
        self.name = name
