"""Repository factory type and a name-keyed factory builder."""

from typing import Any, Callable, Mapping, Optional
from mongo_uow.exceptions.errors import UnknownRepositoryError
from .base import IRepository

# (name, client, session?) -> repository
RepositoryFactory = Callable[[str, Any, Optional[Any]], IRepository]


def get_factory(repositories: Mapping[str, RepositoryFactory]) -> RepositoryFactory:
    """Combine per-name factories into one RepositoryFactory."""
    registry = dict(repositories)

    def repository_factory(name: str, client: Any, session: Optional[Any] = None) -> IRepository:
        build = registry.get(name)
        if build is None:
            raise UnknownRepositoryError(name)
        return build(name, client, session)

    return repository_factory
