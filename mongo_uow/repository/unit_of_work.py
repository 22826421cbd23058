"""
Unit of Work: owns one lazily started session/transaction and the repositories built on it.
"""

import uuid
from enum import Enum
from typing import Any, Dict, NamedTuple, Optional
from pydantic import BaseModel, Field
from mongo_uow.config import settings
from mongo_uow.exceptions.errors import SessionLifecycleError
from mongo_uow.logging.logger import get_logger, reset_trace_id, set_trace_id
from .base import IRepository
from .factory import RepositoryFactory

logger = get_logger("unit_of_work")


class UnitOfWorkOptions(BaseModel):
    # Default for get_repository(with_transaction=None)
    use_transactions: bool = Field(default_factory=lambda: settings.USE_TRANSACTIONS)


class UnitOfWorkState(str, Enum):
    IDLE = "idle"
    SESSION_ACTIVE = "session_active"
    COMMITTED = "committed"
    ROLLED_BACK = "rolled_back"
    DISPOSED = "disposed"


class RepositoryKey(NamedTuple):
    name: str
    with_transaction: bool


class UnitOfWork:
    """
    Hands out memoized repositories; every transactional repository shares one
    session, so their writes commit or roll back together.

    commit()/rollback() are no-ops when no transaction is active, so callers
    use one code path whether transactions are enabled or not.
    """

    def __init__(
        self,
        client: Any,
        repository_factory: RepositoryFactory,
        options: Optional[UnitOfWorkOptions] = None,
    ):
        self.client = client
        self.id = uuid.uuid4().hex[:12]
        self._repository_factory = repository_factory
        self._options = options.model_copy() if options else UnitOfWorkOptions()
        self._repositories: Dict[RepositoryKey, IRepository] = {}
        self._session = None
        self._state = UnitOfWorkState.IDLE
        self._trace_token = None

    @property
    def options(self) -> UnitOfWorkOptions:
        return self._options

    @property
    def state(self) -> UnitOfWorkState:
        return self._state

    @property
    def session(self):
        return self._session

    async def _get_session(self):
        """Start the shared session and its transaction on first use."""
        if self._session is not None:
            return self._session
        # Bound before awaiting so concurrent callers share this session
        session = self.client.start_session()
        self._session = session
        self._state = UnitOfWorkState.SESSION_ACTIVE
        try:
            await session.start_transaction()
        except Exception as e:
            # A session without a transaction must never be handed out
            logger.error(f"uow {self.id}: failed to start transaction: {e}")
            self._session = None
            self._state = UnitOfWorkState.IDLE
            await session.end_session()
            raise
        logger.debug(f"uow {self.id}: session started with transaction")
        return session

    async def get_repository(self, name: str, with_transaction: Optional[bool] = None) -> IRepository:
        """Get or create the repository for (name, with_transaction)."""
        if self._state == UnitOfWorkState.DISPOSED:
            raise SessionLifecycleError(f"Unit of work {self.id} has been disposed")
        if with_transaction is None:
            with_transaction = self._options.use_transactions
        key = RepositoryKey(name, bool(with_transaction))
        repository = self._repositories.get(key)
        if repository is not None:
            return repository

        session = await self._get_session() if key.with_transaction else None
        # Another caller may have built it while the transaction was starting
        repository = self._repositories.get(key)
        if repository is None:
            repository = self._repository_factory(name, self.client, session)
            self._repositories[key] = repository
            logger.debug(f"uow {self.id}: repository '{name}' created (transaction={key.with_transaction})")
        return repository

    def _in_transaction(self) -> bool:
        return self._session is not None and bool(self._session.in_transaction)

    async def commit(self) -> None:
        """Commit the transaction in progress, if any."""
        if not self._in_transaction():
            return
        await self._session.commit_transaction()
        self._state = UnitOfWorkState.COMMITTED
        logger.debug(f"uow {self.id}: commit")

    async def rollback(self) -> None:
        """Abort the transaction in progress, if any."""
        if not self._in_transaction():
            return
        await self._session.abort_transaction()
        self._state = UnitOfWorkState.ROLLED_BACK
        logger.debug(f"uow {self.id}: rollback")

    async def dispose(self) -> None:
        """Clear repositories, roll back an uncommitted transaction and end the session."""
        self._repositories.clear()
        session = self._session
        if session is None:
            self._state = UnitOfWorkState.DISPOSED
            return
        try:
            if self._in_transaction():
                await self.rollback()
        finally:
            self._session = None
            self._state = UnitOfWorkState.DISPOSED
            try:
                await session.end_session()
            except Exception as e:
                logger.error(f"uow {self.id}: failed to end session: {e}")
                raise SessionLifecycleError("Failed to end session", detail={"uow": self.id}) from e
            logger.debug(f"uow {self.id}: session ended")

    async def __aenter__(self):
        self._trace_token = set_trace_id(self.id)
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        try:
            if exc_type is not None:
                await self.rollback()
            else:
                await self.commit()
        finally:
            try:
                await self.dispose()
            finally:
                if self._trace_token is not None:
                    reset_trace_id(self._trace_token)
                    self._trace_token = None
