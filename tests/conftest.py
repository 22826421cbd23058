"""Test config and shared fixtures: in-memory stand-ins for the Mongo client, session and collections."""
import copy
import uuid
import pytest
from types import SimpleNamespace
from typing import Any, Dict, List, Optional
from pymongo.errors import BulkWriteError, DuplicateKeyError

from mongo_uow.cache.memory import MemoryCache
from mongo_uow.repository.base import BaseRepository
from mongo_uow.repository.cached import CachedRepository
from mongo_uow.repository.factory import get_factory
from mongo_uow.repository.unit_of_work import UnitOfWork, UnitOfWorkOptions


_MISSING = object()


def _get_path(document: Dict[str, Any], path: str) -> Any:
    value: Any = document
    for part in path.split("."):
        if not isinstance(value, dict) or part not in value:
            return _MISSING
        value = value[part]
    return value


def _set_path(document: Dict[str, Any], path: str, value: Any) -> None:
    parts = path.split(".")
    target = document
    for part in parts[:-1]:
        target = target.setdefault(part, {})
    target[parts[-1]] = value


def _unset_path(document: Dict[str, Any], path: str) -> None:
    parts = path.split(".")
    target = document
    for part in parts[:-1]:
        target = target.get(part)
        if not isinstance(target, dict):
            return
    target.pop(parts[-1], None)


def _matches_condition(value: Any, condition: Any) -> bool:
    if isinstance(condition, dict) and condition and all(k.startswith("$") for k in condition):
        for op, arg in condition.items():
            if op == "$exists":
                if (value is not _MISSING) != bool(arg):
                    return False
            elif op == "$in":
                if value is _MISSING or value not in arg:
                    return False
            elif op == "$ne":
                if value is not _MISSING and value == arg:
                    return False
            elif op == "$bitsAllSet":
                if value is _MISSING or (int(value) & arg) != arg:
                    return False
            else:
                raise NotImplementedError(op)
        return True
    return value is not _MISSING and value == condition


def matches(document: Dict[str, Any], filter: Optional[Dict[str, Any]]) -> bool:
    return all(_matches_condition(_get_path(document, key), cond) for key, cond in (filter or {}).items())


def project(document: Dict[str, Any], projection: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    document = copy.deepcopy(document)
    if not projection:
        return document
    if any(projection.values()):
        result = {k: document[k] for k, v in projection.items() if v and k in document}
        if projection.get("_id", 1) and "_id" in document:
            result["_id"] = document["_id"]
        return result
    return {k: v for k, v in document.items() if k not in projection}


def apply_update(document: Dict[str, Any], update: Dict[str, Any], inserting: bool = False) -> None:
    for path, value in (update.get("$set") or {}).items():
        _set_path(document, path, copy.deepcopy(value))
    for path in (update.get("$unset") or {}):
        _unset_path(document, path)
    if inserting:
        for path, value in (update.get("$setOnInsert") or {}).items():
            _set_path(document, path, copy.deepcopy(value))


class FakeCursor:
    def __init__(self, documents: List[Dict[str, Any]]):
        self._documents = documents
        self._skip = 0
        self._limit = 0
        self.sort_spec = None

    def skip(self, count: int) -> "FakeCursor":
        self._skip = count
        return self

    def limit(self, count: int) -> "FakeCursor":
        self._limit = count
        return self

    def sort(self, spec) -> "FakeCursor":
        self.sort_spec = spec
        return self

    async def to_list(self, length=None) -> List[Dict[str, Any]]:
        documents = list(self._documents)
        for key, direction in reversed(self.sort_spec or []):
            documents.sort(key=lambda d: d.get(key), reverse=direction < 0)
        documents = documents[self._skip:]
        if self._limit:
            documents = documents[: self._limit]
        return documents


class FakeCollection:
    """Just enough of pymongo's AsyncCollection for the repositories; counts store reads."""

    def __init__(self, name: str):
        self.name = name
        self.documents: Dict[Any, Dict[str, Any]] = {}
        self.reads = 0
        self.writes = 0
        self.sessions: List[Any] = []

    def _track(self, session) -> None:
        self.sessions.append(session)

    def _find(self, filter) -> List[Dict[str, Any]]:
        return [d for d in self.documents.values() if matches(d, filter)]

    def _insert(self, document: Dict[str, Any]) -> None:
        document.setdefault("_id", uuid.uuid4().hex)
        if document["_id"] in self.documents:
            raise DuplicateKeyError(f"E11000 duplicate key error _id: {document['_id']}")
        self.documents[document["_id"]] = copy.deepcopy(document)

    async def insert_one(self, document, session=None):
        self._track(session)
        self.writes += 1
        self._insert(document)
        return SimpleNamespace(inserted_id=document["_id"], acknowledged=True)

    async def insert_many(self, documents, ordered=True, session=None):
        self._track(session)
        self.writes += 1
        write_errors = []
        inserted = 0
        for index, document in enumerate(documents):
            try:
                self._insert(document)
                inserted += 1
            except DuplicateKeyError as e:
                write_errors.append({"index": index, "code": 11000, "errmsg": str(e), "op": document})
                if ordered:
                    break
        if write_errors:
            raise BulkWriteError({
                "writeErrors": write_errors,
                "writeConcernErrors": [],
                "nInserted": inserted,
            })
        return SimpleNamespace(inserted_ids=[d["_id"] for d in documents], acknowledged=True)

    async def find_one(self, filter, projection=None, session=None):
        self._track(session)
        self.reads += 1
        found = self._find(filter)
        return project(found[0], projection) if found else None

    def find(self, filter, projection=None, session=None):
        self._track(session)
        self.reads += 1
        return FakeCursor([project(d, projection) for d in self._find(filter)])

    async def count_documents(self, filter, session=None):
        self._track(session)
        self.reads += 1
        return len(self._find(filter))

    async def update_many(self, filter, update, session=None, upsert=False):
        self._track(session)
        self.writes += 1
        found = self._find(filter)
        for document in found:
            apply_update(document, update)
        upserted_id = None
        if not found and upsert:
            document = {k: v for k, v in filter.items() if not isinstance(v, dict)}
            apply_update(document, update, inserting=True)
            self._insert(document)
            upserted_id = document["_id"]
        return SimpleNamespace(matched_count=len(found), modified_count=len(found), upserted_id=upserted_id)

    async def find_one_and_update(self, filter, update, session=None, upsert=False, return_document=False, projection=None):
        self._track(session)
        self.writes += 1
        found = self._find(filter)
        if not found:
            if not upsert:
                return None
            document = {k: v for k, v in filter.items() if not isinstance(v, dict)}
            apply_update(document, update, inserting=True)
            self._insert(document)
            return project(self.documents[document["_id"]], projection) if return_document else None
        document = found[0]
        before = copy.deepcopy(document)
        apply_update(document, update)
        return project(document if return_document else before, projection)

    async def find_one_and_delete(self, filter, session=None):
        self._track(session)
        self.writes += 1
        found = self._find(filter)
        if not found:
            return None
        return self.documents.pop(found[0]["_id"])

    async def delete_many(self, filter, session=None):
        self._track(session)
        self.writes += 1
        found = self._find(filter)
        for document in found:
            del self.documents[document["_id"]]
        return SimpleNamespace(deleted_count=len(found))

    async def aggregate(self, pipeline, session=None):
        self._track(session)
        self.reads += 1
        documents = list(self.documents.values())
        for stage in pipeline:
            if "$match" in stage:
                documents = [d for d in documents if matches(d, stage["$match"])]
        return FakeCursor([copy.deepcopy(d) for d in documents])


class FakeSession:
    """Mirrors AsyncClientSession's transaction surface and records every call."""

    def __init__(self):
        self._in_transaction = False
        self.transactions_started = 0
        self.commits = 0
        self.aborts = 0
        self.ended = 0
        self.start_error: Optional[Exception] = None
        self.end_error: Optional[Exception] = None
        self.calls: List[str] = []

    @property
    def in_transaction(self) -> bool:
        return self._in_transaction

    async def start_transaction(self):
        self.calls.append("start_transaction")
        if self.start_error is not None:
            raise self.start_error
        self.transactions_started += 1
        self._in_transaction = True

    async def commit_transaction(self):
        self.calls.append("commit_transaction")
        self.commits += 1
        self._in_transaction = False

    async def abort_transaction(self):
        self.calls.append("abort_transaction")
        self.aborts += 1
        self._in_transaction = False

    async def end_session(self):
        self.calls.append("end_session")
        self.ended += 1
        if self.end_error is not None:
            raise self.end_error


class FakeClient:
    def __init__(self):
        self.sessions: List[FakeSession] = []
        self.collections: Dict[str, FakeCollection] = {}
        # Raised by start_transaction of the next session handed out
        self.next_start_error: Optional[Exception] = None

    def start_session(self) -> FakeSession:
        session = FakeSession()
        session.start_error, self.next_start_error = self.next_start_error, None
        self.sessions.append(session)
        return session

    def collection(self, name: str) -> FakeCollection:
        if name not in self.collections:
            self.collections[name] = FakeCollection(name)
        return self.collections[name]


@pytest.fixture
def client() -> FakeClient:
    return FakeClient()


@pytest.fixture
def collection(client: FakeClient) -> FakeCollection:
    return client.collection("items")


@pytest.fixture
def repository(collection: FakeCollection) -> BaseRepository:
    return BaseRepository("items", collection)


@pytest.fixture
def cache() -> MemoryCache:
    return MemoryCache(max_entries=100)


@pytest.fixture
def cached_repository(repository: BaseRepository, cache: MemoryCache) -> CachedRepository:
    return CachedRepository(repository, cache)


@pytest.fixture
def repository_factory(cache: MemoryCache):
    """`plain` builds BaseRepository, `cached` wraps it with the shared cache."""
    return get_factory({
        "plain": lambda name, client, session: BaseRepository(name, client.collection(name), session),
        "cached": lambda name, client, session: CachedRepository(
            BaseRepository(name, client.collection(name), session), cache
        ),
    })


@pytest.fixture
def uow(client: FakeClient, repository_factory) -> UnitOfWork:
    return UnitOfWork(client, repository_factory, UnitOfWorkOptions(use_transactions=True))
