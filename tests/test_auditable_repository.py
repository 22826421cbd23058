"""
AuditableRepository: audit stamps and soft delete.
"""
from datetime import datetime, timezone
import pytest
from pymongo import ReturnDocument

from mongo_uow.repository.auditable import AuditableRepository, AuditConfig

NOW = datetime(2024, 1, 1, tzinfo=timezone.utc)


@pytest.fixture
def auditable(repository) -> AuditableRepository:
    return AuditableRepository(repository, AuditConfig(get_current_time=lambda: NOW, soft_delete=True))


@pytest.mark.asyncio
async def test_add_stamps_created(auditable: AuditableRepository):
    await auditable.add({"_id": "24"})
    result = await auditable.find_by_id("24")
    assert result["created"] == {"at": NOW}


@pytest.mark.asyncio
async def test_created_by_current_user(repository):
    auditable = AuditableRepository(repository, AuditConfig(get_user_id=lambda: "u1", get_current_time=lambda: NOW))
    item = await auditable.add({"_id": "1"})
    assert item["created"] == {"at": NOW, "by": "u1"}


@pytest.mark.asyncio
async def test_add_many_stamps_created(auditable: AuditableRepository):
    result = await auditable.add_many([{"_id": "4"}, {"_id": "5"}])
    assert all(item["created"] == {"at": NOW} for item in result)


@pytest.mark.asyncio
async def test_update_with_upsert_stamps_created_and_updated(auditable: AuditableRepository, collection):
    await auditable.update({"_id": "3"}, {"$set": {"name": "1"}}, upsert=True)
    stored = collection.documents["3"]
    assert stored["name"] == "1"
    assert stored["created"] == {"at": NOW}
    assert stored["updated"] == {"at": NOW}


@pytest.mark.asyncio
async def test_find_one_and_update_stamps_updated(auditable: AuditableRepository):
    await auditable.add({"_id": "6"})
    result = await auditable.find_one_and_update(
        {"_id": "6"}, {"$set": {"name": "1"}}, return_document=ReturnDocument.AFTER
    )
    assert result["updated"] == {"at": NOW}
    assert result["name"] == "1"


@pytest.mark.asyncio
async def test_patch_stamps_updated(auditable: AuditableRepository):
    await auditable.add({"_id": "7"})
    result = await auditable.patch({"_id": "7"}, {"name": "1222"})
    assert result["name"] == "1222"
    assert result["created"] == {"at": NOW}
    assert result["updated"] == {"at": NOW}


@pytest.mark.asyncio
async def test_soft_delete_one_hides_document(auditable: AuditableRepository, collection):
    deleted = []
    auditable.on("delete", deleted.append)
    await auditable.add({"_id": "8"})
    result = await auditable.delete_one({"_id": "8"})
    assert result["deleted"] == {"at": NOW}
    assert deleted == [result]
    assert "8" in collection.documents
    assert await auditable.find_by_id("8") is None
    assert await auditable.find_many({}) == []
    assert await auditable.count({}) == 0


@pytest.mark.asyncio
async def test_soft_delete_many(auditable: AuditableRepository, collection):
    await auditable.add_many([{"_id": "1", "t": "a"}, {"_id": "2", "t": "a"}, {"_id": "3", "t": "b"}])
    assert await auditable.delete_many({"t": "a"}) == 2
    assert len(collection.documents) == 3
    assert [item["_id"] for item in await auditable.find_many({})] == ["3"]


@pytest.mark.asyncio
async def test_hard_delete_when_soft_delete_disabled(repository, collection):
    auditable = AuditableRepository(repository, AuditConfig(soft_delete=False))
    await auditable.add({"_id": "9"})
    await auditable.delete_one({"_id": "9"})
    assert "9" not in collection.documents


@pytest.mark.asyncio
async def test_aggregate_prepends_not_deleted_match(auditable: AuditableRepository):
    await auditable.add_many([{"_id": "1", "t": "a"}, {"_id": "2", "t": "a"}])
    await auditable.delete_one({"_id": "1"})
    assert [d["_id"] for d in await auditable.aggregate([{"$match": {"t": "a"}}])] == ["2"]
    assert [d["_id"] for d in await auditable.aggregate([])] == ["2"]


def test_with_audit_fields_keeps_existing_set(auditable: AuditableRepository):
    update = auditable.with_audit_fields({"$set": {"name": "x"}, "$setOnInsert": {"kind": "k"}}, upsert=True)
    assert update["$set"] == {"updated": {"at": NOW}, "name": "x"}
    assert update["$setOnInsert"] == {"created": {"at": NOW}, "kind": "k"}


def test_with_audit_fields_without_set_clause(auditable: AuditableRepository):
    update = auditable.with_audit_fields({"$unset": {"name": ""}, "$set": {}})
    assert update == {"$unset": {"name": ""}, "$set": {"updated": {"at": NOW}}}
