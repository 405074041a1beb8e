# tests/test_store.py

from datetime import datetime

import pytest
from bson import ObjectId

from student_records.errors import ConflictError, ValidationError
from student_records.store import StoreConfig, StudentStore


def payload(**overrides):
    fields = {"name": "A", "email": "a@x.com", "enrollmentNumber": "E1", "course": "CS"}
    fields.update(overrides)
    return fields


async def test_insert_assigns_id_and_timestamps(indexed_store):
    student = await indexed_store.insert(payload())

    assert ObjectId.is_valid(student.id)
    assert student.createdAt == student.updatedAt
    assert student.role == "student"
    assert student.gpa == 0


async def test_insert_rejects_out_of_range_gpa(indexed_store):
    with pytest.raises(ValidationError):
        await indexed_store.insert(payload(gpa=4.1))


async def test_unique_index_rejects_duplicate_email(indexed_store):
    await indexed_store.insert(payload())

    with pytest.raises(ConflictError):
        await indexed_store.insert(payload(email=" A@X.com", enrollmentNumber="E2"))


async def test_unique_index_rejects_duplicate_enrollment_number(indexed_store):
    await indexed_store.insert(payload())

    with pytest.raises(ConflictError):
        await indexed_store.insert(payload(email="b@x.com"))


async def test_find_all_is_newest_first(indexed_store):
    first = await indexed_store.insert(payload())
    second = await indexed_store.insert(payload(email="b@x.com", enrollmentNumber="E2"))

    students = await indexed_store.find_all()

    assert [s.id for s in students] == [second.id, first.id]


async def test_find_one_matches_either_field(indexed_store):
    created = await indexed_store.insert(payload())

    assert (await indexed_store.find_one(email="A@x.com")).id == created.id
    assert (await indexed_store.find_one(enrollment_number="E1")).id == created.id
    assert await indexed_store.find_one(email="z@x.com", enrollment_number="E9") is None
    assert await indexed_store.find_one() is None


async def test_find_one_can_exclude_a_record(indexed_store):
    created = await indexed_store.insert(payload())

    assert await indexed_store.find_one(email="a@x.com", exclude_id=created.id) is None


async def test_find_by_id_missing_returns_none(indexed_store):
    assert await indexed_store.find_by_id(str(ObjectId())) is None


async def test_find_by_id_rejects_malformed_id(indexed_store):
    with pytest.raises(ValidationError):
        await indexed_store.find_by_id("not-an-id")


async def test_update_applies_only_given_fields(indexed_store):
    created = await indexed_store.insert(payload(gpa=3.5))

    updated = await indexed_store.update_by_id(created.id, {"gpa": 0})

    assert updated.gpa == 0
    assert updated.name == created.name
    assert updated.email == created.email
    assert updated.createdAt == created.createdAt
    assert updated.updatedAt > created.updatedAt


async def test_update_validates_merged_record(indexed_store):
    created = await indexed_store.insert(payload())

    with pytest.raises(ValidationError):
        await indexed_store.update_by_id(created.id, {"role": "superuser"})

    assert (await indexed_store.find_by_id(created.id)).role == "student"


async def test_update_missing_returns_none(indexed_store):
    assert await indexed_store.update_by_id(str(ObjectId()), {"name": "B"}) is None


async def test_updated_at_increases_with_a_stalled_clock(database):
    frozen = StudentStore(database, StoreConfig(), clock=lambda: datetime(2025, 1, 1))
    created = await frozen.insert(payload())

    updated = await frozen.update_by_id(created.id, {"course": "Math"})

    assert updated.updatedAt > created.updatedAt


async def test_delete_returns_removed_record(indexed_store):
    created = await indexed_store.insert(payload())

    removed = await indexed_store.delete_by_id(created.id)

    assert removed.id == created.id
    assert await indexed_store.find_by_id(created.id) is None
    assert await indexed_store.delete_by_id(created.id) is None


async def test_collection_name_comes_from_config(database):
    store = StudentStore(database, StoreConfig(collection="pupils"))
    await store.insert(payload())

    assert await database["pupils"].count_documents({}) == 1


async def test_update_to_taken_email_conflicts(indexed_store):
    first = await indexed_store.insert(payload())
    second = await indexed_store.insert(payload(email="b@x.com", enrollmentNumber="E2"))

    with pytest.raises(ConflictError):
        await indexed_store.update_by_id(second.id, {"email": first.email})

    assert (await indexed_store.find_by_id(second.id)).email == "b@x.com"
