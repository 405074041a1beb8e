# store.py
from bson import ObjectId
from bson.errors import InvalidId
from datetime import datetime, timedelta, timezone
from pydantic import BaseModel, ValidationError as SchemaError
from pymongo import ASCENDING, DESCENDING, ReturnDocument
from pymongo.errors import DuplicateKeyError, PyMongoError
from typing import Callable, List, Optional, Tuple
import logging

from .errors import ConflictError, StoreError, ValidationError
from .models.student import Student, StudentRecord, normalize_email

logger = logging.getLogger(__name__)

CONFLICT_MESSAGES = {
    "email": "Email already exists",
    "enrollmentNumber": "Enrollment number already exists",
}


class StoreConfig(BaseModel):
    collection: str = "students"
    unique_fields: Tuple[str, ...] = ("email", "enrollmentNumber")


def utc_now() -> datetime:
    now = datetime.now(timezone.utc)
    # BSON dates keep milliseconds only
    return now.replace(microsecond=now.microsecond // 1000 * 1000)


def _as_utc(value: Optional[datetime]) -> Optional[datetime]:
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def _schema_message(e: SchemaError) -> str:
    return "; ".join(
        f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in e.errors()
    )


class StudentStore:
    """
    Student documents in one Mongo collection.

    Every write goes through StudentRecord, so required fields, the role enum
    and the gpa range hold for whatever reaches the collection. Uniqueness of
    email and enrollmentNumber is enforced by the indexes from ensure_indexes().
    """

    def __init__(self, database, config: Optional[StoreConfig] = None,
                 clock: Callable[[], datetime] = utc_now):
        self.config = config or StoreConfig()
        self.collection = database[self.config.collection]
        self._clock = clock

    async def ensure_indexes(self) -> None:
        try:
            for field in self.config.unique_fields:
                await self.collection.create_index([(field, ASCENDING)], unique=True)
        except PyMongoError as e:
            raise StoreError(str(e)) from e
        logger.info(f"Unique indexes ensured on {self.config.collection}: {', '.join(self.config.unique_fields)}")

    async def insert(self, fields: dict) -> Student:
        record = self._validate(fields)
        now = _as_utc(self._clock())
        doc = record.model_dump()
        doc["createdAt"] = now
        doc["updatedAt"] = now
        try:
            result = await self.collection.insert_one(doc)
        except DuplicateKeyError as e:
            raise self._conflict(e) from e
        except PyMongoError as e:
            raise StoreError(str(e)) from e
        doc["_id"] = result.inserted_id
        logger.info(f"Inserted student {result.inserted_id}")
        return Student.from_document(doc)

    async def find_all(self) -> List[Student]:
        try:
            cursor = self.collection.find().sort([("createdAt", DESCENDING), ("_id", DESCENDING)])
            docs = await cursor.to_list(length=None)
        except PyMongoError as e:
            raise StoreError(str(e)) from e
        return [Student.from_document(doc) for doc in docs]

    async def find_by_id(self, student_id: str) -> Optional[Student]:
        doc = await self._find_document(self._object_id(student_id))
        return Student.from_document(doc) if doc else None

    async def find_one(self, email: Optional[str] = None, enrollment_number: Optional[str] = None,
                       exclude_id: Optional[str] = None) -> Optional[Student]:
        """Return a record matching the email OR the enrollment number, if any."""
        clauses = []
        if email:
            clauses.append({"email": normalize_email(email)})
        if enrollment_number:
            clauses.append({"enrollmentNumber": enrollment_number})
        if not clauses:
            return None

        query = {"$or": clauses}
        if exclude_id is not None:
            query["_id"] = {"$ne": self._object_id(exclude_id)}
        try:
            doc = await self.collection.find_one(query)
        except PyMongoError as e:
            raise StoreError(str(e)) from e
        return Student.from_document(doc) if doc else None

    async def update_by_id(self, student_id: str, fields: dict) -> Optional[Student]:
        oid = self._object_id(student_id)
        current = await self._find_document(oid)
        if current is None:
            return None

        record = self._validate({**current, **fields})
        changes = {k: v for k, v in record.model_dump().items() if k in fields}
        changes["updatedAt"] = self._touch(current.get("updatedAt"))
        try:
            doc = await self.collection.find_one_and_update(
                {"_id": oid},
                {"$set": changes},
                return_document=ReturnDocument.AFTER,
            )
        except DuplicateKeyError as e:
            raise self._conflict(e) from e
        except PyMongoError as e:
            raise StoreError(str(e)) from e
        if doc is None:
            return None
        logger.info(f"Updated student {student_id}: {', '.join(sorted(fields)) or 'no fields'}")
        return Student.from_document(doc)

    async def delete_by_id(self, student_id: str) -> Optional[Student]:
        oid = self._object_id(student_id)
        try:
            doc = await self.collection.find_one_and_delete({"_id": oid})
        except PyMongoError as e:
            raise StoreError(str(e)) from e
        if doc is None:
            return None
        logger.info(f"Deleted student {student_id}")
        return Student.from_document(doc)

    async def _find_document(self, oid: ObjectId) -> Optional[dict]:
        try:
            return await self.collection.find_one({"_id": oid})
        except PyMongoError as e:
            raise StoreError(str(e)) from e

    def _touch(self, previous: Optional[datetime]) -> datetime:
        now = _as_utc(self._clock())
        previous = _as_utc(previous)
        if previous is not None and now <= previous:
            now = previous + timedelta(milliseconds=1)
        return now

    @staticmethod
    def _validate(fields: dict) -> StudentRecord:
        try:
            return StudentRecord(**fields)
        except SchemaError as e:
            raise ValidationError(f"Student validation failed: {_schema_message(e)}") from e

    @staticmethod
    def _object_id(student_id: str) -> ObjectId:
        try:
            return ObjectId(student_id)
        except (InvalidId, TypeError) as e:
            raise ValidationError("Invalid student ID format") from e

    @staticmethod
    def _conflict(e: DuplicateKeyError) -> ConflictError:
        key_pattern = (e.details or {}).get("keyPattern") or {}
        for field in key_pattern:
            if field in CONFLICT_MESSAGES:
                return ConflictError(CONFLICT_MESSAGES[field])
        return ConflictError("Student with this email or enrollment number already exists")
