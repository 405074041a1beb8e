# models/student.py
from pydantic import BaseModel, ConfigDict, Field, StringConstraints, field_validator
from datetime import datetime, timezone
from enum import Enum
from typing import Annotated, Optional

NonEmptyStr = Annotated[str, StringConstraints(min_length=1)]
TrimmedStr = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1)]


class Role(str, Enum):
    STUDENT = "student"
    ADMIN = "admin"


def normalize_email(email: str) -> str:
    return email.strip().lower()


class StudentRecord(BaseModel):
    """Field rules applied to every write before it reaches the collection."""

    model_config = ConfigDict(use_enum_values=True, validate_default=True, extra="ignore")

    name: TrimmedStr
    email: TrimmedStr
    role: Role = Role.STUDENT
    enrollmentNumber: NonEmptyStr
    course: NonEmptyStr
    gpa: float = Field(default=0, ge=0, le=4.0)

    @field_validator("email")
    @classmethod
    def lowercase_email(cls, v: str) -> str:
        return normalize_email(v)


class StudentCreate(BaseModel):
    # Presence is checked by the handler so a missing field is a 400, not a 422
    name: Optional[str] = None
    email: Optional[str] = None
    role: Optional[str] = None
    enrollmentNumber: Optional[str] = None
    course: Optional[str] = None
    gpa: Optional[float] = None


class StudentUpdate(StudentCreate):
    pass


class Student(BaseModel):
    id: str
    name: str
    email: str
    role: str
    enrollmentNumber: str
    course: str
    gpa: float
    createdAt: datetime
    updatedAt: datetime

    @field_validator("createdAt", "updatedAt")
    @classmethod
    def assume_utc(cls, v: datetime) -> datetime:
        # Mongo hands back naive datetimes unless the client is tz_aware
        return v if v.tzinfo else v.replace(tzinfo=timezone.utc)

    @classmethod
    def from_document(cls, doc: dict) -> "Student":
        doc = dict(doc)
        doc["id"] = str(doc.pop("_id"))
        return cls(**doc)
