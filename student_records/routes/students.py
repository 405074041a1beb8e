# routes/students.py
from fastapi import APIRouter, Depends, Request
import logging
import re
from typing import Optional

from ..errors import ConflictError, NotFoundError, StoreError, ValidationError
from ..models.student import StudentCreate, StudentUpdate, normalize_email
from ..responses import success_response
from ..store import StudentStore

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/students", tags=["students"])

OBJECT_ID_PATTERN = re.compile(r"[0-9a-fA-F]{24}")
REQUIRED_FIELDS_MESSAGE = "Please provide all required fields: name, email, enrollmentNumber, course"
EXPECTED_ERRORS = (ValidationError, ConflictError, NotFoundError)


def get_store(request: Request) -> StudentStore:
    return request.app.state.store


def validate_student_id(id: str) -> None:
    if not OBJECT_ID_PATTERN.fullmatch(id):
        logger.warning(f"Rejected malformed student id: {id!r}")
        raise ValidationError("Invalid student ID format")


@router.post("")
@router.post("/", include_in_schema=False)
async def create_student(student: StudentCreate, store: StudentStore = Depends(get_store)):
    logger.info(f"Creating student: email={student.email}, enrollmentNumber={student.enrollmentNumber}")
    try:
        if not (student.name and student.email and student.enrollmentNumber and student.course):
            raise ValidationError(REQUIRED_FIELDS_MESSAGE)

        if await store.find_one(email=student.email, enrollment_number=student.enrollmentNumber):
            raise ConflictError("Student with this email or enrollment number already exists")

        created = await store.insert({
            "name": student.name,
            "email": student.email,
            "role": student.role or "student",
            "enrollmentNumber": student.enrollmentNumber,
            "course": student.course,
            "gpa": student.gpa or 0,
        })
        return success_response(created, "Student created successfully", status_code=201)
    except EXPECTED_ERRORS:
        raise
    except Exception as e:
        logger.exception("Error creating student")
        raise StoreError(f"Error creating student: {e}") from e


@router.get("")
@router.get("/", include_in_schema=False)
async def get_students(store: StudentStore = Depends(get_store)):
    try:
        students = await store.find_all()
        return success_response(students, count=len(students))
    except Exception as e:
        logger.exception("Error retrieving students")
        raise StoreError(f"Error retrieving students: {e}") from e


@router.get("/{id}")
async def get_student(id: str, store: StudentStore = Depends(get_store)):
    try:
        validate_student_id(id)
        student = await store.find_by_id(id)
        if not student:
            raise NotFoundError("Student not found")
        return success_response(student)
    except EXPECTED_ERRORS:
        raise
    except Exception as e:
        logger.exception(f"Error retrieving student {id}")
        raise StoreError(f"Error retrieving student: {e}") from e


@router.put("/{id}")
async def update_student(id: str, student: Optional[StudentUpdate] = None,
                         store: StudentStore = Depends(get_store)):
    logger.info(f"Updating student {id}")
    # A missing body is an empty update
    student = student or StudentUpdate()
    try:
        validate_student_id(id)
        existing = await store.find_by_id(id)
        if not existing:
            raise NotFoundError("Student not found")

        # Only values that differ from the stored record need a uniqueness check
        if student.email and normalize_email(student.email) != existing.email:
            if await store.find_one(email=student.email, exclude_id=id):
                raise ConflictError("Email already exists")

        if student.enrollmentNumber and student.enrollmentNumber != existing.enrollmentNumber:
            if await store.find_one(enrollment_number=student.enrollmentNumber, exclude_id=id):
                raise ConflictError("Enrollment number already exists")

        fields = {
            k: v for k, v in student.model_dump(exclude={"gpa"}).items() if v
        }
        # gpa may legitimately be 0
        if student.gpa is not None:
            fields["gpa"] = student.gpa

        updated = await store.update_by_id(id, fields)
        if not updated:
            raise NotFoundError("Student not found")
        return success_response(updated, "Student updated successfully")
    except EXPECTED_ERRORS:
        raise
    except Exception as e:
        logger.exception(f"Error updating student {id}")
        raise StoreError(f"Error updating student: {e}") from e


@router.delete("/{id}")
async def delete_student(id: str, store: StudentStore = Depends(get_store)):
    logger.info(f"Deleting student {id}")
    try:
        validate_student_id(id)
        student = await store.delete_by_id(id)
        if not student:
            raise NotFoundError("Student not found")
        return success_response(student, "Student deleted successfully")
    except EXPECTED_ERRORS:
        raise
    except Exception as e:
        logger.exception(f"Error deleting student {id}")
        raise StoreError(f"Error deleting student: {e}") from e
