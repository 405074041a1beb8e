"""
Errors raised by the store and the request handlers.

Each carries the HTTP status it is rendered with.
"""


class StudentError(Exception):
    """Base class for student record errors."""
    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(StudentError):
    """Missing or malformed input."""
    status_code = 400


class ConflictError(StudentError):
    """Email or enrollment number already taken."""
    status_code = 409


class NotFoundError(StudentError):
    """No record with the requested id."""
    status_code = 404


class StoreError(StudentError):
    """Any other persistence failure."""
    status_code = 500
