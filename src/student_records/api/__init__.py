"""REST API for student records.

The application factory lives in ``student_records.api.app``.
"""

from student_records.api.models import (
    APIResponse,
    StudentCreate,
    StudentResponse,
    StudentUpdate,
)

__all__ = [
    "APIResponse",
    "StudentCreate",
    "StudentResponse",
    "StudentUpdate",
]
