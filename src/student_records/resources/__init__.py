"""Resources - generic request handling and the student specialisation."""

from student_records.resources.exceptions import FieldError, ValidationFailedError
from student_records.resources.handlers import ResourceHandlers
from student_records.resources.hooks import ResourceHooks
from student_records.resources.students import PaginatedResult, StudentService, student_hooks

__all__ = [
    "FieldError",
    "PaginatedResult",
    "ResourceHandlers",
    "ResourceHooks",
    "StudentService",
    "ValidationFailedError",
    "student_hooks",
]
