"""Pydantic models for REST API."""

from datetime import UTC, datetime
from typing import Any, Generic, TypeVar

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

T = TypeVar("T")

EMAIL_PATTERN = r"^[^@\s]+@[^@\s]+\.[^@\s]+$"


def utc_timestamp() -> str:
    """Current time as an ISO 8601 string."""
    return datetime.now(UTC).isoformat()


class CamelModel(BaseModel):
    """Base model that reads and writes camelCase field names.

    Python code uses the snake_case attribute names; clients send and
    receive camelCase. Call ``model_dump(by_alias=True)`` for the wire form.
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


class FieldErrorDetail(BaseModel):
    """One field-level validation problem."""

    field: str
    message: str
    value: Any = None


class APIResponse(BaseModel, Generic[T]):
    """Standard API response envelope."""

    success: bool
    data: T | None = None
    message: str = ""
    timestamp: str = Field(default_factory=utc_timestamp)
    errors: list[FieldErrorDetail] | None = None

    def to_content(self) -> dict[str, Any]:
        """Serialize for a JSON response; ``errors`` only appears when set."""
        content = self.model_dump(mode="json")
        if self.errors is None:
            content.pop("errors")
        return content


def success_response(data: Any, message: str = "Success") -> APIResponse[Any]:
    return APIResponse[Any](success=True, data=data, message=message)


def error_response(
    message: str = "Error",
    data: Any = None,
    errors: list[FieldErrorDetail] | None = None,
) -> APIResponse[Any]:
    return APIResponse[Any](success=False, data=data, message=message, errors=errors)


# Student models


class StudentCreate(CamelModel):
    """Request model for creating a student."""

    student_code: str = Field(..., min_length=1, max_length=50)
    first_name: str = Field(..., min_length=1, max_length=100)
    last_name: str = Field(..., min_length=1, max_length=100)
    email: str = Field(..., min_length=3, max_length=255, pattern=EMAIL_PATTERN)
    phone: str | None = Field(default=None, max_length=50)


class StudentUpdate(CamelModel):
    """Request model for updating a student (partial update)."""

    student_code: str | None = Field(default=None, max_length=50)
    first_name: str | None = Field(default=None, max_length=100)
    last_name: str | None = Field(default=None, max_length=100)
    email: str | None = Field(default=None, max_length=255, pattern=EMAIL_PATTERN)
    phone: str | None = Field(default=None, max_length=50)


class StudentResponse(CamelModel):
    """Response model for a student."""

    id: int
    student_code: str
    first_name: str
    last_name: str
    email: str
    phone: str | None
    created_at: datetime
    updated_at: datetime


def student_to_response(student: Any) -> dict[str, Any]:
    """Convert a Student model to its camelCase JSON form."""
    return StudentResponse.model_validate(student).model_dump(mode="json", by_alias=True)


# Pagination models


class PaginationMeta(CamelModel):
    """Pagination metadata for a page of results."""

    page: int
    limit: int
    total: int
    total_pages: int
    has_next: bool
    has_prev: bool


# Response payloads that wrap other models


class CountResult(BaseModel):
    """Payload of the count endpoint."""

    count: int


class PaginatedStudents(CamelModel):
    """One page of students with its paging metadata."""

    data: list[StudentResponse]
    pagination: PaginationMeta


# Error responses documented on every student route
ERROR_RESPONSES: dict[int | str, dict[str, Any]] = {
    400: {"model": APIResponse[None], "description": "Validation failed or duplicate value"},
    500: {"model": APIResponse[None], "description": "Unexpected server error"},
}
NOT_FOUND_RESPONSE: dict[int | str, dict[str, Any]] = {
    404: {"model": APIResponse[None], "description": "Student not found"},
}
