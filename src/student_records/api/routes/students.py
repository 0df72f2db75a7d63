"""Student CRUD endpoints.

Handlers build their own JSONResponse so every outcome, errors included,
carries the envelope. ``response_model`` documents the success shape.
"""

from __future__ import annotations

import logging
from typing import Annotated, Any, Literal

from fastapi import APIRouter, Body, Path, Query, Request, status
from fastapi.responses import JSONResponse

from student_records.api.dependencies import StudentHandlersDep, StudentServiceDep
from student_records.api.models import (
    ERROR_RESPONSES,
    NOT_FOUND_RESPONSE,
    APIResponse,
    CountResult,
    PaginatedStudents,
    StudentCreate,
    StudentResponse,
    StudentUpdate,
    error_response,
    student_to_response,
    success_response,
)
from student_records.resources.exceptions import ValidationFailedError
from student_records.resources.handlers import respond, validation_failed

logger = logging.getLogger("student_records.api")

router = APIRouter(prefix="/student", tags=["students"], responses=ERROR_RESPONSES)

# Any integer is accepted; ids with no record answer 404
StudentId = Annotated[int, Path(description="Student ID")]


@router.get("/list", response_model=APIResponse[list[StudentResponse]])
def list_students(request: Request, handlers: StudentHandlersDep) -> JSONResponse:
    """List students. Supports page+limit paging, search and field filters."""
    return handlers.get_all(dict(request.query_params))


@router.get("/paginated", response_model=APIResponse[PaginatedStudents])
def get_paginated(
    service: StudentServiceDep,
    page: int = Query(default=1, ge=1, description="Page number"),
    limit: int = Query(default=10, ge=1, description="Page size"),
    search: str | None = Query(default=None, description="Match name, code or email"),
    sort_by: str = Query(default="firstName", alias="sortBy", description="Sort field"),
    sort_order: Literal["asc", "desc"] = Query(default="asc", alias="sortOrder"),
) -> JSONResponse:
    """Get one page of students with search and sorting."""
    try:
        result = service.get_paginated(
            page=page, limit=limit, search=search, sort_by=sort_by, sort_order=sort_order
        )
    except ValidationFailedError as e:
        return validation_failed(e)
    except Exception:
        logger.exception("Error in get_paginated")
        return respond(
            status.HTTP_500_INTERNAL_SERVER_ERROR,
            error_response("Failed to retrieve paginated students"),
        )

    return respond(
        status.HTTP_200_OK,
        success_response(
            {
                "data": [student_to_response(s) for s in result.data],
                "pagination": result.pagination.model_dump(by_alias=True),
            },
            "Paginated students retrieved successfully",
        ),
    )


@router.get("/search", response_model=APIResponse[list[StudentResponse]])
def search_students(request: Request, handlers: StudentHandlersDep) -> JSONResponse:
    """Search students by name, code or email (?q=term)."""
    return handlers.search(dict(request.query_params))


@router.get("/count", response_model=APIResponse[CountResult])
def count_students(request: Request, handlers: StudentHandlersDep) -> JSONResponse:
    """Count students matching the same filters as /list."""
    return handlers.count(dict(request.query_params))


@router.get(
    "/code/{student_code}",
    response_model=APIResponse[StudentResponse],
    responses=NOT_FOUND_RESPONSE,
)
def get_student_by_code(student_code: str, service: StudentServiceDep) -> JSONResponse:
    """Get a student by student code."""
    try:
        student = service.find_by_code(student_code)
    except Exception:
        logger.exception("Error in get_student_by_code")
        return respond(
            status.HTTP_500_INTERNAL_SERVER_ERROR, error_response("Failed to retrieve student")
        )

    if student is None:
        return respond(status.HTTP_404_NOT_FOUND, error_response("Student not found"))
    return respond(
        status.HTTP_200_OK,
        success_response(student_to_response(student), "Student retrieved successfully"),
    )


@router.get(
    "/{id}", response_model=APIResponse[StudentResponse], responses=NOT_FOUND_RESPONSE
)
def get_student(id: StudentId, handlers: StudentHandlersDep) -> JSONResponse:  # noqa: A002
    """Get a student by ID."""
    return handlers.get_by_id(id)


@router.post(
    "/create",
    response_model=APIResponse[StudentResponse],
    status_code=status.HTTP_201_CREATED,
)
def create_student(student: StudentCreate, handlers: StudentHandlersDep) -> JSONResponse:
    """Create a new student."""
    return handlers.create(student.model_dump(by_alias=True, exclude_unset=True))


@router.post(
    "/bulk",
    response_model=APIResponse[CountResult],
    status_code=status.HTTP_201_CREATED,
)
def bulk_create_students(
    handlers: StudentHandlersDep,
    payload: Annotated[
        Any, Body(description="Array of students, or an object whose data is one")
    ],
) -> JSONResponse:
    """Create many students from an array (or {"data": [...]})."""
    return handlers.bulk_create(payload)


@router.put(
    "/{id}", response_model=APIResponse[StudentResponse], responses=NOT_FOUND_RESPONSE
)
def update_student(
    id: StudentId,  # noqa: A002
    student: StudentUpdate,
    handlers: StudentHandlersDep,
) -> JSONResponse:
    """Update a student (partial update)."""
    return handlers.update(id, student.model_dump(by_alias=True, exclude_unset=True))


@router.delete(
    "/{id}", response_model=APIResponse[StudentResponse], responses=NOT_FOUND_RESPONSE
)
def delete_student(id: StudentId, handlers: StudentHandlersDep) -> JSONResponse:  # noqa: A002
    """Delete a student."""
    return handlers.delete(id)
