"""Student resource - queries, uniqueness checks and request hooks."""

from __future__ import annotations

import math
from collections.abc import Mapping
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from pydantic.alias_generators import to_snake
from sqlalchemy import or_

from student_records.api.models import PaginationMeta
from student_records.resources.exceptions import FieldError, ValidationFailedError
from student_records.resources.hooks import ResourceHooks, equality_filter
from student_records.store.exceptions import DuplicateRecordError
from student_records.store.models import Student

if TYPE_CHECKING:
    from sqlalchemy import ColumnElement

    from student_records.store.repository import Repository

REQUIRED_FIELDS = ("studentCode", "firstName", "lastName", "email")
TEXT_FIELDS = (*REQUIRED_FIELDS, "phone")
SORTABLE_FIELDS = frozenset(
    {"id", "studentCode", "firstName", "lastName", "email", "createdAt", "updatedAt"}
)

DEFAULT_PAGE = 1
DEFAULT_LIMIT = 10
DEFAULT_SORT_BY = "firstName"
DEFAULT_SORT_ORDER = "asc"


@dataclass
class PaginatedResult:
    """One page of students plus paging metadata."""

    data: list[Student]
    pagination: PaginationMeta


def matches_term(term: str) -> ColumnElement[bool]:
    """Case-insensitive substring match on name, code or email."""
    return or_(
        Student.first_name.icontains(term, autoescape=True),
        Student.last_name.icontains(term, autoescape=True),
        Student.student_code.icontains(term, autoescape=True),
        Student.email.icontains(term, autoescape=True),
    )


class StudentService:
    """Student queries on top of the generic repository."""

    def __init__(self, repository: Repository[Student]) -> None:
        self.repository = repository

    def find_by_code(self, student_code: str) -> Student | None:
        return self.repository.find_first([Student.student_code == student_code])

    def is_code_taken(self, student_code: str, exclude_id: int | None = None) -> bool:
        where = [Student.student_code == student_code]
        if exclude_id is not None:
            where.append(Student.id != exclude_id)
        return self.repository.exists(where)

    def is_email_taken(self, email: str, exclude_id: int | None = None) -> bool:
        where = [Student.email == email]
        if exclude_id is not None:
            where.append(Student.id != exclude_id)
        return self.repository.exists(where)

    def check_unique(self, data: Mapping[str, Any], exclude_id: int | None = None) -> None:
        """Reject values already used by another student.

        Only fields present in ``data`` are checked. The database unique
        constraints still apply if two writers race past this check.

        Raises:
            DuplicateRecordError: If the code or email is taken
        """
        if data.get("student_code") and self.is_code_taken(data["student_code"], exclude_id):
            raise DuplicateRecordError("student_code", "Student code already exists")
        if data.get("email") and self.is_email_taken(data["email"], exclude_id):
            raise DuplicateRecordError("email", "Email already exists")

    def search(self, term: str) -> list[Student]:
        """Students whose name, code or email contains the term."""
        return self.repository.find_many(
            [matches_term(term)],
            order_by=[Student.first_name.asc(), Student.last_name.asc()],
        )

    def get_paginated(
        self,
        page: int = DEFAULT_PAGE,
        limit: int = DEFAULT_LIMIT,
        search: str | None = None,
        sort_by: str = DEFAULT_SORT_BY,
        sort_order: str = DEFAULT_SORT_ORDER,
    ) -> PaginatedResult:
        """Get one page of students.

        Args:
            page: 1-based page number
            limit: Page size
            search: Optional term matched like search()
            sort_by: camelCase field to sort on
            sort_order: "asc" or "desc"

        Raises:
            ValidationFailedError: If paging or sort arguments are invalid
        """
        errors = []
        if page < 1:
            errors.append(FieldError("page", "page must be a positive integer", page))
        if limit < 1:
            errors.append(FieldError("limit", "limit must be a positive integer", limit))
        if sort_by not in SORTABLE_FIELDS:
            errors.append(FieldError("sortBy", f"Cannot sort by '{sort_by}'", sort_by))
        if sort_order not in ("asc", "desc"):
            errors.append(FieldError("sortOrder", "sortOrder must be 'asc' or 'desc'", sort_order))
        if errors:
            raise ValidationFailedError(errors)

        where = [matches_term(search)] if search else []
        column = self.repository.column(to_snake(sort_by))
        order_by = [column.desc() if sort_order == "desc" else column.asc(), Student.id.asc()]

        records, total = self.repository.paginate(
            where, order_by=order_by, offset=(page - 1) * limit, limit=limit
        )
        return PaginatedResult(
            data=records,
            pagination=PaginationMeta(
                page=page,
                limit=limit,
                total=total,
                total_pages=math.ceil(total / limit),
                has_next=page * limit < total,
                has_prev=page > 1,
            ),
        )


# Request hooks


def _clean(payload: Mapping[str, Any], field: str, errors: list[FieldError]) -> str | None:
    value = payload.get(field)
    if value is None:
        return None
    if not isinstance(value, str):
        errors.append(FieldError(field, f"{field} must be a string", value))
        return None
    return value.strip()


def transform_student_create(payload: Mapping[str, Any]) -> dict[str, Any]:
    """Trim text fields, lowercase the email and require the core fields.

    Raises:
        ValidationFailedError: Listing every missing or malformed field
    """
    errors: list[FieldError] = []
    values = {field: _clean(payload, field, errors) for field in TEXT_FIELDS}
    for field in REQUIRED_FIELDS:
        if not values[field] and not any(e.field == field for e in errors):
            errors.append(FieldError(field, f"{field} is required", payload.get(field)))
    if errors:
        raise ValidationFailedError(errors)

    return {
        "student_code": values["studentCode"],
        "first_name": values["firstName"],
        "last_name": values["lastName"],
        "email": values["email"].lower(),  # type: ignore[union-attr]
        "phone": values["phone"] or None,
    }


def transform_student_update(payload: Mapping[str, Any]) -> dict[str, Any]:
    """Trim and normalise only the fields present in the payload.

    Absent fields are left out so they keep their stored values. Required
    fields cannot be cleared.

    Raises:
        ValidationFailedError: If a present field is malformed or blank
    """
    errors: list[FieldError] = []
    data: dict[str, Any] = {}
    for field in TEXT_FIELDS:
        if field not in payload:
            continue
        value = _clean(payload, field, errors)
        if field == "phone":
            data["phone"] = value or None
        elif not value:
            if not any(e.field == field for e in errors):
                errors.append(FieldError(field, f"{field} cannot be empty", payload[field]))
        else:
            data[to_snake(field)] = value.lower() if field == "email" else value
    if errors:
        raise ValidationFailedError(errors)
    return data


def build_student_filter(
    repository: Repository[Any], params: Mapping[str, str]
) -> list[ColumnElement[bool]]:
    """``search`` matches across name, code and email; other params match exactly."""
    search = params.get("search")
    where = equality_filter(repository, {k: v for k, v in params.items() if k != "search"})
    if search:
        where.append(matches_term(search))
    return where


def student_hooks(service: StudentService) -> ResourceHooks:
    """Hooks wiring the student rules into the generic handlers."""
    return ResourceHooks(
        transform_create=transform_student_create,
        transform_update=transform_student_update,
        build_filter=build_student_filter,
        check_unique=service.check_unique,
        search=service.search,
    )
