"""Hooks that specialise generic resource handling for one resource.

A resource is described by a Repository plus a ResourceHooks value. The
handlers call the hooks at fixed points instead of relying on subclasses
overriding methods.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from pydantic.alias_generators import to_snake

if TYPE_CHECKING:
    from sqlalchemy import ColumnElement

    from student_records.store.repository import Repository

# Query parameters that control paging and sorting rather than filtering
RESERVED_PARAMS = frozenset({"page", "limit", "sort", "order"})

TransformFn = Callable[[Mapping[str, Any]], dict[str, Any]]
FilterFn = Callable[["Repository[Any]", Mapping[str, str]], list["ColumnElement[bool]"]]
UniqueCheckFn = Callable[[Mapping[str, Any], "int | None"], None]
SearchFn = Callable[[str], list[Any]]


def passthrough(payload: Mapping[str, Any]) -> dict[str, Any]:
    """Rename camelCase payload keys to attribute names, values untouched."""
    return {to_snake(key): value for key, value in payload.items()}


def equality_filter(repository: Repository[Any], params: Mapping[str, str]) -> list[ColumnElement[bool]]:
    """Build exact-match criteria from query parameters.

    Paging keys and empty values are skipped.

    Raises:
        UnknownFieldError: If a parameter names no column of the resource
    """
    return [
        repository.column(to_snake(key)) == value
        for key, value in params.items()
        if key not in RESERVED_PARAMS and value not in (None, "")
    ]


@dataclass(frozen=True)
class ResourceHooks:
    """Extension points for one resource.

    Attributes:
        transform_create: Turns a create payload into attribute values
        transform_update: Turns a partial update payload into attribute values
        build_filter: Turns query parameters into criteria
        check_unique: Raises DuplicateRecordError before a write would
            collide with another record; receives the record id on update
        search: Domain-specific search; resources without one answer 501
    """

    transform_create: TransformFn = passthrough
    transform_update: TransformFn = passthrough
    build_filter: FilterFn = equality_filter
    check_unique: UniqueCheckFn | None = None
    search: SearchFn | None = None
