"""Generic HTTP semantics for a CRUD resource.

ResourceHandlers turns request data into Repository calls and wraps every
outcome in the standard envelope. Validation and duplicate problems become
400 responses; anything unexpected becomes a 500 with a generic message
(the exception text is added when running in debug mode).
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping
from typing import TYPE_CHECKING, Any, Generic

from fastapi import status
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ValidationError

from student_records.api.models import FieldErrorDetail, error_response, success_response
from student_records.resources.exceptions import FieldError, ValidationFailedError
from student_records.resources.hooks import ResourceHooks
from student_records.store.exceptions import DuplicateRecordError
from student_records.store.repository import ModelT

if TYPE_CHECKING:
    from student_records.store.repository import Repository

logger = logging.getLogger("student_records.resources")


def respond(status_code: int, envelope: Any) -> JSONResponse:
    return JSONResponse(status_code=status_code, content=envelope.to_content())


def validation_failed(exc: ValidationFailedError) -> JSONResponse:
    """400 response listing each field problem."""
    return respond(
        status.HTTP_400_BAD_REQUEST,
        error_response(
            str(exc),
            errors=[FieldErrorDetail(field=e.field, message=e.message, value=e.value) for e in exc.errors],
        ),
    )


def parse_positive_int(name: str, raw: str) -> int:
    """Parse a paging parameter.

    Raises:
        ValidationFailedError: If the value is not a positive integer
    """
    try:
        value = int(raw)
    except (TypeError, ValueError):
        value = 0
    if value < 1:
        raise ValidationFailedError([FieldError(name, f"{name} must be a positive integer", raw)])
    return value


def schema_errors(exc: ValidationError, prefix: str) -> list[FieldError]:
    """Convert pydantic errors into field errors named under ``prefix``."""
    errors = []
    for err in exc.errors():
        path = ".".join(str(part) for part in err.get("loc", ()))
        errors.append(
            FieldError(
                f"{prefix}.{path}" if path else prefix,
                str(err.get("msg", "Invalid value")),
                None if err.get("type") == "missing" else err.get("input"),
            )
        )
    return errors


class ResourceHandlers(Generic[ModelT]):
    """Request handlers for one resource.

    Specialised through ResourceHooks rather than subclassing.
    """

    def __init__(
        self,
        repository: Repository[ModelT],
        serialize: Callable[[ModelT], dict[str, Any]],
        hooks: ResourceHooks | None = None,
        label: str = "Record",
        debug: bool = False,
        create_schema: type[BaseModel] | None = None,
    ) -> None:
        """Initialize handlers.

        Args:
            repository: Repository the resource reads and writes
            serialize: Converts a record to its JSON form
            hooks: Resource-specific extension points (defaults if omitted)
            label: Human-readable resource name used in messages
            debug: Include exception details in 500 messages
            create_schema: Model each bulk row must satisfy before its
                transform runs (single creates are checked by the route)
        """
        self.repository = repository
        self.serialize = serialize
        self.hooks = hooks or ResourceHooks()
        self.label = label
        self.debug = debug
        self.create_schema = create_schema

    # --- Reads ---

    def get_all(self, params: Mapping[str, str]) -> JSONResponse:
        """GET /list - optionally paged with page+limit, other params filter."""
        try:
            offset = limit = None
            if params.get("page") and params.get("limit"):
                page = parse_positive_int("page", params["page"])
                limit = parse_positive_int("limit", params["limit"])
                offset = (page - 1) * limit

            where = self.hooks.build_filter(self.repository, params)
            records = self.repository.find_many(where, offset=offset, limit=limit)
            return respond(
                status.HTTP_200_OK,
                success_response(
                    [self.serialize(r) for r in records],
                    f"{self.label}s retrieved successfully",
                ),
            )
        except ValidationFailedError as e:
            return validation_failed(e)
        except Exception as e:
            return self._failure("get_all", e, f"Failed to retrieve {self.label.lower()}s")

    def get_by_id(self, record_id: int) -> JSONResponse:
        """GET /{id}."""
        try:
            record = self.repository.find_by_id(record_id)
            if record is None:
                return self._not_found()
            return respond(
                status.HTTP_200_OK,
                success_response(self.serialize(record), f"{self.label} retrieved successfully"),
            )
        except Exception as e:
            return self._failure("get_by_id", e, f"Failed to retrieve {self.label.lower()}")

    def count(self, params: Mapping[str, str]) -> JSONResponse:
        """GET /count - same filtering as get_all."""
        try:
            where = self.hooks.build_filter(self.repository, params)
            total = self.repository.count(where)
            return respond(
                status.HTTP_200_OK,
                success_response({"count": total}, "Count retrieved successfully"),
            )
        except Exception as e:
            return self._failure("count", e, "Failed to get count")

    def search(self, params: Mapping[str, str]) -> JSONResponse:
        """GET /search?q=term - 501 unless the resource supplies a search hook."""
        if self.hooks.search is None:
            return respond(
                status.HTTP_501_NOT_IMPLEMENTED,
                error_response("Search not implemented for this resource"),
            )

        term = params.get("q", "")
        if not term:
            return respond(status.HTTP_400_BAD_REQUEST, error_response("Search term is required"))

        try:
            records = self.hooks.search(term)
            return respond(
                status.HTTP_200_OK,
                success_response(
                    [self.serialize(r) for r in records],
                    "Search results retrieved successfully",
                ),
            )
        except Exception as e:
            return self._failure("search", e, f"Failed to search {self.label.lower()}s")

    # --- Writes ---

    def create(self, payload: Mapping[str, Any]) -> JSONResponse:
        """POST /create - transform, check uniqueness, insert."""
        try:
            data = self.hooks.transform_create(payload)
            if self.hooks.check_unique is not None:
                self.hooks.check_unique(data, None)
            record = self.repository.create(data)
            logger.info("Created %s id=%s", self.label.lower(), getattr(record, "id", None))
            return respond(
                status.HTTP_201_CREATED,
                success_response(self.serialize(record), f"{self.label} created successfully"),
            )
        except ValidationFailedError as e:
            return validation_failed(e)
        except DuplicateRecordError as e:
            return respond(status.HTTP_400_BAD_REQUEST, error_response(str(e)))
        except Exception as e:
            return self._failure("create", e, f"Failed to create {self.label.lower()}")

    def update(self, record_id: int, payload: Mapping[str, Any]) -> JSONResponse:
        """PUT /{id} - partial update of an existing record."""
        try:
            if self.repository.find_by_id(record_id) is None:
                return self._not_found()

            data = self.hooks.transform_update(payload)
            if self.hooks.check_unique is not None:
                self.hooks.check_unique(data, record_id)
            record = self.repository.update(record_id, data)
            logger.info("Updated %s id=%s", self.label.lower(), record_id)
            return respond(
                status.HTTP_200_OK,
                success_response(self.serialize(record), f"{self.label} updated successfully"),
            )
        except ValidationFailedError as e:
            return validation_failed(e)
        except DuplicateRecordError as e:
            return respond(status.HTTP_400_BAD_REQUEST, error_response(str(e)))
        except Exception as e:
            return self._failure("update", e, f"Failed to update {self.label.lower()}")

    def delete(self, record_id: int) -> JSONResponse:
        """DELETE /{id} - responds with the deleted record."""
        try:
            if self.repository.find_by_id(record_id) is None:
                return self._not_found()

            record = self.repository.delete(record_id)
            logger.info("Deleted %s id=%s", self.label.lower(), record_id)
            return respond(
                status.HTTP_200_OK,
                success_response(self.serialize(record), f"{self.label} deleted successfully"),
            )
        except Exception as e:
            return self._failure("delete", e, f"Failed to delete {self.label.lower()}")

    def bulk_create(self, payload: Any) -> JSONResponse:
        """POST /bulk - body is an array, or an object whose "data" is one.

        Every row is checked before anything is written. Field errors are
        named after the row, e.g. ``data[1].email``.
        """
        items = payload.get("data") if isinstance(payload, Mapping) else payload
        if not isinstance(items, list):
            return respond(status.HTTP_400_BAD_REQUEST, error_response("Data must be an array"))

        try:
            errors: list[FieldError] = []
            rows = []
            for index, item in enumerate(items):
                prefix = f"data[{index}]"
                if not isinstance(item, Mapping):
                    errors.append(FieldError(prefix, f"{prefix} must be an object", item))
                    continue
                try:
                    rows.append(self.hooks.transform_create(self._check_row(item)))
                except ValidationError as e:
                    errors.extend(schema_errors(e, prefix))
                except ValidationFailedError as e:
                    errors.extend(
                        FieldError(f"{prefix}.{err.field}", err.message, err.value)
                        for err in e.errors
                    )
            if errors:
                raise ValidationFailedError(errors)

            created = self.repository.create_many(rows)
            logger.info("Bulk created %d %ss", created, self.label.lower())
            return respond(
                status.HTTP_201_CREATED,
                success_response({"count": created}, f"{self.label}s created successfully"),
            )
        except ValidationFailedError as e:
            return validation_failed(e)
        except DuplicateRecordError as e:
            return respond(status.HTTP_400_BAD_REQUEST, error_response(str(e)))
        except Exception as e:
            return self._failure("bulk_create", e, f"Failed to create {self.label.lower()}s")

    # --- Helpers ---

    def _check_row(self, item: Mapping[str, Any]) -> Mapping[str, Any]:
        """Validate one bulk row against the create schema, if there is one.

        Raises:
            ValidationError: If the row does not satisfy the schema
        """
        if self.create_schema is None:
            return item
        return self.create_schema.model_validate(dict(item)).model_dump(
            by_alias=True, exclude_unset=True
        )

    def _not_found(self) -> JSONResponse:
        return respond(status.HTTP_404_NOT_FOUND, error_response(f"{self.label} not found"))

    def _failure(self, operation: str, exc: Exception, message: str) -> JSONResponse:
        logger.exception("Error in %s for %s", operation, self.repository.table_name)
        if self.debug:
            message = f"{message}: {exc}"
        return respond(status.HTTP_500_INTERNAL_SERVER_ERROR, error_response(message))
