"""Repository - generic CRUD operations scoped to one model."""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from concurrent.futures import ThreadPoolExecutor
from typing import TYPE_CHECKING, Any, Generic, TypeVar

from sqlalchemy import delete as sql_delete
from sqlalchemy import func, select
from sqlalchemy import update as sql_update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import InstrumentedAttribute

from student_records.store.exceptions import (
    DuplicateRecordError,
    RecordNotFoundError,
    UnknownFieldError,
)
from student_records.store.models import Base

if TYPE_CHECKING:
    from sqlalchemy import ColumnElement
    from sqlalchemy.orm import Session

    from student_records.store.database import Database

    Where = Sequence[ColumnElement[bool]]
    OrderBy = Sequence[ColumnElement[Any] | InstrumentedAttribute[Any]]

ModelT = TypeVar("ModelT", bound=Base)

logger = logging.getLogger("student_records.store")

# Markers that identify a unique constraint violation across drivers
_UNIQUE_MARKERS = ("UNIQUE constraint failed", "duplicate key value", "Duplicate entry")


class Repository(Generic[ModelT]):
    """Uniform find/create/update/delete operations for one table.

    Every method is a passthrough to the database: no retries and no
    transactions beyond the one each call opens. Criteria are sequences of
    SQLAlchemy boolean clauses combined with AND.
    """

    def __init__(self, database: Database, model: type[ModelT]) -> None:
        """Initialize the repository.

        Args:
            database: Open database handle
            model: Mapped model class the repository is scoped to
        """
        self._db = database
        self.model = model
        self._columns = {attr.key: attr for attr in model.__mapper__.column_attrs}

    @property
    def table_name(self) -> str:
        return self.model.__tablename__

    def column(self, field: str) -> InstrumentedAttribute[Any]:
        """Resolve a field name to the model's mapped attribute.

        Raises:
            UnknownFieldError: If the model has no such column
        """
        if field not in self._columns:
            raise UnknownFieldError(f"Unknown field '{field}' for table '{self.table_name}'")
        attr: InstrumentedAttribute[Any] = getattr(self.model, field)
        return attr

    # --- Reads ---

    def find_all(
        self,
        *,
        order_by: OrderBy = (),
        offset: int | None = None,
        limit: int | None = None,
    ) -> list[ModelT]:
        """List every record, optionally ordered and sliced."""
        return self.find_many((), order_by=order_by, offset=offset, limit=limit)

    def find_by_id(self, record_id: int) -> ModelT | None:
        """Get record by primary key.

        Returns:
            The record, or None if it does not exist
        """
        session = self._db.get_session()
        try:
            return session.get(self.model, record_id)
        finally:
            session.close()

    def find_many(
        self,
        where: Where = (),
        *,
        order_by: OrderBy = (),
        offset: int | None = None,
        limit: int | None = None,
    ) -> list[ModelT]:
        """List records matching all criteria."""
        session = self._db.get_session()
        try:
            stmt = select(self.model).where(*where).order_by(*order_by)
            if offset is not None:
                stmt = stmt.offset(offset)
            if limit is not None:
                stmt = stmt.limit(limit)
            return list(session.execute(stmt).scalars().all())
        finally:
            session.close()

    def find_first(self, where: Where = (), *, order_by: OrderBy = ()) -> ModelT | None:
        """Get the first record matching all criteria, or None."""
        records = self.find_many(where, order_by=order_by, limit=1)
        return records[0] if records else None

    def count(self, where: Where = ()) -> int:
        """Count records matching all criteria."""
        session = self._db.get_session()
        try:
            stmt = select(func.count()).select_from(self.model).where(*where)
            return int(session.execute(stmt).scalar_one())
        finally:
            session.close()

    def exists(self, where: Where) -> bool:
        """Check whether any record matches all criteria."""
        return self.count(where) > 0

    def paginate(
        self,
        where: Where = (),
        *,
        order_by: OrderBy = (),
        offset: int = 0,
        limit: int = 10,
    ) -> tuple[list[ModelT], int]:
        """Fetch one page of records together with the total match count.

        The page query and the count query are independent reads issued
        concurrently, each on its own session.

        Returns:
            Tuple of (records on the page, total matching records)
        """
        with ThreadPoolExecutor(max_workers=self._db.read_concurrency) as executor:
            records = executor.submit(
                self.find_many, where, order_by=order_by, offset=offset, limit=limit
            )
            total = executor.submit(self.count, where)
            return records.result(), total.result()

    # --- Writes ---

    def create(self, data: Mapping[str, Any]) -> ModelT:
        """Insert a record.

        Args:
            data: Attribute values keyed by field name

        Returns:
            Created record, refreshed with store-assigned values

        Raises:
            DuplicateRecordError: If a unique constraint is violated
            UnknownFieldError: If data names a field the model lacks
        """
        self._check_fields(data)
        session = self._db.get_session()
        try:
            record = self.model(**data)
            session.add(record)
            self._commit(session)
            session.refresh(record)
            logger.debug("Created %s id=%s", self.table_name, record.id)  # type: ignore[attr-defined]
            return record
        finally:
            session.close()

    def create_many(self, rows: Sequence[Mapping[str, Any]]) -> int:
        """Insert many records in a single transaction.

        Returns:
            Number of records inserted
        """
        for row in rows:
            self._check_fields(row)
        if not rows:
            return 0
        session = self._db.get_session()
        try:
            session.add_all([self.model(**row) for row in rows])
            self._commit(session)
            logger.debug("Created %d %s rows", len(rows), self.table_name)
            return len(rows)
        finally:
            session.close()

    def update(self, record_id: int, data: Mapping[str, Any]) -> ModelT:
        """Update fields of an existing record. Only given fields change.

        Raises:
            RecordNotFoundError: If the record doesn't exist
            DuplicateRecordError: If a unique constraint is violated
        """
        self._check_fields(data)
        session = self._db.get_session()
        try:
            record = session.get(self.model, record_id)
            if record is None:
                raise RecordNotFoundError(
                    f"{self.table_name} record with id '{record_id}' not found"
                )
            for field, value in data.items():
                setattr(record, field, value)
            self._commit(session)
            session.refresh(record)
            return record
        finally:
            session.close()

    def update_many(self, where: Where, data: Mapping[str, Any]) -> int:
        """Update every record matching the criteria.

        Returns:
            Number of records updated
        """
        self._check_fields(data)
        session = self._db.get_session()
        try:
            stmt = sql_update(self.model).where(*where).values(**data)
            result = session.execute(stmt)
            self._commit(session)
            return int(result.rowcount)  # type: ignore[attr-defined]
        finally:
            session.close()

    def delete(self, record_id: int) -> ModelT:
        """Delete a record.

        Returns:
            The record as it was before deletion

        Raises:
            RecordNotFoundError: If the record doesn't exist
        """
        session = self._db.get_session()
        try:
            record = session.get(self.model, record_id)
            if record is None:
                raise RecordNotFoundError(
                    f"{self.table_name} record with id '{record_id}' not found"
                )
            session.delete(record)
            session.commit()
            return record
        finally:
            session.close()

    def delete_many(self, where: Where) -> int:
        """Delete every record matching the criteria.

        Returns:
            Number of records deleted
        """
        session = self._db.get_session()
        try:
            result = session.execute(sql_delete(self.model).where(*where))
            session.commit()
            return int(result.rowcount)  # type: ignore[attr-defined]
        finally:
            session.close()

    def upsert(
        self,
        where: Where,
        update_data: Mapping[str, Any],
        create_data: Mapping[str, Any],
    ) -> ModelT:
        """Update the first record matching the criteria, or insert one.

        Returns:
            The updated or created record
        """
        existing = self.find_first(where)
        if existing is None:
            return self.create(create_data)
        return self.update(existing.id, update_data)  # type: ignore[attr-defined]

    # --- Helpers ---

    def _check_fields(self, data: Mapping[str, Any]) -> None:
        for field in data:
            self.column(field)

    def _commit(self, session: Session) -> None:
        """Commit, translating unique constraint violations."""
        try:
            session.commit()
        except IntegrityError as e:
            session.rollback()
            message = str(e.orig)
            if any(marker in message for marker in _UNIQUE_MARKERS):
                raise DuplicateRecordError(self._duplicate_field(message)) from e
            raise

    def _duplicate_field(self, message: str) -> str | None:
        """Find which unique column a driver error message names."""
        for field, attr in self._columns.items():
            column = attr.columns[0]
            if column.unique and (
                f"{self.table_name}.{column.name}" in message or f"({column.name})" in message
            ):
                return field
        return None
