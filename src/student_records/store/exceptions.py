"""Custom exceptions for the record store."""


class RecordStoreError(Exception):
    """Base exception for record store errors."""


class RecordNotFoundError(RecordStoreError):
    """Record with given ID does not exist."""


class UnknownFieldError(RecordStoreError):
    """Field name does not map to a column of the model."""


class DuplicateRecordError(RecordStoreError):
    """A unique field value is already used by another record."""

    def __init__(self, field: str | None, message: str | None = None) -> None:
        self.field = field
        super().__init__(message or f"Record with this {field or 'value'} already exists")
