"""Record Store - storage access and generic CRUD for the relational store."""

from student_records.store.database import Database
from student_records.store.exceptions import (
    DuplicateRecordError,
    RecordNotFoundError,
    RecordStoreError,
    UnknownFieldError,
)
from student_records.store.models import Base, Student
from student_records.store.repository import Repository

__all__ = [
    "Base",
    "Database",
    "DuplicateRecordError",
    "RecordNotFoundError",
    "RecordStoreError",
    "Repository",
    "Student",
    "UnknownFieldError",
]
