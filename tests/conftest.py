"""Shared pytest fixtures and configuration."""

from collections.abc import Iterator

import pytest

from student_records.store.database import Database
from student_records.store.models import Student
from student_records.store.repository import Repository


# Register custom markers
def pytest_configure(config: pytest.Config) -> None:
    """Register custom markers for test categorization."""
    config.addinivalue_line("markers", "unit: fast tests with no external dependencies")
    config.addinivalue_line("markers", "integration: component interaction tests")


# Shared fixtures


@pytest.fixture
def database() -> Iterator[Database]:
    """Create an in-memory database with tables."""
    db = Database(":memory:")
    db.create_tables()
    yield db
    db.close()


@pytest.fixture
def repository(database: Database) -> Repository[Student]:
    """Student repository over the in-memory database."""
    return Repository(database, Student)


def student_row(n: int, **overrides: str | None) -> dict[str, str | None]:
    """Attribute values for a distinct student numbered n."""
    row: dict[str, str | None] = {
        "student_code": f"S{n:03d}",
        "first_name": f"First{n:03d}",
        "last_name": f"Last{n:03d}",
        "email": f"student{n:03d}@example.com",
        "phone": None,
    }
    row.update(overrides)
    return row


@pytest.fixture
def make_row():
    """Factory for distinct student attribute dicts."""
    return student_row
