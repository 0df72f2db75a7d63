"""FastAPI dependencies for dependency injection."""

from __future__ import annotations

from typing import Annotated

from fastapi import Depends, Request

from student_records.api.models import StudentCreate, student_to_response
from student_records.config import AppConfig
from student_records.resources.handlers import ResourceHandlers
from student_records.resources.students import StudentService, student_hooks
from student_records.store.database import Database
from student_records.store.models import Student
from student_records.store.repository import Repository


def get_database(request: Request) -> Database:
    """Dependency that provides the Database opened by the app lifespan."""
    database: Database | None = getattr(request.app.state, "database", None)
    if database is None:
        raise RuntimeError("Database not initialized. Start the app through its lifespan.")
    return database


def get_config(request: Request) -> AppConfig:
    """Dependency that provides the application configuration."""
    config: AppConfig | None = getattr(request.app.state, "config", None)
    return config if config is not None else AppConfig()


# Type aliases for dependency injection
DatabaseDep = Annotated[Database, Depends(get_database)]
ConfigDep = Annotated[AppConfig, Depends(get_config)]


def get_student_service(database: DatabaseDep) -> StudentService:
    return StudentService(Repository(database, Student))


StudentServiceDep = Annotated[StudentService, Depends(get_student_service)]


def get_student_handlers(
    service: StudentServiceDep, config: ConfigDep
) -> ResourceHandlers[Student]:
    """Generic handlers specialised with the student hooks."""
    return ResourceHandlers(
        service.repository,
        serialize=student_to_response,
        hooks=student_hooks(service),
        label="Student",
        debug=config.debug,
        create_schema=StudentCreate,
    )


StudentHandlersDep = Annotated[ResourceHandlers[Student], Depends(get_student_handlers)]
