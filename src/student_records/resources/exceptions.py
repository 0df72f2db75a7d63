"""Custom exceptions for resource request handling."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any


@dataclass
class FieldError:
    """One field-level validation problem."""

    field: str
    message: str
    value: Any = None


class ValidationFailedError(Exception):
    """Request data is missing required fields or is malformed."""

    def __init__(self, errors: list[FieldError]) -> None:
        self.errors = errors
        super().__init__("Validation failed: " + ", ".join(e.message for e in errors))
