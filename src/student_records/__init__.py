"""Student Records - REST service for managing student records."""

__version__ = "0.1.0"
