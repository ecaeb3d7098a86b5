# backend/portfolio_tracker/schemas/errors.py
"""
Error bodies returned by the exception handlers in main.py.
"""

from pydantic import BaseModel, Field


class ErrorDetail(BaseModel):
    """Body of every non-422 error: an error name, a message and optional context."""

    error: str = Field(..., description="Exception name, e.g. 'InsufficientQuantityError'")
    message: str = Field(..., description="Readable explanation")
    details: dict | None = Field(default=None, description="Structured context such as the offending field")


class ValidationErrorDetail(BaseModel):
    """Body of a 422: one entry per field that failed schema validation."""

    error: str = "ValidationError"
    message: str = "Request validation failed"
    details: list[dict] = Field(..., description="Entries with field, message and type")
