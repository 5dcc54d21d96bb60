from __future__ import annotations

from typing import Generic, TypeVar

from pydantic import BaseModel

T = TypeVar("T")


class PaginatedResponse(BaseModel, Generic[T]):
    """One page of results; ``next_cursor`` is None on the last page."""

    items: list[T]  # type: ignore[type-var]
    next_cursor: str | None = None


class ErrorResponse(BaseModel):
    detail: str
    code: str
