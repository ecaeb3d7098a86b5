# backend/portfolio_tracker/schemas/pagination.py
"""
Cursor pagination metadata for list endpoints.

The cursor is the id of the last item of the previous page. Clients pass
`next_cursor` back unchanged; None means there are no more pages.

Usage:
    from portfolio_tracker.schemas.pagination import CursorMeta

    page = ledger.list_transactions(db, user_id, limit=limit, cursor=cursor)
    return {"items": ..., "pagination": CursorMeta.create(limit, page.next_cursor)}
"""

from pydantic import BaseModel, Field, computed_field


class CursorMeta(BaseModel):
    """
    Pagination metadata for cursor-paged responses.

    Attributes:
        limit: Maximum items per page
        next_cursor: Cursor for the next page (None on the last page)
        has_next: Whether more pages exist (computed)
    """

    limit: int = Field(..., ge=1, description="Maximum items per page")
    next_cursor: str | None = Field(default=None, description="Pass as `cursor` to get the next page")

    @computed_field
    @property
    def has_next(self) -> bool:
        """Whether there are more pages after this one."""
        return self.next_cursor is not None

    @classmethod
    def create(cls, limit: int, next_cursor: str | None) -> "CursorMeta":
        return cls(limit=limit, next_cursor=next_cursor)
