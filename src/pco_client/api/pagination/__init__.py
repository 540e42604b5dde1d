"""Pagination over JSON:API collections."""

from .cursor import Page, PageState, PaginationCursor, PaginationResult, ProgressCallback

__all__ = [
    "Page",
    "PageState",
    "PaginationCursor",
    "PaginationResult",
    "ProgressCallback",
]
