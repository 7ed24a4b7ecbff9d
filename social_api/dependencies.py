from fastapi import Query

from social_api.config import settings
from social_api.schemas import positive_int


def _positive_or(raw: str | None, default: int) -> int:
    """Parse *raw* as a positive integer, falling back to *default*."""
    value = positive_int(raw)
    return default if value is None else value


class PaginationParams:
    """
    Reusable FastAPI dependency that parses the ``page`` / ``limit`` query
    parameters.

    Parsing is lenient: a missing, non-numeric or non-positive value falls
    back to the default instead of failing the request, so ``?page=abc``
    simply serves page 1.

    Attributes
    ----------
    page:
        1-based page number.
    limit:
        Number of items per page, clamped to ``settings.MAX_PAGE_SIZE``.
    """

    def __init__(
        self,
        page: str | None = Query(None, description="Page number (1-based)."),
        limit: str | None = Query(
            None, description="Items per page (default 20, max 100)."
        ),
    ) -> None:
        self.page = _positive_or(page, 1)
        self.limit = min(_positive_or(limit, settings.DEFAULT_PAGE_SIZE), settings.MAX_PAGE_SIZE)

    @property
    def offset(self) -> int:
        """SQL OFFSET value computed from the current page and limit."""
        return (self.page - 1) * self.limit
