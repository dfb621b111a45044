"""FastAPI dependencies for dependency injection."""

from fastapi import Query

from api.schemas.common import PaginationParams
from core.integrations.email import get_message_sender
from core.middleware.authorization import CallerContext, Permission, require_permission
from database.engine import get_db, get_session_factory


def get_pagination(
    page: int = Query(1, ge=1, description="Page number (1-indexed)"),
    page_size: int = Query(50, ge=1, le=200, description="Items per page"),
) -> PaginationParams:
    """Pagination from query parameters."""
    return PaginationParams(page=page, page_size=page_size)


__all__ = [
    "CallerContext",
    "Permission",
    "get_db",
    "get_message_sender",
    "get_pagination",
    "get_session_factory",
    "require_permission",
]
