"""Service classes for business logic."""

from canvass.services.category_service import CategoryService
from canvass.services.index_service import IndexService
from canvass.services.search_service import SearchService
from canvass.services.status_scope import (
    can_manage_status,
    resolve_display_status,
    resolve_visible_scopes,
    upsert_scope,
)
from canvass.services.status_service import StatusService, apply_status_update

__all__ = [
    "CategoryService",
    "IndexService",
    "SearchService",
    "StatusService",
    "apply_status_update",
    "can_manage_status",
    "resolve_display_status",
    "resolve_visible_scopes",
    "upsert_scope",
]
