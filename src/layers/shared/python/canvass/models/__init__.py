"""Pydantic models for Canvass entities."""

from canvass.models.base import KEY_ATTRIBUTES, BaseModel, generate_ulid, utc_now
from canvass.models.category import (
    CategoryScopeType,
    CreateCategoryRequest,
    MemberCategory,
    UpdateCategoryRequest,
)
from canvass.models.member import (
    ElectionDayStatus,
    Member,
    MemberAssignments,
    MemberContact,
    MemberStatus,
    ScopeType,
    StatusScope,
    UpdateMemberStatusRequest,
    UpdateMobilesRequest,
)
from canvass.models.profile import ADMIN_ROLES, HIERARCHY_ROLES, AppRole, UserProfile
from canvass.models.search_entry import MemberSearchEntry
from canvass.models.status_history import StatusHistoryEvent

__all__ = [
    "ADMIN_ROLES",
    "AppRole",
    "BaseModel",
    "CategoryScopeType",
    "CreateCategoryRequest",
    "ElectionDayStatus",
    "HIERARCHY_ROLES",
    "KEY_ATTRIBUTES",
    "Member",
    "MemberAssignments",
    "MemberCategory",
    "MemberContact",
    "MemberSearchEntry",
    "MemberStatus",
    "ScopeType",
    "StatusHistoryEvent",
    "StatusScope",
    "UpdateCategoryRequest",
    "UpdateMemberStatusRequest",
    "UpdateMobilesRequest",
    "UserProfile",
    "generate_ulid",
    "utc_now",
]
