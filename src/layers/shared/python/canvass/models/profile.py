"""User profile and application roles."""

from enum import Enum
from typing import ClassVar

from pydantic import Field, field_validator

from canvass.models.base import BaseModel


class AppRole(str, Enum):
    """Hierarchy roles, highest first."""

    SUPER_ADMIN = "superAdmin"
    ADMIN = "admin"
    TEAM_HEAD = "teamHead"
    TEAM_LEADER = "teamLeader"
    VIEWER = "viewer"


ADMIN_ROLES = frozenset({AppRole.SUPER_ADMIN, AppRole.ADMIN})
HIERARCHY_ROLES = frozenset({AppRole.SUPER_ADMIN, AppRole.ADMIN, AppRole.TEAM_HEAD, AppRole.TEAM_LEADER})


def parse_role(value: object) -> AppRole | None:
    """Return the AppRole for a raw value, or None if unrecognised."""
    if isinstance(value, AppRole):
        return value
    if isinstance(value, str):
        try:
            return AppRole(value)
        except ValueError:
            return None
    return None


class UserProfile(BaseModel):
    """Profile of a signed-in team member.

    PK: PROFILE#{user_id}
    SK: PROFILE

    The ``id`` is the identity provider's user ID. ``role`` is kept raw so an
    unrecognised stored value can be rejected at authentication time instead
    of failing to load.
    """

    _pk_prefix: ClassVar[str] = "PROFILE#"
    _sk_prefix: ClassVar[str] = "PROFILE"

    role: str | None = Field(default=None, description="Stored application role")
    display_name: str | None = Field(default=None, description="Display name")
    email: str | None = Field(default=None, description="Email address")
    phone: str | None = Field(default=None, description="Phone number")
    head_id: str | None = Field(default=None, description="Head this account belongs to")
    leader_ids: list[str] = Field(default_factory=list, description="Leader scopes owned by this account")

    @field_validator("leader_ids", mode="before")
    @classmethod
    def clean_leader_ids(cls, v: object) -> list[str]:
        """Drop empty and duplicate leader IDs, keeping order."""
        if not isinstance(v, list):
            return []
        ids: list[str] = []
        for value in v:
            if isinstance(value, str) and value.strip() and value.strip() not in ids:
                ids.append(value.strip())
        return ids
