"""Member category model - per-scope tags on status entries."""

import re
from enum import Enum
from typing import Any, ClassVar

from pydantic import BaseModel as PydanticBaseModel, Field, field_validator

from canvass.models.base import BaseModel

NAME_MAX_LENGTH = 100
DESCRIPTION_MAX_LENGTH = 200
_HEX_COLOR_RE = re.compile(r"^#[0-9A-Fa-f]{3,8}$")


class CategoryScopeType(str, Enum):
    """Scopes that can own categories (never global)."""

    HEAD = "head"
    LEADER = "leader"


def normalize_category_name(value: Any) -> str | None:
    """Trim a category name and cap it at 100 characters."""
    if not isinstance(value, str):
        return None
    trimmed = value.strip()
    if not trimmed:
        return None
    return trimmed[:NAME_MAX_LENGTH]


def normalize_color(value: Any) -> str | None:
    """Normalize a hex color, adding a missing ``#``.

    Raises:
        ValueError: If the value is not ``#`` followed by 3-8 hex digits.
    """
    if value is None:
        return None
    if not isinstance(value, str):
        raise ValueError("color must be a hex string")
    trimmed = value.strip()
    if not trimmed:
        return None
    color = trimmed if trimmed.startswith("#") else f"#{trimmed}"
    if not _HEX_COLOR_RE.match(color):
        raise ValueError("color must be '#' followed by 3 to 8 hex digits")
    return color


def normalize_description(value: Any) -> str | None:
    """Trim a description and cap it at 200 characters."""
    if not isinstance(value, str):
        return None
    trimmed = value.strip()
    if not trimmed:
        return None
    return trimmed[:DESCRIPTION_MAX_LENGTH]


class MemberCategory(BaseModel):
    """Category owned by exactly one head or leader scope.

    Key Pattern:
        PK: CATEGORY#{id}
        SK: CATEGORY
        GSI1PK: CATSCOPE#{scope_type}#{scope_id}
        GSI1SK: {name}

    ``scope_type`` and ``scope_id`` are frozen once the category exists.
    """

    _pk_prefix: ClassVar[str] = "CATEGORY#"
    _sk_prefix: ClassVar[str] = "CATEGORY"

    name: str = Field(..., min_length=1, max_length=NAME_MAX_LENGTH)
    color: str | None = Field(default=None)
    description: str | None = Field(default=None, max_length=DESCRIPTION_MAX_LENGTH)
    scope_type: CategoryScopeType = Field(..., frozen=True)
    scope_id: str = Field(..., min_length=1, frozen=True)
    created_by: str = Field(..., description="User who created the category")

    def get_gsi1_keys(self) -> dict[str, str]:
        """Get GSI1 keys for listing categories of one scope."""
        return {
            "GSI1PK": f"CATSCOPE#{self.scope_type}#{self.scope_id}",
            "GSI1SK": self.name,
        }

    def belongs_to(self, scope_type: str, scope_id: str | None) -> bool:
        """Whether the category is owned by exactly this scope."""
        return self.scope_type == scope_type and self.scope_id == scope_id


class CreateCategoryRequest(PydanticBaseModel):
    """Request model for creating a category."""

    name: str
    color: str | None = None
    description: str | None = None

    @field_validator("name", mode="before")
    @classmethod
    def validate_name(cls, v: Any) -> str:
        """Name is required; it is trimmed and capped."""
        name = normalize_category_name(v)
        if not name:
            raise ValueError("name is required")
        return name

    @field_validator("color", mode="before")
    @classmethod
    def validate_color(cls, v: Any) -> str | None:
        """Color must be a hex color when given."""
        return normalize_color(v)

    @field_validator("description", mode="before")
    @classmethod
    def validate_description(cls, v: Any) -> str | None:
        """Description is trimmed and capped."""
        return normalize_description(v)


class UpdateCategoryRequest(PydanticBaseModel):
    """Request model for updating a category.

    Only fields present in the payload are applied. An empty name is ignored;
    a null or empty color/description clears it. Scope fields are not
    accepted.
    """

    name: str | None = None
    color: str | None = None
    description: str | None = None

    @field_validator("name", mode="before")
    @classmethod
    def validate_name(cls, v: Any) -> str | None:
        """Trim and cap the name."""
        return normalize_category_name(v)

    @field_validator("color", mode="before")
    @classmethod
    def validate_color(cls, v: Any) -> str | None:
        """Color must be a hex color when given."""
        return normalize_color(v)

    @field_validator("description", mode="before")
    @classmethod
    def validate_description(cls, v: Any) -> str | None:
        """Trim and cap the description."""
        return normalize_description(v)

    def changes(self) -> dict[str, Any]:
        """Fields to apply to the stored category."""
        updates: dict[str, Any] = {}
        fields_set = self.model_fields_set
        if "name" in fields_set and self.name:
            updates["name"] = self.name
        if "color" in fields_set:
            updates["color"] = self.color
        if "description" in fields_set:
            updates["description"] = self.description
        return updates
