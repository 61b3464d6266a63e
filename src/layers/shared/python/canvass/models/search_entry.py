"""Denormalized search index entry for members."""

from typing import Any, ClassVar

from pydantic import Field, ValidationInfo, field_validator

from canvass.models.base import BaseModel
from canvass.models.member import (
    DEFAULT_STATUS,
    ElectionDayStatus,
    Member,
    MemberAssignments,
    MemberStatus,
    StatusScope,
    coerce_status,
    dedupe_scopes,
)
from canvass.search.normalize import normalize_arabic, normalize_mobiles
from canvass.search.tokens import build_search_tokens


class MemberSearchEntry(BaseModel):
    """Search-optimized projection of a Member.

    Key Pattern:
        PK: MEMBER#{id}
        SK: SEARCH
        GSI1PK: STATUS#{status}
        GSI1SK: {full_name_normalized}#{id}

    The entry is a disposable cache of the Member record: ``tokens`` is always
    rebuilt from name, membership ID, address, mobiles and landline, never
    edited directly.
    """

    _pk_prefix: ClassVar[str] = "MEMBER#"
    _sk_prefix: ClassVar[str] = "SEARCH"

    full_name: str = Field(default="")
    full_name_normalized: str = Field(default="", validate_default=True)
    membership_id: str | None = Field(default=None)
    address: str | None = Field(default=None)
    mobiles: list[str] = Field(default_factory=list)
    land_line: str | None = Field(default=None)
    status: MemberStatus = Field(default=MemberStatus.CHANCE)
    election_day_status: ElectionDayStatus = Field(default=ElectionDayStatus.PENDING)
    status_scopes: list[StatusScope] = Field(default_factory=list, validate_default=True)
    assignments: MemberAssignments = Field(default_factory=MemberAssignments)
    created_by: str | None = Field(default=None)
    updated_by: str | None = Field(default=None)
    tokens: list[str] = Field(default_factory=list)

    @field_validator("full_name_normalized", mode="after")
    @classmethod
    def fill_normalized_name(cls, v: str, info: ValidationInfo) -> str:
        """Compute the normalized name when it was not stored."""
        return v or normalize_arabic(info.data.get("full_name", ""))

    @field_validator("membership_id", mode="before")
    @classmethod
    def coerce_membership_id(cls, v: Any) -> str | None:
        """Membership IDs are strings even when stored as numbers."""
        if v is None or v == "":
            return None
        return str(v).strip()

    @field_validator("mobiles", mode="before")
    @classmethod
    def canonical_mobiles(cls, v: Any) -> list[str]:
        """Canonicalize and deduplicate mobiles."""
        if not isinstance(v, (list, tuple)):
            return []
        return normalize_mobiles([str(item) for item in v if item is not None])

    @field_validator("status", mode="before")
    @classmethod
    def validate_status(cls, v: Any) -> str:
        """Invalid statuses decode as chance."""
        return coerce_status(v)

    @field_validator("election_day_status", mode="before")
    @classmethod
    def validate_election_day_status(cls, v: Any) -> Any:
        """Invalid election-day statuses decode as pending."""
        valid = {s.value for s in ElectionDayStatus}
        if isinstance(v, ElectionDayStatus) or v in valid:
            return v
        return ElectionDayStatus.PENDING.value

    @field_validator("status_scopes", mode="after")
    @classmethod
    def ensure_scopes(cls, v: list[StatusScope], info: ValidationInfo) -> list[StatusScope]:
        """One entry per scope key, and always a global entry."""
        return dedupe_scopes(v, info.data.get("status", DEFAULT_STATUS))

    @classmethod
    def from_member(cls, member: Member) -> "MemberSearchEntry":
        """Project a Member into its search entry, regenerating tokens."""
        return cls(
            id=member.id,
            version=member.version,
            created_at=member.created_at,
            full_name=member.full_name,
            full_name_normalized=normalize_arabic(member.full_name),
            membership_id=member.membership_id,
            address=member.address,
            mobiles=list(member.contact.mobiles),
            land_line=member.contact.land_line,
            status=member.status,
            election_day_status=member.election_day_status,
            status_scopes=[scope.model_copy(deep=True) for scope in member.status_scopes],
            assignments=member.assignments.model_copy(deep=True),
            created_by=member.created_by,
            updated_by=member.updated_by,
            tokens=sorted(build_search_tokens(member.search_source_values())),
        )

    def get_gsi1_keys(self) -> dict[str, str]:
        """Get GSI1 keys for status listing ordered by normalized name."""
        return {
            "GSI1PK": f"STATUS#{self.status}",
            "GSI1SK": f"{self.full_name_normalized}#{self.id}",
        }
