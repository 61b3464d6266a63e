"""Member (constituent) model and its status scopes."""

from datetime import datetime
from enum import Enum
from typing import Any, ClassVar

from pydantic import (
    BaseModel as PydanticBaseModel,
    ConfigDict,
    Field,
    ValidationInfo,
    field_validator,
)

from canvass.models.base import BaseModel
from canvass.search.normalize import normalize_arabic, normalize_mobiles, normalize_phone
from canvass.search.tokens import build_search_tokens


class MemberStatus(str, Enum):
    """Canvassing status of a member."""

    CHANCE = "chance"
    CONTACTED = "contacted"
    COMMITTED = "committed"
    VOTE_SECURED = "voteSecured"
    NO = "no"
    VOTED = "voted"


class ElectionDayStatus(str, Enum):
    """Election-day tracking status."""

    PENDING = "pending"
    CONFIRMED = "confirmed"
    NEEDS_SUPPORT = "needsSupport"
    ABSENT = "absent"
    VOTED = "voted"


class ScopeType(str, Enum):
    """Scope under which a status is tracked."""

    GLOBAL = "global"
    HEAD = "head"
    LEADER = "leader"


DEFAULT_STATUS = MemberStatus.CHANCE.value
DEFAULT_ELECTION_DAY_STATUS = ElectionDayStatus.PENDING.value
GLOBAL_SCOPE_DISPLAY_NAME = "عام"

_STATUS_VALUES = {s.value for s in MemberStatus}
_ELECTION_DAY_VALUES = {s.value for s in ElectionDayStatus}
_SCOPE_TYPE_VALUES = {s.value for s in ScopeType}


def coerce_status(value: Any) -> str:
    """Map a stored status to a valid MemberStatus value (default: chance)."""
    if isinstance(value, MemberStatus):
        return value.value
    return value if value in _STATUS_VALUES else DEFAULT_STATUS


def clean_id_list(value: Any) -> list[str]:
    """Keep stripped, non-empty string entries of a list."""
    if not isinstance(value, (list, tuple)):
        return []
    return [item.strip() for item in value if isinstance(item, str) and item.strip()]


def scope_key(scope_type: str, scope_id: str | None) -> tuple[str, str | None]:
    """Identity of a status scope entry."""
    if scope_type == ScopeType.GLOBAL:
        return ScopeType.GLOBAL.value, None
    return ScopeType(scope_type).value, scope_id


class StatusScope(PydanticBaseModel):
    """One independently tracked status for a member.

    Decoding defaults: unknown ``scope_type`` -> global, unknown ``status`` ->
    chance, ``categories`` keeps stripped non-empty strings, and a global
    entry never carries a ``scope_id``.
    """

    model_config = ConfigDict(use_enum_values=True, validate_assignment=True)

    scope_type: ScopeType = Field(default=ScopeType.GLOBAL)
    scope_id: str | None = Field(default=None)
    status: MemberStatus = Field(default=MemberStatus.CHANCE)
    updated_at: datetime | None = Field(default=None)
    updated_by: str | None = Field(default=None)
    display_name: str | None = Field(default=None)
    categories: list[str] = Field(default_factory=list)

    @field_validator("scope_type", mode="before")
    @classmethod
    def coerce_scope_type(cls, v: Any) -> Any:
        """Unknown scope types decode as global."""
        if isinstance(v, ScopeType):
            return v
        return v if v in _SCOPE_TYPE_VALUES else ScopeType.GLOBAL.value

    @field_validator("scope_id", mode="before")
    @classmethod
    def coerce_scope_id(cls, v: Any, info: ValidationInfo) -> str | None:
        """Global scopes have no ID; other IDs are stored as strings."""
        if info.data.get("scope_type") == ScopeType.GLOBAL:
            return None
        if v is None or v == "":
            return None
        return str(v)

    @field_validator("status", mode="before")
    @classmethod
    def validate_status(cls, v: Any) -> str:
        """Invalid statuses decode as chance."""
        return coerce_status(v)

    @field_validator("updated_at", mode="before")
    @classmethod
    def coerce_updated_at(cls, v: Any) -> Any:
        """Accept datetimes and ISO strings; anything else becomes None."""
        return v if isinstance(v, (datetime, str)) and v else None

    @field_validator("categories", mode="before")
    @classmethod
    def coerce_categories(cls, v: Any) -> list[str]:
        """Keep non-empty string category IDs."""
        return clean_id_list(v)

    @property
    def key(self) -> tuple[str, str | None]:
        """(scope_type, scope_id) identity of this entry."""
        return scope_key(self.scope_type, self.scope_id)


def dedupe_scopes(scopes: list[StatusScope], fallback_status: str = DEFAULT_STATUS) -> list[StatusScope]:
    """Collapse duplicate (scope_type, scope_id) entries and ensure a global one.

    Later duplicates replace earlier ones in place. A missing global entry is
    synthesised from ``fallback_status``.
    """
    by_key: dict[tuple[str, str | None], StatusScope] = {}
    for scope in scopes:
        by_key[scope.key] = scope

    if (ScopeType.GLOBAL.value, None) not in by_key:
        global_scope = StatusScope(
            scope_type=ScopeType.GLOBAL,
            status=coerce_status(fallback_status),
            display_name=GLOBAL_SCOPE_DISPLAY_NAME,
        )
        by_key = {global_scope.key: global_scope, **by_key}

    return list(by_key.values())


class MemberContact(PydanticBaseModel):
    """Contact numbers of a member."""

    model_config = ConfigDict(validate_assignment=True)

    mobile: str | None = Field(default=None, description="Primary mobile number")
    mobiles: list[str] = Field(default_factory=list, description="All mobile numbers, canonical and unique")
    land_line: str | None = Field(default=None, description="Landline number")

    @field_validator("mobiles", mode="before")
    @classmethod
    def canonical_mobiles(cls, v: Any) -> list[str]:
        """Canonicalize and deduplicate mobiles."""
        if not isinstance(v, (list, tuple)):
            return []
        return normalize_mobiles([str(item) for item in v if item is not None])

    @field_validator("mobile", "land_line", mode="before")
    @classmethod
    def canonical_phone(cls, v: Any) -> str | None:
        """Canonicalize a single phone number; blanks become None."""
        return normalize_phone(v)


class MemberAssignments(PydanticBaseModel):
    """Where a member sits in the hierarchy."""

    model_config = ConfigDict(validate_assignment=True)

    head_id: str | None = Field(default=None)
    leader_id: str | None = Field(default=None)
    group_ids: list[str] = Field(default_factory=list)

    @field_validator("group_ids", mode="before")
    @classmethod
    def coerce_group_ids(cls, v: Any) -> list[str]:
        """Keep non-empty string group IDs."""
        return clean_id_list(v)


class Member(BaseModel):
    """Member entity - the authoritative constituent record.

    Key Pattern:
        PK: MEMBER#{id}
        SK: MEMBER

    Decoding defaults: status -> chance, election_day_status -> pending,
    missing global scope -> synthesised from ``status``, missing
    ``full_name_normalized`` -> computed from ``full_name``.
    """

    _pk_prefix: ClassVar[str] = "MEMBER#"
    _sk_prefix: ClassVar[str] = "MEMBER"

    full_name: str = Field(default="", description="Full name as entered")
    full_name_normalized: str = Field(default="", validate_default=True, description="Canonical form of full_name")
    membership_id: str | None = Field(default=None, description="Club membership ID")
    address: str | None = Field(default=None, description="Postal address")
    contact: MemberContact = Field(default_factory=MemberContact)

    status: MemberStatus = Field(default=MemberStatus.CHANCE, description="Mirror of the global scope status")
    election_day_status: ElectionDayStatus = Field(default=ElectionDayStatus.PENDING)
    status_scopes: list[StatusScope] = Field(default_factory=list, validate_default=True)
    assignments: MemberAssignments = Field(default_factory=MemberAssignments)

    last_status_update: datetime | None = Field(default=None)
    created_by: str | None = Field(default=None)
    updated_by: str | None = Field(default=None)
    search_tokens: list[str] = Field(default_factory=list)

    @field_validator("full_name", mode="before")
    @classmethod
    def coerce_full_name(cls, v: Any) -> str:
        """Names are stored as stripped strings."""
        return str(v).strip() if v is not None else ""

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

    @field_validator("status", mode="before")
    @classmethod
    def validate_status(cls, v: Any) -> str:
        """Invalid statuses decode as chance."""
        return coerce_status(v)

    @field_validator("election_day_status", mode="before")
    @classmethod
    def coerce_election_day_status(cls, v: Any) -> str:
        """Invalid election-day statuses decode as pending."""
        if isinstance(v, ElectionDayStatus):
            return v.value
        return v if v in _ELECTION_DAY_VALUES else DEFAULT_ELECTION_DAY_STATUS

    @field_validator("status_scopes", mode="after")
    @classmethod
    def ensure_scopes(cls, v: list[StatusScope], info: ValidationInfo) -> list[StatusScope]:
        """One entry per scope key, and always a global entry."""
        return dedupe_scopes(v, info.data.get("status", DEFAULT_STATUS))

    @property
    def mobiles(self) -> list[str]:
        """All mobile numbers."""
        return self.contact.mobiles

    @property
    def global_scope(self) -> StatusScope:
        """The global status scope entry."""
        for scope in self.status_scopes:
            if scope.scope_type == ScopeType.GLOBAL:
                return scope
        raise LookupError("member has no global scope")

    def search_source_values(self) -> list[str | None]:
        """Field values the search token set is derived from."""
        return [
            self.full_name,
            self.membership_id,
            self.address,
            *self.contact.mobiles,
            self.contact.land_line,
        ]

    def refresh_search_fields(self) -> None:
        """Recompute normalized name and search tokens from source fields."""
        self.full_name_normalized = normalize_arabic(self.full_name)
        self.search_tokens = sorted(build_search_tokens(self.search_source_values()))


class UpdateMemberStatusRequest(PydanticBaseModel):
    """Request body for PATCH /members/{member_id}/status.

    ``categories`` is optional, but when present it must be a list; only the
    first non-empty ID is kept since a scope holds at most one category.
    """

    model_config = ConfigDict(populate_by_name=True, use_enum_values=True)

    status: MemberStatus
    election_day_status: ElectionDayStatus | None = Field(default=None, alias="electionDayStatus")
    note: str | None = Field(default=None, max_length=1000)
    categories: list[Any] | None = Field(default=None)

    @field_validator("categories", mode="before")
    @classmethod
    def require_list(cls, v: Any) -> Any:
        """An explicit null is not a category list."""
        if v is None:
            raise ValueError("categories must be a list")
        return v

    @field_validator("categories", mode="after")
    @classmethod
    def first_category(cls, v: list[Any] | None) -> list[str] | None:
        """Keep only the first usable category ID."""
        if v is None:
            return None
        ids = clean_id_list(v)
        return ids[:1]

    @property
    def has_category_payload(self) -> bool:
        """Whether the request carries a category change."""
        return "categories" in self.model_fields_set


class UpdateMobilesRequest(PydanticBaseModel):
    """Request body for PATCH /members/{member_id}/mobiles."""

    mobiles: list[str] = Field(..., max_length=10)
