"""Append-only status history records."""

from datetime import datetime
from typing import ClassVar

from pydantic import Field

from canvass.models.base import BaseModel, utc_now
from canvass.models.member import MemberStatus


class StatusHistoryEvent(BaseModel):
    """Audit record of one status write.

    PK: MEMBER#{member_id}
    SK: HISTORY#{id}

    IDs are ULIDs, so sort keys order events by time.
    """

    _pk_prefix: ClassVar[str] = "MEMBER#"
    _sk_prefix: ClassVar[str] = "HISTORY#"

    member_id: str = Field(..., description="Member the event belongs to")
    status: MemberStatus = Field(..., description="Status submitted with the write")
    note: str | None = Field(default=None, description="Optional free-text note")
    updated_by: str = Field(..., description="Actor who made the write")
    scope_type: str | None = Field(default=None, description="Scope that was written")
    scope_id: str | None = Field(default=None)
    timestamp: datetime = Field(default_factory=utc_now)

    def get_pk(self) -> str:
        """Get partition key: MEMBER#{member_id}."""
        return f"MEMBER#{self.member_id}"

    def get_sk(self) -> str:
        """Get sort key: HISTORY#{id}."""
        return f"HISTORY#{self.id}"
