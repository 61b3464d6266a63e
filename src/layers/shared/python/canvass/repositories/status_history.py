"""Repository for member status history."""

from canvass.models.status_history import StatusHistoryEvent
from canvass.repositories.base import BaseRepository


class StatusHistoryRepository(BaseRepository[StatusHistoryEvent]):
    """Append-only status history, stored under the member's partition."""

    def __init__(self, table_name: str | None = None):
        """Initialize history repository."""
        super().__init__(StatusHistoryEvent, table_name)

    def list_for_member(
        self,
        member_id: str,
        limit: int = 50,
        last_key: dict | None = None,
    ) -> tuple[list[StatusHistoryEvent], dict | None]:
        """List a member's history, newest first."""
        return self.query(
            pk=f"MEMBER#{member_id}",
            sk_begins_with="HISTORY#",
            limit=limit,
            scan_forward=False,
            last_key=last_key,
        )
