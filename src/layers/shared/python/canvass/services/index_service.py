"""Search index maintenance.

The search entry is a projection of the member record. Every write that
changes a member goes through ``IndexService.commit_member`` so the two are
stored together.
"""

import time

import structlog
from botocore.exceptions import ClientError

from canvass.models.member import Member, ScopeType
from canvass.models.search_entry import MemberSearchEntry
from canvass.models.status_history import StatusHistoryEvent
from canvass.repositories.member import MemberRepository, MemberSearchRepository
from canvass.repositories.status_history import StatusHistoryRepository
from canvass.search.normalize import normalize_mobiles
from canvass.utils.auth import ActorContext
from canvass.utils.exceptions import ConflictError, StoreError

logger = structlog.get_logger()

MAX_WRITE_ATTEMPTS = 3
REINDEX_PAGE_SIZE = 400
REINDEX_MAX_ATTEMPTS = 3
REINDEX_RETRY_DELAY_SECONDS = 1.0


class IndexService:
    """Keeps member records and their search entries in step."""

    def __init__(
        self,
        members: MemberRepository | None = None,
        search: MemberSearchRepository | None = None,
        history: StatusHistoryRepository | None = None,
    ):
        """Initialize the service."""
        self.members = members or MemberRepository()
        self.search = search or MemberSearchRepository()
        self.history = history or StatusHistoryRepository()

    def commit_member(
        self,
        member: Member,
        expected_version: int | None,
        event: StatusHistoryEvent | None = None,
    ) -> MemberSearchEntry:
        """Write a member, its search entry and an optional history record atomically.

        Args:
            member: Member to store. Its version is bumped for existing members.
            expected_version: Version read from the store, or None for a new
                member (the write then fails if the member already exists).
            event: Optional history record to append in the same transaction.

        Returns:
            The search entry that was written.

        Raises:
            ConflictError: If the stored version changed since it was read.
            StoreError: If the store rejects the transaction.
        """
        member.stamp_write(expected_version)

        entry = MemberSearchEntry.from_member(member)
        entry.updated_at = member.updated_at

        operations = [
            self.members.put_operation(
                member,
                expected_version=expected_version,
                must_not_exist=expected_version is None,
            ),
            self.search.put_operation(entry, gsi_keys=entry.get_gsi1_keys()),
        ]
        if event:
            operations.append(self.history.put_operation(event, must_not_exist=True))

        try:
            self.members.transact_write(operations)
        except ClientError as e:
            logger.error("Member write failed", member_id=member.id, error=str(e))
            raise StoreError("write_member", str(e)) from e

        return entry

    def save_member(self, member: Member, actor_id: str, note: str | None = None) -> Member:
        """Store a new member with its search entry and initial history record."""
        member.created_by = member.created_by or actor_id
        member.updated_by = actor_id
        member.refresh_search_fields()

        event = StatusHistoryEvent(
            member_id=member.id,
            status=member.status,
            note=note,
            updated_by=actor_id,
            scope_type=ScopeType.GLOBAL.value,
        )
        self.commit_member(member, expected_version=None, event=event)

        logger.info("Member created", member_id=member.id, created_by=actor_id)
        return member

    def update_mobiles(self, member_id: str, actor: ActorContext, mobiles: list[str]) -> Member:
        """Replace a member's mobile numbers and regenerate its tokens.

        Numbers are canonicalized and deduplicated; the first becomes the
        primary mobile.

        Raises:
            NotFoundError: If the member does not exist.
            ConflictError: If every attempt lost a concurrent write.
        """
        canonical = normalize_mobiles(mobiles)

        for attempt in range(1, MAX_WRITE_ATTEMPTS + 1):
            member = self.members.get_by_id_or_raise(member_id)
            expected_version = member.version

            member.contact.mobiles = canonical
            member.contact.mobile = canonical[0] if canonical else None
            member.updated_by = actor.actor_id
            member.refresh_search_fields()

            try:
                self.commit_member(member, expected_version=expected_version)
            except ConflictError:
                if attempt == MAX_WRITE_ATTEMPTS:
                    raise
                logger.info("Mobile update conflicted, retrying", member_id=member_id, attempt=attempt)
                continue

            logger.info(
                "Member mobiles updated",
                member_id=member_id,
                actor_id=actor.actor_id,
                count=len(canonical),
            )
            return member

        raise ConflictError("Member was modified by another request")

    def reindex_all(
        self,
        page_size: int = REINDEX_PAGE_SIZE,
        max_attempts: int = REINDEX_MAX_ATTEMPTS,
        retry_delay: float = REINDEX_RETRY_DELAY_SECONDS,
    ) -> int:
        """Rebuild normalized names, mobiles and tokens for every member.

        Members are read a page at a time and written back one by one under
        the same version check as any other member write. A member changed
        since its page was read is re-read and rebuilt from the fresh copy.

        Returns:
            Number of members reindexed.

        Raises:
            ConflictError: If a member kept changing for ``max_attempts`` tries.
            StoreError: If a write still fails after all attempts.
        """
        processed = 0

        for page in self.members.iter_pages(page_size=page_size):
            for member in page:
                if self._reindex_member(member, max_attempts, retry_delay):
                    processed += 1
            logger.info("Reindexed members", processed=processed)

        logger.info("Reindex complete", total=processed)
        return processed

    def _reindex_member(self, member: Member, max_attempts: int, retry_delay: float) -> bool:
        """Rebuild and conditionally rewrite one member.

        Returns:
            False if the member was deleted before it could be written.
        """
        expected_version = member.version

        for attempt in range(1, max_attempts + 1):
            member.contact.mobiles = normalize_mobiles(member.contact.mobiles)
            member.refresh_search_fields()

            try:
                self.commit_member(member, expected_version=expected_version)
                return True
            except ConflictError:
                if attempt == max_attempts:
                    raise
                logger.info("Reindex write conflicted, re-reading", member_id=member.id, attempt=attempt)
                fresh = self.members.get_by_id(member.id)
                if fresh is None:
                    logger.info("Member deleted during reindex", member_id=member.id)
                    return False
                member, expected_version = fresh, fresh.version
            except StoreError as e:
                logger.warning(
                    "Reindex write failed",
                    member_id=member.id,
                    attempt=attempt,
                    error=e.original_error,
                )
                if attempt == max_attempts:
                    raise StoreError("reindex_members", e.original_error) from e
                time.sleep(retry_delay * attempt)

        return False
