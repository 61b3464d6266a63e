"""Member status mutation.

A status write touches one scope entry of the member, mirrors the global
scope onto the member's overall status, and appends a history record. The
member, its search entry and the history record are committed in a single
DynamoDB transaction conditioned on the member version that was read.
"""

from datetime import datetime
from typing import Any

import structlog

from canvass.models.base import utc_now
from canvass.models.member import Member, ScopeType, UpdateMemberStatusRequest
from canvass.models.profile import AppRole
from canvass.models.status_history import StatusHistoryEvent
from canvass.repositories.category import CategoryRepository
from canvass.repositories.member import MemberRepository, MemberSearchRepository
from canvass.repositories.status_history import StatusHistoryRepository
from canvass.services.index_service import MAX_WRITE_ATTEMPTS, IndexService
from canvass.services.status_scope import (
    global_status,
    resolve_display_status,
    resolve_visible_scopes,
    scope_display_name,
    target_scope_for,
    upsert_scope,
)
from canvass.utils.auth import ActorContext
from canvass.utils.exceptions import ConflictError

logger = structlog.get_logger()


def apply_status_update(
    member: Member,
    actor: ActorContext,
    status: str,
    categories: list[str] | None = None,
    election_day_status: str | None = None,
    now: datetime | None = None,
) -> Member:
    """Apply a status write to a copy of ``member``.

    Args:
        member: Member snapshot read from the store.
        actor: Acting user; decides which scope is written.
        status: New status for the actor's scope.
        categories: Already-verified category IDs for the actor's scope, or
            None when the request carries no category change. When given,
            the write is category-only and the scope keeps its status.
        election_day_status: New election-day status, or None to keep it.
        now: Timestamp to stamp on the scope (defaults to now).

    Returns:
        The updated member. The input is not modified.

    Raises:
        ForbiddenError: If the actor may not write any scope.
    """
    scope_type, scope_id = target_scope_for(actor)
    now = now or utc_now()
    category_only = categories is not None

    updated = member.model_copy(deep=True)
    updated.status_scopes = upsert_scope(
        updated.status_scopes,
        scope_type=scope_type,
        scope_id=scope_id,
        status=status,
        actor_id=actor.actor_id,
        now=now,
        display_name=scope_display_name(actor, scope_type),
        # the global scope never carries categories
        categories=categories if scope_type != ScopeType.GLOBAL else None,
        update_status=not category_only,
    )
    updated.status = global_status(updated)

    if election_day_status:
        updated.election_day_status = election_day_status

    assignments = updated.assignments
    if actor.role == AppRole.TEAM_HEAD and assignments.head_id != actor.head_id:
        assignments.head_id = actor.head_id
    elif actor.role == AppRole.TEAM_LEADER:
        assignments.leader_id = scope_id
        if not assignments.head_id:
            assignments.head_id = actor.head_id

    updated.last_status_update = now
    updated.updated_by = actor.actor_id
    return updated


class StatusService:
    """Applies authorized status and category writes to members."""

    def __init__(
        self,
        members: MemberRepository | None = None,
        search: MemberSearchRepository | None = None,
        categories: CategoryRepository | None = None,
        history: StatusHistoryRepository | None = None,
    ):
        """Initialize the service.

        Args:
            members: Member repository.
            search: Search entry repository.
            categories: Category repository, used to verify category IDs.
            history: Status history repository.
        """
        self.members = members or MemberRepository()
        self.search = search or MemberSearchRepository()
        self.categories = categories or CategoryRepository()
        self.history = history or StatusHistoryRepository()
        self.index = IndexService(self.members, self.search, self.history)

    def accepted_categories(self, actor: ActorContext, category_ids: list[str]) -> list[str]:
        """Keep the category IDs owned by exactly the actor's scope.

        Unknown and foreign categories are dropped without error; a stale
        client-side category list is expected.
        """
        scope_type, scope_id = target_scope_for(actor)
        if scope_type == ScopeType.GLOBAL or not category_ids:
            return []

        found = self.categories.get_many(category_ids)
        accepted = [
            category_id
            for category_id in category_ids
            if category_id in found and found[category_id].belongs_to(scope_type, scope_id)
        ]

        if len(accepted) != len(category_ids):
            logger.info(
                "Dropped categories outside actor scope",
                actor_id=actor.actor_id,
                requested=category_ids,
                accepted=accepted,
            )
        return accepted

    def update_status(
        self,
        member_id: str,
        actor: ActorContext,
        request: UpdateMemberStatusRequest,
    ) -> dict[str, Any]:
        """Write the actor's scope of a member.

        Re-reads and re-applies the write when another request changed the
        member in between, up to ``MAX_WRITE_ATTEMPTS`` times.

        Returns:
            View of the updated member for the actor.

        Raises:
            ForbiddenError: If the actor may not write any scope.
            NotFoundError: If the member does not exist.
            ConflictError: If every attempt lost a concurrent write.
            StoreError: If the store rejects the transaction.
        """
        scope_type, scope_id = target_scope_for(actor)
        categories = (
            self.accepted_categories(actor, request.categories or [])
            if request.has_category_payload
            else None
        )

        for attempt in range(1, MAX_WRITE_ATTEMPTS + 1):
            member = self.members.get_by_id_or_raise(member_id)
            updated = apply_status_update(
                member,
                actor,
                status=request.status,
                categories=categories,
                election_day_status=request.election_day_status,
            )
            event = StatusHistoryEvent(
                member_id=member_id,
                status=request.status,
                note=request.note,
                updated_by=actor.actor_id,
                scope_type=scope_type,
                scope_id=scope_id,
                timestamp=updated.last_status_update,
            )

            try:
                self.index.commit_member(updated, expected_version=member.version, event=event)
            except ConflictError:
                if attempt == MAX_WRITE_ATTEMPTS:
                    logger.warning("Status update kept conflicting", member_id=member_id, attempts=attempt)
                    raise
                logger.info("Status update conflicted, retrying", member_id=member_id, attempt=attempt)
                continue

            logger.info(
                "Member status updated",
                member_id=member_id,
                actor_id=actor.actor_id,
                scope_type=scope_type,
                scope_id=scope_id,
                status=request.status,
                category_only=categories is not None,
            )
            return self.build_view(updated, actor)

        raise ConflictError("Member was modified by another request")

    def build_view(self, member: Member, actor: ActorContext) -> dict[str, Any]:
        """Member status as seen by ``actor``."""
        return {
            "member_id": member.id,
            "status": member.status,
            "display_status": resolve_display_status(member, actor),
            "election_day_status": member.election_day_status,
            "status_scopes": [
                scope.model_dump(mode="json") for scope in resolve_visible_scopes(member, actor)
            ],
            "assignments": member.assignments.model_dump(mode="json"),
        }
