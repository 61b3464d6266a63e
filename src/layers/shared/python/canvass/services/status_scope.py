"""Status scope resolution and mutation rules.

A member's status is tracked independently per scope: one global entry,
plus any number of head and leader entries. These functions decide which
entry a viewer sees, which entries they may see at all, and which entry an
actor is allowed to write. They operate on point-in-time member snapshots
and never touch the store.
"""

from datetime import datetime
from typing import Protocol

from canvass.models.member import (
    GLOBAL_SCOPE_DISPLAY_NAME,
    MemberAssignments,
    ScopeType,
    StatusScope,
    dedupe_scopes,
    scope_key,
)
from canvass.models.profile import AppRole
from canvass.utils.auth import ActorContext
from canvass.utils.exceptions import ForbiddenError

HEAD_SCOPE_DISPLAY_NAME = "الرئيس"
LEADER_SCOPE_DISPLAY_NAME = "القائد"


class ScopedRecord(Protocol):
    """A member or search entry carrying scopes and assignments."""

    status: str
    status_scopes: list[StatusScope]
    assignments: MemberAssignments


def find_scope(scopes: list[StatusScope], scope_type: str, scope_id: str | None) -> StatusScope | None:
    """Return the entry for (scope_type, scope_id), if present."""
    key = scope_key(scope_type, scope_id)
    for scope in scopes:
        if scope.key == key:
            return scope
    return None


def global_status(record: ScopedRecord) -> str:
    """Status of the global scope, falling back to the mirrored field."""
    scope = find_scope(record.status_scopes, ScopeType.GLOBAL, None)
    return scope.status if scope else record.status


def resolve_display_status(record: ScopedRecord, viewer: ActorContext) -> str:
    """Pick the status a viewer should see for a member.

    Admins see the global status. A head sees its own head scope. A leader
    sees the first of its leader scopes that exists, then its head's scope.
    Everything else falls back to global.
    """
    if viewer.is_admin:
        return global_status(record)

    if viewer.role == AppRole.TEAM_HEAD and viewer.head_id:
        scope = find_scope(record.status_scopes, ScopeType.HEAD, viewer.head_id)
        return scope.status if scope else global_status(record)

    if viewer.role == AppRole.TEAM_LEADER:
        for scope_id in viewer.leader_scope_ids:
            scope = find_scope(record.status_scopes, ScopeType.LEADER, scope_id)
            if scope:
                return scope.status
        if viewer.head_id:
            scope = find_scope(record.status_scopes, ScopeType.HEAD, viewer.head_id)
            if scope:
                return scope.status

    return global_status(record)


def resolve_visible_scopes(record: ScopedRecord, viewer: ActorContext) -> list[StatusScope]:
    """Scope entries a viewer is allowed to see, in stored order."""
    if viewer.is_admin:
        return list(record.status_scopes)

    def visible(scope: StatusScope) -> bool:
        if scope.scope_type == ScopeType.GLOBAL:
            return True

        if viewer.role == AppRole.TEAM_HEAD and viewer.head_id:
            if scope.scope_type == ScopeType.HEAD:
                return scope.scope_id == viewer.head_id
            # Leader scopes are hidden once the member is assigned to another head
            assigned_head = record.assignments.head_id
            return assigned_head is None or assigned_head == viewer.head_id

        if viewer.role == AppRole.TEAM_LEADER:
            if scope.scope_type == ScopeType.LEADER:
                return scope.scope_id in viewer.leader_scope_ids
            return viewer.head_id is not None and scope.scope_id == viewer.head_id

        return False

    return [scope for scope in record.status_scopes if visible(scope)]


def target_scope_for(actor: ActorContext) -> tuple[str, str | None]:
    """The single scope an actor may write.

    Raises:
        ForbiddenError: If the actor has no writable scope.
    """
    if actor.is_admin:
        return ScopeType.GLOBAL.value, None

    if actor.role in (AppRole.TEAM_HEAD, AppRole.TEAM_LEADER) and not actor.head_id:
        raise ForbiddenError(
            message="Your account is not linked to a team head",
            resource_type="StatusScope",
            action="update",
        )

    if actor.role == AppRole.TEAM_HEAD:
        return ScopeType.HEAD.value, actor.head_id

    if actor.role == AppRole.TEAM_LEADER:
        return ScopeType.LEADER.value, actor.primary_leader_scope_id

    raise ForbiddenError(
        message="You don't have permission to update this member's status",
        resource_type="StatusScope",
        action="update",
    )


def can_manage_status(viewer: ActorContext) -> bool:
    """Whether the viewer may write any status scope."""
    try:
        target_scope_for(viewer)
    except ForbiddenError:
        return False
    return True


def scope_display_name(actor: ActorContext, scope_type: str) -> str:
    """Display name stored on a scope written by ``actor``."""
    if scope_type == ScopeType.HEAD:
        return actor.display_name or HEAD_SCOPE_DISPLAY_NAME
    if scope_type == ScopeType.LEADER:
        return actor.display_name or LEADER_SCOPE_DISPLAY_NAME
    return GLOBAL_SCOPE_DISPLAY_NAME


def upsert_scope(
    scopes: list[StatusScope],
    scope_type: str,
    scope_id: str | None,
    status: str,
    actor_id: str,
    now: datetime,
    display_name: str | None = None,
    categories: list[str] | None = None,
    update_status: bool = True,
) -> list[StatusScope]:
    """Write one scope entry, returning a new scope list.

    The entry is stamped with ``now`` and ``actor_id``. With
    ``update_status=False`` an existing entry keeps its status (a new entry
    still takes ``status``). ``categories=None`` keeps the existing
    categories. The result holds one entry per scope key and always a
    global entry.
    """
    existing = find_scope(scopes, scope_type, scope_id)

    if existing and not update_status:
        next_status = existing.status
    else:
        next_status = status

    if categories is None:
        next_categories = list(existing.categories) if existing else []
    else:
        next_categories = list(categories)

    entry = StatusScope(
        scope_type=scope_type,
        scope_id=scope_id,
        status=next_status,
        updated_at=now,
        updated_by=actor_id,
        display_name=display_name,
        categories=next_categories,
    )

    updated = [scope.model_copy(deep=True) for scope in scopes]
    if existing:
        updated = [entry if scope.key == entry.key else scope for scope in updated]
    else:
        updated.append(entry)

    return dedupe_scopes(updated)


def remove_category(scopes: list[StatusScope], category_id: str) -> tuple[list[StatusScope], bool]:
    """Drop a category ID from every scope entry.

    Returns:
        Tuple of (new scope list, whether anything changed).
    """
    changed = False
    updated: list[StatusScope] = []
    for scope in scopes:
        if category_id in scope.categories:
            changed = True
            scope = scope.model_copy(
                update={"categories": [c for c in scope.categories if c != category_id]},
                deep=True,
            )
        updated.append(scope)
    return updated, changed
