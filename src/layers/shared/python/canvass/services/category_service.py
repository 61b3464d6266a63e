"""Member category management.

Categories belong to exactly one head or leader scope. Only that scope's
owner (or an admin) may change them, and deleting one strips its ID from
every member that references it.
"""

import structlog

from canvass.models.category import (
    CategoryScopeType,
    CreateCategoryRequest,
    MemberCategory,
    UpdateCategoryRequest,
)
from canvass.models.profile import AppRole
from canvass.repositories.category import CategoryRepository
from canvass.repositories.member import MemberRepository, MemberSearchRepository
from canvass.search.normalize import arabic_sort_key
from canvass.services.index_service import MAX_WRITE_ATTEMPTS, IndexService
from canvass.services.status_scope import remove_category
from canvass.utils.auth import ActorContext
from canvass.utils.exceptions import ConflictError, ForbiddenError, NotFoundError, ValidationError

logger = structlog.get_logger()

_SCOPE_TYPES = {s.value for s in CategoryScopeType}


def owned_scope(actor: ActorContext) -> tuple[str, str]:
    """The category scope owned by a head or leader.

    Raises:
        ForbiddenError: If the actor owns no category scope.
    """
    if actor.role == AppRole.TEAM_HEAD:
        if not actor.head_id:
            raise ForbiddenError(
                message="Your account is not linked to a team head",
                resource_type="Category",
                action="access",
            )
        return CategoryScopeType.HEAD.value, actor.head_id

    if actor.role == AppRole.TEAM_LEADER:
        return CategoryScopeType.LEADER.value, actor.primary_leader_scope_id

    raise ForbiddenError(
        message="Only team heads and team leaders own categories",
        resource_type="Category",
        action="access",
    )


def sort_categories(categories: list[MemberCategory]) -> list[MemberCategory]:
    """Sort categories by name using Arabic-aware ordering."""
    return sorted(categories, key=lambda c: arabic_sort_key(c.name))


class CategoryService:
    """Scoped CRUD for member categories."""

    def __init__(
        self,
        categories: CategoryRepository | None = None,
        members: MemberRepository | None = None,
        search: MemberSearchRepository | None = None,
    ):
        """Initialize the service."""
        self.categories = categories or CategoryRepository()
        self.members = members or MemberRepository()
        self.index = IndexService(self.members, search or MemberSearchRepository())

    def create(self, actor: ActorContext, request: CreateCategoryRequest) -> MemberCategory:
        """Create a category in the actor's own scope."""
        scope_type, scope_id = owned_scope(actor)

        category = MemberCategory(
            name=request.name,
            color=request.color,
            description=request.description,
            scope_type=scope_type,
            scope_id=scope_id,
            created_by=actor.actor_id,
        )
        self.categories.create_category(category)

        logger.info(
            "Category created",
            category_id=category.id,
            scope_type=scope_type,
            scope_id=scope_id,
            created_by=actor.actor_id,
        )
        return category

    def list_categories(
        self,
        actor: ActorContext,
        scope_type: str | None = None,
        scope_id: str | None = None,
    ) -> list[MemberCategory]:
        """List categories visible to the actor.

        Admins get every category, or one scope's when both ``scope_type``
        and ``scope_id`` are given. Heads and leaders always get their own
        scope's categories.

        Raises:
            ValidationError: If an admin passes an invalid scope filter.
            ForbiddenError: If the actor owns no category scope.
        """
        if actor.is_admin:
            if not scope_type and not scope_id:
                return sort_categories(self.categories.list_all())
            if scope_type not in _SCOPE_TYPES:
                raise ValidationError.for_field("scopeType", "scopeType must be 'head' or 'leader'")
            if not scope_id:
                raise ValidationError.for_field("scopeId", "scopeId is required with scopeType")
            return sort_categories(self.categories.list_by_scope(scope_type, scope_id))

        own_type, own_id = owned_scope(actor)
        return sort_categories(self.categories.list_by_scope(own_type, own_id))

    def get_managed(self, actor: ActorContext, category_id: str) -> MemberCategory:
        """Load a category the actor may manage.

        Raises:
            NotFoundError: If the category does not exist.
            ForbiddenError: If it belongs to another scope.
        """
        category = self.categories.get_by_id_or_raise(category_id)
        if actor.is_admin:
            return category

        scope_type, scope_id = owned_scope(actor)
        if not category.belongs_to(scope_type, scope_id):
            logger.warning(
                "Category access denied",
                actor_id=actor.actor_id,
                category_id=category_id,
                category_scope=f"{category.scope_type}:{category.scope_id}",
            )
            raise ForbiddenError(
                message="You don't have permission to manage this category",
                resource_type="Category",
                action="manage",
            )
        return category

    def update(
        self,
        actor: ActorContext,
        category_id: str,
        request: UpdateCategoryRequest,
    ) -> MemberCategory:
        """Apply name/color/description changes. Scope never changes."""
        category = self.get_managed(actor, category_id)

        changes = request.changes()
        if not changes:
            return category

        for field_name, value in changes.items():
            setattr(category, field_name, value)
        self.categories.update_category(category)

        logger.info("Category updated", category_id=category_id, fields=sorted(changes))
        return category

    def delete(self, actor: ActorContext, category_id: str) -> int:
        """Delete a category and remove it from every member.

        References are cleared before the category itself is deleted, so a
        failed cleanup leaves the category in place for a retry.

        Returns:
            Number of members whose scopes were cleaned.
        """
        self.get_managed(actor, category_id)

        cleaned = self.remove_from_members(category_id)

        if not self.categories.delete_category(category_id):
            raise NotFoundError("Category", category_id)

        logger.info(
            "Category deleted",
            category_id=category_id,
            deleted_by=actor.actor_id,
            members_cleaned=cleaned,
        )
        return cleaned

    def remove_from_members(self, category_id: str) -> int:
        """Strip a category ID from every member's scopes and search entry."""
        cleaned = 0
        for member in self.members.list_with_category(category_id):
            if self._remove_from_member(member.id, category_id):
                cleaned += 1
        return cleaned

    def _remove_from_member(self, member_id: str, category_id: str) -> bool:
        for attempt in range(1, MAX_WRITE_ATTEMPTS + 1):
            member = self.members.get_by_id(member_id)
            if not member:
                return False

            scopes, changed = remove_category(member.status_scopes, category_id)
            if not changed:
                return False

            expected_version = member.version
            member.status_scopes = scopes
            try:
                self.index.commit_member(member, expected_version=expected_version)
                return True
            except ConflictError:
                if attempt == MAX_WRITE_ATTEMPTS:
                    raise
                logger.info("Category cleanup conflicted, retrying", member_id=member_id, attempt=attempt)

        return False
