"""Authentication and actor context helpers."""

from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import Any

import structlog

from canvass.models.profile import ADMIN_ROLES, HIERARCHY_ROLES, AppRole, parse_role
from canvass.repositories.profile import ProfileRepository
from canvass.utils.exceptions import ForbiddenError, UnauthorizedError, ValidationError

logger = structlog.get_logger()


@dataclass
class AuthContext:
    """Verified caller identity extracted from the API Gateway event.

    ``role_claim`` is the role carried in the token. It is only a fallback;
    the stored profile decides the caller's role.
    """

    user_id: str
    email: str | None = None
    role_claim: str | None = None


@dataclass
class ActorContext:
    """Who is acting and which scopes they own, read fresh per request."""

    actor_id: str
    role: AppRole
    display_name: str | None = None
    head_id: str | None = None
    leader_ids: list[str] = field(default_factory=list)

    @property
    def is_admin(self) -> bool:
        """Whether the actor is a super-admin or admin."""
        return self.role in ADMIN_ROLES

    @property
    def leader_scope_ids(self) -> list[str]:
        """Leader scope IDs in priority order: profile leader IDs, then own ID."""
        ids: list[str] = []
        for scope_id in [*self.leader_ids, self.actor_id]:
            if scope_id and scope_id not in ids:
                ids.append(scope_id)
        return ids

    @property
    def primary_leader_scope_id(self) -> str:
        """The leader scope this actor writes to."""
        return self.leader_scope_ids[0]


def get_auth_context(event: dict[str, Any]) -> AuthContext:
    """Extract authentication context from API Gateway event.

    Args:
        event: API Gateway event dict.

    Returns:
        AuthContext with user information.

    Raises:
        UnauthorizedError: If no user ID is present.
    """
    request_context = event.get("requestContext", {}) or {}
    authorizer = request_context.get("authorizer", {}) or {}

    # HTTP APIs nest Lambda authorizer output under "lambda"
    context = authorizer.get("lambda", authorizer)

    user_id = context.get("userId") or context.get("user_id") or context.get("sub")

    if not user_id:
        logger.warning("No user ID in auth context", authorizer=authorizer)
        raise UnauthorizedError("No user ID in authentication context")

    return AuthContext(
        user_id=user_id,
        email=context.get("email") or None,
        role_claim=context.get("role") or None,
    )


def resolve_actor(
    auth: AuthContext,
    profiles: ProfileRepository,
    allowed_roles: Iterable[AppRole] = HIERARCHY_ROLES,
) -> ActorContext:
    """Load the caller's profile and build the actor context.

    Args:
        auth: Verified caller identity.
        profiles: Profile repository.
        allowed_roles: Roles permitted to call the operation.

    Returns:
        ActorContext for the caller.

    Raises:
        UnauthorizedError: If the profile is missing or the role is unknown.
        ForbiddenError: If the role is not allowed for this operation.
    """
    profile = profiles.get_by_user_id(auth.user_id)
    if not profile:
        logger.warning("User profile not found", user_id=auth.user_id)
        raise UnauthorizedError("User profile not found")

    role = parse_role(profile.role) if profile.role else parse_role(auth.role_claim)
    if role is None:
        logger.warning("Unrecognized role", user_id=auth.user_id, role=profile.role or auth.role_claim)
        raise UnauthorizedError("User role is not recognized")

    if role not in set(allowed_roles):
        logger.warning("Role not allowed", user_id=auth.user_id, role=role.value)
        raise ForbiddenError()

    return ActorContext(
        actor_id=auth.user_id,
        role=role,
        display_name=profile.display_name,
        head_id=profile.head_id or None,
        leader_ids=list(profile.leader_ids),
    )


def get_path_param(event: dict[str, Any], name: str) -> str:
    """Extract a required path parameter.

    Raises:
        ValidationError: If the parameter is missing.
    """
    path_params = event.get("pathParameters", {}) or {}
    value = path_params.get(name)

    if not value:
        raise ValidationError.for_field(name, f"{name} is required")

    return value
