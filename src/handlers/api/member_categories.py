"""Member categories API handler."""

import json
from typing import Any

import structlog
from pydantic import ValidationError as PydanticValidationError

from canvass.models.category import CreateCategoryRequest, UpdateCategoryRequest
from canvass.models.profile import HIERARCHY_ROLES, AppRole
from canvass.repositories.profile import ProfileRepository
from canvass.services.category_service import CategoryService
from canvass.utils.auth import ActorContext, get_auth_context, resolve_actor
from canvass.utils.exceptions import (
    ConflictError,
    ForbiddenError,
    NotFoundError,
    StoreError,
    UnauthorizedError,
    ValidationError,
)
from canvass.utils.responses import (
    conflict,
    created,
    error,
    forbidden,
    not_found,
    success,
    unauthorized,
    validation_error,
)

logger = structlog.get_logger()

CREATE_ROLES = frozenset({AppRole.TEAM_HEAD, AppRole.TEAM_LEADER})


def handler(event: dict[str, Any], context: Any) -> dict:
    """Handle member category requests.

    Routes:
        GET    /member-categories?scopeType=&scopeId=
        POST   /member-categories
        PATCH  /member-categories/{category_id}
        DELETE /member-categories/{category_id}
    """
    try:
        http_method = event.get("httpMethod", "").upper()
        path_params = event.get("pathParameters", {}) or {}
        category_id = path_params.get("category_id")

        auth = get_auth_context(event)
        allowed_roles = CREATE_ROLES if http_method == "POST" else HIERARCHY_ROLES
        actor = resolve_actor(auth, ProfileRepository(), allowed_roles)

        service = CategoryService()

        if http_method == "GET" and not category_id:
            return list_categories(service, actor, event)
        elif http_method == "POST" and not category_id:
            return create_category(service, actor, event)
        elif http_method == "PATCH" and category_id:
            return update_category(service, actor, category_id, event)
        elif http_method == "DELETE" and category_id:
            return delete_category(service, actor, category_id)
        else:
            return error("Method not allowed", 405)

    except ValidationError as e:
        return validation_error(e.errors, e.message)
    except NotFoundError as e:
        return not_found(e.resource_type, e.resource_id)
    except UnauthorizedError as e:
        return unauthorized(e.message)
    except ForbiddenError as e:
        return forbidden(e.message)
    except ConflictError as e:
        return conflict(e.message)
    except StoreError as e:
        logger.error("Store failure in categories handler", operation=e.operation, error=e.original_error)
        return error(e.message, e.status_code, e.error_code)
    except Exception as e:
        logger.exception("Member categories handler error", error=str(e))
        return error("Internal server error", 500)


def _load_body(event: dict) -> dict:
    try:
        body = json.loads(event.get("body") or "{}")
    except json.JSONDecodeError:
        raise ValidationError.for_field("body", "Invalid JSON body")
    if not isinstance(body, dict):
        raise ValidationError.for_field("body", "Body must be a JSON object")
    return body


def list_categories(service: CategoryService, actor: ActorContext, event: dict) -> dict:
    """List categories.

    Query params:
        scopeType: head or leader (admins only)
        scopeId: Scope owner ID (admins only)
    """
    query_params = event.get("queryStringParameters", {}) or {}

    categories = service.list_categories(
        actor,
        scope_type=query_params.get("scopeType"),
        scope_id=query_params.get("scopeId"),
    )

    return success({"categories": [c.model_dump(mode="json") for c in categories]})


def create_category(service: CategoryService, actor: ActorContext, event: dict) -> dict:
    """Create a category in the caller's scope."""
    try:
        request = CreateCategoryRequest.model_validate(_load_body(event))
    except PydanticValidationError as e:
        return validation_error([
            {"field": ".".join(str(x) for x in err["loc"]), "message": err["msg"]}
            for err in e.errors()
        ])

    category = service.create(actor, request)
    return created({"category": category.model_dump(mode="json")})


def update_category(
    service: CategoryService,
    actor: ActorContext,
    category_id: str,
    event: dict,
) -> dict:
    """Update a category's name, color or description."""
    # Ownership is checked before the body
    service.get_managed(actor, category_id)

    try:
        request = UpdateCategoryRequest.model_validate(_load_body(event))
    except PydanticValidationError as e:
        return validation_error([
            {"field": ".".join(str(x) for x in err["loc"]), "message": err["msg"]}
            for err in e.errors()
        ])

    category = service.update(actor, category_id, request)
    return success({"category": category.model_dump(mode="json")})


def delete_category(service: CategoryService, actor: ActorContext, category_id: str) -> dict:
    """Delete a category and clear it from members."""
    cleaned = service.delete(actor, category_id)
    return success({"deleted": True, "members_updated": cleaned})
