"""Members API handler."""

import json
from typing import Any

import structlog
from pydantic import BaseModel as PydanticBaseModel
from pydantic import ValidationError as PydanticValidationError

from canvass.models.member import MemberStatus, UpdateMemberStatusRequest, UpdateMobilesRequest
from canvass.models.profile import HIERARCHY_ROLES, AppRole
from canvass.repositories.member import MemberRepository
from canvass.repositories.profile import ProfileRepository
from canvass.repositories.status_history import StatusHistoryRepository
from canvass.services.index_service import IndexService
from canvass.services.search_service import SearchService
from canvass.services.status_service import StatusService
from canvass.utils.auth import get_auth_context, get_path_param, resolve_actor
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
    decode_cursor,
    error,
    forbidden,
    not_found,
    paginated,
    success,
    unauthorized,
    validation_error,
)

logger = structlog.get_logger()

SEARCH_ROLES = frozenset({*HIERARCHY_ROLES, AppRole.VIEWER})


def handler(event: dict[str, Any], context: Any) -> dict:
    """Handle members API requests.

    Routes:
        GET   /members/search?q=&status=
        PATCH /members/{member_id}/status
        PATCH /members/{member_id}/mobiles
        GET   /members/{member_id}/history
    """
    try:
        http_method = event.get("httpMethod", "").upper()
        resource = event.get("resource", "")

        auth = get_auth_context(event)
        profiles = ProfileRepository()

        if resource.endswith("/search"):
            if http_method == "GET":
                actor = resolve_actor(auth, profiles, SEARCH_ROLES)
                return search_members(actor, event)
            return error("Method not allowed", 405)

        actor = resolve_actor(auth, profiles, HIERARCHY_ROLES)
        member_id = get_path_param(event, "member_id")

        if resource.endswith("/status"):
            if http_method == "PATCH":
                return update_status(actor, member_id, event)
            return error("Method not allowed", 405)

        if resource.endswith("/mobiles"):
            if http_method == "PATCH":
                return update_mobiles(actor, member_id, event)
            return error("Method not allowed", 405)

        if resource.endswith("/history"):
            if http_method == "GET":
                return list_history(member_id, event)
            return error("Method not allowed", 405)

        return error("Not found", 404)

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
        logger.error("Store failure in members handler", operation=e.operation, error=e.original_error)
        return error(e.message, e.status_code, e.error_code)
    except Exception as e:
        logger.exception("Members handler error", error=str(e))
        return error("Internal server error", 500)


def parse_body(event: dict, model: type[PydanticBaseModel]) -> Any:
    """Decode and validate a JSON request body.

    Raises:
        ValidationError: If the body is not a JSON object or fails validation.
    """
    try:
        body = json.loads(event.get("body") or "{}")
    except json.JSONDecodeError:
        raise ValidationError.for_field("body", "Invalid JSON body")

    if not isinstance(body, dict):
        raise ValidationError.for_field("body", "Body must be a JSON object")

    try:
        return model.model_validate(body)
    except PydanticValidationError as e:
        raise ValidationError.from_pydantic(e)


def update_status(actor, member_id: str, event: dict) -> dict:
    """Write the caller's status scope of a member.

    Body:
        status: New status (required)
        electionDayStatus: Election-day status (optional)
        note: History note (optional)
        categories: Category IDs for the caller's scope (optional list)
    """
    request = parse_body(event, UpdateMemberStatusRequest)
    result = StatusService().update_status(member_id, actor, request)
    return success(result)


def update_mobiles(actor, member_id: str, event: dict) -> dict:
    """Replace a member's mobile numbers."""
    request = parse_body(event, UpdateMobilesRequest)
    member = IndexService().update_mobiles(member_id, actor, request.mobiles)

    return success({
        "member_id": member.id,
        "mobile": member.contact.mobile,
        "mobiles": member.contact.mobiles,
    })


def list_history(member_id: str, event: dict) -> dict:
    """List a member's status history, newest first.

    Query params:
        limit: Max results (default 50, max 100)
        cursor: Pagination cursor
    """
    query_params = event.get("queryStringParameters", {}) or {}

    try:
        limit = min(int(query_params.get("limit", 50)), 100)
    except ValueError:
        raise ValidationError.for_field("limit", "limit must be a number")

    last_key = decode_cursor(query_params.get("cursor"))

    MemberRepository().get_by_id_or_raise(member_id)

    events, next_key = StatusHistoryRepository().list_for_member(member_id, limit=limit, last_key=last_key)

    return paginated([e.model_dump(mode="json") for e in events], limit, next_key)


def search_members(actor, event: dict) -> dict:
    """Search members by name, membership ID or phone.

    Query params:
        q: Search term
        status: Status filter, or "all"
    """
    query_params = event.get("queryStringParameters", {}) or {}
    term = query_params.get("q", "")
    status = query_params.get("status") or "all"

    if status != "all" and status not in {s.value for s in MemberStatus}:
        raise ValidationError.for_field("status", "Invalid status filter")

    return success(SearchService().search(term, status, actor))
