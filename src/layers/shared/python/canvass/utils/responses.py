"""API Gateway proxy responses.

Bodies are JSON with Arabic kept as UTF-8 text rather than ``\\u`` escapes.
Paged listings carry an opaque cursor wrapping the store's last evaluated key.
"""

import base64
import binascii
import json
import os
from datetime import datetime
from typing import Any

from pydantic import BaseModel as PydanticBaseModel

from canvass.utils.exceptions import ValidationError

# Localhost origins are also accepted on the dev stage
_ALLOWED_ORIGIN = os.environ.get("CORS_ALLOWED_ORIGIN", "https://dev.canvass.app")
_STAGE = os.environ.get("STAGE", "dev")


def get_cors_headers(request_origin: str | None = None) -> dict:
    """Response headers for the canvassing web app's origin."""
    origin = _ALLOWED_ORIGIN
    if _STAGE == "dev" and request_origin and request_origin.startswith("http://localhost:"):
        origin = request_origin

    return {
        "Access-Control-Allow-Origin": origin,
        "Access-Control-Allow-Headers": "Content-Type,Authorization,X-Amz-Date,X-Api-Key,X-Amz-Security-Token",
        "Access-Control-Allow-Methods": "GET,POST,PATCH,DELETE,OPTIONS",
        "Access-Control-Allow-Credentials": "true",
        "Content-Type": "application/json; charset=utf-8",
    }


CORS_HEADERS = get_cors_headers()


def _json_default(obj: Any) -> Any:
    if isinstance(obj, datetime):
        return obj.isoformat()
    if isinstance(obj, PydanticBaseModel):
        return obj.model_dump(mode="json")
    if isinstance(obj, (set, frozenset)):
        # token sets
        return sorted(obj)
    raise TypeError(f"Object of type {type(obj).__name__} is not JSON serializable")


def _response(status_code: int, body: Any) -> dict:
    return {
        "statusCode": status_code,
        "headers": CORS_HEADERS,
        "body": json.dumps(body, default=_json_default, ensure_ascii=False),
    }


def success(data: Any, status_code: int = 200) -> dict:
    """Create a successful API response.

    Args:
        data: Response data (dict, list, or Pydantic model).
        status_code: HTTP status code (default 200).
    """
    if isinstance(data, PydanticBaseModel):
        data = data.model_dump(mode="json")
    return _response(status_code, data)


def created(data: Any) -> dict:
    """Create a 201 Created response."""
    return success(data, status_code=201)


def encode_cursor(last_key: dict | None) -> str | None:
    """Wrap a last evaluated key as an opaque cursor."""
    if not last_key:
        return None
    return base64.urlsafe_b64encode(json.dumps(last_key, ensure_ascii=False).encode()).decode()


def decode_cursor(cursor: str | None) -> dict | None:
    """Unwrap a cursor produced by ``encode_cursor``.

    Raises:
        ValidationError: If the cursor is not one we issued.
    """
    if not cursor:
        return None
    try:
        last_key = json.loads(base64.urlsafe_b64decode(cursor.encode()).decode())
    except (binascii.Error, ValueError, UnicodeDecodeError):
        raise ValidationError.for_field("cursor", "Invalid cursor")
    if not isinstance(last_key, dict):
        raise ValidationError.for_field("cursor", "Invalid cursor")
    return last_key


def paginated(items: list[Any], limit: int, last_key: dict | None) -> dict:
    """A page of a listing plus the cursor for the next one."""
    return success({
        "items": items,
        "pagination": {"limit": limit, "next_cursor": encode_cursor(last_key)},
    })


def error(
    message: str,
    status_code: int = 500,
    error_code: str | None = None,
    details: dict | None = None,
) -> dict:
    """Create an error API response.

    Args:
        message: Error message shown to the caller.
        status_code: HTTP status code.
        error_code: Machine-readable error code.
        details: Additional error details.
    """
    body: dict[str, Any] = {"error": True, "message": message}
    if error_code:
        body["error_code"] = error_code
    if details:
        body["details"] = details
    return _response(status_code, body)


def validation_error(errors: list[dict], message: str = "Validation failed") -> dict:
    """400 listing the offending fields."""
    return error(message=message, status_code=400, error_code="VALIDATION_ERROR", details={"errors": errors})


def not_found(resource_type: str, resource_id: str) -> dict:
    """404 for a member, category or profile that does not exist."""
    return error(
        message=f"{resource_type} with ID '{resource_id}' not found",
        status_code=404,
        error_code="NOT_FOUND",
        details={"resource_type": resource_type, "resource_id": resource_id},
    )


def unauthorized(message: str = "Authentication required") -> dict:
    return error(message=message, status_code=401, error_code="UNAUTHORIZED")


def forbidden(message: str = "You don't have permission to perform this action") -> dict:
    return error(message=message, status_code=403, error_code="FORBIDDEN")


def conflict(message: str = "Member was modified by another request") -> dict:
    """409 after optimistic-locking retries ran out."""
    return error(message=message, status_code=409, error_code="CONFLICT")
