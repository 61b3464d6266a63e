"""JWT Authorizer for API Gateway.

Verifies Cognito-issued bearer tokens and forwards the caller identity and
role claim to the API handlers. The role claim is only a hint; handlers
read the stored profile for the authoritative role.
"""

import os
from typing import Any

import jwt
import structlog

logger = structlog.get_logger()

JWKS_CACHE_TTL = 3600  # 1 hour

# One JWKS client per issuer, kept for the life of the container
_jwks_clients: dict[str, jwt.PyJWKClient] = {}


def handler(event: dict[str, Any], context: Any) -> dict:
    """Lambda authorizer handler for API Gateway.

    Args:
        event: API Gateway authorizer event.
        context: Lambda context.

    Returns:
        IAM policy document; allow policies carry the caller context.
    """
    try:
        token = extract_token(event)
        if not token:
            logger.warning("No token provided")
            return _policy(event, "Deny")

        user_pool_id = os.environ.get("COGNITO_USER_POOL_ID")
        region = os.environ.get("COGNITO_REGION", os.environ.get("AWS_REGION", "us-east-1"))

        if not user_pool_id:
            logger.error("COGNITO_USER_POOL_ID not configured")
            return _policy(event, "Deny")

        claims = verify_token(token, f"https://cognito-idp.{region}.amazonaws.com/{user_pool_id}")
        if not claims:
            return _policy(event, "Deny")

        auth_context = build_auth_context(claims)
        if not auth_context["userId"]:
            logger.warning("Token has no subject")
            return _policy(event, "Deny")

        logger.info("Authorization successful", user_id=auth_context["userId"], role=auth_context["role"])
        return _policy(event, "Allow", auth_context)

    except Exception as e:
        logger.exception("Authorizer error", error=str(e))
        return _policy(event, "Deny")


def extract_token(event: dict) -> str | None:
    """Pull the bearer token from the headers or the identity source."""
    headers = {k.lower(): v for k, v in (event.get("headers") or {}).items()}
    candidates = [headers.get("authorization")]

    identity_source = event.get("identitySource")
    if isinstance(identity_source, list):
        candidates.extend(identity_source)
    elif isinstance(identity_source, str):
        candidates.append(identity_source)

    # REST TOKEN authorizers put the header value here
    candidates.append(event.get("authorizationToken"))

    for value in candidates:
        if not value:
            continue
        token = value[len("Bearer "):] if value.startswith("Bearer ") else value
        token = token.strip()
        if token:
            return token
    return None


def _jwks_client(issuer: str) -> jwt.PyJWKClient:
    client = _jwks_clients.get(issuer)
    if client is None:
        client = jwt.PyJWKClient(
            f"{issuer}/.well-known/jwks.json",
            cache_keys=True,
            lifespan=JWKS_CACHE_TTL,
        )
        _jwks_clients[issuer] = client
    return client


def verify_token(token: str, issuer: str) -> dict | None:
    """Verify a token's signature, issuer and expiry.

    Returns:
        Token claims if valid, None otherwise.
    """
    try:
        signing_key = _jwks_client(issuer).get_signing_key_from_jwt(token)
    except jwt.PyJWKClientError as e:
        logger.warning("No signing key for token", error=str(e))
        return None
    except jwt.DecodeError:
        logger.warning("Failed to decode token header")
        return None

    try:
        return jwt.decode(
            token,
            signing_key.key,
            algorithms=["RS256"],
            issuer=issuer,
            # Cognito access tokens carry no audience
            options={"verify_aud": False},
        )
    except jwt.ExpiredSignatureError:
        logger.warning("Token has expired")
        return None
    except jwt.InvalidTokenError as e:
        logger.warning("Invalid token", error=str(e))
        return None


def build_auth_context(claims: dict) -> dict[str, str]:
    """Map verified token claims to the authorizer context.

    API Gateway only passes string values through, so missing claims become
    empty strings.
    """
    role = claims.get("custom:role")
    if not role:
        groups = claims.get("cognito:groups") or []
        role = groups[0] if groups else ""

    return {
        "userId": claims.get("sub") or "",
        "email": claims.get("email") or "",
        "role": role,
    }


def _policy(event: dict, effect: str, context: dict | None = None) -> dict:
    """Build an IAM policy for the invoked API.

    Allow policies cover every route of the API stage so the cached result
    can be reused across routes.
    """
    method_arn = event.get("methodArn", event.get("routeArn", "*"))

    resource = method_arn
    if effect == "Allow":
        arn_parts = method_arn.split("/")
        resource = f"{'/'.join(arn_parts[:2])}/*" if len(arn_parts) >= 2 else "*"

    policy: dict[str, Any] = {
        "principalId": (context or {}).get("userId") or "unauthorized",
        "policyDocument": {
            "Version": "2012-10-17",
            "Statement": [
                {
                    "Action": "execute-api:Invoke",
                    "Effect": effect,
                    "Resource": resource,
                }
            ],
        },
    }
    if context:
        policy["context"] = context
    return policy
