"""Authentication helpers.

Two credentials are handled here:
- Bearer tokens on the rate-limited API. The token is the caller identity;
  whether it may use an endpoint is decided by the quota store, so this
  module only checks the header shape.
- Admin API keys (``X-API-Key``) protecting the quota admin routes, validated
  against a comma-separated list from environment variables.
"""

from __future__ import annotations

import logging
from typing import Annotated

from fastapi import Header, HTTPException, Request, status

from quota_gate.core.config import AppSettings, settings
from quota_gate.core.errors import AuthenticationAppError
from quota_gate.utils.endpoint import hash_identity

logger = logging.getLogger(__name__)

BEARER_PREFIX = "Bearer "


def parse_api_keys(keys_string: str | None) -> set[str]:
    """Parse comma-separated API keys into a set.

    Args:
        keys_string: Comma-separated string of API keys, or None.

    Returns:
        Set of trimmed, non-empty API keys.

    Examples:
        >>> parse_api_keys("key1,key2,key3")
        {'key1', 'key2', 'key3'}
        >>> parse_api_keys(None)
        set()
    """
    if not keys_string:
        return set()

    keys = {key.strip() for key in keys_string.split(",") if key.strip()}
    return keys


def extract_bearer_token(authorization: str | None) -> str | None:
    """Return the token from an ``Authorization: Bearer <token>`` header.

    Returns None when the header is missing, uses another scheme, or carries
    no token.
    """
    if not authorization or not authorization.startswith(BEARER_PREFIX):
        return None
    token = authorization[len(BEARER_PREFIX):].strip()
    if not token or " " in token:
        return None
    return token


async def require_bearer_token(
    authorization: Annotated[str | None, Header()] = None,
) -> str:
    """FastAPI dependency returning the caller's bearer token.

    Raises:
        HTTPException: 401 Unauthorized if the header is missing or malformed.
    """
    token = extract_bearer_token(authorization)
    if token is None:
        logger.warning(
            "auth.invalid_bearer",
            extra={"authorization_present": authorization is not None},
        )
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing or invalid Authorization header",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return token


def validate_api_key(provided_key: str, app_settings: AppSettings | None = None) -> None:
    """Validate that provided admin API key matches configured keys.

    Pure validation logic without FastAPI dependencies for easy testing.

    Args:
        provided_key: API key to validate.
        app_settings: Settings of the running app; defaults to the global settings.

    Raises:
        AuthenticationAppError: If key is invalid or authentication is required but no keys configured.
    """
    cfg = app_settings or settings.app
    if not cfg.admin_api_key_required:
        return

    valid_keys = parse_api_keys(cfg.admin_api_keys)

    if not valid_keys:
        logger.error(
            "api_key_validation_failed",
            extra={
                "reason": "api_keys_not_configured",
                "auth_required": cfg.admin_api_key_required,
            },
        )
        raise AuthenticationAppError(
            code="api_keys_not_configured",
            message="Admin API key authentication is enabled but no valid keys are configured",
            details={
                "hint": "Set APP_ADMIN_API_KEYS or disable admin auth with APP_ADMIN_API_KEY_REQUIRED=false"
            },
        )

    if provided_key not in valid_keys:
        logger.warning(
            "api_key_validation_failed",
            extra={
                "reason": "invalid_api_key",
                "api_key_hash": hash_identity(provided_key),
            },
        )
        raise AuthenticationAppError(
            code="invalid_api_key",
            message="Invalid or missing API key",
        )


async def verify_api_key(
    request: Request,
    x_api_key: Annotated[str | None, Header(alias="X-API-Key")] = None,
) -> None:
    """FastAPI dependency for admin API key authentication.

    Usage:
        @router.put("/admin/quotas", dependencies=[Depends(verify_api_key)])

    Raises:
        HTTPException: 403 Forbidden if authentication fails.
    """
    app_settings = request.app.state.settings.app
    if not app_settings.admin_api_key_required:
        logger.debug("auth.skipped", extra={"reason": "auth_required_false"})
        return

    if not x_api_key:
        logger.warning("auth.missing_key", extra={"api_key_present": False})
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Missing API key. Provide X-API-Key header.",
        )

    try:
        validate_api_key(x_api_key, app_settings)
    except AuthenticationAppError as exc:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=exc.message,
        ) from exc

    logger.info("auth.success", extra={"api_key_hash": hash_identity(x_api_key)})
