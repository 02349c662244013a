from datetime import datetime, timedelta, timezone
import logging
from typing import Any, Dict, Optional, cast

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
import jwt
from jwt import PyJWTError

from .core.config import settings
from .core.exceptions import UnauthorizedException

logger = logging.getLogger(__name__)

bearer_scheme_optional = HTTPBearer(auto_error=False)


def _secret_value(secret_obj: Any) -> str:
    getter = getattr(secret_obj, "get_secret_value", None)
    if callable(getter):
        return cast(str, getter())
    return cast(str, secret_obj)


def decode_access_token(token: str) -> Dict[str, Any]:
    """Decode and verify a JWT access token."""
    payload_raw = jwt.decode(
        token,
        _secret_value(settings.secret_key),
        algorithms=[settings.algorithm],
        options={"verify_aud": False},
    )
    return cast(Dict[str, Any], payload_raw)


def create_access_token(data: Dict[str, Any], expires_delta: Optional[timedelta] = None) -> str:
    """
    Create a JWT access token.

    Args:
        data: The data to encode in the token; ``sub`` is the user id
        expires_delta: Optional expiration time delta

    Returns:
        str: The encoded JWT token
    """
    to_encode = data.copy()
    if expires_delta:
        expire = datetime.now(timezone.utc) + expires_delta
    else:
        expire = datetime.now(timezone.utc) + timedelta(
            minutes=settings.access_token_expire_minutes
        )
    to_encode.update({"exp": expire})

    encoded_jwt = cast(
        str,
        jwt.encode(to_encode, _secret_value(settings.secret_key), algorithm=settings.algorithm),
    )
    logger.debug("Created access token for user: %s", data.get("sub"))
    return encoded_jwt


async def get_current_user_id(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme_optional),
) -> str:
    """
    Dependency returning the authenticated caller's user id.

    Raises:
        HTTPException: 401 with code ``unauthenticated`` when the token is
            missing, expired or invalid
    """
    if credentials is None or not credentials.credentials:
        raise UnauthorizedException(
            "The function must be called while authenticated."
        ).to_http_exception()

    try:
        payload = decode_access_token(credentials.credentials)
    except PyJWTError as e:
        logger.warning("JWT validation error: %s", str(e))
        raise UnauthorizedException("Could not validate credentials").to_http_exception()

    user_id = payload.get("sub")
    if not isinstance(user_id, str) or not user_id:
        logger.warning("Token payload missing 'sub' field")
        raise UnauthorizedException("Could not validate credentials").to_http_exception()
    return user_id
