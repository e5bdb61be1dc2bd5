"""
Access token helpers.

Tokens are HS256 JWTs whose ``sub`` claim is the user id. Issuing tokens
to end users happens in the identity provider flow, outside this service;
``create_access_token`` exists for tooling and tests.
"""

from datetime import datetime, timedelta, timezone
import logging
from typing import Any, Dict, Optional, cast

from fastapi.security import OAuth2PasswordBearer
import jwt
from jwt import PyJWTError

from .core.config import settings
from .core.exceptions import UnauthorizedException

logger = logging.getLogger(__name__)

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="auth/token")
oauth2_scheme_optional = OAuth2PasswordBearer(tokenUrl="auth/token", auto_error=False)


def _secret_value() -> str:
    return settings.secret_key.get_secret_value()


def create_access_token(data: Dict[str, Any], expires_delta: Optional[timedelta] = None) -> str:
    """
    Create a JWT access token.

    Args:
        data: The claims to encode; ``sub`` must be the user id
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

    return cast(str, jwt.encode(to_encode, _secret_value(), algorithm=settings.algorithm))


def decode_access_token(token: str) -> Dict[str, Any]:
    """
    Decode and verify a JWT access token.

    Raises:
        UnauthorizedException: Signature, expiry or subject is invalid
    """
    try:
        payload = jwt.decode(token, _secret_value(), algorithms=[settings.algorithm])
    except PyJWTError as e:
        logger.debug(f"Rejected access token: {str(e)}")
        raise UnauthorizedException("Could not validate credentials") from e

    subject = payload.get("sub")
    if not isinstance(subject, str) or not subject:
        raise UnauthorizedException("Could not validate credentials")
    return cast(Dict[str, Any], payload)
