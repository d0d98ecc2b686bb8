"""Authentication and authorization for the API.

This module provides JWT-based authentication for API endpoints.
Tokens are generated and verified using the secret key from configuration.
"""

from datetime import datetime, timedelta, timezone
from typing import Any, Optional

from fastapi import Depends, HTTPException, status  # type: ignore[import-untyped]
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer  # type: ignore[import-untyped]
from jose import JWTError, jwt  # type: ignore[import-untyped]

from timetree.api.dependencies import get_config
from timetree.core.config import ConfigManager

ALGORITHM = "HS256"

# Missing credentials are reported by verify_token so that disabled
# authentication accepts requests without a header.
security = HTTPBearer(auto_error=False)


def create_access_token(
    data: dict[str, Any], secret_key: str, expires_delta: Optional[timedelta] = None
) -> str:
    """Create a JWT access token.

    Args:
        data: Data to encode in the token
        secret_key: Secret key for encoding
        expires_delta: Optional expiration time delta (default 24 hours)

    Returns:
        Encoded JWT token string

    Example:
        >>> token = create_access_token(
        ...     data={"sub": "user"},
        ...     secret_key="your-secret-key",
        ...     expires_delta=timedelta(hours=24)
        ... )
    """
    to_encode = data.copy()
    issued = datetime.now(timezone.utc)
    expire = issued + (expires_delta or timedelta(hours=24))
    to_encode.update({"exp": expire, "iat": issued})

    encoded_jwt: str = jwt.encode(to_encode, secret_key, algorithm=ALGORITHM)
    return encoded_jwt


def verify_token(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    config: ConfigManager = Depends(get_config),
) -> dict[str, Any]:
    """Verify JWT token from request.

    Args:
        credentials: HTTP authorization credentials (injected by FastAPI)
        config: Configuration manager (injected)

    Returns:
        Decoded token payload

    Raises:
        HTTPException: If token is missing, invalid or expired

    Note:
        This is a dependency function for FastAPI endpoints.
        Use with Depends(verify_token) to protect endpoints.
    """
    if not config.get("api.authentication.enabled", True):
        return {"sub": "anonymous"}

    if credentials is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )

    secret_key = config.get("api.authentication.secret_key")
    if not secret_key:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="API secret key not configured",
        )

    try:
        payload: dict[str, Any] = jwt.decode(
            credentials.credentials, secret_key, algorithms=[ALGORITHM]
        )
        return payload
    except JWTError as e:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=f"Invalid authentication credentials: {str(e)}",
            headers={"WWW-Authenticate": "Bearer"},
        )


def get_token_expiry_seconds(config: ConfigManager) -> int:
    hours: int = config.get("api.authentication.token_expiry_hours", 24)
    return hours * 3600


def create_token_for_user(
    config: ConfigManager,
    user_id: str = "cli-user",
    expires_delta: Optional[timedelta] = None,
) -> dict[str, Any]:
    """Create a complete token response.

    Args:
        config: Configuration manager
        user_id: User identifier for the token
        expires_delta: Token lifetime (default from config)

    Returns:
        Dictionary with access_token, token_type, and expires_in

    Example:
        >>> token_data = create_token_for_user(ConfigManager())
        >>> print(token_data["access_token"])
    """
    secret_key = config.ensure_api_secret_key()

    if expires_delta is None:
        expires_delta = timedelta(seconds=get_token_expiry_seconds(config))

    access_token = create_access_token(
        data={"sub": user_id}, secret_key=secret_key, expires_delta=expires_delta
    )

    return {
        "access_token": access_token,
        "token_type": "bearer",
        "expires_in": int(expires_delta.total_seconds()),
    }
