"""
JWT token utilities.

Tokens are issued by the organisation's identity provider; this service only
verifies them. ``create_access_token`` exists for local development and tests.
"""

from datetime import datetime, timedelta, timezone
from typing import Optional, Dict, Any
from jose import JWTError, jwt
from backend.app.core.config import settings
from backend.app.models.enums import UserRole


def create_access_token(
    subject: str,
    role: UserRole,
    user_id: Optional[int] = None,
    expires_delta: Optional[timedelta] = None
) -> str:
    """
    Create a signed access token.

    Args:
        subject: Username or employee id
        role: Role consulted by the capability gate
        user_id: Numeric id recorded as the actor on deployment events
        expires_delta: Optional custom lifetime

    Returns:
        Encoded JWT, payload e.g. {"sub": "sup-01", "user_id": 7, "role": "SUPERVISOR", "exp": ...}
    """
    lifetime = expires_delta or timedelta(minutes=settings.access_token_expire_minutes)
    payload: Dict[str, Any] = {
        "sub": subject,
        "user_id": user_id,
        "role": UserRole(role).value,
        "exp": datetime.now(timezone.utc) + lifetime,
    }
    return jwt.encode(payload, settings.secret_key, algorithm=settings.algorithm)


def decode_access_token(token: str) -> Optional[Dict[str, Any]]:
    """
    Decode and verify a JWT.

    Returns:
        Token payload if the signature and expiry are valid, None otherwise
    """
    try:
        return jwt.decode(token, settings.secret_key, algorithms=[settings.algorithm])
    except JWTError:
        return None
