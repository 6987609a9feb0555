"""
JWT token utilities

The application issues its own HS256 token after the GitHub OAuth
callback. It carries the GitHub identity and the delegated GitHub access
token used for repository calls.
"""
import jwt
from datetime import datetime, timedelta
from typing import Any, Dict
from docverctl.core.config import settings
from docverctl.core.exceptions import UnauthorizedError


def create_access_token(payload: Dict[str, Any]) -> str:
    """Create JWT access token"""
    data = {
        **payload,
        "iat": datetime.utcnow(),
        "exp": datetime.utcnow() + timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES),
    }

    return jwt.encode(
        data,
        settings.JWT_SECRET_KEY,
        algorithm=settings.JWT_ALGORITHM
    )


def verify_token(token: str) -> Dict[str, Any]:
    """Verify and decode JWT token"""
    try:
        payload = jwt.decode(
            token,
            settings.JWT_SECRET_KEY,
            algorithms=[settings.JWT_ALGORITHM]
        )
        return payload
    except jwt.ExpiredSignatureError:
        raise UnauthorizedError("Token has expired")
    except jwt.InvalidTokenError:
        raise UnauthorizedError("Invalid authentication credentials")
