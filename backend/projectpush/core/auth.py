from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from uuid import UUID

import jwt
from fastapi import Depends, HTTPException, Request

from projectpush.core.config import settings

ROLE_ADMIN = "admin"


@dataclass(frozen=True)
class CurrentUser:
    """Authenticated caller identity supplied by the identity service."""

    user_id: UUID
    role: str

    @property
    def is_admin(self) -> bool:
        return self.role == ROLE_ADMIN


def issue_access_token(user_id: UUID, role: str = "user", expires_in: int = 3600) -> str:
    """Mint a bearer token in the identity service's format."""
    now = datetime.now(UTC)
    payload = {
        "uid": str(user_id),
        "role": role,
        "iat": now,
        "exp": now + timedelta(seconds=expires_in),
    }
    return jwt.encode(payload, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)


def decode_access_token(token: str) -> CurrentUser:
    """Validate a bearer token and return the caller identity.

    Raises jwt.ExpiredSignatureError or jwt.InvalidTokenError on failure.
    """
    payload = jwt.decode(token, settings.JWT_SECRET, algorithms=[settings.JWT_ALGORITHM])
    return CurrentUser(user_id=UUID(payload["uid"]), role=payload.get("role", "user"))


def get_current_user(request: Request) -> CurrentUser:
    """Extract the caller from the Authorization header."""
    auth_header = request.headers.get("Authorization")
    if not auth_header or not auth_header.startswith("Bearer "):
        raise HTTPException(status_code=401, detail="No token provided")

    raw_token = auth_header[7:]
    if not raw_token:
        raise HTTPException(status_code=401, detail="No token provided")

    try:
        return decode_access_token(raw_token)
    except jwt.ExpiredSignatureError:
        raise HTTPException(status_code=401, detail="Token expired") from None
    except (jwt.InvalidTokenError, KeyError, ValueError):
        raise HTTPException(status_code=401, detail="Invalid token") from None


def require_admin(user: CurrentUser = Depends(get_current_user)) -> CurrentUser:
    if not user.is_admin:
        raise HTTPException(status_code=403, detail="Insufficient permissions")
    return user
