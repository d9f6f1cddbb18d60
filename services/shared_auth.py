"""
Shared authentication utilities for the rule engines.
Bearer tokens are HS256 JWTs carrying the caller's username (``sub``) and role.
"""

import logging
from datetime import datetime, timedelta, timezone

import jwt
from fastapi import HTTPException, status

from config import Config

logger = logging.getLogger(__name__)

JWT_ALGORITHM = "HS256"
TOKEN_EXPIRY_MINUTES = 60

HR_ADMIN = "HR_ADMIN"
SERVICE = "SERVICE"


def generate_token(username: str, role: str = SERVICE, expires_minutes: int = TOKEN_EXPIRY_MINUTES) -> str:
    """Generate a JWT token for service calls and local testing."""
    now = datetime.now(timezone.utc)
    payload = {
        "sub": username,
        "role": role,
        "iat": now,
        "exp": now + timedelta(minutes=expires_minutes),
    }
    return jwt.encode(payload, Config.AUTH_SECRET, algorithm=JWT_ALGORITHM)


def verify_token(token: str) -> dict:
    """Verify and decode a JWT token."""
    try:
        return jwt.decode(token, Config.AUTH_SECRET, algorithms=[JWT_ALGORITHM])
    except jwt.ExpiredSignatureError as err:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Token has expired",
        ) from err
    except jwt.InvalidTokenError as err:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token",
        ) from err


def extract_bearer_token(authorization: str | None) -> str:
    """Extract token from Authorization header."""
    if not authorization:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing authorization header",
            headers={"WWW-Authenticate": "Bearer"},
        )

    parts = authorization.split()
    if len(parts) != 2 or parts[0].lower() != "bearer":
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid authorization header format. Use 'Bearer <token>'",
            headers={"WWW-Authenticate": "Bearer"},
        )

    return parts[1]


def validate_bearer_token(authorization: str | None) -> dict:
    """Validate Bearer token from Authorization header."""
    return verify_token(extract_bearer_token(authorization))


def parse_token(authorization: str | None) -> dict[str, str]:
    payload = validate_bearer_token(authorization)
    role = payload.get("role")
    sub = payload.get("sub")
    if not role or not sub:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token payload")
    return {"username": sub, "role": role}


def require_role(authorization: str | None, *roles: str) -> dict[str, str]:
    info = parse_token(authorization)
    if info["role"] not in roles:
        logger.warning(f"Rejected {info['username']} with role {info['role']}, need one of {roles}")
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=f"{' or '.join(roles)} role required")
    return info
