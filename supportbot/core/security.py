"""Token verification for requests authenticated by the account service."""

from __future__ import annotations

from datetime import datetime, timedelta
from typing import Any, Dict, Optional

from jose import JWTError, jwt

from supportbot.core.config import settings
from supportbot.core.exceptions import UnauthorizedError

DEFAULT_TOKEN_TTL = timedelta(minutes=60)


def create_access_token(
    subject: str,
    expires_delta: timedelta | None = None,
    claims: Optional[Dict[str, Any]] = None,
) -> str:
    """Mint a token; used by tests and local tooling, production tokens come from the account service."""

    expire = datetime.utcnow() + (expires_delta or DEFAULT_TOKEN_TTL)
    payload: Dict[str, Any] = {
        "sub": subject,
        "exp": expire,
        "iat": datetime.utcnow(),
    }
    if claims:
        payload.update(claims)
    return jwt.encode(payload, settings.SECRET_KEY, algorithm=settings.JWT_ALGORITHM)


def verify_access_token(token: str) -> Dict[str, Any]:
    try:
        return jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.JWT_ALGORITHM])
    except JWTError as exc:
        raise UnauthorizedError("Invalid token") from exc
