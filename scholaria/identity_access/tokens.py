"""
JWT helpers for the identity_access bounded context.

Why: Keep token signing and verification outside the web adapter so we can unit
test it independently and swap the algorithm or key source later on.

Security: Tokens are HS256-signed with a server-side secret and carry only the
user id (`sub`), the role and the expiry. Verification enforces signature and
expiration; everything else is looked up server-side on each request.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Dict

from jose import jwt
from jose.exceptions import ExpiredSignatureError, JOSEError

ALGORITHM = "HS256"


class TokenVerificationError(Exception):
    """Raised when a bearer token fails verification."""

    def __init__(self, code: str):
        super().__init__(code)
        self.code = code


@dataclass(frozen=True)
class TokenConfig:
    secret: str
    expire_minutes: int = 60 * 24 * 7
    algorithm: str = ALGORITHM


@dataclass(frozen=True)
class TokenClaims:
    sub: str
    role: str
    expires_at: datetime


def create_access_token(cfg: TokenConfig, *, sub: str, role: str, now: datetime | None = None) -> str:
    """Issue a signed access token for `sub` with the configured lifetime."""
    issued = now or datetime.now(timezone.utc)
    payload: Dict[str, Any] = {
        "sub": sub,
        "role": role,
        "iat": int(issued.timestamp()),
        "exp": int((issued + timedelta(minutes=cfg.expire_minutes)).timestamp()),
    }
    return jwt.encode(payload, cfg.secret, algorithm=cfg.algorithm)


def verify_access_token(cfg: TokenConfig, token: str) -> TokenClaims:
    """Verify signature and expiry and return the relevant claims.

    Raises `TokenVerificationError` with one of: `token_missing`,
    `token_expired`, `token_invalid`, `claims_invalid`.
    """
    if not token:
        raise TokenVerificationError("token_missing")
    try:
        claims = jwt.decode(token, cfg.secret, algorithms=[cfg.algorithm])
    except ExpiredSignatureError as exc:
        raise TokenVerificationError("token_expired") from exc
    except JOSEError as exc:
        raise TokenVerificationError("token_invalid") from exc
    sub = claims.get("sub")
    role = claims.get("role")
    exp = claims.get("exp")
    if not isinstance(sub, str) or not sub or not isinstance(role, str) or not isinstance(exp, (int, float)):
        raise TokenVerificationError("claims_invalid")
    return TokenClaims(sub=sub, role=role, expires_at=datetime.fromtimestamp(exp, tz=timezone.utc))


def bearer_token_from_header(value: str | None) -> str:
    """Extract the token from an `Authorization: Bearer <token>` header value."""
    if not value:
        return ""
    scheme, _, token = value.strip().partition(" ")
    if scheme.lower() != "bearer":
        return ""
    return token.strip()


__all__ = [
    "TokenConfig",
    "TokenClaims",
    "TokenVerificationError",
    "create_access_token",
    "verify_access_token",
    "bearer_token_from_header",
]
