"""Access Token Verification — decodes identity-provider JWTs with PyJWT.

Invariants:
    - Signature, expiry and audience are always verified
    - `sub` must be a UUID (it is the profile primary key)
    - Every decode failure maps to AuthenticationError (401), never a 500

Design Decisions:
    - Token issuing is the identity provider's job; this module only verifies
    - issue_access_token exists for local tooling and tests (same secret, same claims)
"""

import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

import jwt

from courseportal.core.errors import AuthenticationError


@dataclass(frozen=True)
class TokenClaims:
    user_id: uuid.UUID
    email: str | None
    role: str | None


def decode_access_token(
    token: str, secret: str, algorithm: str = "HS256", audience: str | None = None,
) -> TokenClaims:
    try:
        payload = jwt.decode(
            token, secret, algorithms=[algorithm], audience=audience,
            options={"require": ["sub", "exp"]},
        )
    except jwt.ExpiredSignatureError:
        raise AuthenticationError("Access token expired")
    except jwt.InvalidTokenError:
        raise AuthenticationError("Invalid access token")

    try:
        user_id = uuid.UUID(str(payload["sub"]))
    except ValueError:
        raise AuthenticationError("Invalid access token subject")
    return TokenClaims(
        user_id=user_id, email=payload.get("email"), role=payload.get("role"),
    )


def issue_access_token(
    user_id: uuid.UUID,
    secret: str,
    *,
    email: str | None = None,
    role: str = "authenticated",
    audience: str | None = "authenticated",
    algorithm: str = "HS256",
    expires_in: timedelta = timedelta(hours=1),
) -> str:
    now = datetime.now(timezone.utc)
    payload = {
        "sub": str(user_id),
        "role": role,
        "iat": now,
        "exp": now + expires_in,
    }
    if email:
        payload["email"] = email
    if audience:
        payload["aud"] = audience
    return jwt.encode(payload, secret, algorithm=algorithm)
