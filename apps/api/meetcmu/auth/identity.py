from __future__ import annotations

from dataclasses import dataclass

import jwt
from jwt import PyJWTError

from meetcmu.core.config import settings


class InvalidTokenError(ValueError):
    pass


@dataclass(frozen=True)
class IdentityClaims:
    sub: str
    email: str
    name: str | None = None
    picture: str | None = None


def dev_auth_enabled() -> bool:
    return settings.auth_mode == "dev" and settings.env == "local"


def _claims_from_dev_token(token: str) -> IdentityClaims:
    prefix = settings.dev_auth_prefix
    if not token.startswith(prefix):
        raise InvalidTokenError(f"invalid dev token (expected prefix {prefix})")

    email = token.removeprefix(prefix).strip().lower()
    if "@" not in email:
        raise InvalidTokenError("invalid email in token")
    return IdentityClaims(sub=email, email=email)


def verify_identity_token(token: str) -> dict:
    if not settings.identity_jwt_secret:
        raise InvalidTokenError("auth not configured")

    options = {"verify_aud": settings.identity_jwt_audience is not None}
    try:
        return jwt.decode(
            token,
            settings.identity_jwt_secret,
            algorithms=settings.identity_jwt_algorithms,
            audience=settings.identity_jwt_audience,
            issuer=settings.identity_jwt_issuer,
            options=options,
        )
    except PyJWTError as exc:
        raise InvalidTokenError("invalid identity token") from exc


def resolve_identity(token: str) -> IdentityClaims:
    """Map a bearer token to the identity provider's claims.

    Raises InvalidTokenError for anything that does not authenticate.
    """
    token = (token or "").strip()
    if not token:
        raise InvalidTokenError("missing bearer token")

    if dev_auth_enabled():
        return _claims_from_dev_token(token)

    payload = verify_identity_token(token)
    sub = payload.get("sub")
    if not sub:
        raise InvalidTokenError("token has no subject")

    metadata = payload.get("user_metadata") or {}
    return IdentityClaims(
        sub=str(sub),
        email=str(payload.get("email") or ""),
        name=metadata.get("full_name") or payload.get("name"),
        picture=metadata.get("avatar_url") or payload.get("picture"),
    )
