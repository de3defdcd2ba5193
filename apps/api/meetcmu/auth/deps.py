from __future__ import annotations

import hmac
from typing import Annotated

import structlog
from fastapi import Depends, HTTPException, Request
from sqlalchemy.orm import Session

from meetcmu.auth.identity import IdentityClaims, InvalidTokenError, resolve_identity
from meetcmu.core.config import settings
from meetcmu.db import get_db
from meetcmu.models import Profile

logger = structlog.get_logger(__name__)

DBSession = Annotated[Session, Depends(get_db)]


def _unauthorized(detail: str = "unauthorized") -> HTTPException:
    return HTTPException(
        status_code=401,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def _bearer_token(request: Request) -> str | None:
    auth = request.headers.get("Authorization", "")
    if not auth.startswith("Bearer "):
        return None
    return auth.removeprefix("Bearer ").strip()


def upsert_profile(db: Session, claims: IdentityClaims) -> Profile:
    """First authenticated request creates the profile row."""
    profile = db.get(Profile, claims.sub)
    if profile is None:
        profile = Profile(
            id=claims.sub,
            email=claims.email,
            full_name=claims.name,
            avatar_url=claims.picture,
        )
        db.add(profile)
        db.commit()
        db.refresh(profile)
        logger.info("profile_created", user_id=profile.id)
    elif claims.email and profile.email != claims.email:
        profile.email = claims.email
        db.commit()
    return profile


def profile_from_token(db: Session, token: str | None) -> Profile | None:
    """Used by the chat socket, which carries its token in the query string."""
    if not token:
        return None
    try:
        claims = resolve_identity(token)
    except InvalidTokenError:
        return None
    return upsert_profile(db, claims)


def get_current_user(request: Request, db: DBSession) -> Profile:
    token = _bearer_token(request)
    if token is None:
        raise _unauthorized("missing bearer token")

    try:
        claims = resolve_identity(token)
    except InvalidTokenError as exc:
        raise _unauthorized(str(exc)) from exc

    return upsert_profile(db, claims)


def get_optional_user(request: Request, db: DBSession) -> Profile | None:
    token = _bearer_token(request)
    if not token:
        return None
    try:
        claims = resolve_identity(token)
    except InvalidTokenError:
        return None
    return upsert_profile(db, claims)


CurrentUser = Annotated[Profile, Depends(get_current_user)]
OptionalUser = Annotated[Profile | None, Depends(get_optional_user)]


def require_bearer_secret(secret_name: str):
    """Guard for scheduler and server-internal routes.

    ``secret_name`` is a Settings attribute; when it is unset the route is open.
    """

    def _guard(request: Request) -> None:
        expected = getattr(settings, secret_name)
        if not expected:
            return
        token = _bearer_token(request) or ""
        if not hmac.compare_digest(token.encode(), expected.encode()):
            raise HTTPException(status_code=401, detail="unauthorized")

    return _guard
