from __future__ import annotations

from fastapi import APIRouter, HTTPException

from meetcmu.api.schemas.profiles import ProfileEventsOut, ProfileOut, ProfileUpdate
from meetcmu.auth.deps import CurrentUser, DBSession
from meetcmu.services import events_service

router = APIRouter(prefix="/profiles", tags=["profiles"])


def _normalize_text(value: str | None) -> str | None:
    if value is None:
        return None
    normalized = value.strip()
    return normalized or None


def _normalize_items(values: list[str]) -> list[str]:
    """Strip and de-duplicate case-insensitively, keeping the first spelling."""
    normalized: list[str] = []
    seen: set[str] = set()
    for value in values:
        item = value.strip()
        if not item:
            continue
        lower = item.lower()
        if lower in seen:
            continue
        seen.add(lower)
        normalized.append(item)
    return normalized


def _validation_error(message: str) -> HTTPException:
    return HTTPException(
        status_code=422,
        detail={"code": "VALIDATION_ERROR", "message": message},
    )


@router.get("/me", response_model=ProfileOut)
def get_my_profile(user: CurrentUser):
    return user


@router.put("/me", response_model=ProfileOut)
def update_my_profile(payload: ProfileUpdate, user: CurrentUser, db: DBSession):
    updates = payload.model_dump(exclude_unset=True)
    if not updates:
        raise _validation_error("at least one editable field must be provided")

    for field, value in updates.items():
        if field == "interests":
            user.interests = _normalize_items(value) if value is not None else None
        else:
            setattr(user, field, _normalize_text(value))

    db.add(user)
    db.commit()
    db.refresh(user)
    return user


@router.get("/me/events", response_model=ProfileEventsOut)
def my_events(user: CurrentUser, db: DBSession):
    return events_service.list_profile_events(db, user.id)
