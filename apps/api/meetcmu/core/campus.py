"""Campus reference data: the local timezone and the building directory.

All wall-clock reasoning (feed date filter, hour windows, same-day checks,
human-readable times in notifications) happens in campus time. Storage is UTC.
"""
from __future__ import annotations

from datetime import date, datetime, time, timedelta, timezone

import pytz

from meetcmu.core.config import settings

CAMPUS_TZ = pytz.timezone(settings.campus_timezone)

BUILDINGS: tuple[str, ...] = (
    "The Cut",
    "Alumni House",
    "Ansys Hall",
    "Baker Hall",
    "Boss House",
    "Bramer House",
    "Cohon University Center",
    "College of Fine Arts",
    "Cyert Hall",
    "Doherty Hall",
    "Donner House",
    "Fairfax Apartments",
    "Fifth & Clyde Residence Hall",
    "Forbes Beeler Apartments",
    "Gates & Hillman Center for Computer Science",
    "Gesling Stadium",
    "Hall of the Arts",
    "Hamburg Hall",
    "Hamerschlag Hall",
    "Hamerschlag House",
    "Henderson House",
    "Highmark Center",
    "Hunt Library",
    "Integrated Innovation Institute",
    "Margaret Morrison Carnegie Hall",
    "McGill House",
    "Mehrabian Collaborative Innovation Center",
    "Mellon Hall of Sciences",
    "Mellon Institute",
    "Mill 19",
    "Morewood Gardens",
    "Mudge House",
    "Newell-Simon Hall",
    "Porter Hall",
    "Posner Center",
    "Posner Hall",
    "Purnell Center for the Arts",
    "Rand Building",
    "Resnik House",
    "Roberts Engineering Hall",
    "Scaife Hall",
    "Scobell House",
    "Scott Hall",
    "Skibo Gymnasium",
    "Smith Hall",
    "Software Engineering Institute",
    "Stever House",
    "TCS Hall",
    "Tepper Quad",
    "Warner Hall",
    "Wean Hall",
    "West Wing",
    "Whitfield Hall",
)

MAX_BUILDING_SUGGESTIONS = 8


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def to_campus(value: datetime) -> datetime:
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(CAMPUS_TZ)


def campus_hour(value: datetime) -> int:
    return to_campus(value).hour


def campus_date(value: datetime) -> date:
    return to_campus(value).date()


def campus_day_bounds(day: date) -> tuple[datetime, datetime]:
    """UTC [start, end) of a campus-local calendar day (DST aware)."""
    start = CAMPUS_TZ.localize(datetime.combine(day, time.min))
    end = CAMPUS_TZ.localize(datetime.combine(day + timedelta(days=1), time.min))
    return start.astimezone(timezone.utc), end.astimezone(timezone.utc)


def format_campus_time(value: datetime) -> str:
    # e.g. "Oct 3, 2:30 PM"
    local = to_campus(value)
    hour = local.hour % 12 or 12
    suffix = "AM" if local.hour < 12 else "PM"
    return f"{local.strftime('%b')} {local.day}, {hour}:{local.minute:02d} {suffix}"


def suggest_buildings(query: str | None, limit: int = MAX_BUILDING_SUGGESTIONS) -> list[str]:
    needle = (query or "").strip().lower()
    if not needle:
        return sorted(BUILDINGS)[:limit]

    prefix = [b for b in BUILDINGS if b.lower().startswith(needle)]
    contains = [b for b in BUILDINGS if needle in b.lower() and b not in prefix]
    return (prefix + contains)[:limit]
