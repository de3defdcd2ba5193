from meetcmu.models.base import Base
from meetcmu.models.event import Event
from meetcmu.models.event_attendee import EventAttendee
from meetcmu.models.event_message import EventMessage
from meetcmu.models.event_prospect import EventProspect
from meetcmu.models.event_reminder import EventReminder
from meetcmu.models.notification import Notification
from meetcmu.models.profile import Profile

__all__ = [
    "Base",
    "Profile",
    "Event",
    "EventProspect",
    "EventAttendee",
    "Notification",
    "EventMessage",
    "EventReminder",
]
