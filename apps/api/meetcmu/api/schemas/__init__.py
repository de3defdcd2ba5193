from meetcmu.api.schemas.chat import MessageIn, MessageListOut, MessageOut
from meetcmu.api.schemas.events import (
    EventCreate,
    EventDetailOut,
    EventOut,
    EventUpdate,
    FeedEventOut,
    FeedOut,
    InterestIn,
    InterestOut,
)
from meetcmu.api.schemas.notifications import (
    NotificationCreateIn,
    NotificationListOut,
    NotificationOut,
    NotificationPatchIn,
    SuccessOut,
    SweepOut,
    TriggerMessageIn,
    TriggerMilestoneIn,
)
from meetcmu.api.schemas.profiles import ProfileEventsOut, ProfileOut, ProfileUpdate

__all__ = [
    "EventCreate",
    "EventUpdate",
    "EventOut",
    "FeedEventOut",
    "EventDetailOut",
    "FeedOut",
    "InterestIn",
    "InterestOut",
    "MessageIn",
    "MessageOut",
    "MessageListOut",
    "NotificationOut",
    "NotificationListOut",
    "NotificationPatchIn",
    "NotificationCreateIn",
    "TriggerMessageIn",
    "TriggerMilestoneIn",
    "SuccessOut",
    "SweepOut",
    "ProfileOut",
    "ProfileUpdate",
    "ProfileEventsOut",
]
