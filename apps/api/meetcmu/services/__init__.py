from meetcmu.services.chat_service import list_messages, post_message
from meetcmu.services.events_service import (
    create_event,
    delete_event,
    get_event_details,
    make_official,
    update_event,
)
from meetcmu.services.feed_service import FeedFilters, query_feed
from meetcmu.services.interest_service import set_interest
from meetcmu.services.reminder_service import run_event_reminder_sweep

__all__ = [
    "query_feed",
    "FeedFilters",
    "create_event",
    "get_event_details",
    "update_event",
    "delete_event",
    "make_official",
    "set_interest",
    "list_messages",
    "post_message",
    "run_event_reminder_sweep",
]
