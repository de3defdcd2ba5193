from enum import Enum


class ErrorCode(str, Enum):
    EVENT_NOT_FOUND = "EVENT_NOT_FOUND"
    NOT_EVENT_HOST = "NOT_EVENT_HOST"
    EVENT_ALREADY_OFFICIAL = "EVENT_ALREADY_OFFICIAL"
    ALREADY_INTERESTED = "ALREADY_INTERESTED"
    TITLE_REQUIRED = "TITLE_REQUIRED"
    INVALID_TIME_RANGE = "INVALID_TIME_RANGE"
    DIFFERENT_DAYS = "DIFFERENT_DAYS"
    CHAT_HIDDEN = "CHAT_HIDDEN"
    EMPTY_MESSAGE = "EMPTY_MESSAGE"
    MESSAGE_TOO_LONG = "MESSAGE_TOO_LONG"
    NOTIFICATION_NOT_FOUND = "NOTIFICATION_NOT_FOUND"
    PROFILE_NOT_FOUND = "PROFILE_NOT_FOUND"
    VALIDATION_ERROR = "VALIDATION_ERROR"
