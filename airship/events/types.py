"""Enumerations shared by requests and events."""

from enum import Enum
from typing import Annotated, Any

from pydantic import AfterValidator

# Offsets are unsigned 64-bit integers.
MAX_OFFSET = 2**64 - 1


class EventType(str, Enum):
    """Kind of an event.

    Events of kinds outside this enumeration are still delivered; their
    ``type`` is kept as the raw string sent by the server.
    """

    PUSH_BODY = "PUSH_BODY"
    OPEN = "OPEN"
    SEND = "SEND"
    CLOSE = "CLOSE"
    TAG_CHANGE = "TAG_CHANGE"
    UNINSTALL = "UNINSTALL"
    FIRST_OPEN = "FIRST_OPEN"
    CUSTOM = "CUSTOM"
    LOCATION = "LOCATION"
    RICH_DELIVERY = "RICH_DELIVERY"
    RICH_READ = "RICH_READ"
    RICH_DELETE = "RICH_DELETE"
    IN_APP_MESSAGE_DISPLAY = "IN_APP_MESSAGE_DISPLAY"
    IN_APP_MESSAGE_EXPIRATION = "IN_APP_MESSAGE_EXPIRATION"
    IN_APP_MESSAGE_RESOLUTION = "IN_APP_MESSAGE_RESOLUTION"


class DeviceType(str, Enum):
    AMAZON = "amazon"
    ANDROID = "android"
    IOS = "ios"


class Start(str, Enum):
    """Where an event stream begins.

    EARLIEST and LATEST are sent as ``start``; OFFSET is never sent and
    instead implies ``resume_offset``.
    """

    EARLIEST = "EARLIEST"
    LATEST = "LATEST"
    OFFSET = "OFFSET"


class SubsetType(str, Enum):
    PARTITION = "PARTITION"
    SAMPLE = "SAMPLE"


def known_kind(value: Any) -> Any:
    """Map a known event kind string to its EventType, leave others as-is."""
    if isinstance(value, str) and not isinstance(value, EventType):
        try:
            return EventType(value)
        except ValueError:
            return value
    return value


# An EventType, or the raw string of a kind this library does not know.
EventKind = Annotated[EventType | str, AfterValidator(known_kind)]
