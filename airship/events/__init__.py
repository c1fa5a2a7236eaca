"""Streaming access to the Events API.

This package provides:
- fetch and the from_start/from_latest/from_offset helpers
- Request, Filter, Subset: what to fetch
- Response, EventChannel: the stream of decoded events
- Event and the per-kind payload models returned by its accessors
"""

from .channel import EventChannel
from .event import (
    Close,
    Custom,
    Device,
    Event,
    FirstOpen,
    InAppMessageDisplay,
    InAppMessageExpiration,
    InAppMessageResolution,
    Location,
    Open,
    Payload,
    Push,
    PushBody,
    RichEvent,
    Send,
    TagChange,
    Uninstall,
)
from .fetch import EVENTS_PATH, EventsClient, fetch, from_latest, from_offset, from_start
from .request import Filter, Request, Subset
from .response import Response
from .types import DeviceType, EventType, Start, SubsetType

__all__ = [
    # Fetching
    "EVENTS_PATH",
    "EventsClient",
    "fetch",
    "from_start",
    "from_latest",
    "from_offset",
    # Requests
    "Request",
    "Filter",
    "Subset",
    "Start",
    "SubsetType",
    "DeviceType",
    # Streams
    "Response",
    "EventChannel",
    # Events
    "Event",
    "EventType",
    "Device",
    "Payload",
    "Push",
    "PushBody",
    "Open",
    "Send",
    "Close",
    "TagChange",
    "Location",
    "RichEvent",
    "InAppMessageDisplay",
    "InAppMessageExpiration",
    "InAppMessageResolution",
    "Custom",
    "Uninstall",
    "FirstOpen",
]
