"""Airship - streaming client for the Airship (Urban Airship) Events API.

This module provides the public API for opening and consuming event streams.
"""

from . import events
from .client import Client, new_client
from .config import DEFAULT_BASE_URL, AirshipSettings
from .exceptions import (
    AirshipError,
    ChannelClosed,
    DecodeError,
    EncodeError,
    EndOfStream,
    RateLimitedError,
    RequestValidationError,
    TooManyRedirectsError,
    TransportError,
    UnexpectedStatusError,
    WrongTypeError,
)

__all__ = [
    # Client
    "Client",
    "new_client",
    "AirshipSettings",
    "DEFAULT_BASE_URL",
    "events",
    # Errors
    "AirshipError",
    "ChannelClosed",
    "DecodeError",
    "EncodeError",
    "EndOfStream",
    "RateLimitedError",
    "RequestValidationError",
    "TooManyRedirectsError",
    "TransportError",
    "UnexpectedStatusError",
    "WrongTypeError",
]
