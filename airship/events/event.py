"""Event envelope and per-kind payloads.

The envelope of every event is decoded when it is read from the stream.
Its body is kept as the raw bytes sent by the server; the ``as_*``
accessors validate it into the payload model for the event's kind only when
called, so consumers pay no decode cost for kinds they ignore.
"""

from datetime import datetime
from decimal import Decimal
from typing import Any, TypeVar

import msgspec
from pydantic import (
    Base64Bytes,
    BaseModel,
    ConfigDict,
    Field,
    ValidationError,
)

from ..exceptions import DecodeError, WrongTypeError
from .types import MAX_OFFSET, EventKind, EventType


P = TypeVar("P", bound=BaseModel)


class Payload(BaseModel):
    """Base for per-kind payloads; unknown body keys are preserved."""

    model_config = ConfigDict(frozen=True, extra="allow")


class Push(Payload):
    """Reference to a push notification.

    Attributes:
        push_id: Identifier returned by the push API.
        group_id: Identifier of the group this push belongs to; groups are
            created by automation and push-to-local-time.
    """

    push_id: str
    group_id: str | None = None


class PushBody(Push):
    """Body of a PUSH_BODY event.

    Attributes:
        payload: The push specification as sent via the API (base64 on the
            wire, decoded here).
    """

    payload: Base64Bytes


class Open(Payload):
    """Body of an OPEN event.

    Attributes:
        last_push_received: The last push Airship attempted to deliver to
            this device, if known.
        converting_push: The push associated with this open, if any.
        session_id: Session of user activity; absent if the application was
            initialized in the background.
    """

    last_push_received: Push | None = None
    converting_push: Push | None = None
    session_id: str | None = None


class Send(Payload):
    """Body of a SEND event, emitted per device targeted by a push."""

    push_id: str
    group_id: str | None = None


class Close(Payload):
    """Body of a CLOSE event.

    Close events are often latent; they may not reach the server until
    long after the application closed.
    """

    session_id: str | None = None


class TagChange(Payload):
    """Body of a TAG_CHANGE event.

    Each mapping goes from tag group to tag names.

    Attributes:
        add: Tags added to the device.
        remove: Tags removed from the device.
        current: Tags on the device after the change took effect.
    """

    add: dict[str, list[str]] = Field(default_factory=dict)
    remove: dict[str, list[str]] = Field(default_factory=dict)
    current: dict[str, list[str]] = Field(default_factory=dict)


class Location(Payload):
    """Body of a LOCATION event.

    Attributes:
        latitude: Latitude as sent by the server.
        longitude: Longitude as sent by the server.
        foreground: Whether the application was in the foreground.
    """

    latitude: Decimal
    longitude: Decimal
    foreground: bool = False

    def coordinates(self) -> tuple[float, float]:
        """Return (latitude, longitude) as floats."""
        return float(self.latitude), float(self.longitude)


class RichEvent(Payload):
    """Body of RICH_DELIVERY, RICH_READ and RICH_DELETE events."""

    push_id: str
    group_id: str | None = None
    variant_id: int | str | None = None


class InAppMessageDisplay(Payload):
    push_id: str
    group_id: str | None = None
    variant_id: int | str | None = None
    session_id: str | None = None


class InAppMessageExpiration(Payload):
    """Body of an IN_APP_MESSAGE_EXPIRATION event.

    Attributes:
        type: Why the message expired, e.g. REPLACED, EXPIRED or
            ALREADY_DISPLAYED.
        replacing_push: The push that replaced this message, if REPLACED.
    """

    push_id: str
    group_id: str | None = None
    variant_id: int | str | None = None
    session_id: str | None = None
    time_sent: datetime | None = None
    time_expired: datetime | None = None
    type: str | None = None
    replacing_push: Push | None = None


class InAppMessageResolution(Payload):
    """Body of an IN_APP_MESSAGE_RESOLUTION event.

    Attributes:
        type: How the message was resolved, e.g. BUTTON_CLICK,
            MESSAGE_CLICK, USER_DISMISSED or TIMED_OUT.
        duration: Milliseconds the message was displayed.
    """

    push_id: str
    group_id: str | None = None
    variant_id: int | str | None = None
    session_id: str | None = None
    time_sent: datetime | None = None
    type: str | None = None
    button_id: str | None = None
    button_group: str | None = None
    button_description: str | None = None
    duration: int | None = None


class Custom(Payload):
    name: str | None = None
    value: Decimal | None = None
    transaction: str | None = None
    interaction_id: str | None = None
    interaction_type: str | None = None
    customer_id: str | None = None
    last_delivered: Push | None = None
    triggering_push: Push | None = None


class Uninstall(Payload):
    pass


class FirstOpen(Payload):
    pass


PAYLOADS: dict[EventType, type[Payload]] = {
    EventType.PUSH_BODY: PushBody,
    EventType.OPEN: Open,
    EventType.SEND: Send,
    EventType.CLOSE: Close,
    EventType.TAG_CHANGE: TagChange,
    EventType.UNINSTALL: Uninstall,
    EventType.FIRST_OPEN: FirstOpen,
    EventType.CUSTOM: Custom,
    EventType.LOCATION: Location,
    EventType.RICH_DELIVERY: RichEvent,
    EventType.RICH_READ: RichEvent,
    EventType.RICH_DELETE: RichEvent,
    EventType.IN_APP_MESSAGE_DISPLAY: InAppMessageDisplay,
    EventType.IN_APP_MESSAGE_EXPIRATION: InAppMessageExpiration,
    EventType.IN_APP_MESSAGE_RESOLUTION: InAppMessageResolution,
}


class Device(BaseModel):
    """Channel identifiers of the device an event concerns."""

    amazon: str | None = Field(default=None, alias="amazon_channel")
    android: str | None = Field(default=None, alias="android_channel")
    ios: str | None = Field(default=None, alias="ios_channel")
    named_user: str | None = Field(default=None, alias="named_user_id")

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    def identifiers(self) -> list[str]:
        """Return the non-empty identifiers."""
        return [i for i in (self.amazon, self.android, self.ios, self.named_user) if i]


class _Line(msgspec.Struct):
    """One NDJSON line split into envelope fields and the raw body span."""

    id: Any
    type: Any
    occurred: Any
    processed: Any
    offset: Any
    device: Any = None
    body: msgspec.Raw = msgspec.field(default_factory=msgspec.Raw)


_LINE_DECODER = msgspec.json.Decoder(_Line)


class Event(BaseModel):
    """A single event read from the Events API.

    Attributes:
        id: Opaque identifier of the event.
        type: Kind of the event; an EventType, or the raw string for kinds
            this library does not know.
        occurred: When the event happened on the device (UTC).
        processed: When the server processed the event (UTC).
        offset: Position in the stream, usable to resume a later fetch.
        device: Channel identifiers of the device, if any.
        raw_body: The body exactly as sent by the server (JSON bytes, empty
            if the event had none); use the ``as_*`` accessors or
            ``payload()`` to decode it.

    Examples:
        >>> for event in response.events():
        ...     if event.type == EventType.OPEN:
        ...         print(event.as_open().session_id)
    """

    id: str = Field(min_length=1)
    type: EventKind
    occurred: datetime
    processed: datetime
    offset: int = Field(ge=0, le=MAX_OFFSET)
    device: Device | None = None
    raw_body: bytes = b""

    model_config = ConfigDict(frozen=True)

    @classmethod
    def decode(cls, line: str | bytes) -> "Event":
        """Decode one NDJSON line into an event.

        Only the envelope is validated; the body is kept as its raw bytes.

        Raises:
            DecodeError: If the line is not a valid event envelope
        """
        if isinstance(line, str):
            line = line.encode()
        try:
            parsed = _LINE_DECODER.decode(line)
            return cls(
                id=parsed.id,
                type=parsed.type,
                occurred=parsed.occurred,
                processed=parsed.processed,
                offset=parsed.offset,
                device=parsed.device,
                raw_body=bytes(parsed.body),
            )
        except (msgspec.DecodeError, ValidationError) as err:
            raise DecodeError(f"invalid event envelope: {err}") from err

    @property
    def body(self) -> Any:
        """The body parsed as plain JSON values, None if the event had none."""
        if not self.raw_body:
            return None
        try:
            return msgspec.json.decode(self.raw_body)
        except msgspec.DecodeError as err:
            raise DecodeError(f"invalid {_kind(self.type)} body: {err}") from err

    def payload(self) -> Payload:
        """Decode the body into the payload model for this event's kind.

        Raises:
            WrongTypeError: If the event's kind is unknown
            DecodeError: If the body does not match the kind's payload
        """
        if not isinstance(self.type, EventType):
            raise WrongTypeError("a known event type", self.type)
        return self._decode_body(PAYLOADS[self.type])

    def as_push(self) -> PushBody:
        return self._as(PushBody, EventType.PUSH_BODY)

    def as_open(self) -> Open:
        return self._as(Open, EventType.OPEN)

    def as_send(self) -> Send:
        return self._as(Send, EventType.SEND)

    def as_close(self) -> Close:
        return self._as(Close, EventType.CLOSE)

    def as_tag_change(self) -> TagChange:
        return self._as(TagChange, EventType.TAG_CHANGE)

    def as_location(self) -> Location:
        return self._as(Location, EventType.LOCATION)

    def as_custom(self) -> Custom:
        return self._as(Custom, EventType.CUSTOM)

    def as_rich_event(self) -> RichEvent:
        return self._as(
            RichEvent, EventType.RICH_DELIVERY, EventType.RICH_READ, EventType.RICH_DELETE
        )

    def as_in_app_message_display(self) -> InAppMessageDisplay:
        return self._as(InAppMessageDisplay, EventType.IN_APP_MESSAGE_DISPLAY)

    def as_in_app_message_expiration(self) -> InAppMessageExpiration:
        return self._as(InAppMessageExpiration, EventType.IN_APP_MESSAGE_EXPIRATION)

    def as_in_app_message_resolution(self) -> InAppMessageResolution:
        return self._as(InAppMessageResolution, EventType.IN_APP_MESSAGE_RESOLUTION)

    def _as(self, model: type[P], *kinds: EventType) -> P:
        if self.type not in kinds:
            raise WrongTypeError("/".join(k.value for k in kinds), _kind(self.type))
        return self._decode_body(model)

    def _decode_body(self, model: type[P]) -> P:
        # Kinds without mandatory fields may arrive with no body at all.
        body = self.raw_body if self.raw_body not in (b"", b"null") else b"{}"
        try:
            return model.model_validate_json(body)
        except ValidationError as err:
            raise DecodeError(f"invalid {_kind(self.type)} body: {err}") from err


def _kind(kind: EventType | str) -> str:
    return kind.value if isinstance(kind, EventType) else kind
