"""Request models for fetching events.

A Request is validated when it is composed, before any network call:

- ``start`` is EARLIEST or LATEST with no offset, or OFFSET with an offset
- a subset, if given, is either a valid PARTITION or a valid SAMPLE

Requests serialize to the wire form expected by the Events API, omitting
every field that is not set.
"""

from enum import Enum
from typing import Any

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    ValidationError,
    model_serializer,
    model_validator,
)

from ..exceptions import RequestValidationError
from .types import MAX_OFFSET, DeviceType, EventKind, Start, SubsetType



def _value(item: Any) -> Any:
    return item.value if isinstance(item, Enum) else item


class Filter(BaseModel):
    """Selects events by kind, device or notification.

    The server returns events matching ANY of the filters of a request.
    Empty fields are omitted from the wire form.

    Attributes:
        types: Event kinds to include (``type`` on the wire).
        device_types: Device families to include.
        notification: Push selectors, e.g. ``{"push_id": "..."}`` or
            ``{"group_id": "..."}``.
        devices: Device identifiers, e.g. ``{"ios_channel": "..."}``.
        latency: Passed to the server verbatim.

    Example:
        >>> Filter(types=[EventType.OPEN, EventType.CLOSE], device_types=[DeviceType.IOS])
    """

    types: list[EventKind] = Field(default_factory=list, alias="type")
    device_types: list[DeviceType | str] = Field(default_factory=list)
    notification: list[dict[str, str]] = Field(default_factory=list)
    devices: list[dict[str, str]] = Field(default_factory=list)
    latency: int | None = None

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    @model_serializer
    def _to_wire(self) -> dict[str, Any]:
        wire: dict[str, Any] = {}
        if self.types:
            wire["type"] = [_value(t) for t in self.types]
        if self.device_types:
            wire["device_types"] = [_value(d) for d in self.device_types]
        if self.notification:
            wire["notification"] = [dict(n) for n in self.notification]
        if self.devices:
            wire["devices"] = [dict(d) for d in self.devices]
        if self.latency is not None:
            wire["latency"] = self.latency
        return wire


class Subset(BaseModel):
    """Server-side partitioning or sampling applied after filtering.

    Use the ``partition()`` and ``sample()`` constructors. Values are not
    validated until a Request is composed, so an invalid subset is reported
    by ``fetch`` as a RequestValidationError.

    Attributes:
        type: PARTITION or SAMPLE.
        count: Number of partitions (PARTITION only).
        selection: Zero-based partition to receive (PARTITION only).
        proportion: Fraction of events to receive (SAMPLE only).

    Examples:
        >>> Subset.partition(4, 0)  # first of four partitions
        >>> Subset.sample(0.25)     # roughly a quarter of all events
    """

    type: SubsetType | str | None = None
    count: int | None = None
    selection: int | None = None
    proportion: float | None = None

    model_config = ConfigDict(frozen=True)

    @classmethod
    def partition(cls, count: int, selection: int) -> "Subset":
        return cls(type=SubsetType.PARTITION, count=count, selection=selection)

    @classmethod
    def sample(cls, proportion: float) -> "Subset":
        return cls(type=SubsetType.SAMPLE, proportion=proportion)

    def check(self) -> None:
        """Check the variant's invariants.

        Raises:
            ValueError: If no variant, an unknown variant, or an invalid
                combination of fields is set
        """
        if self.type is None:
            raise ValueError("subset type is required")
        if self.type == SubsetType.PARTITION:
            if self.proportion is not None:
                raise ValueError("partition subset cannot have a proportion")
            if self.count is None or self.selection is None:
                raise ValueError("partition subset requires count and selection")
            if self.count < 1:
                raise ValueError(f"partition count must be at least 1, got {self.count}")
            if not 0 <= self.selection < self.count:
                raise ValueError(
                    f"partition selection must be in [0, {self.count}), got {self.selection}"
                )
        elif self.type == SubsetType.SAMPLE:
            if self.count is not None or self.selection is not None:
                raise ValueError("sample subset cannot have a count or selection")
            if self.proportion is None:
                raise ValueError("sample subset requires a proportion")
            if not 0 <= self.proportion <= 1:
                raise ValueError(f"sample proportion must be in [0, 1], got {self.proportion}")
        else:
            raise ValueError(f"unknown subset type {self.type!r}")

    @model_serializer
    def _to_wire(self) -> dict[str, Any]:
        wire: dict[str, Any] = {}
        if self.type is not None:
            wire["type"] = _value(self.type)
        for name in ("count", "selection", "proportion"):
            if getattr(self, name) is not None:
                wire[name] = getattr(self, name)
        return wire


class Request(BaseModel):
    """A request for an event stream.

    Attributes:
        start: Where the stream begins.
        offset: Offset to resume after; set only when start is OFFSET.
        filters: Filters unioned by the server; empty means all events.
        subset: Optional partition or sample of the filtered events.

    Examples:
        >>> Request.compose(Start.LATEST)
        >>> Request.compose(Start.OFFSET, offset=1234, filters=[Filter(types=["OPEN"])])
    """

    start: Start
    offset: int | None = Field(default=None, ge=0, le=MAX_OFFSET)
    filters: list[Filter] = Field(default_factory=list)
    subset: Subset | None = None

    model_config = ConfigDict(frozen=True)

    @classmethod
    def compose(
        cls,
        start: Start | str,
        offset: int | None = None,
        subset: Subset | None = None,
        filters: list[Filter] | None = None,
    ) -> "Request":
        """Build and validate a request.

        Raises:
            RequestValidationError: If the combination of fields is invalid
        """
        try:
            return cls(start=start, offset=offset, subset=subset, filters=filters or [])
        except ValidationError as err:
            raise RequestValidationError(_describe(err)) from err

    @classmethod
    def from_wire(cls, data: dict[str, Any]) -> "Request":
        """Parse the wire form produced by ``to_wire()``.

        Raises:
            RequestValidationError: If the data is not a valid request
        """
        try:
            return cls.model_validate(data)
        except ValidationError as err:
            raise RequestValidationError(_describe(err)) from err

    def to_wire(self) -> dict[str, Any]:
        return self.model_dump(mode="json")

    @model_validator(mode="before")
    @classmethod
    def _from_wire_names(cls, data: Any) -> Any:
        if isinstance(data, dict) and "resume_offset" in data:
            data = dict(data)
            data["offset"] = data.pop("resume_offset")
            data.setdefault("start", Start.OFFSET)
        return data

    @model_validator(mode="after")
    def _check(self) -> "Request":
        if self.start == Start.OFFSET and self.offset is None:
            raise ValueError("start OFFSET requires an offset")
        if self.start != Start.OFFSET and self.offset is not None:
            raise ValueError(f"offset cannot be combined with start {self.start.value}")
        if self.subset is not None:
            self.subset.check()
        return self

    @model_serializer
    def _to_wire(self) -> dict[str, Any]:
        wire: dict[str, Any] = {}
        if self.start == Start.OFFSET:
            wire["resume_offset"] = self.offset
        else:
            wire["start"] = self.start.value
        if self.filters:
            wire["filters"] = [f.model_dump() for f in self.filters]
        if self.subset is not None:
            wire["subset"] = self.subset.model_dump()
        return wire


def _describe(err: ValidationError) -> str:
    return "; ".join(
        f"{'.'.join(str(part) for part in error['loc']) or 'request'}: {error['msg']}"
        for error in err.errors()
    )
