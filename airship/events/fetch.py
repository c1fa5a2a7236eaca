"""Opening event streams.

fetch() validates a request, POSTs it to the events endpoint and wraps the
200 response in a Response stream. The from_* helpers cover the three ways
a stream can start.
"""

import logging
from typing import Any, Protocol

import httpx

from ..config import DEFAULT_BUFFER_SIZE, DEFAULT_CLOSE_TIMEOUT
from .request import Filter, Request, Subset
from .response import Response
from .types import Start

LOGGER = logging.getLogger(__name__)

EVENTS_PATH = "events"


class EventsClient(Protocol):
    """Anything that can POST a request body and return a streaming response.

    Usually an ``airship.Client``. Stream settings (``events_url``,
    ``buffer_size``, ``close_timeout``) are read from the client when it
    has them.
    """

    def post(self, path: str, body: Any = None) -> httpx.Response: ...


def fetch(
    client: EventsClient,
    start: Start | str,
    offset: int | None = None,
    subset: Subset | None = None,
    filters: list[Filter] | None = None,
) -> Response:
    """Fetch a stream of events.

    Args:
        client: Client to POST the request with
        start: EARLIEST, LATEST or OFFSET
        offset: Offset to resume after; required with OFFSET, forbidden
            otherwise
        subset: Optional partition or sample of the events
        filters: Optional filters; events matching any of them are returned,
            all events if omitted

    Returns:
        A Response streaming events until closed

    Raises:
        RequestValidationError: If the request is invalid (before any
            network call)
        RateLimitedError: If the API answered 402
        UnexpectedStatusError: If the API answered another non-200 status
        TooManyRedirectsError: If the API kept redirecting
        TransportError: If the HTTP request failed

    Examples:
        >>> response = fetch(client, Start.LATEST, filters=[Filter(types=[EventType.OPEN])])
        >>> response = fetch(client, Start.OFFSET, offset=1234, subset=Subset.sample(0.1))
    """
    request = Request.compose(start, offset=offset, subset=subset, filters=filters)
    path = getattr(client, "events_url", None) or EVENTS_PATH

    http_response = client.post(path, request)
    response = Response(
        http_response,
        buffer_size=getattr(client, "buffer_size", DEFAULT_BUFFER_SIZE),
        close_timeout=getattr(client, "close_timeout", DEFAULT_CLOSE_TIMEOUT),
    )
    LOGGER.info(
        "Opened event stream",
        extra={"start": request.start.value, "operation_id": response.operation_id},
    )
    return response


def from_start(client: EventsClient, *filters: Filter, subset: Subset | None = None) -> Response:
    """Fetch events from the earliest available offset."""
    return fetch(client, Start.EARLIEST, subset=subset, filters=list(filters))


def from_latest(client: EventsClient, *filters: Filter, subset: Subset | None = None) -> Response:
    """Fetch events from now on."""
    return fetch(client, Start.LATEST, subset=subset, filters=list(filters))


def from_offset(
    client: EventsClient, offset: int, *filters: Filter, subset: Subset | None = None
) -> Response:
    """Fetch events following offset, e.g. to resume after a disconnect."""
    return fetch(client, Start.OFFSET, offset=offset, subset=subset, filters=list(filters))
