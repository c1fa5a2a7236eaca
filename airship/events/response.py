"""Event stream returned by fetch().

A Response owns the HTTP response body and one decoder thread. The thread
reads the NDJSON body line by line, decodes each line into an Event and
hands it to consumers through a bounded EventChannel. It stops at the end
of the body, at the first envelope that fails to decode, or when the
Response is closed; in every case it closes the channel on its way out.
"""

import logging
import socket
import threading
from collections.abc import Iterator

import httpx

from ..config import DEFAULT_BUFFER_SIZE, DEFAULT_CLOSE_TIMEOUT
from ..exceptions import (
    EndOfStream,
    RateLimitedError,
    TransportError,
    UnexpectedStatusError,
)
from .channel import EventChannel
from .event import Event

LOGGER = logging.getLogger(__name__)

OPERATION_ID_HEADER = "UA-Operation-Id"


def check_status(response: httpx.Response) -> None:
    """Map the status of a stream response to an error.

    Non-200 responses are closed before raising.

    Raises:
        RateLimitedError: On 402 Payment Required
        UnexpectedStatusError: On any other non-200 status
    """
    if response.status_code == httpx.codes.OK:
        return
    response.close()
    if response.status_code == httpx.codes.PAYMENT_REQUIRED:
        raise RateLimitedError()
    raise UnexpectedStatusError(response.status_code)


def shutdown_connection(response: httpx.Response) -> None:
    """Shut down the socket a streaming response is read from.

    A thread blocked reading the body wakes up with end of input or a read
    error. Responses with no socket, such as mocked ones, are left alone.
    """
    stream = response.extensions.get("network_stream")
    sock = stream.get_extra_info("socket") if stream is not None else None
    if sock is None:
        return
    try:
        sock.shutdown(socket.SHUT_RDWR)
    except OSError:
        LOGGER.debug("Connection already shut down", exc_info=True)


class Response:
    """Stream of events from a fetch() call.

    Events are delivered through ``events()`` until the server ends the
    stream, an envelope fails to decode, or ``close()`` is called. After the
    channel closes, ``err()`` tells which: an EndOfStream instance for a
    clean end, the DecodeError or transport error that stopped the decoder,
    or None if the stream was closed by the caller.

    Attributes:
        status_code: HTTP status of the stream response (always 200).
        headers: Headers of the stream response.
        operation_id: Value of the UA-Operation-Id header, if sent.

    Examples:
        >>> with events.from_latest(client) as response:
        ...     for event in response:
        ...         print(event.offset, event.type)
        >>> response.err()
        EndOfStream('end of stream')
    """

    def __init__(
        self,
        http_response: httpx.Response,
        buffer_size: int = DEFAULT_BUFFER_SIZE,
        close_timeout: float = DEFAULT_CLOSE_TIMEOUT,
    ) -> None:
        """Start decoding a 200 response.

        Args:
            http_response: Streaming response whose body is NDJSON
            buffer_size: Capacity of the hand-off channel
            close_timeout: Seconds close() waits for the decoder thread

        Raises:
            RateLimitedError: If the response status is 402
            UnexpectedStatusError: If the response status is not 200
        """
        check_status(http_response)
        self.status_code = http_response.status_code
        self.headers = http_response.headers
        self.operation_id = http_response.headers.get(OPERATION_ID_HEADER)
        self.close_timeout = close_timeout

        self._body = http_response
        self._out: EventChannel[Event] = EventChannel(buffer_size)
        self._lock = threading.Lock()
        self._closed = threading.Event()
        self._err: Exception | None = None

        self._producer = threading.Thread(
            target=self._produce,
            name="airship-events-decoder",
            daemon=True,
        )
        self._producer.start()

    def events(self) -> EventChannel[Event]:
        """Return the channel events are delivered through.

        Every call returns the same channel, so events are not duplicated
        between consumers sharing a Response.
        """
        return self._out

    def err(self) -> Exception | None:
        """Return what ended the stream, or None.

        Meaningful once the channel returned by events() is closed. Safe to
        call at any time from any thread.
        """
        with self._lock:
            return self._err

    def close(self) -> None:
        """Close the stream. Idempotent and safe to call concurrently.

        Shuts down the connection and closes the HTTP response body, which
        unblocks a decoder waiting on a read, then signals the decoder to
        stop and waits up to close_timeout for it to exit. Events already
        buffered remain available to consumers.
        """
        with self._lock:
            if self._closed.is_set():
                return
            self._closed.set()
            shutdown_connection(self._body)
            self._body.close()
        self._out.interrupt()
        if threading.current_thread() is not self._producer:
            self._producer.join(self.close_timeout)
            if self._producer.is_alive():
                LOGGER.warning(
                    "Event decoder did not stop within timeout",
                    extra={"operation_id": self.operation_id, "timeout": self.close_timeout},
                )

    def _produce(self) -> None:
        err: Exception = EndOfStream()
        last_offset = -1
        try:
            for line in self._body.iter_lines():
                if not line.strip():
                    continue
                event = Event.decode(line)
                if event.offset < last_offset:
                    LOGGER.warning(
                        "Event offset went backwards",
                        extra={"offset": event.offset, "previous_offset": last_offset},
                    )
                last_offset = event.offset
                if not self._out.put(event):
                    break
        except httpx.HTTPError as exc:
            err = TransportError(f"reading event stream failed: {exc}")
            err.__cause__ = exc
        except Exception as exc:
            err = exc
        finally:
            with self._lock:
                if not self._closed.is_set():
                    self._err = err
                    self._body.close()
            LOGGER.debug(
                "Event stream ended",
                extra={"operation_id": self.operation_id, "reason": repr(err)},
            )
            self._out.close()

    def __iter__(self) -> Iterator[Event]:
        return iter(self._out)

    def __enter__(self) -> "Response":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False
