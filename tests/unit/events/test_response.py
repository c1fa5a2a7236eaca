"""Tests for the Response stream and its decoder thread."""

import logging
import socket
import threading
import time
from unittest import mock

import httpx
import pytest

from airship import (
    AirshipError,
    Client,
    DecodeError,
    EndOfStream,
    RateLimitedError,
    TransportError,
    UnexpectedStatusError,
    WrongTypeError,
)
from airship.events import EventChannel, EventType, Response, from_latest
from airship.events.response import shutdown_connection
from tests.fixtures.events import endless_ndjson, event_line, ndjson, stream_response


def test_stream_ends_cleanly():
    """Test every event is delivered and err() reports the end of stream."""
    response = Response(stream_response(ndjson(EventType.OPEN, EventType.CLOSE, count=3)))

    events = list(response)

    assert [event.offset for event in events] == [1, 2, 3, 4, 5, 6]
    assert [event.type for event in events] == [EventType.OPEN, EventType.CLOSE] * 3
    assert response.events().closed
    assert isinstance(response.err(), EndOfStream)
    assert not isinstance(response.err(), AirshipError)
    response.close()


def test_operation_id_and_headers():
    """Test the operation id header is exposed."""
    response = Response(stream_response(b"", **{"UA-Operation-Id": "op-123"}))
    try:
        assert response.status_code == 200
        assert response.operation_id == "op-123"
        assert response.headers["UA-Operation-Id"] == "op-123"
    finally:
        response.close()


def test_blank_lines_are_skipped():
    """Test blank lines between events do not end the stream."""
    content = "\n\n".join(event_line(EventType.SEND, offset) for offset in (1, 2)) + "\n\n"

    with Response(stream_response(content.encode())) as response:
        assert [event.offset for event in response] == [1, 2]
        assert isinstance(response.err(), EndOfStream)


def test_events_returns_shared_channel():
    """Test events() returns the same channel on every call."""
    with Response(stream_response(ndjson(EventType.SEND))) as response:
        assert response.events() is response.events()
        assert isinstance(response.events(), EventChannel)


def test_invalid_envelope_ends_stream():
    """Test the first undecodable envelope stops the decoder."""
    content = "\n".join(
        [event_line(EventType.OPEN, 1), "{not json", event_line(EventType.OPEN, 2)]
    )

    with Response(stream_response(content.encode())) as response:
        assert [event.offset for event in response] == [1]
        assert isinstance(response.err(), DecodeError)


def test_unknown_kind_passes_through():
    """Test events of unknown kinds are delivered with their raw type."""
    content = "\n".join(
        [
            event_line(EventType.OPEN, 1),
            event_line("SCREEN_VIEWED", 2, body={"screen": "home"}),
            event_line(EventType.CLOSE, 3),
        ]
    )

    with Response(stream_response(content.encode())) as response:
        events = list(response)

    assert [event.type for event in events] == [EventType.OPEN, "SCREEN_VIEWED", EventType.CLOSE]
    with pytest.raises(WrongTypeError):
        events[1].payload()
    assert isinstance(response.err(), EndOfStream)


def test_invalid_body_does_not_end_stream():
    """Test a body error surfaces only from its accessor."""
    content = "\n".join(
        [
            event_line(EventType.SEND, 1, body={"group_id": "missing-push-id"}),
            event_line(EventType.SEND, 2),
        ]
    )

    with Response(stream_response(content.encode())) as response:
        first, second = list(response)

    with pytest.raises(DecodeError):
        first.as_send()
    assert second.as_send().push_id
    assert isinstance(response.err(), EndOfStream)


def test_read_error_is_transport_error():
    """Test an httpx failure while reading ends the stream with TransportError."""

    def broken_body():
        yield (event_line(EventType.OPEN, 1) + "\n").encode()
        raise httpx.ReadError("connection reset")

    with Response(stream_response(broken_body())) as response:
        assert [event.offset for event in response] == [1]
        err = response.err()

    assert isinstance(err, TransportError)
    assert isinstance(err.__cause__, httpx.ReadError)


def test_rate_limited():
    """Test a 402 response raises RateLimitedError and is closed."""
    http_response = stream_response(b"", status_code=402)

    with pytest.raises(RateLimitedError, match="rate limited"):
        Response(http_response)

    assert http_response.is_closed


@pytest.mark.parametrize("status_code", [204, 400, 401, 404, 500, 503])
def test_unexpected_status(status_code):
    """Test any other non-200 response raises UnexpectedStatusError."""
    http_response = stream_response(b"", status_code=status_code)

    with pytest.raises(UnexpectedStatusError) as exc_info:
        Response(http_response)

    assert exc_info.value.status_code == status_code
    assert http_response.is_closed


def test_close_stops_endless_stream():
    """Test close() stops a stream the server never ends."""
    response = Response(stream_response(endless_ndjson()), buffer_size=5)
    first = response.events().next(timeout=3)

    started = time.monotonic()
    response.close()

    assert time.monotonic() - started < 3
    assert response.events().wait_closed(3)
    assert first.offset == 1
    assert response.err() is None


def test_concurrent_close():
    """Test close() from several threads closes the channel exactly once."""
    original_close = EventChannel.close

    with mock.patch.object(
        EventChannel, "close", autospec=True, side_effect=original_close
    ) as close_spy:
        response = Response(stream_response(endless_ndjson()))
        response.events().next(timeout=3)

        closers = [threading.Thread(target=response.close) for _ in range(2)]
        started = time.monotonic()
        for closer in closers:
            closer.start()
        for closer in closers:
            closer.join(3)

        assert time.monotonic() - started < 3
        assert not any(closer.is_alive() for closer in closers)
        assert response.events().wait_closed(3)
        response.close()

    close_spy.assert_called_once_with(response.events())
    assert response.err() is None


def test_buffered_events_survive_close():
    """Test events buffered before close() can still be taken."""
    response = Response(stream_response(endless_ndjson()), buffer_size=3)
    channel = response.events()
    deadline = time.monotonic() + 3
    while channel.depth() < 3 and time.monotonic() < deadline:
        time.sleep(0.01)

    response.close()

    offsets = [event.offset for event in channel]
    assert offsets[:3] == [1, 2, 3]


def test_multiple_consumers_share_events():
    """Test consumers on one Response receive disjoint events."""
    response = Response(stream_response(ndjson(EventType.OPEN, count=200)), buffer_size=4)
    seen: list[list[int]] = [[], [], []]

    def consume(bucket):
        for event in response.events():
            bucket.append(event.offset)

    consumers = [threading.Thread(target=consume, args=(bucket,)) for bucket in seen]
    for consumer in consumers:
        consumer.start()
    for consumer in consumers:
        consumer.join(5)
    response.close()

    offsets = sorted(offset for bucket in seen for offset in bucket)
    assert offsets == list(range(1, 201))
    assert isinstance(response.err(), EndOfStream)


def test_context_manager_closes():
    """Test leaving the with block closes the HTTP response."""
    http_response = stream_response(endless_ndjson())

    with Response(http_response) as response:
        response.events().next(timeout=3)

    assert http_response.is_closed
    assert response.events().wait_closed(3)


def test_close_interrupts_blocked_read(stalling_server):
    """Test close() stops a decoder waiting on a connection that went quiet."""
    with httpx.Client(trust_env=False) as http_client:
        client = Client(
            "app-key", "master-secret", base_url=stalling_server, http_client=http_client
        )
        response = from_latest(client)
        first = response.events().next(timeout=3)

        started = time.monotonic()
        response.close()
        elapsed = time.monotonic() - started

        assert response.events().wait_closed(1)

    assert first.offset == 1
    assert elapsed < 2
    assert response.err() is None


def test_shutdown_connection():
    """Test the socket under a response is shut down in both directions."""
    sock = mock.Mock()
    network_stream = mock.Mock()
    network_stream.get_extra_info.return_value = sock
    http_response = httpx.Response(200, extensions={"network_stream": network_stream})

    shutdown_connection(http_response)

    network_stream.get_extra_info.assert_called_once_with("socket")
    sock.shutdown.assert_called_once_with(socket.SHUT_RDWR)


def test_shutdown_connection_without_socket():
    """Test responses with no network stream are left alone."""
    shutdown_connection(httpx.Response(200))

    sock = mock.Mock()
    sock.shutdown.side_effect = OSError("not connected")
    network_stream = mock.Mock()
    network_stream.get_extra_info.return_value = sock
    shutdown_connection(httpx.Response(200, extensions={"network_stream": network_stream}))


def test_stream_end_is_logged(caplog):
    """Test the decoder logs what ended the stream."""
    caplog.set_level(logging.DEBUG, logger="airship.events.response")

    with Response(stream_response(ndjson(EventType.SEND, count=1))) as response:
        list(response)

    [record] = [r for r in caplog.records if r.getMessage() == "Event stream ended"]
    assert record.reason == "EndOfStream('end of stream')"
