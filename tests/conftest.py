"""Central test fixtures."""

import threading
from collections.abc import Callable, Iterator
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer

import httpx
import pytest

from airship import Client
from airship.events import EventType
from tests.fixtures.events import BASE_URL, event_line

Handler = Callable[[httpx.Request], httpx.Response]


@pytest.fixture
def make_client() -> Iterator[Callable[..., Client]]:
    """Create Clients whose requests are answered by a handler function."""
    created: list[Client] = []

    def factory(handler: Handler, **kwargs) -> Client:
        http_client = httpx.Client(transport=httpx.MockTransport(handler))
        client = Client(
            "app-key", "master-secret", base_url=BASE_URL, http_client=http_client, **kwargs
        )
        created.append(client)
        return client

    yield factory

    for client in created:
        client.http_client.close()


@pytest.fixture
def recorded() -> list[httpx.Request]:
    """Collect the requests seen by a handler."""
    return []


@pytest.fixture
def stalling_server() -> Iterator[str]:
    """Run a local API that sends one event per stream, then goes quiet.

    Yields the base URL. Each POST gets a chunked 200 response carrying one
    OPEN event; the connection is then held open without further bytes
    until the fixture is torn down.
    """
    release = threading.Event()

    class StallingHandler(BaseHTTPRequestHandler):
        protocol_version = "HTTP/1.1"

        def do_POST(self) -> None:
            self.rfile.read(int(self.headers.get("Content-Length", 0)))
            line = (event_line(EventType.OPEN, 1) + "\n").encode()
            self.send_response(200)
            self.send_header("Content-Type", "application/vnd.urbanairship+x-ndjson;version=3;")
            self.send_header("Transfer-Encoding", "chunked")
            self.end_headers()
            self.wfile.write(b"%x\r\n%s\r\n" % (len(line), line))
            self.wfile.flush()
            release.wait(20)

        def log_message(self, format, *args) -> None:
            pass

    server = ThreadingHTTPServer(("127.0.0.1", 0), StallingHandler)
    thread = threading.Thread(target=server.serve_forever, daemon=True)
    thread.start()

    yield f"http://127.0.0.1:{server.server_address[1]}/api"

    release.set()
    server.shutdown()
    server.server_close()
