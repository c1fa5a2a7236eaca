"""HTTP transport for the Airship API.

This module provides:
- Client: Authenticated JSON POSTs with the API's 307 + cookie redirect flow
- new_client: Convenience constructor using the default base URL

The Airship API may answer POSTs with ``307 Temporary Redirect`` and a
``Set-Cookie`` token which must be echoed back as ``Cookie`` on the
redirected POST. That flow is handled here instead of by httpx, which does
not apply a response's cookie to the redirected request.
"""

import json
import logging
from typing import Any

import httpx
from pydantic import BaseModel

from .config import (
    DEFAULT_BASE_URL,
    DEFAULT_BUFFER_SIZE,
    DEFAULT_CLOSE_TIMEOUT,
    MAX_REDIRECTS,
    AirshipSettings,
)
from .exceptions import EncodeError, TooManyRedirectsError, TransportError

LOGGER = logging.getLogger(__name__)

ACCEPT = (
    "application/vnd.urbanairship+x-json,"
    "application/vnd.urbanairship+x-ndjson;version=3;"
)
USER_AGENT = "airship-events/0.1.0"


class Client:
    """Airship API client.

    Handles authentication and provides ``post()`` for JSON requests against
    the API. Credentials and the base URL are read-only after construction.

    Attributes:
        base_url: Base location of the API (no trailing slash).
        http_client: The ``httpx.Client`` used to send requests.
        events_url: Optional full URL posted to instead of the ``events``
            path when fetching events.
        max_redirects: Number of 307 redirects followed before giving up.
        buffer_size: Capacity of the hand-off buffer for event streams.
        close_timeout: Seconds a stream's ``close()`` waits for its decoder.

    Examples:
        >>> client = new_client("app-key", "master-secret")
        >>> response = client.post("events", {"start": "LATEST"})

        >>> with Client("app-key", "master-secret", base_url="http://localhost:5555/api") as client:
        ...     stream = events.from_latest(client)
    """

    def __init__(
        self,
        key: str,
        secret: str,
        base_url: str = DEFAULT_BASE_URL,
        http_client: httpx.Client | None = None,
        events_url: str | None = None,
        max_redirects: int = MAX_REDIRECTS,
        buffer_size: int = DEFAULT_BUFFER_SIZE,
        close_timeout: float = DEFAULT_CLOSE_TIMEOUT,
    ):
        """Initialize the client.

        Args:
            key: Application key
            secret: Master secret
            base_url: Base location of the API
            http_client: HTTP client to send requests with. If omitted, a
                client is created and owned (closed by ``close()``).
            events_url: Full URL overriding the events endpoint
            max_redirects: Redirect limit for ``post()``
            buffer_size: Hand-off buffer capacity for event streams
            close_timeout: Seconds a stream's ``close()`` waits for its decoder
        """
        self._auth = httpx.BasicAuth(key, secret)
        self._owns_http_client = http_client is None
        self._base_url = base_url.rstrip("/")
        self.http_client = http_client if http_client is not None else default_http_client()
        self.events_url = events_url
        self.max_redirects = max_redirects
        self.buffer_size = buffer_size
        self.close_timeout = close_timeout

    @classmethod
    def from_settings(cls, settings: AirshipSettings | None = None) -> "Client":
        """Create a client from settings (read from the environment by default)."""
        if settings is None:
            settings = AirshipSettings()
        client = cls(
            settings.key,
            settings.secret,
            base_url=settings.base_url,
            http_client=default_http_client(settings.timeout, settings.read_timeout),
            events_url=settings.events_url,
            max_redirects=settings.max_redirects,
            buffer_size=settings.buffer_size,
            close_timeout=settings.close_timeout,
        )
        client._owns_http_client = True
        return client

    @property
    def base_url(self) -> str:
        return self._base_url

    def post(self, path: str, body: Any = None) -> httpx.Response:
        """POST a request to the API with the client's credentials.

        If body is not None it is serialized to JSON and sent with
        ``Content-Type: application/json``. The returned response is
        streaming: callers must read or close it.

        Args:
            path: Path fragment appended to the base URL, or an absolute URL
            body: Value to serialize as the JSON request body

        Returns:
            The first non-307 response

        Raises:
            EncodeError: If body cannot be serialized to JSON
            TooManyRedirectsError: If the API is still redirecting after
                max_redirects attempts
            TransportError: If the HTTP client fails
        """
        url = path if path.startswith("http") else f"{self._base_url}/{path}/"
        content = encode_body(body)

        response = self._send(url, content, cookie=None)

        cookie = None
        attempts = 0
        while response.status_code == httpx.codes.TEMPORARY_REDIRECT:
            if attempts == self.max_redirects:
                discard(response)
                LOGGER.warning(
                    "Giving up after too many redirects",
                    extra={"url": url, "attempt": attempts},
                )
                raise TooManyRedirectsError(attempts)
            discard(response)

            location = response.headers.get("Location")
            if location:
                url = location if location.startswith("http") else self._base_url + location

            set_cookie = response.headers.get_list("Set-Cookie")
            if set_cookie:
                cookie = set_cookie[0]

            attempts += 1
            LOGGER.debug("Following redirect", extra={"url": url, "attempt": attempts})
            response = self._send(url, content, cookie)

        return response

    def _send(self, url: str, content: bytes | None, cookie: str | None) -> httpx.Response:
        headers = {
            "Accept": ACCEPT,
            "Accept-Encoding": "gzip",
            "User-Agent": USER_AGENT,
        }
        if content:
            headers["Content-Type"] = "application/json"
        if cookie is not None:
            headers["Cookie"] = cookie

        # Not build_request(): the client's cookie jar must not be applied.
        request = httpx.Request("POST", url, headers=headers, content=content)
        try:
            return self.http_client.send(
                request, auth=self._auth, stream=True, follow_redirects=False
            )
        except httpx.HTTPError as err:
            raise TransportError(f"POST {url} failed: {err}") from err

    def close(self) -> None:
        """Close the HTTP client if this client created it."""
        if self._owns_http_client:
            self.http_client.close()

    def __enter__(self) -> "Client":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False


def new_client(key: str, secret: str) -> Client:
    """Create a client for the default API location.

    Args:
        key: Application key
        secret: Master secret

    Returns:
        A Client using DEFAULT_BASE_URL and a default HTTP client
    """
    return Client(key, secret)


def default_http_client(timeout: float = 10.0, read_timeout: float | None = None) -> httpx.Client:
    """Create the HTTP client used when none is injected.

    Args:
        timeout: Connect, write and pool timeout in seconds
        read_timeout: Read timeout in seconds, None for an unbounded wait
            between chunks of an idle event stream
    """
    return httpx.Client(timeout=httpx.Timeout(timeout, read=read_timeout), follow_redirects=False)


def encode_body(body: Any) -> bytes | None:
    """Serialize a request body to JSON bytes.

    pydantic models are serialized by alias through their own serializer.

    Raises:
        EncodeError: If the value is not JSON serializable
    """
    if body is None:
        return None
    try:
        if isinstance(body, BaseModel):
            return body.model_dump_json(by_alias=True).encode()
        return json.dumps(body).encode()
    except (TypeError, ValueError) as err:
        raise EncodeError(f"cannot encode request body: {err}") from err


def discard(response: httpx.Response) -> None:
    """Drain and close a response so its connection can be reused."""
    try:
        response.read()
    except httpx.HTTPError:
        LOGGER.debug("Error draining response body", exc_info=True)
    finally:
        response.close()
