"""Exceptions raised by the Events API client."""


class AirshipError(Exception):
    """Base class for all errors raised by this library."""

    pass


class TooManyRedirectsError(AirshipError):
    """Raised when the API keeps answering with 307 past the redirect limit."""

    def __init__(self, attempts: int):
        super().__init__(f"too many redirects ({attempts})")
        self.attempts = attempts


class RateLimitedError(AirshipError):
    """Raised when the API responds with 402 Payment Required.

    The Events API answers 402 when the number of simultaneous connections
    allowed for the application is exceeded.
    """

    def __init__(self) -> None:
        super().__init__("request was rate limited")


class UnexpectedStatusError(AirshipError):
    """Raised when opening an event stream returns a non-200 status."""

    def __init__(self, status_code: int):
        super().__init__(f"unexpected non-200 response: {status_code}")
        self.status_code = status_code


class RequestValidationError(AirshipError):
    """Raised when a fetch request or subset is malformed.

    Raised before any network call is made.
    """

    def __init__(self, detail: str):
        super().__init__(detail)
        self.detail = detail


class WrongTypeError(AirshipError):
    """Raised by a typed accessor invoked on an event of another kind."""

    def __init__(self, expected: str, actual: str):
        super().__init__(f"wrong type for event: expected {expected}, found {actual}")
        self.expected = expected
        self.actual = actual


class DecodeError(AirshipError):
    """Raised when an event envelope or body cannot be decoded."""

    def __init__(self, detail: str):
        super().__init__(detail)
        self.detail = detail


class EncodeError(AirshipError):
    """Raised when a request body cannot be serialized to JSON."""

    pass


class TransportError(AirshipError):
    """Raised when the underlying HTTP client fails.

    The underlying ``httpx`` exception is available as ``__cause__``.
    """

    pass


class ChannelClosed(AirshipError):
    """Raised by ``EventChannel.next()`` once the channel is closed and drained."""

    pass


class EndOfStream(Exception):
    """Marks a stream the server ended cleanly.

    Returned (never raised) by ``Response.err()``. Not an ``AirshipError``:
    catching ``AirshipError`` never matches a clean end of stream.
    """

    def __init__(self) -> None:
        super().__init__("end of stream")
