"""Client configuration using pydantic-settings."""

from pydantic import Field
from pydantic_settings import BaseSettings

DEFAULT_BASE_URL = "https://api.urbanairship.com/api"
MAX_REDIRECTS = 10
DEFAULT_BUFFER_SIZE = 10
DEFAULT_CLOSE_TIMEOUT = 3.0


class AirshipSettings(BaseSettings):
    """Configuration for the Events API client.

    All settings can be configured via environment variables with the
    AIRSHIP_ prefix. For example:
    - AIRSHIP_KEY=<app key>
    - AIRSHIP_SECRET=<master secret>
    - AIRSHIP_EVENTS_URL=https://example.test/api/events/

    Attributes:
        key: Application key used as the Basic auth username.
        secret: Master secret used as the Basic auth password.
        base_url: Base location of the API.
        events_url: Full URL that replaces ``base_url + "/events/"`` when set.
        timeout: Connect, write and pool timeout in seconds for the default
            HTTP client.
        read_timeout: Read timeout in seconds; ``None`` lets an idle event
            stream wait indefinitely.
        max_redirects: Number of 307 redirects followed before giving up.
        buffer_size: Capacity of the hand-off buffer between the decoder
            and consumers.
        close_timeout: Seconds ``Response.close()`` waits for the decoder
            thread to exit.

    Example:
        >>> settings = AirshipSettings(key="app-key", secret="master-secret")
        >>> client = Client.from_settings(settings)
    """

    key: str = ""
    secret: str = ""
    base_url: str = DEFAULT_BASE_URL
    events_url: str | None = None

    timeout: float = Field(default=10.0, ge=0)
    read_timeout: float | None = Field(default=None, ge=0)

    max_redirects: int = Field(default=MAX_REDIRECTS, ge=1)
    buffer_size: int = Field(default=DEFAULT_BUFFER_SIZE, ge=1)
    close_timeout: float = Field(default=DEFAULT_CLOSE_TIMEOUT, ge=0)

    model_config = {"env_prefix": "AIRSHIP_"}
