"""
All the flags, options, settings to fine-tune the API client.

All settings are grouped semantically just for convenience
(instead of a flat mega-object with all the values in it).

In this package, they are called *"settings"* (plural) -- to distinguish
them from the *"configuration"* (singular), which is the persisted
set of profiles, servers, and credentials (see :mod:`profiles`).

Some settings are initialised from the environment variables at the time
of the settings' creation, not at import time. Explicit values always win.
"""
import dataclasses
import datetime
import logging
import os

from wfclient._cogs.helpers import durations

logger = logging.getLogger(__name__)

ENV_HTTP_CLIENT_TIMEOUT = 'WAYFINDER_HTTP_CLIENT_TIMEOUT'
DEFAULT_REQUEST_TIMEOUT = 30.0


def _default_request_timeout() -> float:
    value = os.environ.get(ENV_HTTP_CLIENT_TIMEOUT, '')
    if not value:
        return DEFAULT_REQUEST_TIMEOUT
    try:
        return durations.parse_duration(value)
    except ValueError:
        logger.warning(f"Ignoring the unparseable {ENV_HTTP_CLIENT_TIMEOUT}={value!r}.")
        return DEFAULT_REQUEST_TIMEOUT


@dataclasses.dataclass
class NetworkingSettings:

    request_timeout: float | None = dataclasses.field(default_factory=_default_request_timeout)
    """
    A total timeout (seconds) of every API request (except for the followed ones).

    The default is 30 seconds, or as specified in the ``WAYFINDER_HTTP_CLIENT_TIMEOUT``
    environment variable as a duration (e.g. ``1m30s``).
    Set to ``None`` to disable the timeout.
    """

    connect_timeout: float | None = 5.0
    """
    A timeout (seconds) for the TCP connection & TLS handshake of the requests.
    """

    error_attempts: int = 3
    """
    How many times a rate-limited request (HTTP 429) is attempted in total.

    Only HTTP 429 responses are retried. Other HTTP errors, and the connection
    errors of the underlying HTTP library, are escalated on the first attempt.
    """

    error_backoff: float = 1.0
    """
    The minimal delay (seconds) between the attempts of rate-limited requests.

    The maximum delay is twice as long; the delays grow by :attr:`error_backoff_factor`.
    """

    error_backoff_factor: float = 1.5
    """
    The growth factor of the delays between the attempts.
    """

    error_backoff_jitter: bool = True
    """
    Should the delays between the attempts be randomised (within the limits).
    """


@dataclasses.dataclass
class ConflictSettings:

    attempts: int = 3
    """
    How many times an update is attempted in total if the object was modified
    on the server side since it was read (the optimistic concurrency conflicts).

    The update is re-attempted only if the object's spec is the same as known
    (i.e. the ``metadata.generation`` did not change), so that the changes
    made by others are never overwritten silently.
    """

    backoff: float = 0.1
    """
    How long to wait (in seconds) before re-attempting a conflicting update;
    the following waits grow up to the double of it.
    """


@dataclasses.dataclass
class AuthSettings:

    exchange_ttl: datetime.timedelta = datetime.timedelta(minutes=30)
    """
    For how long the API tokens, which are issued in exchange for the access
    tokens (exchange-scoped refresh tokens), should be valid.
    """


@dataclasses.dataclass
class DiscoverySettings:

    enabled: bool = False
    """
    Should the server's API layout be discovered lazily before the first request.

    If enabled, the ``/apiinfo`` endpoint is requested for the servers that
    have no API info known yet. If disabled (the default), the default layout
    is assumed, unless :meth:`wfclient.Client.check_server` is called explicitly.
    """

    save_profile: bool = False
    """
    Should the lazily discovered API info be persisted via the update handler.
    """


@dataclasses.dataclass
class ClientSettings:
    networking: NetworkingSettings = dataclasses.field(default_factory=NetworkingSettings)
    conflicts: ConflictSettings = dataclasses.field(default_factory=ConflictSettings)
    auth: AuthSettings = dataclasses.field(default_factory=AuthSettings)
    discovery: DiscoverySettings = dataclasses.field(default_factory=DiscoverySettings)
