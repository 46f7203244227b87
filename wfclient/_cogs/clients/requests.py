"""
The request builder: a fluent session of a single API call.

The request is configured by the chained setters, each returning the same
request, and is performed by one of the terminal coroutines::

    request = await client.request().resource(APPENV).workspace('ws1').name('prod').result(obj).get()
    if (error := request.error()) is not None:
        ...

The errors are not raised from the setters or the terminal calls. Instead,
the first error is latched in the request and is returned by :meth:`Request.error`
(or raised by :meth:`Request.raise_for_error`). Once an error is latched,
the terminal calls do not perform any HTTP calls at all.

Only HTTP 429 ("Too many requests") is retried, with the exponential backoff.
All other responses, successful or not, end the call. The connection errors
are not retried either: they are latched as is.
"""
import asyncio
import inspect
import json
import logging
import time
from collections.abc import AsyncIterator, Callable
from typing import TYPE_CHECKING, Any

import aiohttp

from wfclient._cogs.clients import errors, retries, urls
from wfclient._cogs.helpers import loggers, versions
from wfclient._cogs.structs import bodies, resources, validation

if TYPE_CHECKING:
    from wfclient._cogs.clients import api

logger = logging.getLogger('wfclient.requests')

# The errors stored in the request instead of being raised. All others escalate.
LATCHED_ERRORS: tuple[type[BaseException], ...] = (
    errors.ClientError,
    aiohttp.ClientError,
    asyncio.TimeoutError,
    ValueError,
)

WarningHandler = Callable[[list[validation.APIWarning]], Any]  # sync or async


async def iter_jsonlines(
        content: aiohttp.StreamReader,
        chunk_size: int = 1024 * 1024,
) -> AsyncIterator[bytes]:
    """
    Iterate line by line over the response's content.

    This is an equivalent of ``async for line in response.content``, except that
    aiohttp's line iteration fails if a line is longer than its buffer (128 KB),
    while the streamed logs and events of the API can be much longer.
    """
    buffer = b''
    async for data in content.iter_chunked(chunk_size):
        buffer += data
        del data

        start = 0
        index = buffer.find(b'\n', start)
        while index >= 0:
            line = buffer[start:index]
            if line:
                yield line
            del line
            start = index + 1
            index = buffer.find(b'\n', start)

        if start > 0:
            buffer = buffer[start:]

    if buffer:
        yield buffer


class Request:
    """
    A single API call: its target, payload, result sink, and outcome.
    """

    def __init__(
            self,
            client: "api.Client",
            *,
            profile: str,
            warning_handler: WarningHandler | None = None,
            session: aiohttp.ClientSession | None = None,
    ) -> None:
        super().__init__()
        self._client = client
        self._profile = profile
        self._urls = urls.URLBuilder()
        self._warning_handler = warning_handler
        self._session = session
        self._stopper: asyncio.Event | None = None
        self._authorization: str | None = None
        self._unauthenticated = False
        self._follow = False
        self._payload: Any = None
        self._result: Any = None
        self._error: BaseException | None = None
        self._response: aiohttp.ClientResponse | None = None
        self._body: bytes = b''

    def __repr__(self) -> str:
        return f'<{type(self).__name__} profile={self._profile!r} error={self._error!r}>'

    @property
    def profile(self) -> str:
        return self._profile

    def _latch(self, exc: BaseException) -> None:
        if self._error is None:
            self._error = exc

    #
    # The chained setters.
    #

    def authorization(self, token: str) -> "Request":
        """ Authenticate with this bearer token instead of the profile's credentials. """
        self._authorization = token
        return self

    def unauthenticated(self) -> "Request":
        self._unauthenticated = True
        return self

    def resource(self, resource: resources.Resource | None) -> "Request":
        self._urls.resource(resource)
        return self

    def resource_api_version(self, api_version: str) -> "Request":
        self._urls.resource_api_version(api_version)
        return self

    def resource_version(self, version: str) -> "Request":
        self._urls.resource_version(version)
        return self

    def workspace(self, workspace: str) -> "Request":
        self._urls.workspace(workspace)
        return self

    def name(self, name: str) -> "Request":
        self._urls.name(name)
        return self

    def subresource(self, subresource: str) -> "Request":
        self._urls.subresource(subresource)
        return self

    def subresource_name(self, name: str) -> "Request":
        self._urls.subresource_name(name)
        return self

    def endpoint(self, endpoint: str) -> "Request":
        """ A path relative to the non-resource API, e.g. ``/whoami``. """
        self._urls.endpoint(endpoint)
        return self

    def raw_endpoint(self, endpoint: str) -> "Request":
        """ A path relative to the server root, e.g. ``/apiinfo``. """
        self._urls.raw_endpoint(endpoint)
        return self

    def parameters(self, *fns: urls.ParameterFn) -> "Request":
        try:
            self._urls.parameters(*fns)
        except ValueError as e:
            self._latch(e)
        return self

    def payload(self, payload: Any) -> "Request":
        self._payload = payload
        return self

    def result(self, sink: Any) -> "Request":
        """
        Decode the successful response into this sink.

        The sink is an object with ``load_raw()`` (e.g. :class:`wfclient.Object`),
        a mutable mapping or list (updated in place), or a callback.
        """
        if sink is not None and not bodies.is_supported_sink(sink):
            raise TypeError(f"Unsupported result sink: {sink!r}")
        self._result = sink
        return self

    def follow(self, follow: bool = True) -> "Request":
        """ Keep the successful response unread, for streaming (no total timeout). """
        self._follow = follow
        return self

    def stopper(self, stopper: asyncio.Event | None) -> "Request":
        """ Stop retrying (and sleeping between the retries) when the event is set. """
        self._stopper = stopper
        return self

    def session(self, session: aiohttp.ClientSession | None) -> "Request":
        self._session = session
        return self

    def with_warning_handler(self, handler: WarningHandler | None) -> "Request":
        self._warning_handler = handler
        return self

    #
    # The terminal calls.
    #

    async def get(self) -> "Request":
        await self._handle_request('GET')
        return self

    async def post(self) -> "Request":
        await self._handle_request('POST')
        return self

    async def put(self) -> "Request":
        await self._handle_request('PUT')
        return self

    async def create(self) -> "Request":
        await self._handle_request('POST')
        await self._handle_warnings()
        return self

    async def update(self) -> "Request":
        await self._handle_request('PUT')
        await self._handle_warnings()
        return self

    async def delete(self) -> "Request":
        await self._handle_request('DELETE')
        await self._handle_warnings()
        return self

    async def exists(self) -> bool:
        """ Check if the target exists; all errors except HTTP 404 are raised. """
        await self.get()
        error = self.error()
        if error is None:
            return True
        if errors.is_not_found(error):
            return False
        raise error

    #
    # The outcome & inspection.
    #

    def error(self) -> BaseException | None:
        """ Get the latched error (if any) and clear it. """
        error, self._error = self._error, None
        return error

    def raise_for_error(self) -> None:
        """ Raise the latched error (if any) and clear it. """
        error = self.error()
        if error is not None:
            raise error

    def duplicate(self) -> "Request":
        """
        Make a new request to the same target, with the same payload & sink,
        but with its own parameters, and with no error or response yet.
        """
        dup = type(self)(
            self._client,
            profile=self._profile,
            warning_handler=self._warning_handler,
            session=self._session,
        )
        dup._urls = self._urls.duplicate()
        dup._payload = self._payload
        dup._result = self._result
        dup._stopper = self._stopper
        return dup

    @property
    def response(self) -> aiohttp.ClientResponse | None:
        return self._response

    @property
    def body(self) -> bytes:
        """ The buffered body of the response (empty in the follow mode). """
        return self._body

    async def iter_lines(self) -> AsyncIterator[bytes]:
        """ Iterate over the lines of a followed response, then release it. """
        if self._response is None:
            return
        async with self._response:
            async for line in iter_jsonlines(self._response.content):
                yield line

    def get_payload(self) -> Any:
        return self._payload

    def has_parameter(self, key: str) -> str | None:
        return self._urls.has_parameter(key)

    def get_warnings(self) -> list[validation.APIWarning]:
        if self._response is None:
            return []
        values = self._response.headers.getall(validation.WARNING_HEADER, [])
        return errors.parse_warnings(values, logger=logger)

    #
    # The request lifecycle.
    #

    async def _handle_request(self, method: str) -> None:
        if self._error is not None:
            return
        try:
            await self._perform(method)
        except LATCHED_ERRORS as e:
            self._latch(e)

    async def _handle_warnings(self) -> None:
        warnings = self.get_warnings()
        if not warnings:
            return
        logger.debug(f"API request: Warnings received: {warnings!r}")
        if self._warning_handler is not None:
            result = self._warning_handler(warnings)
            if inspect.isawaitable(result):
                await result

    async def _perform(self, method: str) -> None:
        server = self._client.get_server(self._profile)
        if self._client.settings.discovery.enabled and server.api_info is None and not self._urls.is_raw_endpoint:
            await self._client.check_server(
                profile=self._profile,
                save_profile=self._client.settings.discovery.save_profile,
            )

        uri = self._urls.make_url(server.get_api_info())
        endpoint = server.endpoint.rstrip('/')
        context = self._client.get_context(server)
        session = self._session if self._session is not None else context.session
        networking = self._client.settings.networking
        timeout = aiohttp.ClientTimeout(
            total=None if self._follow else networking.request_timeout,
            sock_connect=networking.connect_timeout,
        )
        payload = bodies.encode_payload(self._payload)
        rlogger = loggers.RequestLogger(
            method=method,
            uri=uri,
            endpoint=endpoint,
            custom_ca=context.custom_ca,
        )
        rlogger.debug("API request")

        response: aiohttp.ClientResponse | None = None

        async def attempt() -> bool:
            nonlocal response
            if response is not None:
                response.close()

            headers = {
                'Content-Type': 'application/json',
                'X-Client-Version': versions.version or '',
            }
            authorization = await self._client.authenticator.authorize(
                self._profile,
                override=self._authorization,
                unauthenticated=self._unauthenticated,
            )
            if authorization is not None:
                headers['Authorization'] = authorization

            response = await session.request(
                method=method,
                url=endpoint + uri,
                data=payload,
                headers=headers,
                timeout=timeout,
            )
            if response.status == 429:
                rlogger.warning("API request: Received 'Too many requests' error, backing off and retrying")
                return False
            return True

        started = time.monotonic()
        try:
            await retries.retry(
                attempt,
                attempts=networking.error_attempts,
                min_interval=networking.error_backoff,
                factor=networking.error_backoff_factor,
                jitter=networking.error_backoff_jitter,
                stopper=self._stopper,
                logger=rlogger,
            )
        except retries.RetryAttemptsExhausted:
            # The last rate-limited response is classified as usual below.
            if response is None:
                raise
        except BaseException as e:  # incl. cancellations while backing off
            if response is not None:
                response.close()
            rlogger.debug(f"API request: Error after {time.monotonic() - started:.3f}s: {e!r}")
            raise

        if response is None:  # for type-checking; impossible after a finished retry.
            raise RuntimeError("No response after the retries.")

        rlogger.debug(f"API request: Complete with HTTP {response.status} after {time.monotonic() - started:.3f}s")
        await self._handle_response(response, method=method, uri=uri, logger=rlogger)

    async def _handle_response(
            self,
            response: aiohttp.ClientResponse,
            *,
            method: str,
            uri: str,
            logger: loggers.RequestLogger,
    ) -> None:
        self._response = response
        if 200 <= response.status <= 299:
            if self._follow:
                return
            async with response:
                self._body = await response.read()
            if self._result is not None and self._body:
                bodies.decode_into(self._result, json.loads(self._body))
            return

        async with response:
            self._body = await response.read()
        raise errors.make_api_error(
            code=response.status,
            verb=method,
            uri=uri,
            headers=response.headers,
            body=self._body,
            logger=logger,
        )
