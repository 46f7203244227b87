"""
Authentication of the requests, and the sessions used to perform them.

The credentials are taken from the profile's user (auth info): either a static
token, or a refreshable identity. The identity's token is refreshed right
before the request if it is expired -- as seen by its ``exp`` claim.

Multiple concurrent requests can notice the expired token at the same time.
Only one of them performs the refresh; others wait for it and then use
the refreshed token. This is done per profile (different profiles can be
refreshed in parallel).
"""
import asyncio
import logging
import ssl
from typing import TYPE_CHECKING

import aiohttp

from wfclient._cogs.clients import errors
from wfclient._cogs.configs import configuration, profiles
from wfclient._cogs.helpers import versions

if TYPE_CHECKING:
    from wfclient._cogs.clients import api

logger = logging.getLogger('wfclient.auth')


class APIContext:
    """
    A container for an aiohttp session to a specific server.

    The container is constructed only once for every combination of the server
    endpoint and its CA certificate, and then cached in the client for re-use.
    All the requests of the client run in the same event loop, so there is
    no need to split the sessions for multiple loops.
    """

    # The main contained object used by the API methods.
    session: aiohttp.ClientSession

    # Contextual information for URL building and logging.
    server: str
    custom_ca: bool

    def __init__(
            self,
            server: profiles.Server,
            *,
            settings: configuration.ClientSettings,
    ) -> None:
        super().__init__()
        self.server = server.endpoint
        self.custom_ca = bool(server.ca_certificate)
        self.session = self.make_aiohttp_session(server, settings)

    @staticmethod
    def make_aiohttp_session(
            server: profiles.Server,
            settings: configuration.ClientSettings,
    ) -> aiohttp.ClientSession:

        # The custom CA is trusted in addition to the system CAs, not instead of them.
        context: ssl.SSLContext | None = None
        if server.ca_certificate:
            context = ssl.create_default_context()
            context.load_verify_locations(cadata=server.ca_certificate)

        return aiohttp.ClientSession(
            connector=aiohttp.TCPConnector(
                limit=0,
                ssl=context if context is not None else True,
            ),
            headers={
                'User-Agent': f'wfclient/{versions.version or "unknown"}',
            },
            timeout=aiohttp.ClientTimeout(
                total=settings.networking.request_timeout,
                sock_connect=settings.networking.connect_timeout,
            ),
        )

    async def close(self) -> None:
        await self.session.close()


class Authenticator:
    """
    Authorization of the requests with the credentials of the profiles.
    """

    def __init__(self, client: "api.Client") -> None:
        super().__init__()
        self._client = client
        self._locks: dict[str, asyncio.Lock] = {}

    def get_auth_info(self, profile: str) -> profiles.AuthInfo | None:
        """
        Find the credentials: the profile's user, or the same-named user if none.
        """
        config = self._client.config
        auth_info = config.get_auth_info(profile)
        return auth_info if auth_info is not None else config.auth_infos.get(profile)

    async def authorize(
            self,
            profile: str,
            *,
            override: str | None = None,
            unauthenticated: bool = False,
    ) -> str | None:
        """
        Get the ``Authorization`` header value for a request, if any.

        The identity tokens are refreshed if expired. The refresh errors are
        escalated to the request, and are not retried.
        """
        if unauthenticated:
            return None

        if override:
            return f'Bearer {override}'

        auth_info = self.get_auth_info(profile)
        if auth_info is None:
            raise errors.ProfileInvalidError("missing authentication profile", profile)

        if auth_info.token is not None:
            return f'Bearer {auth_info.token}'

        if auth_info.identity is not None:
            identity = auth_info.identity
            if identity.is_expired():
                await self.refresh(profile, identity)
            return f'Bearer {identity.token}'

        return None

    async def refresh(self, profile: str, identity: profiles.Identity) -> None:
        """
        Refresh the expired identity, once for all concurrent requests.

        The token is remembered as seen expired. If it is already replaced by
        the time the lock is acquired, another request has refreshed it.
        """
        stale_token = identity.token
        lock = self._locks.setdefault(profile, asyncio.Lock())
        async with lock:
            if identity.token != stale_token and not identity.is_expired():
                logger.debug(f"The identity of profile {profile!r} is already refreshed.")
                return
            logger.debug(f"The identity of profile {profile!r} is expired; refreshing.")
            await self._client.refresh_identity(profile)
