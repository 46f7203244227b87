"""
The API client: the factory of requests for the profiles of a configuration.

The client owns the HTTP sessions (one per server endpoint & CA certificate),
so it must be closed when not needed anymore::

    async with wfclient.Client(wfclient.get_config()) as client:
        request = await client.request().endpoint('/whoami').result(whoami).get()
        request.raise_for_error()

The configuration is shared and modified in place: the refreshed tokens
and the discovered API layouts are stored into it, and the update handler
is called to persist it (see :func:`wfclient.make_update_handler`).
"""
import asyncio
import inspect
import logging
from collections.abc import Callable
from typing import Any

import aiohttp

from wfclient._cogs.clients import auth, errors, requests, tokens
from wfclient._cogs.configs import configuration, profiles

logger = logging.getLogger('wfclient.auth')

UpdateHandler = Callable[[], Any]  # sync or async


class Client:

    def __init__(
            self,
            config: profiles.Config,
            *,
            settings: configuration.ClientSettings | None = None,
            update_handler: UpdateHandler | None = None,
            warning_handler: requests.WarningHandler | None = None,
            session: aiohttp.ClientSession | None = None,
            profile: str | None = None,
    ) -> None:
        super().__init__()
        self.config = config
        self.settings = settings if settings is not None else configuration.ClientSettings()
        self.authenticator = auth.Authenticator(self)
        self._update_handler = update_handler
        self._warning_handler = warning_handler
        self._session = session
        self._profile = profile
        self._contexts: dict[tuple[str, str], auth.APIContext] = {}

    async def __aenter__(self) -> "Client":
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.close()

    async def close(self) -> None:
        """ Close the sessions owned by the client (but not the injected ones). """
        contexts, self._contexts = self._contexts, {}
        await asyncio.gather(*[context.close() for context in contexts.values()])

    @property
    def current_profile(self) -> str:
        return self._profile or self.config.current_profile

    def override_profile(self, name: str) -> "Client":
        """ Use this profile for all new requests instead of the configured one. """
        self._profile = name
        return self

    def request(self, *, profile: str | None = None) -> requests.Request:
        return requests.Request(
            self,
            profile=profile or self.current_profile,
            warning_handler=self._warning_handler,
            session=self._session,
        )

    def get_server(self, profile: str) -> profiles.Server:
        """ Get the server of the profile, or fail if it cannot be used. """
        prof = self.config.get_profile(profile)
        if prof is None:
            raise errors.MissingProfileError()
        server = self.config.servers.get(prof.server)
        if server is None:
            raise errors.ProfileInvalidError("missing profile server", profile)
        if not server.endpoint:
            raise errors.ProfileInvalidError("missing endpoint", profile)
        return server

    def get_context(self, server: profiles.Server) -> auth.APIContext:
        """ Get a cached session to the server, or create a new one. """
        key = (server.endpoint, server.ca_certificate)
        if key not in self._contexts:
            self._contexts[key] = auth.APIContext(server, settings=self.settings)
        return self._contexts[key]

    async def refresh_identity(self, profile: str | None = None) -> None:
        """
        Get a new identity token for the profile, and store it in the configuration.

        The exchange-scoped access tokens are exchanged for a new API token;
        the classic refresh tokens are refreshed via the login endpoint.
        """
        profile = profile or self.current_profile
        auth_info = self.authenticator.get_auth_info(profile)
        if auth_info is None:
            raise errors.ProfileInvalidError("missing authentication profile", profile)

        identity = auth_info.identity
        if identity is None:
            raise errors.AuthenticationError("no token available to refresh")
        elif identity.is_exchange_token:
            logger.debug("Refreshing the access token via the access token exchange.")
            try:
                token = await tokens.exchange_access_token(
                    self, identity.refresh_token, self.settings.auth.exchange_ttl, profile=profile)
            except errors.AuthenticationError as e:
                logger.error(f"Failed to exchange the access token: {e}")
                raise
        elif identity.refresh_token:
            logger.debug("Refreshing the identity token.")
            token = await tokens.refresh_identity_token(self, identity.refresh_token, profile=profile)
        else:
            raise errors.AuthenticationError("no refresh or exchange token available to refresh")

        identity.token = token
        await self._handle_configuration_update()

    async def check_server(
            self,
            force: bool = False,
            save_profile: bool = False,
            *,
            profile: str | None = None,
    ) -> None:
        """
        Discover the API layout of the profile's server, unless already known.

        The old servers without the API info endpoint are assumed to have
        the legacy layout of the non-resource API.
        """
        profile = profile or self.current_profile
        prof = self.config.get_profile(profile)
        if prof is None:
            raise errors.MissingProfileError()
        server = self.config.servers.get(prof.server)
        if server is None:
            raise errors.MissingProfileError()
        if not force and server.api_info is not None:
            return

        api_info = profiles.APIInfo()
        request = await (
            self.request(profile=profile)
            .raw_endpoint('/apiinfo')
            .unauthenticated()
            .result(api_info)
            .get()
        )
        error = request.error()
        if errors.is_not_found(error):
            api_info.non_resource_api = profiles.LEGACY_NON_RESOURCE_API
        elif error is not None:
            raise error

        server.api_info = api_info
        if save_profile:
            await self._handle_configuration_update()

    async def _handle_configuration_update(self) -> None:
        if self._update_handler is None:
            return
        result = self._update_handler()
        if inspect.isawaitable(result):
            await result


def new_client(config: profiles.Config | None, **kwargs: Any) -> Client:
    if config is None:
        raise ValueError("no client configuration")
    return Client(config, **kwargs)
