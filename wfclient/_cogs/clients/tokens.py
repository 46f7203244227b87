"""
Issuing of the API tokens: by refreshing the identity, or by an exchange.

Both calls authenticate with the long-lived token itself (the refresh token
or the exchange-scoped access token), never with the profile's credentials,
so they never trigger another refresh.
"""
import datetime
from typing import TYPE_CHECKING

from wfclient._cogs.clients import errors, requests, urls
from wfclient._cogs.helpers import durations
from wfclient._cogs.structs import claims

if TYPE_CHECKING:
    from wfclient._cogs.clients import api


async def refresh_identity_token(
        client: "api.Client",
        refresh: str,
        *,
        profile: str | None = None,
) -> str:
    """ Get a new identity token for a classic refresh token. """
    issued: claims.IssuedToken = {}
    payload: claims.IssuedToken = {'refresh-token': refresh}
    request = await (
        client.request(profile=profile)
        .authorization(refresh)
        .endpoint('/login/token')
        .payload(payload)
        .result(issued)
        .post()
    )
    request.raise_for_error()
    return issued.get('token', '')


async def exchange_access_token(
        client: "api.Client",
        exchange: str,
        ttl: datetime.timedelta | float,
        *,
        profile: str | None = None,
) -> str:
    """
    Get a new API token, valid for ``ttl``, for an exchange-scoped access token.
    """
    if not claims.is_exchange_token(exchange):
        raise errors.NonExchangeTokenError()

    issued: claims.IssuedToken = {}
    request = await (
        client.request(profile=profile)
        .authorization(exchange)
        .result(issued)
        .endpoint('/exchange')
        .parameters(urls.query_parameter('ttl', durations.format_duration(ttl)))
        .post()
    )
    try:
        request.raise_for_error()
    except requests.LATCHED_ERRORS as e:
        raise errors.AuthenticationError(
            f"failed to exchange access token for API token"
            f" - please check the access token is valid: {e}") from e
    return issued.get('token', '')
