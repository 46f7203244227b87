import aiohttp.web
import pytest

import wfclient
from wfclient._cogs.clients.tokens import exchange_access_token, refresh_identity_token
from wfclient._cogs.structs.claims import SCOPE_ACCESS_TOKEN, SCOPE_EXCHANGE


@pytest.fixture()
def request_fn(mocker):
    return mocker.patch('aiohttp.ClientSession.request')


async def test_non_exchange_tokens_are_not_exchanged(request_fn, client, make_token):
    with pytest.raises(wfclient.NonExchangeTokenError, match=r"the token is not an exchange token"):
        await exchange_access_token(client, make_token(scopes=[SCOPE_ACCESS_TOKEN]), 60)
    assert not request_fn.called


async def test_exchange_with_ttl_in_seconds(resp_mocker, aresponses, hostname, client, make_token):
    post_mock = resp_mocker(return_value=aiohttp.web.json_response({'token': 'api-token'}))
    aresponses.add(hostname, '/api/v2/exchange', 'post', post_mock)

    token = await exchange_access_token(client, make_token(scopes=[SCOPE_EXCHANGE]), 90)

    assert token == 'api-token'
    assert post_mock.call_args[0][0].query['ttl'] == '1m30s'


async def test_exchange_uses_the_specified_profile(resp_mocker, aresponses, client, config, make_token):
    config.create_profile('other', 'http://other-host')
    post_mock = resp_mocker(return_value=aiohttp.web.json_response({'token': 'api-token'}))
    aresponses.add('other-host', '/api/v2/exchange', 'post', post_mock)

    token = await exchange_access_token(client, make_token(scopes=[SCOPE_EXCHANGE]), 60, profile='other')

    assert token == 'api-token'
    assert post_mock.call_count == 1


async def test_refresh_without_a_token_in_response(resp_mocker, aresponses, hostname, client):
    aresponses.add(hostname, '/api/v2/login/token', 'post', resp_mocker(return_value=aiohttp.web.json_response({})))
    assert await refresh_identity_token(client, 'refresh-token') == ''


async def test_refresh_is_never_authorized_by_the_profile(resp_mocker, aresponses, hostname, client):
    post_mock = resp_mocker(return_value=aiohttp.web.json_response({'token': 't'}))
    aresponses.add(hostname, '/api/v2/login/token', 'post', post_mock)

    await refresh_identity_token(client, 'refresh-token')

    assert post_mock.call_args[0][0].headers['Authorization'] == 'Bearer refresh-token'


async def test_refresh_connection_errors_escalate(request_fn, client):
    request_fn.side_effect = aiohttp.ClientConnectionError("no route")
    with pytest.raises(aiohttp.ClientConnectionError):
        await refresh_identity_token(client, 'refresh-token')


async def test_exchange_connection_errors_are_authentication_errors(request_fn, client, make_token):
    request_fn.side_effect = aiohttp.ClientConnectionError("no route")
    with pytest.raises(wfclient.AuthenticationError) as err:
        await exchange_access_token(client, make_token(scopes=[SCOPE_EXCHANGE]), 60)
    assert isinstance(err.value.__cause__, aiohttp.ClientConnectionError)
