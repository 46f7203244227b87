from unittest.mock import AsyncMock, Mock

import aiohttp.web
import pytest

import wfclient
from wfclient._cogs.configs.profiles import LEGACY_NON_RESOURCE_API
from wfclient._cogs.structs.claims import SCOPE_EXCHANGE


@pytest.fixture()
def request_fn(mocker):
    return mocker.patch('aiohttp.ClientSession.request')


def test_client_needs_a_configuration():
    with pytest.raises(ValueError, match=r"no client configuration"):
        wfclient.new_client(None)


async def test_client_creation(config, settings):
    client = wfclient.new_client(config, settings=settings)
    assert isinstance(client, wfclient.Client)
    assert client.config is config
    assert client.settings is settings
    await client.close()


async def test_default_settings(config):
    async with wfclient.Client(config) as client:
        assert client.settings == wfclient.ClientSettings()


async def test_profile_selection(client, config):
    assert client.current_profile == 'default'
    assert client.request().profile == 'default'
    assert client.request(profile='other').profile == 'other'

    assert client.override_profile('other') is client
    assert client.current_profile == 'other'
    assert client.request().profile == 'other'
    assert config.current_profile == 'default'


async def test_server_of_a_missing_profile(client):
    with pytest.raises(wfclient.MissingProfileError):
        client.get_server('absent')


async def test_server_of_a_profile_without_server(client, config):
    config.add_profile('broken', wfclient.Profile(server='absent', auth_info='default'))
    with pytest.raises(wfclient.ProfileInvalidError, match=r"missing profile server"):
        client.get_server('broken')


async def test_server_without_an_endpoint(client, config):
    config.create_profile('broken', '')
    with pytest.raises(wfclient.ProfileInvalidError, match=r"missing endpoint"):
        client.get_server('broken')


async def test_contexts_are_cached_per_server(client, config):
    config.create_profile('other', 'http://other-host')
    context1 = client.get_context(client.get_server('default'))
    context2 = client.get_context(client.get_server('default'))
    context3 = client.get_context(client.get_server('other'))
    assert context1 is context2
    assert context1 is not context3
    assert context1.server == 'http://fake-host'
    assert not context1.custom_ca


async def test_sessions_are_closed_with_the_client(config, settings):
    client = wfclient.Client(config, settings=settings)
    context = client.get_context(client.get_server('default'))
    assert not context.session.closed
    await client.close()
    assert context.session.closed


async def test_server_discovery(resp_mocker, aresponses, hostname, client, config):
    get_mock = resp_mocker(return_value=aiohttp.web.json_response({
        'nonResourceAPI': '/api/v3',
        'resourceAPI': '/res',
    }))
    aresponses.add(hostname, '/apiinfo', 'get', get_mock)

    await client.check_server()

    assert config.servers['default'].api_info == wfclient.APIInfo(non_resource_api='/api/v3', resource_api='/res')
    assert 'Authorization' not in get_mock.call_args[0][0].headers


async def test_discovery_of_legacy_servers(resp_mocker, aresponses, hostname, client, config):
    aresponses.add(hostname, '/apiinfo', 'get', resp_mocker(return_value=aiohttp.web.json_response({}, status=404)))

    await client.check_server()

    assert config.servers['default'].api_info == wfclient.APIInfo(non_resource_api=LEGACY_NON_RESOURCE_API)


async def test_discovery_failures_escalate(resp_mocker, aresponses, hostname, client, config):
    aresponses.add(hostname, '/apiinfo', 'get', resp_mocker(return_value=aiohttp.web.json_response({}, status=500)))

    with pytest.raises(wfclient.APIError):
        await client.check_server()
    assert config.servers['default'].api_info is None


async def test_discovery_is_skipped_if_known(request_fn, client, config):
    config.servers['default'].api_info = wfclient.APIInfo()
    await client.check_server()
    assert not request_fn.called


async def test_discovery_is_forced_and_saved(resp_mocker, aresponses, hostname, config, settings):
    aresponses.add(hostname, '/apiinfo', 'get', resp_mocker(return_value=aiohttp.web.json_response({})))
    config.servers['default'].api_info = wfclient.APIInfo(non_resource_api='/old')
    update_handler = Mock()

    async with wfclient.Client(config, settings=settings, update_handler=update_handler) as client:
        await client.check_server(force=True, save_profile=True)

    assert config.servers['default'].api_info == wfclient.APIInfo()
    assert update_handler.call_count == 1


async def test_discovery_of_missing_profiles(client):
    with pytest.raises(wfclient.MissingProfileError):
        await client.check_server(profile='absent')


async def test_lazy_discovery_before_the_first_request(resp_mocker, aresponses, hostname, config, settings):
    aresponses.add(hostname, '/apiinfo', 'get',
                   resp_mocker(return_value=aiohttp.web.json_response({'nonResourceAPI': '/api/v3'})))
    whoami_mock = resp_mocker(return_value=aiohttp.web.json_response({}))
    aresponses.add(hostname, '/api/v3/whoami', 'get', whoami_mock)
    settings.discovery.enabled = True

    async with wfclient.Client(config, settings=settings) as client:
        request = await client.request().endpoint('/whoami').get()

    assert request.error() is None
    assert whoami_mock.call_count == 1


async def test_identity_refresh_with_refresh_tokens(resp_mocker, aresponses, hostname, config, settings):
    post_mock = resp_mocker(return_value=aiohttp.web.json_response({'token': 'new-token'}))
    aresponses.add(hostname, '/api/v2/login/token', 'post', post_mock)
    identity = wfclient.Identity(token='old-token', refresh_token='refresh-token')
    config.add_auth_info('default', wfclient.AuthInfo(identity=identity))
    update_handler = AsyncMock()

    async with wfclient.Client(config, settings=settings, update_handler=update_handler) as client:
        await client.refresh_identity()

    assert identity.token == 'new-token'
    assert update_handler.await_count == 1
    http_request = post_mock.call_args[0][0]
    assert http_request.headers['Authorization'] == 'Bearer refresh-token'
    assert http_request['data'] == {'refresh-token': 'refresh-token'}


async def test_identity_refresh_with_exchange_tokens(
        resp_mocker, aresponses, hostname, config, settings, make_token):
    post_mock = resp_mocker(return_value=aiohttp.web.json_response({'token': 'api-token'}))
    aresponses.add(hostname, '/api/v2/exchange', 'post', post_mock)
    exchange_token = make_token(scopes=[SCOPE_EXCHANGE])
    identity = wfclient.Identity(refresh_token=exchange_token)
    config.add_auth_info('default', wfclient.AuthInfo(identity=identity))

    async with wfclient.Client(config, settings=settings) as client:
        await client.refresh_identity('default')

    assert identity.token == 'api-token'
    http_request = post_mock.call_args[0][0]
    assert http_request.headers['Authorization'] == f'Bearer {exchange_token}'
    assert http_request.query['ttl'] == '30m0s'


async def test_identity_refresh_with_failed_exchange(
        resp_mocker, aresponses, hostname, config, settings, make_token, assert_logs):
    aresponses.add(hostname, '/api/v2/exchange', 'post',
                   resp_mocker(return_value=aiohttp.web.json_response({'message': 'expired'}, status=401)))
    identity = wfclient.Identity(refresh_token=make_token(scopes=[SCOPE_EXCHANGE]))
    config.add_auth_info('default', wfclient.AuthInfo(identity=identity))

    async with wfclient.Client(config, settings=settings) as client:
        with pytest.raises(wfclient.AuthenticationError) as err:
            await client.refresh_identity()

    assert str(err.value) == (
        "failed to exchange access token for API token"
        " - please check the access token is valid: expired")
    assert isinstance(err.value.__cause__, wfclient.APIUnauthorizedError)
    assert identity.token == ''
    assert_logs([r"Failed to exchange the access token"])


async def test_identity_refresh_failures_escalate(resp_mocker, aresponses, hostname, config, settings):
    aresponses.add(hostname, '/api/v2/login/token', 'post',
                   resp_mocker(return_value=aiohttp.web.json_response({}, status=401)))
    identity = wfclient.Identity(token='old-token', refresh_token='refresh-token')
    config.add_auth_info('default', wfclient.AuthInfo(identity=identity))

    async with wfclient.Client(config, settings=settings) as client:
        with pytest.raises(wfclient.APIUnauthorizedError):
            await client.refresh_identity()

    assert identity.token == 'old-token'


async def test_identity_refresh_without_credentials(client, config):
    config.profiles['default'].auth_info = 'nobody'
    config.auth_infos.clear()
    with pytest.raises(wfclient.ProfileInvalidError, match=r"missing authentication profile"):
        await client.refresh_identity()


async def test_identity_refresh_of_static_tokens(client):
    with pytest.raises(wfclient.AuthenticationError, match=r"no token available to refresh"):
        await client.refresh_identity()


async def test_identity_refresh_without_refresh_tokens(client, config):
    config.add_auth_info('default', wfclient.AuthInfo(identity=wfclient.Identity(token='t')))
    with pytest.raises(wfclient.AuthenticationError, match=r"no refresh or exchange token available"):
        await client.refresh_identity()


async def test_expired_identities_are_refreshed_before_requests(
        resp_mocker, aresponses, hostname, config, settings, make_token):
    fresh_token = make_token(expires_in=600)
    aresponses.add(hostname, '/api/v2/login/token', 'post',
                   resp_mocker(return_value=aiohttp.web.json_response({'token': fresh_token})))
    whoami_mock = resp_mocker(return_value=aiohttp.web.json_response({}))
    aresponses.add(hostname, '/api/v2/whoami', 'get', whoami_mock)
    identity = wfclient.Identity(token=make_token(expires_in=-10), refresh_token='refresh-token')
    config.add_auth_info('default', wfclient.AuthInfo(identity=identity))

    async with wfclient.Client(config, settings=settings) as client:
        request = await client.request().endpoint('/whoami').get()

    assert request.error() is None
    assert whoami_mock.call_args[0][0].headers['Authorization'] == f'Bearer {fresh_token}'
