import pytest

import wfclient
from wfclient._cogs.configs.profiles import AUTH_METHOD_IDENTITY, AUTH_METHOD_NONE, \
                                            AUTH_METHOD_TOKEN


RAW_CONFIG = {
    'current-profile': 'prod',
    'version': '1.2.3',
    'profiles': {
        'prod': {'user': 'alice', 'server': 'main', 'workspace': 'team1'},
    },
    'servers': {
        'main': {
            'server': 'https://api.example.com/',
            'caCertificate': 'PEM',
            'apiInfo': {'nonResourceAPI': '/api/v3', 'resourceAPI': '/res'},
        },
    },
    'users': {
        'alice': {'identity': {'token': 'id-token', 'refresh-token': 'refresh-token'}},
    },
}


def test_parsing_of_raw_config():
    config = wfclient.Config.from_raw(RAW_CONFIG)
    assert config.current_profile == 'prod'
    assert config.version == '1.2.3'
    assert config.profiles['prod'] == wfclient.Profile(auth_info='alice', server='main', workspace='team1')
    assert config.servers['main'].endpoint == 'https://api.example.com'
    assert config.servers['main'].ca_certificate == 'PEM'
    assert config.servers['main'].api_info == wfclient.APIInfo(
        non_resource_api='/api/v3', resource_api='/res', kube_proxy_api='/kubeproxy')
    assert config.auth_infos['alice'].identity == wfclient.Identity(
        token='id-token', refresh_token='refresh-token')
    assert config.auth_infos['alice'].token is None


def test_rendering_of_raw_config():
    config = wfclient.Config.from_raw(RAW_CONFIG)
    raw = config.to_raw()
    assert raw['current-profile'] == 'prod'
    assert raw['profiles'] == {'prod': {'user': 'alice', 'server': 'main', 'workspace': 'team1'}}
    assert raw['servers']['main']['server'] == 'https://api.example.com'
    assert raw['servers']['main']['apiInfo'] == {
        'nonResourceAPI': '/api/v3', 'resourceAPI': '/res', 'kubeProxyAPI': '/kubeproxy'}
    assert raw['users'] == {'alice': {'identity': {'token': 'id-token', 'refresh-token': 'refresh-token'}}}


@pytest.mark.parametrize('raw', [None, {}])
def test_empty_config(raw):
    config = wfclient.Config.from_raw(raw)
    assert config.profiles == {}
    assert config.to_raw() == {}


def test_non_mapping_config():
    with pytest.raises(wfclient.ConfigurationError):
        wfclient.Config.from_raw(['not', 'a', 'mapping'])


def test_default_api_info():
    server = wfclient.Server(endpoint='https://x')
    assert server.api_info is None
    assert server.get_api_info() == wfclient.APIInfo('/api/v2', '/resources', '/kubeproxy')


def test_lookups_follow_the_profile_references():
    config = wfclient.Config.from_raw(RAW_CONFIG)
    assert config.get_server('prod') is config.servers['main']
    assert config.get_auth_info('prod') is config.auth_infos['alice']
    assert config.get_server('main') is None
    assert config.get_auth_info('alice') is None
    assert config.get_profile('absent') is None


def test_profile_creation():
    config = wfclient.Config.new_empty()
    config.create_profile('dev', 'https://dev.example.com/')
    assert config.has_profile('dev')
    assert config.has_server('dev')
    assert not config.has_auth_info('dev')
    assert config.servers['dev'].endpoint == 'https://dev.example.com'
    assert config.list_profiles() == ['dev']


def test_profile_creation_with_auth():
    config = wfclient.Config.new_empty()
    config.new_profile_with_auth('dev', 'https://dev', wfclient.AuthInfo(token='t'))
    assert config.has_auth('dev')
    with pytest.raises(wfclient.ConfigurationError, match=r"profile name already in use"):
        config.new_profile_with_auth('dev', 'https://dev', wfclient.AuthInfo(token='t'))


@pytest.mark.parametrize('auth_info, expected', [
    (wfclient.AuthInfo(token='t'), AUTH_METHOD_TOKEN),
    (wfclient.AuthInfo(identity=wfclient.Identity(token='t')), AUTH_METHOD_IDENTITY),
    (wfclient.AuthInfo(), AUTH_METHOD_NONE),
])
def test_auth_methods(auth_info, expected):
    config = wfclient.Config.new_empty()
    config.new_profile_with_auth('dev', 'https://dev', auth_info)
    assert config.get_profile_auth_method('dev') == expected


def test_auth_method_of_absent_profile():
    config = wfclient.Config.new_empty()
    assert config.get_profile_auth_method('absent') == ''


def test_profile_validity():
    config = wfclient.Config.new_empty()
    with pytest.raises(wfclient.NoProfileSelectedError):
        config.has_valid_profile('')
    with pytest.raises(wfclient.NoProfileEndpointError):
        config.has_valid_profile('absent')
    config.add_profile('dev', wfclient.Profile(server='nowhere'))
    with pytest.raises(wfclient.NoProfileEndpointError):
        config.has_valid_profile('dev')
    config.add_server('nowhere', wfclient.Server(endpoint='https://x'))
    config.has_valid_profile('dev')


def test_profile_removal_removes_its_server_and_user():
    config = wfclient.Config.from_raw(RAW_CONFIG)
    config.remove_profile('prod')
    assert config.profiles == {}
    assert config.servers == {}
    assert config.auth_infos == {}


def test_access_token_detection(make_token):
    config = wfclient.Config(current_profile='ci')
    exchange = make_token(scopes=['wayfinder:auth:exchange'])
    config.new_profile_with_auth('ci', 'https://x', wfclient.AuthInfo(
        identity=wfclient.Identity(refresh_token=exchange)))
    assert config.is_access_token()
    assert config.auth_infos['ci'].identity.is_exchange_token


def test_identity_expiry(make_token):
    assert wfclient.Identity(token='').is_expired()
    assert wfclient.Identity(token=make_token(expires_in=-60)).is_expired()
    assert not wfclient.Identity(token=make_token(expires_in=+60)).is_expired()
    with pytest.raises(wfclient.TokenError):
        wfclient.Identity(token='garbage').is_expired()
