"""
The client configuration: profiles, servers, and credentials.

The configuration is a named collection of three kinds of entries:

* Servers: the API endpoints, the custom CA certificates, and the API layout.
* Users (auth infos): either a static token, or a refreshable identity.
* Profiles: which user is used with which server, and the default workspace.

One of the profiles is the current one, unless overridden in the client.

The raw (YAML/JSON) keys are kept compatible with the other Wayfinder tools,
so that the same configuration file can be shared by them.
"""
import dataclasses
from collections.abc import Mapping
from typing import Any

from wfclient._cogs.clients import errors
from wfclient._cogs.helpers import versions
from wfclient._cogs.structs import claims

DEFAULT_NON_RESOURCE_API = '/api/v2'
DEFAULT_RESOURCE_API = '/resources'
DEFAULT_KUBE_PROXY_API = '/kubeproxy'

# The layout of the old servers, which have no API info endpoint at all.
LEGACY_NON_RESOURCE_API = '/api/v1alpha1'

AUTH_METHOD_TOKEN = 'token'
AUTH_METHOD_IDENTITY = 'idtoken'
AUTH_METHOD_NONE = 'none'


@dataclasses.dataclass
class APIInfo:
    """
    The base paths of the API, as reported by the server (or assumed).
    """
    non_resource_api: str = DEFAULT_NON_RESOURCE_API
    resource_api: str = DEFAULT_RESOURCE_API
    kube_proxy_api: str = DEFAULT_KUBE_PROXY_API

    @classmethod
    def from_raw(cls, raw: Mapping[str, Any]) -> "APIInfo":
        return cls(
            non_resource_api=raw.get('nonResourceAPI') or DEFAULT_NON_RESOURCE_API,
            resource_api=raw.get('resourceAPI') or DEFAULT_RESOURCE_API,
            kube_proxy_api=raw.get('kubeProxyAPI') or DEFAULT_KUBE_PROXY_API,
        )

    def to_raw(self) -> dict[str, str]:
        return {
            'nonResourceAPI': self.non_resource_api,
            'resourceAPI': self.resource_api,
            'kubeProxyAPI': self.kube_proxy_api,
        }

    # Used as a result sink of the API info endpoint.
    def load_raw(self, raw: Any) -> None:
        if not isinstance(raw, Mapping):
            raise ValueError(f"The API info must be a mapping, got {raw!r}")
        loaded = self.from_raw(raw)
        self.non_resource_api = loaded.non_resource_api
        self.resource_api = loaded.resource_api
        self.kube_proxy_api = loaded.kube_proxy_api


@dataclasses.dataclass
class Server:
    endpoint: str = ''
    ca_certificate: str = ''
    api_info: APIInfo | None = None

    def get_api_info(self) -> APIInfo:
        return self.api_info if self.api_info is not None else APIInfo()

    @classmethod
    def from_raw(cls, raw: Mapping[str, Any]) -> "Server":
        api_info = raw.get('apiInfo')
        return cls(
            endpoint=str(raw.get('server') or '').rstrip('/'),
            ca_certificate=str(raw.get('caCertificate') or ''),
            api_info=APIInfo.from_raw(api_info) if isinstance(api_info, Mapping) else None,
        )

    def to_raw(self) -> dict[str, Any]:
        raw: dict[str, Any] = {}
        if self.endpoint:
            raw['server'] = self.endpoint
        if self.ca_certificate:
            raw['caCertificate'] = self.ca_certificate
        if self.api_info is not None:
            raw['apiInfo'] = self.api_info.to_raw()
        return raw


@dataclasses.dataclass
class Identity:
    """
    A refreshable identity: a short-lived token and a long-lived refresh token.

    The refresh token is either a classic one (refreshed via the login endpoint),
    or an access token scoped for the exchange (exchanged via the exchange endpoint).
    """
    token: str = ''
    refresh_token: str = ''

    @property
    def is_exchange_token(self) -> bool:
        return claims.is_exchange_token(self.refresh_token)

    @property
    def is_access_token(self) -> bool:
        return claims.is_exchange_token(self.refresh_token) or claims.is_access_token(self.token)

    def is_expired(self) -> bool:
        return claims.is_token_expired(self.token)

    @classmethod
    def from_raw(cls, raw: Mapping[str, Any]) -> "Identity":
        return cls(
            token=str(raw.get('token') or ''),
            refresh_token=str(raw.get('refresh-token') or ''),
        )

    def to_raw(self) -> dict[str, Any]:
        raw: dict[str, Any] = {}
        if self.refresh_token:
            raw['refresh-token'] = self.refresh_token
        if self.token:
            raw['token'] = self.token
        return raw


@dataclasses.dataclass
class AuthInfo:
    identity: Identity | None = None
    token: str | None = None

    @classmethod
    def from_raw(cls, raw: Mapping[str, Any]) -> "AuthInfo":
        identity = raw.get('identity')
        token = raw.get('token')
        return cls(
            identity=Identity.from_raw(identity) if isinstance(identity, Mapping) else None,
            token=str(token) if token is not None else None,
        )

    def to_raw(self) -> dict[str, Any]:
        raw: dict[str, Any] = {}
        if self.identity is not None:
            raw['identity'] = self.identity.to_raw()
        if self.token is not None:
            raw['token'] = self.token
        return raw


@dataclasses.dataclass
class Profile:
    auth_info: str = ''
    server: str = ''
    workspace: str = ''

    @classmethod
    def from_raw(cls, raw: Mapping[str, Any]) -> "Profile":
        return cls(
            auth_info=str(raw.get('user') or ''),
            server=str(raw.get('server') or ''),
            workspace=str(raw.get('workspace') or ''),
        )

    def to_raw(self) -> dict[str, Any]:
        raw: dict[str, Any] = {}
        if self.auth_info:
            raw['user'] = self.auth_info
        if self.server:
            raw['server'] = self.server
        if self.workspace:
            raw['workspace'] = self.workspace
        return raw


@dataclasses.dataclass
class Config:
    auth_infos: dict[str, AuthInfo] = dataclasses.field(default_factory=dict)
    current_profile: str = ''
    profiles: dict[str, Profile] = dataclasses.field(default_factory=dict)
    servers: dict[str, Server] = dataclasses.field(default_factory=dict)
    version: str = ''

    @classmethod
    def new_empty(cls) -> "Config":
        return cls(version=versions.version or '')

    @classmethod
    def from_raw(cls, raw: Mapping[str, Any] | None) -> "Config":
        raw = raw or {}
        if not isinstance(raw, Mapping):
            raise errors.ConfigurationError(f"The configuration must be a mapping, got {type(raw).__name__}.")
        return cls(
            auth_infos={str(k): AuthInfo.from_raw(v or {}) for k, v in (raw.get('users') or {}).items()},
            current_profile=str(raw.get('current-profile') or ''),
            profiles={str(k): Profile.from_raw(v or {}) for k, v in (raw.get('profiles') or {}).items()},
            servers={str(k): Server.from_raw(v or {}) for k, v in (raw.get('servers') or {}).items()},
            version=str(raw.get('version') or ''),
        )

    def to_raw(self) -> dict[str, Any]:
        raw: dict[str, Any] = {}
        if self.auth_infos:
            raw['users'] = {name: auth_info.to_raw() for name, auth_info in self.auth_infos.items()}
        if self.current_profile:
            raw['current-profile'] = self.current_profile
        if self.profiles:
            raw['profiles'] = {name: profile.to_raw() for name, profile in self.profiles.items()}
        if self.servers:
            raw['servers'] = {name: server.to_raw() for name, server in self.servers.items()}
        if self.version:
            raw['version'] = self.version
        return raw

    def is_access_token(self) -> bool:
        auth_info = self.get_auth_info(self.current_profile)
        return auth_info is not None and auth_info.identity is not None and auth_info.identity.is_access_token

    def new_profile_with_auth(self, name: str, endpoint: str, auth_info: AuthInfo) -> None:
        if self.has_profile(name):
            raise errors.ConfigurationError("profile name already in use")
        self.create_profile(name, endpoint)
        self.add_auth_info(name, auth_info)

    def create_profile(self, name: str, endpoint: str) -> None:
        """ Create a profile with a same-named server & user (credentials are added separately). """
        self.add_profile(name, Profile(server=name, auth_info=name))
        self.add_server(name, Server(endpoint=endpoint))

    def list_profiles(self) -> list[str]:
        return list(self.profiles)

    def get_profile(self, name: str) -> Profile | None:
        return self.profiles.get(name)

    def get_profile_auth_method(self, name: str) -> str:
        profile = self.profiles.get(name)
        if profile is None or profile.auth_info not in self.auth_infos:
            return ''
        auth_info = self.auth_infos[profile.auth_info]
        if auth_info.token is not None:
            return AUTH_METHOD_TOKEN
        if auth_info.identity is not None:
            return AUTH_METHOD_IDENTITY
        return AUTH_METHOD_NONE

    def get_server(self, name: str) -> Server | None:
        """ Get the server of the named profile (not the server by its name!). """
        profile = self.profiles.get(name)
        return self.servers.get(profile.server) if profile is not None else None

    def get_auth_info(self, name: str) -> AuthInfo | None:
        """ Get the credentials of the named profile (not the user by its name!). """
        profile = self.profiles.get(name)
        return self.auth_infos.get(profile.auth_info) if profile is not None else None

    def has_auth(self, name: str) -> bool:
        auth_info = self.get_auth_info(name)
        return auth_info is not None and (auth_info.token is not None or auth_info.identity is not None)

    def add_profile(self, name: str, profile: Profile) -> None:
        self.profiles[name] = profile

    def add_server(self, name: str, server: Server) -> None:
        server.endpoint = server.endpoint.rstrip('/')
        self.servers[name] = server

    def add_auth_info(self, name: str, auth_info: AuthInfo) -> None:
        self.auth_infos[name] = auth_info

    def has_valid_profile(self, name: str) -> None:
        """ Raise if the profile is not selected or has no server. """
        if not name:
            raise errors.NoProfileSelectedError()
        profile = self.profiles.get(name)
        if profile is None or profile.server not in self.servers:
            raise errors.NoProfileEndpointError()

    def has_profile(self, name: str) -> bool:
        return name in self.profiles

    def has_server(self, name: str) -> bool:
        return name in self.servers

    def has_auth_info(self, name: str) -> bool:
        return name in self.auth_infos

    def remove_server(self, name: str) -> None:
        self.servers.pop(name, None)

    def remove_auth_info(self, name: str) -> None:
        self.auth_infos.pop(name, None)

    def remove_profile(self, name: str) -> None:
        """ Remove the profile together with its server & user. """
        profile = self.profiles.pop(name, None)
        if profile is not None:
            self.remove_server(profile.server)
            self.remove_auth_info(profile.auth_info)
