"""
Claims of the bearer tokens, as seen by the client.

The client never verifies the tokens' signatures: it is the server's job.
The client only peeks into the claims to decide when and how to refresh
the tokens: by expiry (``exp``) and by the scopes of the refresh tokens.
"""
import datetime
from collections.abc import Mapping
from typing import Any

import jwt
from typing_extensions import TypedDict

# The scopes of the tokens, as issued by the server.
SCOPE_EXCHANGE = 'wayfinder:auth:exchange'
SCOPE_ACCESS_TOKEN = 'wayfinder:system:accesstoken'
SCOPE_REFRESH = 'wayfinder:auth:refresh'


class TokenError(ValueError):
    """ The token cannot be decoded, so its claims are unknown. """


# A payload of the token-issuing endpoints (both request and response).
# The functional syntax is needed for the wire name of the refresh token.
IssuedToken = TypedDict('IssuedToken', {
    'token': str,
    'refresh-token': str,
    'expires': str,
}, total=False)


class Claims:
    """
    A read-only view of the token's claims, with the typed getters.
    """

    def __init__(self, claims: Mapping[str, Any]) -> None:
        super().__init__()
        self._claims = dict(claims)

    def __repr__(self) -> str:
        return f'<{type(self).__name__}: {self._claims!r}>'

    def __contains__(self, key: object) -> bool:
        return key in self._claims

    @classmethod
    def from_token(cls, token: str | bytes) -> "Claims":
        try:
            claims = jwt.decode(token, options={'verify_signature': False})
        except jwt.PyJWTError as e:
            raise TokenError(f"Cannot decode the token: {e}") from e
        return cls(claims)

    def get_string(self, key: str) -> str | None:
        value = self._claims.get(key)
        return value if isinstance(value, str) else None

    def get_float(self, key: str) -> float | None:
        value = self._claims.get(key)
        return float(value) if isinstance(value, (int, float)) and not isinstance(value, bool) else None

    def get_bool(self, key: str) -> bool | None:
        value = self._claims.get(key)
        return value if isinstance(value, bool) else None

    def get_string_list(self, key: str) -> list[str]:
        value = self._claims.get(key)
        if isinstance(value, str):
            return [value]
        if isinstance(value, (list, tuple)):
            return [item for item in value if isinstance(item, str)]
        return []

    def get_scopes(self) -> list[str]:
        return self.get_string_list('scopes')

    def has_scope(self, scope: str) -> bool:
        return scope in self.get_scopes()

    def get_expiry(self) -> datetime.datetime | None:
        exp = self.get_float('exp')
        return None if exp is None else datetime.datetime.fromtimestamp(exp, tz=datetime.timezone.utc)

    def has_expired(self) -> bool:
        exp = self.get_float('exp')
        if exp is None:
            return False
        now = datetime.datetime.now(tz=datetime.timezone.utc).timestamp()
        return exp < now

    def get_subject(self) -> str | None:
        return self.get_string('sub')

    def get_issuer(self) -> str | None:
        return self.get_string('iss')

    def get_audience(self) -> list[str]:
        return self.get_string_list('aud')

    def get_email(self) -> str | None:
        return self.get_string('email')

    def get_id(self) -> str | None:
        return self.get_string('jti')

    def get_preferred_username(self) -> str | None:
        return self.get_string('preferred_username')


def is_token_expired(token: str) -> bool:
    """
    Check if the token is expired. The empty token is always expired.

    The tokens without the ``exp`` claim never expire.
    The undecodable tokens raise :class:`TokenError`.
    """
    if not token:
        return True
    return Claims.from_token(token).has_expired()


def is_exchange_token(token: str | bytes | None) -> bool:
    """ Check if the token can be exchanged for the API tokens. """
    return _has_scope(token, SCOPE_EXCHANGE)


def is_access_token(token: str | bytes | None) -> bool:
    """ Check if the token is a system access token. """
    return _has_scope(token, SCOPE_ACCESS_TOKEN)


def _has_scope(token: str | bytes | None, scope: str) -> bool:
    if not token:
        return False
    try:
        return Claims.from_token(token).has_scope(scope)
    except TokenError:
        return False
