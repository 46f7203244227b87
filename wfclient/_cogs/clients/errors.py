"""
API errors and the classification of the API responses.

The underlying client library (now, ``aiohttp``) can be replaced in the future.
We cannot rely on embedding its exceptions all over the code in the package.
Hence, we have our own hierarchy of exceptions for the API errors.

Low-level errors, such as the network connectivity issues, SSL/HTTPS issues,
timeouts, etc, are escalated from the client library as is, since they are
related not to the domain of the API, but rather to the networking & encryption.

The errors are grouped by their nature:

* Configuration errors: missing profiles, servers, credentials, or URL parts.
  They are detected before any HTTP call is attempted, and are never retried.
* Authentication errors: the tokens cannot be refreshed or exchanged.
* API errors: the API responded with a non-2xx status. Some selected statuses
  are made into their own classes, so that they could be intercepted.
  The structured details of the responses are attached to the errors
  (:class:`ValidationError` & :class:`DependencyViolationError`).
* Retry errors: the retry loop was interrupted or exhausted (see :mod:`retries`).

All errors render as human-readable messages, one-line or bulleted.
"""
import json
from collections.abc import Iterable, Mapping
from typing import Any

from wfclient._cogs.helpers import typedefs
from wfclient._cogs.structs import validation

# A response header used to distinguish the optimistic concurrency conflicts
# from other HTTP 409 conflicts (e.g. the dependency violations on deletion).
OBJECT_MODIFIED_HEADER = 'x-wayfinder-objectmodified'

# A sentinel message of the optimistic concurrency conflicts.
OBJECT_MODIFIED_MESSAGE = "the object has been modified, please try again"

FALLBACK_MESSAGES: Mapping[int, str] = {
    401: "Authorization required",
    404: "Resource does not exist",
    403: "Request denied, check your permissions",
    400: "Invalid request",
    429: "Too many requests, please try again shortly",
    503: "API service unavailable",
    409: OBJECT_MODIFIED_MESSAGE,
}
FALLBACK_DEFAULT_MESSAGE = "Unexpected error from API"


class ClientError(Exception):
    """ The base class for all errors of the client itself. """


class ConfigurationError(ClientError):
    """ The client configuration does not allow to perform a request. """


class MissingProfileError(ConfigurationError):
    def __init__(self, message: str = "no profile selected, or the selected profile does not exist") -> None:
        super().__init__(message)


class NoProfileSelectedError(ConfigurationError):
    def __init__(self, message: str = "no profile selected") -> None:
        super().__init__(message)


class NoProfileEndpointError(ConfigurationError):
    def __init__(self, message: str = "the selected profile has no server endpoint") -> None:
        super().__init__(message)


class ProfileInvalidError(ConfigurationError):
    """ The profile exists, but is not usable: e.g. lacks a server or credentials. """

    def __init__(self, reason: str, profile: str | None = None) -> None:
        super().__init__(reason, profile)
        self.reason = reason
        self.profile = profile

    def __str__(self) -> str:
        return f"profile {self.profile!r} is invalid: {self.reason}"


class URLResolutionError(ConfigurationError):
    """ The request's target cannot be rendered into a URL. """


class AuthenticationError(ClientError):
    """ The credentials cannot be refreshed, exchanged, or used. """


class NonExchangeTokenError(AuthenticationError):
    def __init__(self, message: str = "the token is not an exchange token") -> None:
        super().__init__(message)


class RefetchError(ClientError):
    """ The object cannot be re-fetched after an optimistic concurrency conflict. """


class APIError(ClientError):
    """
    The API has responded with a non-successful status.

    The message is either the message provided by the API in the response,
    or the rendered structured error, or a generic message for the status.
    """

    def __init__(
            self,
            message: str,
            *,
            code: int,
            verb: str = '',
            uri: str = '',
            detail: str = '',
            validation: validation.ValidationError | None = None,
            dependency_violation: validation.DependencyViolationError | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.code = code
        self.verb = verb
        self.uri = uri
        self.detail = detail
        self.validation = validation
        self.dependency_violation = dependency_violation

    def __str__(self) -> str:
        return self.message

    def __repr__(self) -> str:
        return f'{type(self).__name__}({self.message!r}, code={self.code!r}, verb={self.verb!r}, uri={self.uri!r})'

    @property
    def status(self) -> int:
        return self.code


class APIValidationError(APIError):
    pass


class APIUnauthorizedError(APIError):
    pass


class APIForbiddenError(APIError):
    pass


class APINotFoundError(APIError):
    pass


class APIMethodNotAllowedError(APIError):
    pass


class APIConflictError(APIError):
    pass


class APIObjectModifiedError(APIConflictError):
    pass


class APITooManyRequestsError(APIError):
    pass


class APIServiceUnavailableError(APIError):
    pass


_CLASSES: Mapping[int, type[APIError]] = {
    400: APIValidationError,
    401: APIUnauthorizedError,
    403: APIForbiddenError,
    404: APINotFoundError,
    405: APIMethodNotAllowedError,
    409: APIConflictError,
    429: APITooManyRequestsError,
    503: APIServiceUnavailableError,
}


def make_api_error(
        *,
        code: int,
        verb: str,
        uri: str,
        headers: Mapping[str, str],
        body: bytes | None,
        logger: typedefs.Logger,
) -> APIError:
    """
    Classify a non-successful response into one of the API errors.

    The body is decoded depending on the status: HTTP 400 into a validation
    error, HTTP 409 into a dependency violation (unless it is an optimistic
    concurrency conflict, as marked by a header), all others into the message
    & detail fields. Undecodable bodies are ignored (but logged).
    If no message is found, a generic one is used as per the status.
    """
    message = ''
    detail = ''
    validation_error: validation.ValidationError | None = None
    violation_error: validation.DependencyViolationError | None = None
    object_modified = False

    if code == 409 and headers.get(OBJECT_MODIFIED_HEADER, '').lower() == 'true':
        object_modified = True
        message = OBJECT_MODIFIED_MESSAGE
    elif body:
        try:
            raw = json.loads(body)
            if code == 400:
                validation_error = validation.ValidationError.from_raw(raw)
                message = str(validation_error)
            elif code == 409:
                violation_error = validation.DependencyViolationError.from_raw(raw)
                message = str(violation_error)
            elif isinstance(raw, Mapping):
                message = str(raw.get('message') or '')
                detail = str(raw.get('detail') or '')
        except ValueError as e:  # incl. json.JSONDecodeError & UnicodeDecodeError
            logger.debug(f"Response cannot be decoded: {e}; body={body!r}")

    if not message:
        message = (
            f"Resource does not support method {verb}" if code == 405 else
            FALLBACK_MESSAGES.get(code, FALLBACK_DEFAULT_MESSAGE)
        )
    if code == 409 and message == OBJECT_MODIFIED_MESSAGE:
        object_modified = True

    cls = APIObjectModifiedError if object_modified else _CLASSES.get(code, APIError)
    return cls(
        message,
        code=code,
        verb=verb,
        uri=uri,
        detail=detail,
        validation=validation_error,
        dependency_violation=violation_error,
    )


def parse_warnings(
        values: Iterable[str],
        *,
        logger: typedefs.Logger,
) -> list[validation.APIWarning]:
    """
    Parse the ``warning`` headers of a response, each being a JSON object.

    The malformed warnings are logged and ignored: they are not worth failing
    an otherwise successful request.
    """
    warnings: list[validation.APIWarning] = []
    for value in values:
        try:
            warnings.append(validation.APIWarning.from_raw(json.loads(value)))
        except ValueError as e:
            logger.debug(f"Ignoring an unparseable warning: {e}; header={value!r}")
    return warnings


def _is_code(exc: BaseException | None, code: int) -> bool:
    return isinstance(exc, APIError) and exc.code == code


def is_not_found(exc: BaseException | None) -> bool:
    return _is_code(exc, 404)


def is_not_authorized(exc: BaseException | None) -> bool:
    return _is_code(exc, 401)


def is_not_allowed(exc: BaseException | None) -> bool:
    return _is_code(exc, 403)


def is_bad_request(exc: BaseException | None) -> bool:
    return _is_code(exc, 400)


def is_method_not_allowed(exc: BaseException | None) -> bool:
    return _is_code(exc, 405)


def is_not_implemented(exc: BaseException | None) -> bool:
    return _is_code(exc, 501)


def is_service_unavailable(exc: BaseException | None) -> bool:
    return _is_code(exc, 503)


def is_object_modified(exc: BaseException | None) -> bool:
    return exc is not None and str(exc) == OBJECT_MODIFIED_MESSAGE


def is_already_exists(exc: BaseException | None) -> bool:
    return exc is not None and 'already exists' in str(exc)
