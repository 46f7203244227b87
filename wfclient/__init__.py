"""
The main wfclient module for all the exported functions & classes.
"""
# isort: skip_file

# Unlike all other places, where we import other modules and refer
# the functions via the modules, this is the package's top-level interface,
# as it is seen by the users. So, we export the individual functions.

from wfclient._cogs.configs.configuration import (
    ClientSettings,
    NetworkingSettings,
    ConflictSettings,
    AuthSettings,
    DiscoverySettings,
)
from wfclient._cogs.configs.profiles import (
    APIInfo,
    AuthInfo,
    Config,
    Identity,
    Profile,
    Server,
)
from wfclient._cogs.configs.storage import (
    get_config,
    get_config_path,
    get_or_create_client_configuration,
    load_config,
    update_config,
    is_ephemeral_config,
    create_ephemeral_configuration,
    make_update_handler,
)
from wfclient._cogs.helpers.durations import (
    parse_duration,
    format_duration,
)
from wfclient._cogs.helpers.loggers import (
    configure,
    LogFormat,
)
from wfclient._cogs.helpers.typedefs import (
    Logger,
)
from wfclient._cogs.helpers.versions import (
    version as __version__,
)
from wfclient._cogs.structs.bodies import (
    Object,
    ObjectKey,
    ObjectList,
)
from wfclient._cogs.structs.claims import (
    Claims,
    IssuedToken,
    TokenError,
    is_access_token,
    is_exchange_token,
    is_token_expired,
)
from wfclient._cogs.structs.resources import (
    Resource,
    Versioning,
)
from wfclient._cogs.structs.validation import (
    APIWarning,
    DependencyViolationError,
    DependentReference,
    ErrorCode,
    FieldError,
    ValidationError,
    WarningType,
)
from wfclient._cogs.clients.api import (
    Client,
    new_client,
)
from wfclient._cogs.clients.errors import (
    ClientError,
    ConfigurationError,
    MissingProfileError,
    NoProfileSelectedError,
    NoProfileEndpointError,
    ProfileInvalidError,
    URLResolutionError,
    AuthenticationError,
    NonExchangeTokenError,
    RefetchError,
    APIError,
    APIValidationError,
    APIUnauthorizedError,
    APIForbiddenError,
    APINotFoundError,
    APIMethodNotAllowedError,
    APIConflictError,
    APIObjectModifiedError,
    APITooManyRequestsError,
    APIServiceUnavailableError,
    is_already_exists,
    is_bad_request,
    is_method_not_allowed,
    is_not_allowed,
    is_not_authorized,
    is_not_found,
    is_not_implemented,
    is_object_modified,
    is_service_unavailable,
)
from wfclient._cogs.clients.objects import (
    ObjectClient,
)
from wfclient._cogs.clients.requests import (
    Request,
)
from wfclient._cogs.clients.retries import (
    RetryFailed,
    RetryAttemptsExhausted,
    RetryCancelled,
    is_retry_failed,
)
from wfclient._cogs.clients.urls import (
    Parameter,
    path_parameter,
    query_parameter,
    query_parameters,
    label_parameter,
    force_parameter,
    owner_parameter,
    dry_run_parameter,
    apply_parameter,
    orphan_parameter,
    cascade_parameter,
)

__all__ = [
    'ClientSettings', 'NetworkingSettings', 'ConflictSettings', 'AuthSettings', 'DiscoverySettings',
    'APIInfo', 'AuthInfo', 'Config', 'Identity', 'Profile', 'Server',
    'get_config', 'get_config_path', 'get_or_create_client_configuration',
    'load_config', 'update_config', 'is_ephemeral_config', 'create_ephemeral_configuration',
    'make_update_handler',
    'parse_duration', 'format_duration',
    'configure', 'LogFormat', 'Logger',
    'Object', 'ObjectKey', 'ObjectList',
    'Claims', 'IssuedToken', 'TokenError',
    'is_access_token', 'is_exchange_token', 'is_token_expired',
    'Resource', 'Versioning',
    'APIWarning', 'DependencyViolationError', 'DependentReference',
    'ErrorCode', 'FieldError', 'ValidationError', 'WarningType',
    'Client', 'new_client', 'ObjectClient', 'Request',
    'ClientError', 'ConfigurationError',
    'MissingProfileError', 'NoProfileSelectedError', 'NoProfileEndpointError',
    'ProfileInvalidError', 'URLResolutionError',
    'AuthenticationError', 'NonExchangeTokenError', 'RefetchError',
    'APIError', 'APIValidationError', 'APIUnauthorizedError', 'APIForbiddenError',
    'APINotFoundError', 'APIMethodNotAllowedError', 'APIConflictError',
    'APIObjectModifiedError', 'APITooManyRequestsError', 'APIServiceUnavailableError',
    'is_already_exists', 'is_bad_request', 'is_method_not_allowed', 'is_not_allowed',
    'is_not_authorized', 'is_not_found', 'is_not_implemented', 'is_object_modified',
    'is_service_unavailable',
    'RetryFailed', 'RetryAttemptsExhausted', 'RetryCancelled', 'is_retry_failed',
    'Parameter', 'path_parameter', 'query_parameter', 'query_parameters', 'label_parameter',
    'force_parameter', 'owner_parameter', 'dry_run_parameter', 'apply_parameter',
    'orphan_parameter', 'cascade_parameter',
]
