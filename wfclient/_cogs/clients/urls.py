"""
Rendering of the request targets into the URLs.

There are two kinds of the request targets, mutually exclusive:

* Resources: the objects of the known types, addressed by the group, version,
  plural name, object name, and optionally the workspace, the object version
  (for the versioned resources), and the sub-resource of the object.
* Endpoints: the arbitrary paths of the API, either relative to the API base
  (e.g. ``/whoami``), or raw relative to the server (e.g. ``/apiinfo``).
  The endpoints are the templates: ``{param}`` is replaced by the path parameters.

The URL layout of the server (the base paths) is defined by :class:`APIInfo`
and can differ between the servers (see :meth:`wfclient.Client.check_server`).

The parameters are provided as lazily evaluated callables, so that an invalid
parameter does not break the chain of calls of the request builder,
but rather is stored as the request's error, and is raised only on demand.
"""
import copy
import dataclasses
import urllib.parse
from collections.abc import Callable, Iterable

from wfclient._cogs.clients import errors
from wfclient._cogs.configs import profiles
from wfclient._cogs.structs import resources

PARAM_WORKSPACE = 'workspace'
PARAM_API_VERSION = 'apiVersion'
PARAM_GROUP = 'group'
PARAM_RESOURCE = 'resource'
PARAM_NAME = 'name'
PARAM_RESOURCE_VERSION = 'resourceVersion'
PARAM_SUBRESOURCE = 'subresource'
PARAM_SUBRESOURCE_NAME = 'subresourcename'


@dataclasses.dataclass(frozen=True)
class Parameter:
    name: str
    value: str
    is_path: bool = False


ParameterFn = Callable[[], Parameter]


def path_parameter(name: str, value: str) -> ParameterFn:
    """ A parameter to substitute ``{name}`` in the endpoint templates. """
    def fn() -> Parameter:
        if not name:
            raise ValueError("path parameter name cannot be empty")
        if not value:
            raise ValueError(f"{name!r} path parameter cannot be empty")
        return Parameter(name=name, value=value, is_path=True)
    return fn


def query_parameter(name: str, value: str) -> ParameterFn:
    def fn() -> Parameter:
        if not name:
            raise ValueError("query parameter name cannot be empty")
        return Parameter(name=name, value=value)
    return fn


def query_parameters(name: str, values: Iterable[str]) -> list[ParameterFn]:
    """ Multiple values of the same query parameter, in the given order. """
    return [query_parameter(name, value) for value in values]


def label_parameter(name: str, value: str) -> ParameterFn:
    def fn() -> Parameter:
        if not name:
            raise ValueError("label name cannot be empty")
        if not value:
            raise ValueError("label value cannot be empty")
        return Parameter(name='label', value=f'label={name}={value}')
    return fn


def force_parameter() -> ParameterFn:
    """ Ignore the read-only & ownership annotations/labels of the objects. """
    return query_parameter('force', 'true')


def owner_parameter(owner: str) -> ParameterFn:
    """ Perform the operation on behalf of the specified owner. """
    return query_parameter('owner', owner)


def dry_run_parameter() -> ParameterFn:
    """ Validate the operation on the server side, but do not persist it. """
    return query_parameter('dryRun', 'All')


def apply_parameter() -> ParameterFn:
    """ Perform a server-side apply instead of a replacement on updates. """
    return query_parameter('apply', 'true')


def orphan_parameter() -> ParameterFn:
    """ Delete the objects, but keep their underlying cloud resources. """
    return query_parameter('orphan', 'true')


def cascade_parameter() -> ParameterFn:
    return query_parameter('cascade', 'true')


class URLBuilder:
    """
    An accumulator of the request's target, rendered into a URL on demand.
    """

    def __init__(self) -> None:
        super().__init__()
        self._parameters: dict[str, str] = {}
        self._query: list[tuple[str, str]] = []
        self._endpoint: str = ''
        self._raw_endpoint: bool = False
        self._versioned: bool = False
        self._resource: resources.Resource | None = None

    def duplicate(self) -> "URLBuilder":
        dup = copy.copy(self)
        dup._parameters = dict(self._parameters)
        dup._query = list(self._query)
        return dup

    def resource(self, resource: resources.Resource | None) -> None:
        if resource is None:
            return
        self._resource = resource
        self._parameters[PARAM_RESOURCE] = resource.plural
        if resource.group:
            self._parameters[PARAM_GROUP] = resource.group
        if resource.version:
            self._parameters[PARAM_API_VERSION] = resource.version
        self._versioned = resource.is_versioned(resource.version)

    def resource_api_version(self, api_version: str) -> None:
        """ Override the API version of the resource; the versioning is re-evaluated. """
        if not api_version:
            return
        self._parameters[PARAM_API_VERSION] = api_version
        if self._resource is not None:
            self._versioned = self._resource.is_versioned(api_version)

    def resource_version(self, version: str) -> None:
        if version:
            self._parameters[PARAM_RESOURCE_VERSION] = version

    def workspace(self, workspace: str) -> None:
        if workspace:
            self._parameters[PARAM_WORKSPACE] = workspace

    def name(self, name: str) -> None:
        if name:
            self._parameters[PARAM_NAME] = name

    def subresource(self, subresource: str) -> None:
        self._parameters[PARAM_SUBRESOURCE] = subresource

    def subresource_name(self, name: str) -> None:
        self._parameters[PARAM_SUBRESOURCE_NAME] = name

    def endpoint(self, endpoint: str) -> None:
        self._endpoint = endpoint

    def raw_endpoint(self, endpoint: str) -> None:
        self._endpoint = endpoint
        self._raw_endpoint = True

    def parameters(self, *fns: ParameterFn) -> None:
        """
        Evaluate and store the parameters; fail on the first invalid one.
        """
        for fn in fns:
            param = fn()
            if param.is_path:
                self._parameters[param.name] = param.value
            else:
                self._query.append((param.name, param.value))

    def has_parameter(self, key: str) -> str | None:
        """ Get the non-empty path parameter, or ``None`` if absent or empty. """
        return self._parameters.get(key) or None

    def has_query_parameter(self, key: str) -> list[str] | None:
        values = [value for name, value in self._query if name == key]
        return values or None

    @property
    def is_resource_request(self) -> bool:
        return not self._endpoint

    @property
    def is_subresource_request(self) -> bool:
        return self.has_parameter(PARAM_SUBRESOURCE) is not None

    @property
    def is_raw_endpoint(self) -> bool:
        return bool(self._endpoint) and self._raw_endpoint

    def get_group_version_kind(self) -> tuple[str, str, str]:
        if not self.is_resource_request:
            return '', '', ''
        group = self.has_parameter(PARAM_GROUP)
        version = self.has_parameter(PARAM_API_VERSION)
        kind = self.has_parameter(PARAM_RESOURCE)
        if group is None or version is None or kind is None:
            return '', '', ''
        return group, version, kind

    def get_name(self) -> str:
        return self._parameters.get(PARAM_NAME, '')

    def get_workspace(self) -> str:
        return self.has_parameter(PARAM_WORKSPACE) or ''

    def make_url(self, api_info: profiles.APIInfo) -> str:
        """
        Render the URL path & query relative to the server, with a leading slash.
        """
        if self._endpoint:
            path = self._make_endpoint_path(api_info)
        else:
            path = self._make_resource_path(api_info)

        # Sorted by key; the values of the same key in the order of addition.
        query = urllib.parse.urlencode(sorted(self._query, key=lambda pair: pair[0]))
        return '/' + path.lstrip('/') + ('?' if query else '') + query

    def _make_resource_path(self, api_info: profiles.APIInfo) -> str:
        group = self.has_parameter(PARAM_GROUP)
        version = self.has_parameter(PARAM_API_VERSION)
        if group is None or version is None:
            raise errors.URLResolutionError(
                "unable to determine API group and version for resource, cannot perform API operation")

        parts: list[str] = [api_info.resource_api.lstrip('/'), group, version]
        workspace = self.has_parameter(PARAM_WORKSPACE)
        if workspace is not None:
            parts.extend(['workspaces', workspace])
        for key in [PARAM_RESOURCE, PARAM_NAME]:
            value = self.has_parameter(key)
            if value is not None:
                parts.append(value)

        # Only the named versioned objects have the history of versions.
        if self._versioned and self.has_parameter(PARAM_NAME) is not None:
            parts.append('versions')
            resource_version = self.has_parameter(PARAM_RESOURCE_VERSION)
            if resource_version is not None:
                parts.append(resource_version)

        for key in [PARAM_SUBRESOURCE, PARAM_SUBRESOURCE_NAME]:
            value = self.has_parameter(key)
            if value is not None:
                parts.append(value)

        return '/'.join(parts)

    def _make_endpoint_path(self, api_info: profiles.APIInfo) -> str:
        if self._raw_endpoint:
            path = self._endpoint
        else:
            path = api_info.non_resource_api + '/' + self._endpoint.lstrip('/')
        path = path.lstrip('/')
        for name, value in self._parameters.items():
            path = path.replace('{' + name + '}', value)
        return path
