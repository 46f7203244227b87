"""
Descriptors of the API resources: which URLs to use for which object types.

A resource is identified by its API group, API version, and plural name
(the "API path" of the type). Some resources are also *versioned*:
every named object has a history of immutable versions (``spec.version``),
which are addressed by the ``/versions/{version}`` suffix of the URLs.
The versioning can be limited to some API versions of the resource only.
"""
import dataclasses
from collections.abc import Iterable

# The namespaces of the workspaces are prefixed in the management cluster.
WORKSPACE_NAMESPACE_PREFIX = 'ws-'


@dataclasses.dataclass(frozen=True)
class Versioning:
    """
    A marker of the versioned resources.

    If ``api_versions`` is ``None``, the resource is versioned in all its API
    versions; otherwise, only in those listed (e.g. newer API versions only).
    """
    api_versions: frozenset[str] | None = None

    @classmethod
    def only(cls, api_versions: Iterable[str]) -> "Versioning":
        return cls(api_versions=frozenset(api_versions))


@dataclasses.dataclass(frozen=True)
class Resource:
    """
    A reference to a resource type as known to the API.
    """
    group: str
    version: str
    plural: str
    kind: str | None = None
    versioning: Versioning | None = None

    def __str__(self) -> str:
        return f'{self.plural}.{self.version}.{self.group}'.strip('.')

    @property
    def api_version(self) -> str:
        # Strip heading/trailing slashes if group is absent.
        return f'{self.group}/{self.version}'.strip('/')

    def is_versioned(self, api_version: str | None = None) -> bool:
        """
        Check if the objects are versioned at the specified API version
        (only the version part, without the group), or the default one.
        """
        if self.versioning is None:
            return False
        if self.versioning.api_versions is None:
            return True
        return (api_version or self.version) in self.versioning.api_versions

    def with_version(self, version: str) -> "Resource":
        return dataclasses.replace(self, version=version)


def parse_api_version(api_version: str) -> tuple[str, str]:
    """ Split ``group/version`` into the group & version (the group can be absent). """
    group, _, version = api_version.rpartition('/')
    return group, version


def to_workspace(namespace: str | None) -> str:
    """ Get the workspace key which owns the namespace. """
    namespace = namespace or ''
    if namespace.startswith(WORKSPACE_NAMESPACE_PREFIX):
        return namespace[len(WORKSPACE_NAMESPACE_PREFIX):]
    return namespace


def to_namespace(workspace: str | None) -> str:
    """ Get the namespace of a workspace in the management cluster. """
    return f'{WORKSPACE_NAMESPACE_PREFIX}{workspace}' if workspace else ''
