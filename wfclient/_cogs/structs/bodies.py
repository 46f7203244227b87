"""
All the structures coming from/to the API, and their typed wrappers.

Everything marked "raw" is a plain unwrapped unprocessed data as JSON-decoded
from the API. The raw data are wrapped into :class:`Object` & :class:`ObjectList`
for typed access to the well-known fields, while keeping all other fields
as they are (including the unknown ones) -- to send them back on updates.

The object types are declared by sub-classing with the resource descriptor::

    class AppEnv(wfclient.Object):
        resource = wfclient.Resource('app.appvia.io', 'v2beta1', 'appenvs', kind='AppEnv')

    class AppEnvList(wfclient.ObjectList):
        item_type = AppEnv

The untyped objects can be used with an explicit ``resource=`` argument.
"""
import collections.abc
import copy
import dataclasses
import json
from collections.abc import Iterator, Mapping
from typing import Any, ClassVar, TypeVar

from typing_extensions import TypedDict

from wfclient._cogs.structs import resources


class RawMeta(TypedDict, total=False):
    uid: str
    name: str
    namespace: str
    labels: Mapping[str, str]
    annotations: Mapping[str, str]
    generation: int
    resourceVersion: str
    creationTimestamp: str
    deletionTimestamp: str


class RawBody(TypedDict, total=False):
    apiVersion: str
    kind: str
    metadata: RawMeta
    spec: Mapping[str, Any]
    status: Mapping[str, Any]


class RawListMeta(TypedDict, total=False):
    resourceVersion: str


class RawList(TypedDict, total=False):
    apiVersion: str
    kind: str
    metadata: RawListMeta
    items: list[RawBody]


_O = TypeVar('_O', bound='Object')


class Object(collections.abc.MutableMapping[str, Any]):
    """
    A typed live wrapper around a raw object body.

    The mapping interface gives access to the raw body's top-level fields.
    The properties give access to the well-known fields of the metadata.
    """

    resource: ClassVar[resources.Resource | None] = None

    def __init__(
            self,
            __src: Mapping[str, Any] | None = None,
            *,
            resource: resources.Resource | None = None,
    ) -> None:
        super().__init__()
        self._raw: dict[str, Any] = copy.deepcopy(dict(__src)) if __src is not None else {}
        if resource is not None:
            self.resource = resource  # type: ignore[misc]  # shadows the class-level default.

    def __repr__(self) -> str:
        return f'<{type(self).__name__} {self.workspace or "-"}/{self.name or "-"}: {self._raw!r}>'

    def __getitem__(self, key: str) -> Any:
        return self._raw[key]

    def __setitem__(self, key: str, value: Any) -> None:
        self._raw[key] = value

    def __delitem__(self, key: str) -> None:
        del self._raw[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._raw)

    def __len__(self) -> int:
        return len(self._raw)

    def _get_resource(self) -> resources.Resource:
        if self.resource is None:
            raise TypeError(f"The object type is not bound to a resource: {type(self).__name__}")
        return self.resource

    @property
    def metadata(self) -> dict[str, Any]:
        return self._raw.setdefault('metadata', {})

    @property
    def spec(self) -> dict[str, Any]:
        return self._raw.setdefault('spec', {})

    @property
    def status(self) -> dict[str, Any]:
        return self._raw.setdefault('status', {})

    @property
    def name(self) -> str:
        return str(self._raw.get('metadata', {}).get('name') or '')

    @name.setter
    def name(self, value: str) -> None:
        self.metadata['name'] = value

    @property
    def namespace(self) -> str:
        return str(self._raw.get('metadata', {}).get('namespace') or '')

    @namespace.setter
    def namespace(self, value: str) -> None:
        self.metadata['namespace'] = value

    @property
    def workspace(self) -> str:
        return resources.to_workspace(self.namespace)

    @workspace.setter
    def workspace(self, value: str) -> None:
        self.namespace = resources.to_namespace(value)

    @property
    def generation(self) -> int | None:
        value = self._raw.get('metadata', {}).get('generation')
        return int(value) if value is not None else None

    @property
    def resource_version(self) -> str:
        return str(self._raw.get('metadata', {}).get('resourceVersion') or '')

    @resource_version.setter
    def resource_version(self, value: str) -> None:
        self.metadata['resourceVersion'] = value

    @property
    def is_versioned(self) -> bool:
        return self.resource is not None and self.resource.is_versioned()

    @property
    def version(self) -> str:
        """ The object's version (for the versioned resources only). """
        return str(self._raw.get('spec', {}).get('version') or '')

    @version.setter
    def version(self, value: str) -> None:
        self.spec['version'] = value

    def clone(self: _O) -> _O:
        """ Make an independent deep copy of the same type and resource. """
        cloned = copy.copy(self)
        cloned._raw = copy.deepcopy(self._raw)
        return cloned

    def to_raw(self) -> RawBody:
        """ Render the raw body for sending, with the type information filled. """
        raw: dict[str, Any] = copy.deepcopy(self._raw)
        if self.resource is not None:
            raw.setdefault('apiVersion', self.resource.api_version)
            if self.resource.kind:
                raw.setdefault('kind', self.resource.kind)
        return raw  # type: ignore[return-value]

    def load_raw(self, raw: Any) -> None:
        """ Replace the object's content with the decoded response (in place). """
        if not isinstance(raw, Mapping):
            raise ValueError(f"Cannot load a non-mapping into {type(self).__name__}: {raw!r}")
        self._raw = dict(raw)


class ObjectList:
    """
    A list of objects, as returned by the listing endpoints.
    """

    item_type: ClassVar[type[Object]] = Object

    def __init__(
            self,
            items: collections.abc.Iterable[Object] = (),
            *,
            resource: resources.Resource | None = None,
            item_type: type[Object] | None = None,
    ) -> None:
        super().__init__()
        if item_type is not None:
            self.item_type = item_type  # type: ignore[misc]  # shadows the class-level default.
        self._resource = resource
        self.items: list[Object] = list(items)
        self.metadata: dict[str, Any] = {}
        self.raw: dict[str, Any] = {}

    def __repr__(self) -> str:
        return f'<{type(self).__name__}: {self.items!r}>'

    def __iter__(self) -> Iterator[Object]:
        return iter(self.items)

    def __len__(self) -> int:
        return len(self.items)

    @property
    def resource(self) -> resources.Resource | None:
        return self._resource if self._resource is not None else self.item_type.resource

    @property
    def resource_version(self) -> str:
        return str(self.metadata.get('resourceVersion') or '')

    def load_raw(self, raw: Any) -> None:
        if not isinstance(raw, Mapping):
            raise ValueError(f"Cannot load a non-mapping into {type(self).__name__}: {raw!r}")
        self.raw = dict(raw)
        self.metadata = dict(raw.get('metadata') or {})
        self.items = [self.item_type(item, resource=self._resource) for item in raw.get('items') or []]


@dataclasses.dataclass(frozen=True)
class ObjectKey:
    """
    An identifier of an object: its name, workspace, and version (if versioned).
    """
    name: str
    workspace: str = ''
    version: str = ''

    def __str__(self) -> str:
        return f'{self.workspace}/{self.name}' if self.workspace else self.name

    @classmethod
    def from_object(cls, obj: Object) -> "ObjectKey":
        return cls(
            name=obj.name,
            workspace=obj.workspace,
            version=obj.version if obj.is_versioned else '',
        )


def is_supported_sink(sink: Any) -> bool:
    return (
        hasattr(sink, 'load_raw') or
        isinstance(sink, (collections.abc.MutableMapping, collections.abc.MutableSequence)) or
        callable(sink)
    )


def encode_payload(payload: Any) -> bytes | None:
    """
    Serialise the payload of a request: objects, mappings, lists, or pre-encoded.
    """
    if payload is None:
        return None
    if isinstance(payload, bytes):
        return payload
    if isinstance(payload, str):
        return payload.encode('utf-8')
    if hasattr(payload, 'to_raw'):
        payload = payload.to_raw()
    return json.dumps(payload).encode('utf-8')


def decode_into(sink: Any, data: Any) -> None:
    """
    Store the decoded response data into a sink registered by the caller.

    The sink can be an object with ``load_raw()`` (e.g. :class:`Object`),
    a mutable mapping or sequence (updated in place), or a callback.
    """
    if hasattr(sink, 'load_raw'):
        sink.load_raw(data)
    elif isinstance(sink, collections.abc.MutableMapping):
        if not isinstance(data, Mapping):
            raise ValueError(f"Cannot decode a non-mapping into a mapping: {data!r}")
        sink.clear()
        sink.update(data)
    elif isinstance(sink, collections.abc.MutableSequence):
        if not isinstance(data, list):
            raise ValueError(f"Cannot decode a non-list into a list: {data!r}")
        sink[:] = data
    elif callable(sink):
        sink(data)
    else:
        raise TypeError(f"Unsupported result sink: {sink!r}")
