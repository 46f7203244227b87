"""
Structured errors and warnings, as reported by the API in the response bodies.

These are not the client's own errors: they are parsed from the API responses
and attached to :class:`wfclient.APIError` for programmatic inspection,
e.g. to highlight the invalid fields in a UI without parsing the messages.

* HTTP 400 responses carry a :class:`ValidationError` with per-field errors.
* HTTP 409 responses (except for the "object modified" conflicts) carry
  a :class:`DependencyViolationError` with the objects blocking the deletion.
* Any response can carry :class:`APIWarning`-s in its ``warning`` headers.
"""
import dataclasses
import enum
import re
from collections.abc import Collection, Iterable, Mapping
from typing import Any

from typing_extensions import TypedDict

# A pseudo-field name for the errors of the object as a whole.
FIELD_ROOT = '(root)'

# A response header with the JSON-serialised warnings (repeated).
WARNING_HEADER = 'warning'


class ErrorCode(str, enum.Enum):
    DEPRECATED = 'deprecated'
    MIN_LENGTH = 'minLength'
    MAX_LENGTH = 'maxLength'
    REQUIRED = 'required'
    PATTERN = 'pattern'
    MUST_EXIST = 'mustExist'
    SHOULD_EXIST = 'shouldExist'
    READ_ONLY = 'readOnly'
    INVALID_TYPE = 'invalidType'
    INVALID_VALUE = 'invalidValue'
    NOT_ALLOWED = 'notAllowed'
    MUST_BE_UNIQUE = 'mustBeUnique'
    IMMUTABLE = 'immutable'
    FIELD_WARNING = 'fieldWarning'
    NOT_YET_IMPLEMENTED = 'notYetImplemented'


# The codes which are reported along with the errors, but are not errors themselves.
WARNING_CODES = frozenset(code.value for code in [ErrorCode.DEPRECATED, ErrorCode.SHOULD_EXIST, ErrorCode.FIELD_WARNING])


class RawFieldError(TypedDict, total=False):
    field: str
    errCode: str
    message: str


class RawValidationError(TypedDict, total=False):
    code: int
    message: str
    fieldErrors: Collection[RawFieldError]


class RawDependentReference(TypedDict, total=False):
    kind: str
    name: str
    version: str
    workspace: str
    system: bool


class RawDependencyViolation(TypedDict, total=False):
    message: str
    dependents: Collection[RawDependentReference]


class RawWarning(TypedDict, total=False):
    warningType: str
    apiVersion: str
    kind: str
    name: str
    version: str
    workspace: str
    message: str



def _get_list(raw: Mapping[str, Any], key: str) -> list[Any]:
    value = raw.get(key) or []
    if not isinstance(value, list):
        raise ValueError(f"The {key} must be a list, got {value!r}")
    return value

@dataclasses.dataclass(frozen=True)
class FieldError:
    field: str
    code: str
    message: str

    @classmethod
    def from_raw(cls, raw: Mapping[str, Any]) -> "FieldError":
        if not isinstance(raw, Mapping):
            raise ValueError(f"A field error must be a mapping, got {raw!r}")
        return cls(
            field=str(raw.get('field') or ''),
            code=str(raw.get('errCode') or ''),
            message=str(raw.get('message') or ''),
        )

    def to_raw(self) -> RawFieldError:
        return RawFieldError(field=self.field, errCode=self.code, message=self.message)

    @property
    def is_warning(self) -> bool:
        return self.code in WARNING_CODES

    def __str__(self) -> str:
        return self.message if self.field == FIELD_ROOT else f"{self.field}: {self.message}"


class ValidationError(Exception):
    """
    The input provided by the user has failed the server-side validation.

    The string rendering is the message followed by a bulleted list of
    the field errors, or an empty string if there are no field errors.
    """

    def __init__(
            self,
            message: str = '',
            field_errors: Iterable[FieldError] = (),
            *,
            code: int = 400,
    ) -> None:
        self.message = message
        self.code = code
        self.field_errors: list[FieldError] = list(field_errors)
        super().__init__(message)

    def __str__(self) -> str:
        if not self.field_errors:
            return ''
        lines = [f"{self.message}:\n"]
        lines.extend(f" * {field_error}\n" for field_error in self.field_errors)
        return ''.join(lines)

    def __repr__(self) -> str:
        return f'{type(self).__name__}({self.message!r}, {self.field_errors!r}, code={self.code!r})'

    @classmethod
    def from_raw(cls, raw: Mapping[str, Any]) -> "ValidationError":
        if not isinstance(raw, Mapping):
            raise ValueError(f"A validation error must be a mapping, got {raw!r}")
        raw_code = raw.get('code')
        return cls(
            message=str(raw.get('message') or ''),
            field_errors=[FieldError.from_raw(item) for item in _get_list(raw, 'fieldErrors')],
            code=raw_code if isinstance(raw_code, int) else 400,
        )

    def to_raw(self) -> RawValidationError:
        return RawValidationError(
            code=self.code,
            message=self.message,
            fieldErrors=[field_error.to_raw() for field_error in self.field_errors],
        )

    @property
    def has_errors(self) -> bool:
        return bool(self.field_errors)

    def get_warnings(self) -> list[FieldError]:
        return [field_error for field_error in self.field_errors if field_error.is_warning]

    def get_non_warnings(self) -> list[FieldError]:
        return [field_error for field_error in self.field_errors if not field_error.is_warning]

    def has_error_containing(self, needle: str) -> bool:
        return any(needle in field_error.message for field_error in self.field_errors)

    def has_field_error(self, field_error: FieldError) -> bool:
        return field_error in self.field_errors

    def get_field_errors(self, field: str) -> list[FieldError]:
        return [field_error for field_error in self.field_errors if field_error.field == field]

    def add_field_error(self, field: str, code: str, message: str) -> "ValidationError":
        field_error = FieldError(field=field, code=code, message=message)
        if field_error not in self.field_errors:
            self.field_errors.append(field_error)
        return self


@dataclasses.dataclass(frozen=True)
class DependentReference:
    kind: str
    name: str
    version: str = ''
    workspace: str = ''
    system: bool = False

    def __str__(self) -> str:
        base = f"{self.kind}/{self.workspace}/{self.name}" if self.workspace else f"{self.kind}/{self.name}"
        return f"{base}@{self.version}" if self.version else base

    @classmethod
    def from_string(cls, text: str) -> "DependentReference":
        """ Parse ``kind/name`` or ``kind/workspace/name``. """
        slashes = text.count('/')
        match = (
            re.fullmatch(r'(.+)/(.+)/(.+)', text) if slashes == 2 else
            re.fullmatch(r'(.+)/(.+)', text) if slashes == 1 else
            None
        )
        if match is None:
            raise ValueError(f"incorrect dependent reference format: {text}")
        if slashes == 2:
            kind, workspace, name = match.groups()
            return cls(kind=kind, name=name, workspace=workspace)
        else:
            kind, name = match.groups()
            return cls(kind=kind, name=name)

    @classmethod
    def from_raw(cls, raw: Mapping[str, Any]) -> "DependentReference":
        if not isinstance(raw, Mapping):
            raise ValueError(f"A dependent reference must be a mapping, got {raw!r}")
        return cls(
            kind=str(raw.get('kind') or ''),
            name=str(raw.get('name') or ''),
            version=str(raw.get('version') or ''),
            workspace=str(raw.get('workspace') or ''),
            system=bool(raw.get('system', False)),
        )

    def to_raw(self) -> RawDependentReference:
        raw = RawDependentReference(kind=self.kind, name=self.name, workspace=self.workspace, system=self.system)
        if self.version:
            raw['version'] = self.version
        return raw


class DependencyViolationError(Exception):
    """
    The object cannot be deleted while other objects depend on it.

    The dependents managed by the system itself (``system: true``) are
    listed only if there are no user-managed dependents: in that case,
    the deletion is blocked only until the system cleans them up.
    """

    def __init__(self, message: str = '', dependents: Iterable[DependentReference] = ()) -> None:
        self.message = message
        self.dependents: list[DependentReference] = list(dependents)
        super().__init__(message)

    def __str__(self) -> str:
        user_dependents = [dependent for dependent in self.dependents if not dependent.system]
        if user_dependents:
            message = self.message or "the following objects need to be deleted first"
            lines = ''.join(f" * {dependent}\n" for dependent in user_dependents)
            return f"{message.rstrip(':')}:\n{lines}"
        lines = ''.join(f" * {dependent}\n" for dependent in self.dependents)
        return f"waiting for the following objects to be deleted by Wayfinder:\n{lines}"

    def __repr__(self) -> str:
        return f'{type(self).__name__}({self.message!r}, {self.dependents!r})'

    @classmethod
    def from_raw(cls, raw: Mapping[str, Any]) -> "DependencyViolationError":
        if not isinstance(raw, Mapping):
            raise ValueError(f"A dependency violation must be a mapping, got {raw!r}")
        return cls(
            message=str(raw.get('message') or ''),
            dependents=[DependentReference.from_raw(item) for item in _get_list(raw, 'dependents')],
        )

    def to_raw(self) -> RawDependencyViolation:
        return RawDependencyViolation(
            message=self.message,
            dependents=[dependent.to_raw() for dependent in self.dependents],
        )


class WarningType(str, enum.Enum):
    DEPENDENCY = 'Dependency'
    GENERAL = 'General'
    FIELD_DEPRECATED = 'FieldDeprecated'


@dataclasses.dataclass(frozen=True)
class APIWarning:
    """
    A non-fatal remark of the API on the request, e.g. a missing dependency.
    """
    warning_type: str
    api_version: str = ''
    kind: str = ''
    name: str = ''
    version: str = ''
    workspace: str = ''
    message: str = ''

    @classmethod
    def from_raw(cls, raw: Mapping[str, Any]) -> "APIWarning":
        if not isinstance(raw, Mapping):
            raise ValueError(f"A warning must be a mapping, got {raw!r}")
        return cls(
            warning_type=str(raw.get('warningType') or ''),
            api_version=str(raw.get('apiVersion') or ''),
            kind=str(raw.get('kind') or ''),
            name=str(raw.get('name') or ''),
            version=str(raw.get('version') or ''),
            workspace=str(raw.get('workspace') or ''),
            message=str(raw.get('message') or ''),
        )

    def to_raw(self) -> RawWarning:
        raw = RawWarning(warningType=self.warning_type)
        for key, value in [('apiVersion', self.api_version), ('kind', self.kind),
                           ('name', self.name), ('version', self.version),
                           ('workspace', self.workspace), ('message', self.message)]:
            if value:
                raw[key] = value  # type: ignore[literal-required]
        return raw

    @property
    def should_handle(self) -> bool:
        return bool((self.name and self.kind) or self.message)

    def get_display_message(self) -> str:
        """
        Render the warning for humans; empty for the unknown or incomplete ones.
        """
        if not self.should_handle:
            return ''
        if self.warning_type == WarningType.DEPENDENCY:
            name = f"{self.name} (version {self.version})" if self.version else self.name
            if self.workspace:
                return f"Dependency {self.kind} {self.workspace} {name} does not exist"
            return f"Dependency {self.kind} {name} does not exist"
        elif self.warning_type == WarningType.FIELD_DEPRECATED:
            version_kind = f"{self.api_version}/{self.kind}" if self.api_version else self.kind
            return f"Field {self.name} on {version_kind} is deprecated and will be removed in a later version"
        elif self.warning_type == WarningType.GENERAL:
            return f"* {self.name}: {self.message}"
        else:
            return ''
