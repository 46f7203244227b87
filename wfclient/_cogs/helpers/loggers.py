"""
Logging of the API requests, with the request identifiers attached.

Every request-performing routine logs via :class:`RequestLogger`, which carries
the request's method, URI, server endpoint, and whether a custom CA is used.
These fields are rendered as a ``[METHOD uri]`` prefix in the text formats,
or as a separate JSON field in the JSON format (with the full URL added)
for the log parsers.

The library never configures the logging by itself. The applications
can use :func:`configure` for a quick start, or their own logging setup.
"""
import copy
import enum
import logging
from collections.abc import MutableMapping
from typing import TYPE_CHECKING, Any, TextIO

# Luckily, we do not mock these ones in tests, so we can import them into our namespace.
try:
    # python-json-logger>=3.1.0
    from pythonjsonlogger.core import RESERVED_ATTRS as _pjl_RESERVED_ATTRS
    from pythonjsonlogger.json import JsonFormatter as _pjl_JsonFormatter
except ImportError:
    # python-json-logger<3.1.0
    from pythonjsonlogger.jsonlogger import JsonFormatter as _pjl_JsonFormatter  # type: ignore
    from pythonjsonlogger.jsonlogger import RESERVED_ATTRS as _pjl_RESERVED_ATTRS  # type: ignore

from wfclient._cogs.helpers import typedefs

logger = logging.getLogger('wfclient.requests')

# A key for request references in JSON logs, as seen by the log parsers.
DEFAULT_JSON_REFKEY = 'request'


class LogFormat(enum.Enum):
    """ Log formats, as accepted by :func:`configure`. """
    PLAIN = '%(message)s'
    FULL = '[%(asctime)s] %(name)-20.20s [%(levelname)-8.8s] %(message)s'
    JSON = '-json-'  # not used for formatting, only for detection


class RequestFormatter(logging.Formatter):
    pass


class RequestTextFormatter(RequestFormatter, logging.Formatter):
    pass


class RequestJsonFormatter(RequestFormatter, _pjl_JsonFormatter):
    def __init__(
            self,
            *args: Any,
            refkey: str | None = None,
            **kwargs: Any,
    ) -> None:
        # Avoid type checking, as the args are not in the parent consructor.
        reserved_attrs = kwargs.pop('reserved_attrs', _pjl_RESERVED_ATTRS)
        reserved_attrs = set(reserved_attrs)
        reserved_attrs |= {'wf_ref'}
        kwargs |= dict(reserved_attrs=reserved_attrs)
        kwargs.setdefault('timestamp', True)
        super().__init__(*args, **kwargs)
        self._refkey: str = refkey or DEFAULT_JSON_REFKEY

    def add_fields(
            self,
            log_record: dict[str, object],
            record: logging.LogRecord,
            message_dict: dict[str, object],
    ) -> None:
        super().add_fields(log_record, record, message_dict)

        if self._refkey and hasattr(record, 'wf_ref'):
            ref = dict(getattr(record, 'wf_ref'))
            ref.setdefault('url', f"{ref.get('endpoint') or ''}{ref.get('uri') or ''}")
            log_record[self._refkey] = ref

        if 'severity' not in log_record:
            log_record['severity'] = (
                "debug" if record.levelno <= logging.DEBUG else
                "info" if record.levelno <= logging.INFO else
                "warn" if record.levelno <= logging.WARNING else
                "error" if record.levelno <= logging.ERROR else
                "fatal")


class RequestPrefixingMixin(RequestFormatter):
    def format(self, record: logging.LogRecord) -> str:
        if hasattr(record, 'wf_ref'):
            ref = getattr(record, 'wf_ref')
            method = ref.get('method') or ''
            uri = ref.get('uri') or ''
            prefix = f"[{method} {uri}]" if method else f"[{uri}]"
            record = copy.copy(record)  # shallow
            record.msg = f"{prefix} {record.msg}"
        return super().format(record)


class RequestPrefixingTextFormatter(RequestPrefixingMixin, RequestTextFormatter):
    pass


class RequestPrefixingJsonFormatter(RequestPrefixingMixin, RequestJsonFormatter):
    pass


class RequestLogger(typedefs.LoggerAdapter):
    """
    A logger/adapter to carry the request identifiers for formatting.

    Constructed for every performed request (i.e. for every terminal call
    of :class:`wfclient.Request`, but not for the retried attempts).

    The fields are the same as reported in the debug messages of the request
    lifecycle: the server endpoint, the HTTP method, the request URI relative
    to the server, and the flag of a custom CA certificate.
    """

    def __init__(
            self,
            *,
            method: str,
            uri: str,
            endpoint: str,
            custom_ca: bool = False,
            base: logging.Logger | None = None,
    ) -> None:
        super().__init__(base or logger, dict(
            wf_ref=dict(
                method=method,
                uri=uri,
                endpoint=endpoint,
                customCA=custom_ca,
            ),
        ))

    @property
    def ref(self) -> dict[str, Any]:
        return dict(self.extra['wf_ref']) if self.extra else {}

    def process(
            self,
            msg: str,
            kwargs: MutableMapping[str, Any],
    ) -> tuple[str, MutableMapping[str, Any]]:
        # Native logging overwrites the message's extra with the adapter's extra.
        # We merge them, so that both message's & adapter's extras are available.
        kwargs["extra"] = dict(self.extra or {}) | kwargs.get('extra', {})
        return msg, kwargs


# Used to identify and remove our own handlers on re-configuration (e.g. in tests).
if TYPE_CHECKING:
    class _WayfinderStreamHandler(logging.StreamHandler[TextIO]):
        pass
else:
    class _WayfinderStreamHandler(logging.StreamHandler):
        pass


def configure(
        debug: bool | None = None,
        verbose: bool | None = None,
        quiet: bool | None = None,
        log_format: LogFormat = LogFormat.FULL,
        log_prefix: bool | None = False,
        log_refkey: str | None = None,
) -> None:
    log_level = 'DEBUG' if debug or verbose else 'WARNING' if quiet else 'INFO'
    formatter = make_formatter(log_format=log_format, log_prefix=log_prefix, log_refkey=log_refkey)
    handler = _WayfinderStreamHandler()
    handler.setFormatter(formatter)
    logger = logging.getLogger()
    logger.handlers[:] = [h for h in logger.handlers if not isinstance(h, _WayfinderStreamHandler)]
    logger.addHandler(handler)
    logger.setLevel(log_level)

    # Prevent the low-level logging unless in the debug mode. Keep only the client's messages.
    # For no-propagation loggers, add a dummy null handler to prevent printing the messages.
    for name in ['asyncio']:
        logger = logging.getLogger(name)
        logger.propagate = bool(debug)
        if not debug:
            logger.handlers[:] = [logging.NullHandler()]


def make_formatter(
        log_format: LogFormat | str = LogFormat.FULL,
        log_prefix: bool | None = False,
        log_refkey: str | None = None,
) -> RequestFormatter:
    log_prefix = log_prefix if log_prefix is not None else bool(log_format is not LogFormat.JSON)
    match log_format:
        case LogFormat.JSON:
            if log_prefix:
                return RequestPrefixingJsonFormatter(refkey=log_refkey)
            else:
                return RequestJsonFormatter(refkey=log_refkey)
        case LogFormat():
            if log_prefix:
                return RequestPrefixingTextFormatter(log_format.value)
            else:
                return RequestTextFormatter(log_format.value)
        case str():
            if log_prefix:
                return RequestPrefixingTextFormatter(log_format)
            else:
                return RequestTextFormatter(log_format)
        case _:
            raise ValueError(f"Unsupported log format: {log_format!r}")
