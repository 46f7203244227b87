"""
Unit-suffixed durations (e.g. ``1h30m``), as used by the API and by the environment variables.

The server side parses query parameters such as ``?ttl=30m0s`` with its own
duration parser, and the environment variables (``WAYFINDER_HTTP_CLIENT_TIMEOUT``)
are documented in the same notation. Here, they are converted to/from seconds.
"""
import datetime
import re

_UNITS: dict[str, int] = {
    'ns': 1,
    'us': 1_000,
    'µs': 1_000,  # U+00B5 micro sign
    'μs': 1_000,  # U+03BC greek mu
    'ms': 1_000_000,
    's': 1_000_000_000,
    'm': 60 * 1_000_000_000,
    'h': 60 * 60 * 1_000_000_000,
}

_COMPONENT = re.compile(r'(\d+(?:\.\d*)?|\.\d+)(ns|us|µs|μs|ms|s|m|h)')


def parse_duration(text: str) -> float:
    """
    Parse a duration such as ``"1h30m"``, ``"1.5s"``, ``"300ms"`` into seconds.

    A bare ``"0"`` is accepted. Everything else requires the units.
    """
    original = text
    text = text.strip()
    sign = 1
    if text[:1] in ('-', '+'):
        sign = -1 if text[0] == '-' else 1
        text = text[1:]
    if text == '0':
        return 0.0
    if not text:
        raise ValueError(f"Invalid duration: {original!r}")

    total_ns = 0.0
    pos = 0
    while pos < len(text):
        match = _COMPONENT.match(text, pos)
        if match is None:
            raise ValueError(f"Invalid duration: {original!r}")
        value, unit = match.groups()
        total_ns += float(value) * _UNITS[unit]
        pos = match.end()
    return sign * total_ns / 1_000_000_000


def format_duration(duration: float | datetime.timedelta) -> str:
    """
    Render the seconds (or a timedelta) the same way as the server renders them.

    E.g. 1800 seconds become ``"30m0s"``, 0.5 seconds become ``"500ms"``.
    """
    seconds = duration.total_seconds() if isinstance(duration, datetime.timedelta) else duration
    nanos = round(seconds * 1_000_000_000)
    sign = '-' if nanos < 0 else ''
    nanos = abs(nanos)

    if nanos == 0:
        return '0s'
    if nanos < _UNITS['s']:
        for unit, scale in (('ms', _UNITS['ms']), ('µs', _UNITS['us']), ('ns', _UNITS['ns'])):
            if nanos >= scale:
                return f"{sign}{_trim(nanos, scale)}{unit}"

    hours, nanos = divmod(nanos, _UNITS['h'])
    minutes, nanos = divmod(nanos, _UNITS['m'])
    text = f"{_trim(nanos, _UNITS['s'])}s"
    if hours or minutes:
        text = f"{minutes}m{text}"
    if hours:
        text = f"{hours}h{text}"
    return f"{sign}{text}"


def _trim(nanos: int, scale: int) -> str:
    whole, fraction = divmod(nanos, scale)
    if not fraction:
        return str(whole)
    digits = len(str(scale)) - 1
    return f"{whole}.{fraction:0{digits}d}".rstrip('0')
