import asyncio
import json
import logging
import re
import time
from unittest.mock import AsyncMock, MagicMock

import jwt
import pytest

import wfclient


def pytest_configure(config):
    # Warnings from the testing tools out of our control should not fail the tests.
    config.addinivalue_line('filterwarnings', 'ignore:The event_loop fixture:DeprecationWarning')


# Make all tests in this directory and below asyncio-compatible by default.
# Due to how pytest-async checks for these markers, they should be added as early as possible.
@pytest.hookimpl(hookwrapper=True)
def pytest_pycollect_makeitem(collector, name, obj):
    if collector.funcnamefilter(name) and asyncio.iscoroutinefunction(obj):
        pytest.mark.asyncio(obj)
    yield


@pytest.fixture(autouse=True)
def _no_wayfinder_environment(monkeypatch, tmp_path):
    """ The unit-tests must be fully isolated from the environment. """
    for name in ['WAYFINDER_SERVER', 'WAYFINDER_TOKEN', 'WAYFINDER_WORKSPACE',
                 'WAYFINDER_HTTP_CLIENT_TIMEOUT']:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv('WAYFINDER_CONFIG', str(tmp_path / 'wayfinder' / 'config'))


@pytest.fixture()
def hostname():
    """ A fake hostname to be used in all aiohttp/aresponses tests. """
    return 'fake-host'


@pytest.fixture()
def settings():
    """ No sleeps between the rate-limited or conflicting attempts, so that the tests are fast. """
    settings = wfclient.ClientSettings()
    settings.networking.error_backoff = 0
    settings.networking.error_backoff_jitter = False
    settings.conflicts.backoff = 0
    return settings


@pytest.fixture()
def make_token():
    """
    A factory of unsigned-as-seen-by-the-client JWTs with the specified claims.

    ``expires_in`` is relative to now (in seconds), negative for the expired tokens.
    """
    def make_token_fn(*, scopes=(), expires_in=None, **claims):
        payload = dict(claims)
        if scopes:
            payload['scopes'] = list(scopes)
        if expires_in is not None:
            payload['exp'] = int(time.time() + expires_in)
        return jwt.encode(payload, 'test-secret', algorithm='HS256')
    return make_token_fn


@pytest.fixture()
def config(hostname):
    """ A single-profile configuration with a static token. """
    config = wfclient.Config(current_profile='default')
    config.create_profile('default', f'http://{hostname}')
    config.add_auth_info('default', wfclient.AuthInfo(token='static-token'))
    return config


@pytest.fixture()
async def client(config, settings):
    async with wfclient.Client(config, settings=settings) as client:
        yield client


@pytest.fixture()
def resp_mocker(aresponses):
    """
    A factory of server-side callbacks for `aresponses` with mocking/spying.

    The value of the fixture is a function, which return a coroutine mock.
    That coroutine mock should be passed to `aresponses.add` as a response
    callback function. When called, it calls the mock defined by the function's
    arguments (specifically, return_value or side_effects).

    The request's content is preserved as ``request['data']`` (decoded JSON
    or text), and the request itself is available in the mock's ``call_args``.

    Sample usage::

        def test_me(resp_mocker):
            response = aiohttp.web.json_response({'a': 'b'})
            callback = resp_mocker(return_value=response)
            aresponses.add(hostname, '/path/', 'get', callback)
            do_something()
            assert callback.called
            assert callback.call_count == 1
    """
    def resp_maker(*args, **kwargs):
        actual_response = MagicMock(*args, **kwargs)

        async def resp_mock_effect(request):
            # The request's content can be read inside of the handler only. We preserve
            # the data into the request's storage, so that they could be asserted later.
            text = await request.text()
            try:
                request['data'] = json.loads(text)
            except json.JSONDecodeError:
                request['data'] = text

            # Get a response/error as it was intended (via return_value/side_effect).
            return actual_response()

        return AsyncMock(side_effect=resp_mock_effect)
    return resp_maker


#
# Helpers for the logging checks.
#

@pytest.fixture()
def assert_logs(caplog):
    """
    A function to assert the logs are present (by pattern).

    The listed message patterns MUST be present, in the order specified.
    Some other log messages can also be present, but they are ignored.
    """
    caplog.set_level(logging.DEBUG)

    def assert_logs_fn(patterns, prohibited=[], strict=False):
        __traceback_hide__ = True
        remaining_patterns = list(patterns)
        for message in caplog.messages:
            # The expected pattern is at position 0.
            # Looking-ahead: if one of the following patterns matches, while the
            # 0th does not, then the log message is missing, and we fail the test.
            for idx, pattern in enumerate(remaining_patterns):
                m = re.search(pattern, message)
                if m:
                    if idx == 0:
                        remaining_patterns[:1] = []
                        break  # out of `remaining_patterns` cycle
                    else:
                        skipped_patterns = remaining_patterns[:idx]
                        raise AssertionError(f"Few patterns were skipped: {skipped_patterns!r}")
                elif strict:
                    raise AssertionError(f"Unexpected log message: {message!r}")

            # Check that the prohibited patterns do not appear in any message.
            for pattern in prohibited:
                m = re.search(pattern, message)
                if m:
                    raise AssertionError(f"Prohibited log pattern found: {message!r} ~ {pattern!r}")

        # If all patterns have been matched in order, we are done.
        # if some are left, but the messages are over, then we fail.
        if remaining_patterns:
            raise AssertionError(f"Few patterns were missed: {remaining_patterns!r}")

    return assert_logs_fn
