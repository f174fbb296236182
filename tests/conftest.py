import logging
import re
import unittest.mock

import pytest
from aresponses import ResponsesMockServer

import bcc


#
# Mocks for the control plane's API. Reasons:
# 1. We do not test aiohttp, we test the layers on top of it,
#    so the API server is mocked, but the client side is real.
# 2. No external calls must be made under any circumstances.
#    The unit-tests must be fully isolated from the environment.
#

@pytest.fixture()
async def aresponses():
    """
    A mock server to which all the requests to all the hosts are redirected.

    It is started in the test's own event loop, whichever loop it is.
    """
    async with ResponsesMockServer() as server:
        yield server


class _UncopyableAsyncMock(unittest.mock.AsyncMock):
    def __copy__(self):
        return self


@pytest.fixture()
def resp_mocker(mocker):
    """
    A factory of server-side callbacks for `aresponses` with mocking/spying.

    The value of the fixture is a function, which returns a coroutine mock.
    That coroutine mock should be passed to `aresponses.add` as a response
    callback function. When called, it calls the mock defined by the function's
    arguments (specifically, return_value or side_effect).

    The received requests are in the mock's calls, and their raw bodies are
    in the mock's ``bodies`` in the same order, as the bodies can be read
    only while the requests are being served.

    Sample usage::

        async def test_me(resp_mocker, aresponses, hostname, manager):
            response = aiohttp.web.json_response({'id': 'd1'})
            get_mock = resp_mocker(return_value=response)
            aresponses.add(hostname, '/v1/disk/d1', 'get', get_mock)
            await manager.get('v1/disk/d1')
            assert get_mock.call_count == 1
            assert get_mock.call_args[0][0].query['page'] == '1'
    """
    def resp_maker(*args, **kwargs):
        actual_response = mocker.MagicMock(*args, **kwargs)
        bodies = []

        async def resp_mock_effect(request):
            bodies.append(await request.read())
            return actual_response()

        # `aresponses` copies the response callback of routes with repeat>1 after every hit;
        # the copy must be the same mock, so that all the calls are counted in one place.
        resp_mock = _UncopyableAsyncMock(side_effect=resp_mock_effect)
        resp_mock.bodies = bodies
        return resp_mock
    return resp_maker


@pytest.fixture()
def hostname():
    """ A fake hostname to be used in all the API tests. """
    return 'fake-host'


@pytest.fixture()
def server(hostname):
    return f'https://{hostname}'


@pytest.fixture()
def logger():
    return logging.getLogger('bcc.tests')


@pytest.fixture()
async def manager(aresponses, server, logger):
    async with bcc.Manager.create('fake-token', server=server, logger=logger) as manager:
        yield manager


@pytest.fixture(autouse=True)
def _caplog_all_levels(caplog):
    caplog.set_level(0)


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
