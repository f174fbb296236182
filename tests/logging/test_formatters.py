import json
import logging.handlers

import pytest

from bcc import RequestLogger
from bcc._cogs.helpers.loggers import RequestJsonFormatter, RequestPrefixingJsonFormatter, \
                                      RequestPrefixingTextFormatter, RequestTextFormatter


@pytest.fixture()
def handler():
    handler = logging.handlers.BufferingHandler(capacity=100)
    logger = logging.getLogger('bcc.tests.formatters')
    logger.addHandler(handler)
    yield handler
    logger.removeHandler(handler)


@pytest.fixture()
def request_record(handler):
    logger = RequestLogger(logging.getLogger('bcc.tests.formatters'),
                           method='GET', url='https://fake-host/v1/vm')
    logger.info("hello")
    return handler.buffer[0]


@pytest.fixture()
def plain_record(handler):
    logging.getLogger('bcc.tests.formatters').info("hello")
    return handler.buffer[0]


def test_prefixing_text_formatter_adds_prefixes(request_record):
    formatter = RequestPrefixingTextFormatter()
    formatted = formatter.format(request_record)
    assert formatted == '[GET https://fake-host/v1/vm] hello'


def test_prefixing_text_formatter_skips_unrelated_records(plain_record):
    formatter = RequestPrefixingTextFormatter()
    formatted = formatter.format(plain_record)
    assert formatted == 'hello'


def test_prefixing_json_formatter_adds_prefixes(request_record):
    formatter = RequestPrefixingJsonFormatter()
    formatted = formatter.format(request_record)
    decoded = json.loads(formatted)
    assert decoded['message'] == '[GET https://fake-host/v1/vm] hello'


def test_regular_text_formatter_omits_prefixes(request_record):
    formatter = RequestTextFormatter()
    formatted = formatter.format(request_record)
    assert formatted == 'hello'


def test_regular_json_formatter_omits_prefixes(request_record):
    formatter = RequestJsonFormatter()
    formatted = formatter.format(request_record)
    decoded = json.loads(formatted)
    assert decoded['message'] == 'hello'


def test_json_formatter_adds_the_request_reference(request_record):
    formatter = RequestJsonFormatter()
    formatted = formatter.format(request_record)
    decoded = json.loads(formatted)
    assert decoded['request'] == {'method': 'GET', 'url': 'https://fake-host/v1/vm'}
    assert 'bcc_ref' not in decoded


def test_json_formatter_with_a_custom_refkey(request_record):
    formatter = RequestJsonFormatter(refkey='http')
    formatted = formatter.format(request_record)
    decoded = json.loads(formatted)
    assert decoded['http'] == {'method': 'GET', 'url': 'https://fake-host/v1/vm'}
    assert 'request' not in decoded


@pytest.mark.parametrize('level, expected', [
    (logging.DEBUG, 'debug'),
    (logging.INFO, 'info'),
    (logging.WARNING, 'warn'),
    (logging.ERROR, 'error'),
    (logging.CRITICAL, 'fatal'),
])
def test_json_formatter_adds_severity(handler, level, expected):
    logger = RequestLogger(logging.getLogger('bcc.tests.formatters'),
                           method='GET', url='https://fake-host/v1/vm')
    logger.log(level, "hello")
    formatter = RequestJsonFormatter()
    decoded = json.loads(formatter.format(handler.buffer[0]))
    assert decoded['severity'] == expected


def test_extras_are_merged_with_the_request_reference(handler):
    logger = RequestLogger(logging.getLogger('bcc.tests.formatters'),
                           method='POST', url='https://fake-host/v1/vm')
    logger.info("hello", extra={'attempt': 2})
    record = handler.buffer[0]
    assert record.attempt == 2
    assert record.bcc_ref == {'method': 'POST', 'url': 'https://fake-host/v1/vm'}
