import pytest

from bcc import Arguments


def test_defaults_are_empty():
    args = Arguments.defaults()
    assert isinstance(args, Arguments)
    assert args == {}


def test_merging_with_nothing_copies():
    args = Arguments(vdc='v1')
    merged = args.merge()
    assert merged == {'vdc': 'v1'}
    assert merged is not args


def test_merging_is_right_biased():
    args = Arguments(vdc='v1', sort='name')
    merged = args.merge({'vdc': 'v2'}, {'name': 'disk'}, {'vdc': 'v3'})
    assert merged == {'vdc': 'v3', 'sort': 'name', 'name': 'disk'}


def test_merging_skips_nones():
    args = Arguments(vdc='v1')
    merged = args.merge(None, {'page': '2'}, None)
    assert merged == {'vdc': 'v1', 'page': '2'}


def test_merging_keeps_the_type():
    merged = Arguments(vdc='v1').merge({'page': '2'})
    assert isinstance(merged, Arguments)


def test_merging_modifies_nothing():
    args = Arguments(vdc='v1')
    extra = {'vdc': 'v2'}
    args.merge(extra)
    assert args == {'vdc': 'v1'}
    assert extra == {'vdc': 'v2'}


@pytest.mark.parametrize('value, expected', [
    pytest.param('abc', 'abc', id='str'),
    pytest.param(10, '10', id='int'),
    pytest.param(True, 'True', id='bool'),
])
def test_query_values_are_stringified(value, expected):
    args = Arguments(key=value)  # type: ignore
    assert args.to_query() == {'key': expected}
