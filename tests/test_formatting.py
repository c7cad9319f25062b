from urllib.parse import parse_qsl

import pytest

from whmapi import format_headers, format_query
from whmapi.formatting import parse_headers


def test_format_query_empty():
    assert format_query({}) == ""
    assert format_query(None) == ""


def test_format_query_keeps_insertion_order():
    assert format_query({"b": "2", "a": "1", "c": "3"}) == "b=2&a=1&c=3"


def test_format_query_escapes_reserved_characters():
    query = format_query({"name": "a b", "d&": "e=f/g"})
    assert query == "name=a%20b&d%26=e%3Df%2Fg"


def test_format_query_repeats_key_for_lists_and_blanks_none():
    assert format_query({"domain": ["a.com", "b.com"], "x": None}) == "domain=a.com&domain=b.com&x="


@pytest.mark.parametrize(
    "mapping",
    [
        {"user": "bob", "pass": "p@ss w0rd!"},
        {"email": "bob+test@example.com", "quota": "250"},
        {"name": "café", "path": "/home/bob/public_html?x=1&y=2"},
    ],
)
def test_format_query_parses_back(mapping):
    assert dict(parse_qsl(format_query(mapping), keep_blank_values=True)) == mapping


def test_format_headers_mapping():
    headers = format_headers({"Authorization": "WHM root:abc", "X-Test": "1"})
    assert headers == "Authorization: WHM root:abc\r\nX-Test: 1\r\n"


def test_format_headers_string_passthrough():
    block = "Authorization: Basic xyz\r\nCookie: a=b\r\n"
    assert format_headers(block) is block


def test_parse_headers_from_block():
    assert parse_headers("X-One: 1\r\nX-Two: a:b\r\n\r\n") == {"X-One": "1", "X-Two": "a:b"}


def test_parse_headers_rejects_malformed_line():
    with pytest.raises(ValueError):
        parse_headers("not a header\r\n")
