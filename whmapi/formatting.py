"""Query string and header block formatting shared by every call type."""

from typing import Any, Dict, Iterator, Mapping, Optional, Tuple, Union
from urllib.parse import quote

Headers = Union[str, Mapping[str, Any]]


def _escape(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        value = int(value)
    return quote(str(value), safe="")


def _pairs(mapping: Mapping[str, Any]) -> Iterator[Tuple[str, Any]]:
    for key, value in mapping.items():
        if isinstance(value, (list, tuple)):
            for item in value:
                yield key, item
        else:
            yield key, value


def format_query(mapping: Optional[Mapping[str, Any]]) -> str:
    """Percent-encode a mapping as ``key=value&...`` in insertion order.

    List and tuple values repeat the key once per element; ``None`` encodes
    as an empty value.
    """
    if not mapping:
        return ""
    return "&".join(f"{_escape(key)}={_escape(value)}" for key, value in _pairs(mapping))


def format_headers(headers: Optional[Headers]) -> str:
    """Render headers as ``Key: Value\\r\\n`` lines; a string passes through as-is."""
    if headers is None:
        return ""
    if isinstance(headers, str):
        return headers
    return "".join(f"{key}: {value}\r\n" for key, value in headers.items())


def parse_headers(headers: Optional[Headers]) -> Dict[str, str]:
    """Turn a header block or mapping into a dict suitable for the transport."""
    if headers is None:
        return {}
    if not isinstance(headers, str):
        return {str(key): str(value) for key, value in headers.items()}

    parsed: Dict[str, str] = {}
    for line in headers.replace("\r\n", "\n").split("\n"):
        if not line.strip():
            continue
        key, sep, value = line.partition(":")
        if not sep:
            raise ValueError(f"Malformed header line: {line!r}")
        parsed[key.strip()] = value.strip()
    return parsed


__all__ = ["Headers", "format_query", "format_headers", "parse_headers"]
