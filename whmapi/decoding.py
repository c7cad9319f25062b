"""Decode JSON/XML response bodies into an :class:`ApiResult`.

JSON decoding goes through the first importable backend of
:data:`JSON_BACKENDS`; the choice is made once per process.
"""

import importlib
import logging
import xml.etree.ElementTree as ET
from dataclasses import dataclass
from functools import lru_cache
from typing import Any, Callable, Dict, Optional, Tuple, Union

from .errors import ConfigurationError, DecodeError
from .models import ApiResult, ResponseFormat

logger = logging.getLogger(__name__)

# Preferred first
JSON_BACKENDS: Tuple[str, ...] = ("orjson", "ujson", "simplejson", "json")

ENVELOPE_KEYS = frozenset({"status", "statusmsg", "metadata", "event", "error"})


# ---------------------------------------------------------------------------
# JSON backend selection
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class JsonBackend:
    name: str
    loads: Callable[[Union[str, bytes]], Any]


@lru_cache(maxsize=None)
def select_json_backend(candidates: Tuple[str, ...] = JSON_BACKENDS) -> JsonBackend:
    """Return the first importable JSON backend among ``candidates``."""
    for name in candidates:
        try:
            module = importlib.import_module(name)
        except ImportError:
            logger.debug("JSON backend %s not available", name)
            continue
        loads = getattr(module, "loads", None)
        if callable(loads):
            logger.debug("Using JSON backend %s", name)
            return JsonBackend(name=name, loads=loads)

    raise ConfigurationError(
        f"No JSON decoder available; install one of: {', '.join(candidates)}"
    )


def decode_json(body: Union[str, bytes], backend: Optional[JsonBackend] = None) -> Any:
    backend = backend or select_json_backend()
    try:
        return backend.loads(body)
    except (ValueError, TypeError) as e:
        raise DecodeError(f"Invalid JSON response ({backend.name}): {e}") from e


# ---------------------------------------------------------------------------
# XML
# ---------------------------------------------------------------------------

def _element_value(element: ET.Element) -> Any:
    children = list(element)
    if not children:
        return (element.text or "").strip()

    value: Dict[str, Any] = {}
    for child in children:
        child_value = _element_value(child)
        if child.tag not in value:
            value[child.tag] = child_value
        elif isinstance(value[child.tag], list):
            value[child.tag].append(child_value)
        else:
            value[child.tag] = [value[child.tag], child_value]
    return value


def decode_xml(body: Union[str, bytes]) -> Any:
    """Parse XML into nested dicts; the root element itself is dropped."""
    try:
        root = ET.fromstring(body)
    except ET.ParseError as e:
        raise DecodeError(f"Invalid XML response: {e}") from e
    return _element_value(root)


# ---------------------------------------------------------------------------
# Envelope handling
# ---------------------------------------------------------------------------

def _is_false(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip() in ("", "0")
    return not value


def _error_message(fields: Dict[str, Any]) -> Optional[str]:
    if fields.get("error"):
        return str(fields["error"])
    for nested in ("metadata", "event"):
        section = fields.get(nested)
        if isinstance(section, dict) and section.get("reason"):
            return str(section["reason"])
    for key in ("reason", "statusmsg"):
        if fields.get(key):
            return str(fields[key])
    return None


def _failure(fields: Dict[str, Any]) -> Optional[str]:
    """Return an error message when the status fields signal failure."""
    if "status" in fields and _is_false(fields["status"]):
        return _error_message(fields) or "API call failed"
    for nested in ("metadata", "event"):
        section = fields.get(nested)
        if isinstance(section, dict) and "result" in section and _is_false(section["result"]):
            return _error_message(fields) or "API call failed"
    if fields.get("error"):
        return str(fields["error"])

    results = fields.get("result")
    if isinstance(results, list):
        for item in results:
            if isinstance(item, dict) and "status" in item and _is_false(item["status"]):
                return str(item.get("statusmsg") or "API call failed")
    return None


def unwrap(decoded: Any, raw: Optional[str] = None) -> ApiResult:
    """Expose the ``data`` of a status envelope and derive the ok flag."""
    payload = decoded
    if isinstance(payload, dict) and len(payload) == 1 and "cpanelresult" in payload:
        payload = payload["cpanelresult"]

    if not isinstance(payload, dict):
        return ApiResult(ok=True, data=payload, raw=raw)

    if "data" in payload and ENVELOPE_KEYS & payload.keys():
        metadata = {key: value for key, value in payload.items() if key != "data"}
        data = payload["data"]
    else:
        metadata = {}
        data = payload

    error = _failure(payload)
    return ApiResult(ok=error is None, data=data, error=error, metadata=metadata, raw=raw)


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------

def decode(
    body: Union[str, bytes],
    content_type: str = "",
    requested_format: Union[ResponseFormat, str, None] = ResponseFormat.NATIVE,
) -> ApiResult:
    """Decode ``body`` and normalize it into an ApiResult.

    Malformed bodies give ``ApiResult(ok=False)`` with no data. A missing
    JSON backend raises ConfigurationError.
    """
    requested = ResponseFormat.parse(requested_format)
    raw = body.decode("utf-8", errors="replace") if isinstance(body, bytes) else body

    if requested is ResponseFormat.XML:
        parser = decode_xml
    elif requested is ResponseFormat.JSON:
        parser = decode_json
    elif "xml" in (content_type or "").lower():
        parser = decode_xml
    else:
        parser = decode_json

    try:
        decoded = parser(body)
    except DecodeError as e:
        return ApiResult.failure(str(e), raw=raw)
    return unwrap(decoded, raw=raw)


__all__ = [
    "JSON_BACKENDS",
    "JsonBackend",
    "select_json_backend",
    "decode_json",
    "decode_xml",
    "unwrap",
    "decode",
]
