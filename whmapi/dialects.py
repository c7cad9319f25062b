"""Encoders for the three API dialects served by cpsrvd.

* the WHM administrative API: ``/json-api/<call>`` or ``/xml-api/<call>``
  with flat named parameters,
* cPanel API 1: ``/json-api/cpanel`` with positional ``arg-N`` parameters,
* cPanel API 2: ``/json-api/cpanel`` with named parameters.

API 1 and API 2 calls made through WHM run as a cPanel account, so they must
name that account.
"""

from dataclasses import dataclass, field
from typing import Any, Dict

from .errors import MissingRequiredField
from .formatting import format_query
from .models import CallSpec, ResponseFormat, ServiceTarget


@dataclass
class EncodedCall:
    service: ServiceTarget
    path: str
    params: Dict[str, Any] = field(default_factory=dict)
    method: str = "POST"
    response_format: ResponseFormat = ResponseFormat.NATIVE

    @property
    def body(self) -> str:
        return format_query(self.params)


def api_path(response_format: ResponseFormat, call: str) -> str:
    return f"/{response_format.wire}-api/{call}"


# ---------------------------------------------------------------------------
# WHM administrative API
# ---------------------------------------------------------------------------

def encode_whm_call(call_spec: CallSpec) -> EncodedCall:
    if not call_spec.function:
        raise MissingRequiredField("call", "A WHM API call name is required")
    return EncodedCall(
        service=call_spec.service,
        path=api_path(call_spec.response_format, call_spec.function),
        params=dict(call_spec.named_params or {}),
        response_format=call_spec.response_format,
    )


# ---------------------------------------------------------------------------
# cPanel API 1 / API 2
# ---------------------------------------------------------------------------

def _cpanel_params(call_spec: CallSpec, api_version: int) -> Dict[str, Any]:
    if not call_spec.module:
        raise MissingRequiredField("module", f"cPanel API {api_version} calls require a 'module'")
    if not call_spec.function:
        raise MissingRequiredField("func", f"cPanel API {api_version} calls require a 'func'")

    prefix = f"cpanel_{call_spec.response_format.wire}api_"
    params: Dict[str, Any] = {}
    if call_spec.is_whm:
        if not call_spec.target_user:
            raise MissingRequiredField(
                "user",
                f"'user' is required when calling cPanel API {api_version} through whostmgr",
            )
        params[f"{prefix}user"] = call_spec.target_user

    params[f"{prefix}module"] = call_spec.module
    params[f"{prefix}func"] = call_spec.function
    params[f"{prefix}apiversion"] = api_version
    return params


def encode_api1_call(call_spec: CallSpec) -> EncodedCall:
    params = _cpanel_params(call_spec, 1)
    for index, value in enumerate(call_spec.positional_params or []):
        params[f"arg-{index}"] = value
    return EncodedCall(
        service=call_spec.service,
        path=api_path(call_spec.response_format, "cpanel"),
        params=params,
        response_format=call_spec.response_format,
    )


def encode_api2_call(call_spec: CallSpec) -> EncodedCall:
    params = _cpanel_params(call_spec, 2)
    for key, value in (call_spec.named_params or {}).items():
        params.setdefault(key, value)
    return EncodedCall(
        service=call_spec.service,
        path=api_path(call_spec.response_format, "cpanel"),
        params=params,
        response_format=call_spec.response_format,
    )


__all__ = [
    "EncodedCall",
    "api_path",
    "encode_whm_call",
    "encode_api1_call",
    "encode_api2_call",
]
