"""
whmapi - client for the WHM and cPanel remote APIs

Talks to the administrative (WHM) API and to cPanel API 1 / API 2 through
one session object, and returns every response as the same ApiResult
shape regardless of dialect or response format (xml, json or native).

Requirements:
    - Python 3
    - requests library
    - orjson (optional; any of orjson, ujson, simplejson or json is used)

Configuration:
    PublicAPI(user=..., password=..., accesshash=..., api_token=...,
              host=..., ip="127.0.0.1", usessl=True, verify_ssl=True,
              timeout=300, error_log=None, debug=False)
    Without an explicit secret, ~/.accesshash and then REMOTE_PASSWORD are used.
"""

from .credentials import AccessHash, ApiToken, CredentialSource, Password
from .errors import (
    AuthenticationUnavailable,
    ConfigurationError,
    DecodeError,
    MissingRequiredField,
    PublicAPIError,
    TransportFailure,
)
from .formatting import format_headers, format_query
from .main import DEFAULT_CONFIG, PublicAPI
from .models import ApiResult, CallSpec, RawResponse, ResponseFormat, Service

# Package metadata
__version__ = "1.0.0"
__description__ = "Client for the WHM and cPanel remote APIs"

__all__ = [
    "PublicAPI",
    "DEFAULT_CONFIG",
    "ApiResult",
    "CallSpec",
    "RawResponse",
    "ResponseFormat",
    "Service",
    "Password",
    "AccessHash",
    "ApiToken",
    "CredentialSource",
    "format_query",
    "format_headers",
    "PublicAPIError",
    "AuthenticationUnavailable",
    "MissingRequiredField",
    "TransportFailure",
    "DecodeError",
    "ConfigurationError",
    "__version__",
    "__description__",
]
