"""Errors raised while talking to the WHM/cPanel APIs."""


class PublicAPIError(Exception):
    """Base class for every error raised by whmapi."""


class AuthenticationUnavailable(PublicAPIError):
    """No password, access hash or API token could be resolved."""


class MissingRequiredField(PublicAPIError):
    def __init__(self, field: str, message: str = ""):
        self.field = field
        super().__init__(message or f"'{field}' is required for this call")


class TransportFailure(PublicAPIError):
    """Connection, DNS, SSL or timeout failure, or a non-2xx HTTP status."""

    def __init__(self, message: str, status: int = 0):
        self.status = status
        super().__init__(message)


class DecodeError(PublicAPIError):
    """Response body could not be parsed in the requested format."""


class ConfigurationError(PublicAPIError):
    """The environment cannot support the requested mode (e.g. no JSON decoder)."""


__all__ = [
    "PublicAPIError",
    "AuthenticationUnavailable",
    "MissingRequiredField",
    "TransportFailure",
    "DecodeError",
    "ConfigurationError",
]
