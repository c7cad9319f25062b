from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional, Tuple, Union


# ---------------------------------------------------------------------------
# Services and formats
# ---------------------------------------------------------------------------

class Service(str, Enum):
    CPANEL = "cpanel"
    WHOSTMGR = "whostmgr"
    WEBMAIL = "webmail"

    @property
    def ports(self) -> Tuple[int, int]:
        """(ssl_port, plain_port) the service listens on by default."""
        return _SERVICE_PORTS[self]

    def port(self, usessl: bool = True) -> int:
        ssl_port, plain_port = self.ports
        return ssl_port if usessl else plain_port


_SERVICE_PORTS: Dict[Service, Tuple[int, int]] = {
    Service.CPANEL: (2083, 2082),
    Service.WHOSTMGR: (2087, 2086),
    Service.WEBMAIL: (2096, 2095),
}

_SERVICE_ALIASES = {
    "cpanel": Service.CPANEL,
    "whostmgr": Service.WHOSTMGR,
    "whm": Service.WHOSTMGR,
    "webmail": Service.WEBMAIL,
}

ServiceTarget = Union[Service, int]


def resolve_service(service: Union[str, int, Service]) -> ServiceTarget:
    """Turn a service name, alias or literal port into a Service or an int port."""
    if isinstance(service, Service):
        return service
    if isinstance(service, bool):
        raise ValueError(f"Invalid service: {service!r}")
    if isinstance(service, int):
        if not 0 < service < 65536:
            raise ValueError(f"Invalid port: {service}")
        return service

    name = str(service).strip().lower()
    if name.isdigit():
        return resolve_service(int(name))
    try:
        return _SERVICE_ALIASES[name]
    except KeyError:
        raise ValueError(
            f"Unknown service '{service}'. "
            f"Valid: {', '.join(sorted(_SERVICE_ALIASES))} or a port number"
        ) from None


def service_port(service: ServiceTarget, usessl: bool = True) -> int:
    if isinstance(service, Service):
        return service.port(usessl)
    return service


def service_from_port(port: int) -> Optional[Service]:
    for service, ports in _SERVICE_PORTS.items():
        if port in ports:
            return service
    return None


class ResponseFormat(str, Enum):
    XML = "xml"
    JSON = "json"
    NATIVE = "native"

    @classmethod
    def parse(cls, value: Union[str, "ResponseFormat", None]) -> "ResponseFormat":
        if value is None or value == "":
            return cls.NATIVE
        if isinstance(value, cls):
            return value
        name = str(value).strip().lower()
        # "ref" is the historical name for a decoded, in-memory result
        if name == "ref":
            return cls.NATIVE
        try:
            return cls(name)
        except ValueError:
            raise ValueError(
                f"Unknown response format '{value}'. Valid: xml, json, native"
            ) from None

    @property
    def wire(self) -> str:
        """Format the remote endpoint is asked for; native rides on JSON."""
        return "xml" if self is ResponseFormat.XML else "json"


# ---------------------------------------------------------------------------
# Call/response values
# ---------------------------------------------------------------------------

@dataclass
class CallSpec:
    """One logical API invocation, before it is encoded for a dialect."""

    service: ServiceTarget
    function: str
    module: str = ""
    target_user: Optional[str] = None
    positional_params: Optional[List[Any]] = None
    named_params: Optional[Mapping[str, Any]] = None
    response_format: ResponseFormat = ResponseFormat.NATIVE

    def __post_init__(self) -> None:
        if self.positional_params is not None and self.named_params is not None:
            raise ValueError("A call takes positional or named params, not both")
        self.service = resolve_service(self.service)
        self.response_format = ResponseFormat.parse(self.response_format)

    @property
    def is_whm(self) -> bool:
        return self.service is Service.WHOSTMGR


@dataclass
class RawResponse:
    ok: bool
    status: int = 0
    body: str = ""
    content_type: str = ""
    error: str = ""
    url: str = ""

    @classmethod
    def failure(cls, message: str, url: str = "", status: int = 0, body: str = "") -> "RawResponse":
        return cls(ok=False, status=status, body=body, error=message, url=url)


@dataclass
class ApiResult:
    """Uniform result of every call: ``ok``, the payload in ``data`` and ``error``."""

    ok: bool
    data: Any = None
    error: Optional[str] = None
    metadata: Dict[str, Any] = field(default_factory=dict)
    raw: Optional[str] = field(default=None, repr=False)

    @classmethod
    def failure(cls, error: str, raw: Optional[str] = None) -> "ApiResult":
        return cls(ok=False, data=None, error=error, raw=raw)

    def __bool__(self) -> bool:
        return self.ok

    def to_dict(self) -> Dict[str, Any]:
        result: Dict[str, Any] = {"ok": self.ok, "data": self.data}
        if self.error:
            result["error"] = self.error
        return result


__all__ = [
    "Service",
    "ServiceTarget",
    "ResponseFormat",
    "CallSpec",
    "RawResponse",
    "ApiResult",
    "resolve_service",
    "service_port",
    "service_from_port",
]
