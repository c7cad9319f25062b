import itertools
import logging
import sys
import weakref
from typing import Any, Dict, Mapping, Optional, Sequence, Union

from .credentials import (
    AccessHash,
    ApiToken,
    Credential,
    CredentialSource,
    Password,
    auth_headers,
    mask_authorization,
    resolve_credentials,
)
from .decoding import decode
from .dialects import EncodedCall, encode_api1_call, encode_api2_call, encode_whm_call
from .errors import PublicAPIError, TransportFailure
from .formatting import Headers, format_headers, format_query, parse_headers
from .models import (
    ApiResult,
    CallSpec,
    RawResponse,
    ResponseFormat,
    Service,
    ServiceTarget,
    resolve_service,
    service_port,
)
from .transport import send

__version__ = "1.0.0"
__description__ = "Client for the WHM and cPanel remote APIs"

# Constructor defaults; every key here is accepted by PublicAPI()
DEFAULT_CONFIG: Dict[str, Any] = {
    "user": None,
    "pass": None,
    "accesshash": None,
    "api_token": None,
    "timeout": 300,
    "ip": "127.0.0.1",
    "host": None,
    "usessl": True,
    "verify_ssl": True,
    "error_log": None,
    "debug": False,
}

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"

Format = Union[str, ResponseFormat, None]

_session_ids = itertools.count(1)

# One logger carries every session's diagnostics; each session attaches its
# own handler and a filter that keeps only its records.
session_logger = logging.getLogger(f"{__package__}.session")
session_logger.setLevel(logging.DEBUG)
session_logger.propagate = False


class _SessionFilter(logging.Filter):
    def __init__(self, session_id: int):
        super().__init__()
        self.session_id = session_id

    def filter(self, record: logging.LogRecord) -> bool:
        return getattr(record, "session", None) == self.session_id


def _detach_handler(handler: logging.Handler) -> None:
    session_logger.removeHandler(handler)
    handler.close()


class PublicAPI:
    """Session against one cpsrvd host.

    Credentials are resolved once, at construction. Every call returns an
    :class:`ApiResult`; failures come back as ``ok=False`` with ``error``
    set instead of being raised.
    """

    def __init__(
        self,
        config: Optional[Mapping[str, Any]] = None,
        credential_source: Optional[CredentialSource] = None,
        **options: Any,
    ):
        opts: Dict[str, Any] = dict(config or {})
        opts.update(options)
        # "pass" is a keyword, so allow password= as well
        if "password" in opts:
            opts.setdefault("pass", opts.pop("password"))
        unknown = set(opts) - set(DEFAULT_CONFIG)
        if unknown:
            raise TypeError(f"Unknown PublicAPI option(s): {', '.join(sorted(unknown))}")
        opts = {**DEFAULT_CONFIG, **opts}

        self.set_timeout(opts["timeout"])
        self.ip: str = opts["ip"]
        self.host: Optional[str] = opts["host"]
        self.usessl: bool = bool(opts["usessl"])
        self.verify_ssl: bool = bool(opts["verify_ssl"])
        self.debug: bool = bool(opts["debug"])
        self.error_log: Optional[str] = opts["error_log"]

        self.user, self._credential = resolve_credentials(
            user=opts["user"],
            password=opts["pass"],
            accesshash=opts["accesshash"],
            api_token=opts["api_token"],
            source=credential_source,
        )

        self.session_id = next(_session_ids)
        self.logger = logging.LoggerAdapter(session_logger, {"session": self.session_id})
        self._handler: Optional[logging.Handler] = None
        self._finalizer: Optional[weakref.finalize] = None
        self._configure_logging()
        self.logger.debug(
            "Session for %s@%s using %s", self.user, self.target, type(self._credential).__name__
        )

    def __repr__(self) -> str:
        return (
            f"PublicAPI(user={self.user!r}, target={self.target!r}, "
            f"credential={self._credential!r})"
        )

    def __enter__(self) -> "PublicAPI":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    def close(self) -> None:
        """Detach and close the diagnostic log handler."""
        if self._finalizer is not None:
            self._finalizer()
            self._finalizer = None
            self._handler = None

    # -----------------------------------------------------------------------
    # Configuration
    # -----------------------------------------------------------------------

    def _configure_logging(self) -> None:
        self.close()
        if self.error_log:
            handler: logging.Handler = logging.FileHandler(self.error_log, encoding="utf-8")
        else:
            handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        handler.addFilter(_SessionFilter(self.session_id))
        handler.setLevel(logging.DEBUG if self.debug else logging.WARNING)
        session_logger.addHandler(handler)
        self._handler = handler
        self._finalizer = weakref.finalize(self, _detach_handler, handler)

    @property
    def target(self) -> str:
        """Host the session talks to; ``host`` wins over ``ip``."""
        return self.host or self.ip

    @property
    def credential(self) -> Optional[Credential]:
        return self._credential

    def set_user(self, user: str) -> None:
        self.user = user

    def set_pass(self, password: str) -> None:
        self._credential = Password(password)

    def set_accesshash(self, accesshash: str) -> None:
        self._credential = AccessHash(accesshash)
        self.logger.debug("Access hash set (line breaks stripped)")

    def set_api_token(self, api_token: str) -> None:
        self._credential = ApiToken(api_token)

    def clear_credentials(self) -> None:
        self._credential = None

    def set_host(self, host: Optional[str]) -> None:
        self.host = host

    def set_ip(self, ip: str) -> None:
        self.ip = ip

    def set_timeout(self, timeout: float) -> None:
        if isinstance(timeout, bool) or not isinstance(timeout, (int, float)) or timeout <= 0:
            raise ValueError(f"timeout must be a positive number of seconds, not {timeout!r}")
        self.timeout = timeout

    def set_usessl(self, usessl: bool) -> None:
        self.usessl = bool(usessl)

    def set_verify_ssl(self, verify_ssl: bool) -> None:
        self.verify_ssl = bool(verify_ssl)

    def set_debug(self, debug: bool) -> None:
        self.debug = bool(debug)
        if self._handler is not None:
            self._handler.setLevel(logging.DEBUG if self.debug else logging.WARNING)

    def set_error_log(self, error_log: Optional[str]) -> None:
        self.error_log = error_log
        self._configure_logging()

    # -----------------------------------------------------------------------
    # Request plumbing
    # -----------------------------------------------------------------------

    def _send(
        self,
        service: ServiceTarget,
        path: str,
        method: str,
        body: str,
        headers: Dict[str, str],
    ) -> RawResponse:
        port = service_port(service, self.usessl)
        if self.debug:
            self.logger.debug(
                "%s %s:%s%s\n%s%s",
                method,
                self.target,
                port,
                path,
                format_headers(mask_authorization(headers)),
                body,
            )
        raw = send(
            self.target,
            port,
            path,
            method=method,
            body=body,
            headers=headers,
            usessl=self.usessl,
            timeout=self.timeout,
            verify_ssl=self.verify_ssl,
        )
        if self.debug:
            self.logger.debug("Response from %s (status %s):\n%s", raw.url, raw.status, raw.body)
        if not raw.ok:
            self.logger.debug("Request failed: %s", raw.error)
        return raw

    def _failed(self, error: Exception, raw: Optional[str] = None) -> ApiResult:
        self.logger.debug("Call failed: %s", error)
        return ApiResult.failure(str(error), raw=raw)

    def _dispatch(self, encoded: EncodedCall) -> ApiResult:
        try:
            headers = auth_headers(self.user, self._credential, encoded.service)
        except PublicAPIError as e:
            return self._failed(e)

        raw = self._send(encoded.service, encoded.path, encoded.method, encoded.body, headers)
        if not raw.ok:
            return self._failed(TransportFailure(raw.error, raw.status), raw=raw.body or None)

        result = decode(raw.body, raw.content_type, encoded.response_format)
        if not result.ok:
            self.logger.debug("API reported failure: %s", result.error)
        return result

    # -----------------------------------------------------------------------
    # API calls
    # -----------------------------------------------------------------------

    def whm_api(
        self,
        call: str,
        params: Optional[Mapping[str, Any]] = None,
        format: Format = None,
    ) -> ApiResult:
        """Call a WHM administrative API function, e.g. ``whm_api("version")``."""
        try:
            call_spec = CallSpec(
                service=Service.WHOSTMGR,
                function=call,
                named_params=params,
                response_format=format,
            )
            encoded = encode_whm_call(call_spec)
        except (PublicAPIError, ValueError) as e:
            return self._failed(e)
        return self._dispatch(encoded)

    def cpanel_api1_request(
        self,
        service: Union[str, int, Service],
        cfg: Mapping[str, Any],
        params: Optional[Sequence[Any]] = None,
        format: Format = None,
    ) -> ApiResult:
        """Call a cPanel API 1 function with positional arguments.

        ``cfg`` holds ``module``, ``func`` and, for whostmgr, ``user``.
        """
        try:
            if params is not None and isinstance(params, (str, bytes, Mapping)):
                raise ValueError("cPanel API 1 params must be a list of positional arguments")
            encoded = encode_api1_call(self._cpanel_call(service, cfg, format, positional=params))
        except (PublicAPIError, ValueError) as e:
            return self._failed(e)
        return self._dispatch(encoded)

    def cpanel_api2_request(
        self,
        service: Union[str, int, Service],
        cfg: Mapping[str, Any],
        params: Optional[Mapping[str, Any]] = None,
        format: Format = None,
    ) -> ApiResult:
        """Call a cPanel API 2 function with named arguments."""
        try:
            if params is not None and not isinstance(params, Mapping):
                raise ValueError("cPanel API 2 params must be a mapping")
            encoded = encode_api2_call(self._cpanel_call(service, cfg, format, named=params))
        except (PublicAPIError, ValueError) as e:
            return self._failed(e)
        return self._dispatch(encoded)

    def api_request(
        self,
        service: Union[str, int, Service],
        uri: str,
        method: str = "GET",
        params: Union[str, Mapping[str, Any], None] = None,
        headers: Optional[Headers] = None,
    ) -> ApiResult:
        """Send a request to ``uri`` and hand back the body untouched in ``data``."""
        try:
            target = resolve_service(service)
            request_headers = auth_headers(self.user, self._credential, target)
            request_headers.update(parse_headers(headers))
            body = params if isinstance(params, str) else format_query(params)
            raw = self._send(target, uri, method.upper(), body, request_headers)
        except (PublicAPIError, ValueError) as e:
            return self._failed(e)

        if not raw.ok:
            return self._failed(TransportFailure(raw.error, raw.status), raw=raw.body or None)
        return ApiResult(ok=True, data=raw.body, raw=raw.body)

    @staticmethod
    def _cpanel_call(
        service: Union[str, int, Service],
        cfg: Mapping[str, Any],
        format: Format,
        positional: Optional[Sequence[Any]] = None,
        named: Optional[Mapping[str, Any]] = None,
    ) -> CallSpec:
        if not isinstance(cfg, Mapping):
            raise ValueError("cfg must be a mapping with 'module' and 'func'")
        return CallSpec(
            service=service,
            module=cfg.get("module", ""),
            function=cfg.get("func", ""),
            target_user=cfg.get("user"),
            positional_params=list(positional) if positional is not None else None,
            named_params=named,
            response_format=format,
        )


__all__ = ["PublicAPI", "DEFAULT_CONFIG", "__version__", "__description__"]
