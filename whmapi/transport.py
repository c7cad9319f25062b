import threading
import time
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeoutError
from typing import Dict, List, Optional, Tuple

import requests

from .models import RawResponse

FORM_CONTENT_TYPE = "application/x-www-form-urlencoded"
CHUNK_SIZE = 1024


# ---------------------------------------------------------------------------
# HTTP transport
# ---------------------------------------------------------------------------

def build_url(host: str, port: int, path: str, usessl: bool = True) -> str:
    scheme = "https" if usessl else "http"
    if not path.startswith("/"):
        path = f"/{path}"
    if ":" in host and not host.startswith("["):
        host = f"[{host}]"
    return f"{scheme}://{host}:{port}{path}"


def _charset(content_type: str) -> Optional[str]:
    for part in content_type.split(";")[1:]:
        key, _, value = part.partition("=")
        if key.strip().lower() == "charset":
            return value.strip().strip("\"'") or None
    return None


def decode_body(content: bytes, content_type: str = "") -> str:
    """Decode with the declared charset, UTF-8 when none is declared."""
    charset = _charset(content_type) or "utf-8"
    try:
        return content.decode(charset, errors="replace")
    except LookupError:
        return content.decode("utf-8", errors="replace")


def _exchange(
    method: str,
    url: str,
    data: Optional[bytes],
    headers: Dict[str, str],
    verify_ssl: bool,
    deadline: float,
    cancelled: threading.Event,
) -> Tuple[requests.Response, bytes]:
    remaining = max(deadline - time.monotonic(), 0.001)
    response = requests.request(
        method=method,
        url=url,
        data=data,
        headers=headers,
        verify=verify_ssl,
        timeout=(remaining, remaining),
        stream=True,
    )
    chunks: List[bytes] = []
    try:
        for chunk in response.iter_content(chunk_size=CHUNK_SIZE):
            if cancelled.is_set() or time.monotonic() > deadline:
                raise requests.exceptions.Timeout("Response body not received before deadline")
            chunks.append(chunk)
    finally:
        response.close()
    return response, b"".join(chunks)


def send(
    host: str,
    port: int,
    path: str,
    method: str = "GET",
    body: str = "",
    headers: Optional[Dict[str, str]] = None,
    usessl: bool = True,
    timeout: float = 300,
    verify_ssl: bool = True,
) -> RawResponse:
    """Issue one GET or POST and return a RawResponse.

    Network, DNS, SSL and timeout errors come back as a failed RawResponse;
    nothing past ``requests`` is raised. ``timeout`` bounds the whole
    exchange, including the body download.
    """
    method = method.upper()
    if method not in ("GET", "POST"):
        raise ValueError(f"Unsupported HTTP method '{method}'. Valid: GET, POST")

    url = build_url(host, port, path, usessl)
    request_headers = dict(headers or {})
    data = None
    if body:
        if method == "GET":
            url = f"{url}{'&' if '?' in url else '?'}{body}"
        else:
            data = body.encode("utf-8")
            request_headers.setdefault("Content-Type", FORM_CONTENT_TYPE)

    # The exchange runs on a worker so the caller gets control back at the
    # deadline even while a socket read is still blocked.
    deadline = time.monotonic() + timeout
    cancelled = threading.Event()
    pool = ThreadPoolExecutor(max_workers=1, thread_name_prefix="whmapi-send")
    try:
        future = pool.submit(
            _exchange, method, url, data, request_headers, verify_ssl, deadline, cancelled
        )
        response, content = future.result(timeout=max(deadline - time.monotonic(), 0))

    except FutureTimeoutError:
        cancelled.set()
        return RawResponse.failure(
            f"Request to {host} timed out after {timeout} seconds", url=url
        )
    except requests.exceptions.SSLError as e:
        return RawResponse.failure(
            f"SSL Error: {str(e)}. Check verify_ssl setting.", url=url
        )
    except requests.exceptions.Timeout:
        return RawResponse.failure(
            f"Request to {host} timed out after {timeout} seconds", url=url
        )
    except requests.exceptions.ConnectionError:
        return RawResponse.failure(f"Cannot reach host: {host}:{port}", url=url)
    except requests.exceptions.RequestException as e:
        return RawResponse.failure(f"API request failed: {str(e)}", url=url)
    finally:
        pool.shutdown(wait=False)

    content_type = response.headers.get("Content-Type", "")
    text = decode_body(content, content_type)
    if not 200 <= response.status_code < 300:
        return RawResponse.failure(
            f"Server Error from {host}: {response.status_code} {response.reason or ''}".rstrip(),
            url=url,
            status=response.status_code,
            body=text,
        )

    return RawResponse(
        ok=True,
        status=response.status_code,
        body=text,
        content_type=content_type,
        url=url,
    )


__all__ = ["build_url", "decode_body", "send"]
