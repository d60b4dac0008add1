"""HTTP client wrapper for provider adapters.

Provides a small sync API on top of httpx with a bounded timeout. There is
no retry loop here: a failed call is reported once and retry policy stays
with whoever invoked the run.
"""

from __future__ import annotations

import base64
import logging
from typing import Any, Dict, Optional

import httpx

from automation_engine.core.exceptions import AdapterError

logger = logging.getLogger(__name__)

STATUS_ERROR_CODES = {
    400: ("BAD_REQUEST", False),
    401: ("UNAUTHORIZED", False),
    403: ("FORBIDDEN", False),
    404: ("NOT_FOUND", False),
    429: ("RATE_LIMITED", True),
    500: ("INTERNAL_ERROR", True),
    502: ("SERVICE_UNAVAILABLE", True),
    503: ("SERVICE_UNAVAILABLE", True),
    504: ("SERVICE_UNAVAILABLE", True),
}


class HTTPResponse:
    def __init__(
        self,
        status_code: int,
        headers: Dict[str, str],
        json: Any,
        text: str,
        reason_phrase: str = "",
    ):
        self.status_code = status_code
        self.headers = headers
        self.json = json
        self.text = text
        self.reason_phrase = reason_phrase

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 300


def extract_error_message(resp: HTTPResponse) -> str:
    body = resp.json
    if isinstance(body, dict):
        if isinstance(body.get("message"), str) and body["message"]:
            return body["message"]
        err = body.get("error")
        if isinstance(err, dict) and err.get("message"):
            return str(err["message"])
        if isinstance(err, str) and err:
            return err
    return resp.reason_phrase or resp.text or f"HTTP {resp.status_code}"


def error_for_status(resp: HTTPResponse) -> Optional[AdapterError]:
    """Map a non-2xx response to an AdapterError, or None for success."""
    if resp.ok:
        return None
    code, retryable = STATUS_ERROR_CODES.get(
        resp.status_code,
        ("INTERNAL_ERROR", True) if resp.status_code >= 500 else ("HTTP_ERROR", False),
    )
    return AdapterError(
        code,
        extract_error_message(resp),
        retryable=retryable,
        details={"status": resp.status_code},
    )


class HTTPClient:
    def __init__(
        self,
        timeout: float = 30.0,
        follow_redirects: bool = True,
        verify_ssl: bool = True,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        self.timeout = timeout
        self._client = httpx.Client(
            timeout=timeout,
            follow_redirects=follow_redirects,
            verify=verify_ssl,
            transport=transport,
        )

    def request(
        self,
        method: str,
        url: str,
        *,
        headers: Optional[Dict[str, str]] = None,
        params: Optional[Dict[str, Any]] = None,
        json_body: Optional[Any] = None,
        data_body: Optional[Any] = None,
        content: Optional[str] = None,
        auth: Optional[Dict[str, Any]] = None,
        timeout: Optional[float] = None,
    ) -> HTTPResponse:
        h = dict(headers or {})
        if auth:
            atype = str(auth.get("type", "")).lower()
            if atype == "bearer" and auth.get("token"):
                h["Authorization"] = f"Bearer {auth['token']}"
            if atype == "basic" and auth.get("username") and auth.get("password"):
                raw = f"{auth['username']}:{auth['password']}".encode()
                h["Authorization"] = "Basic " + base64.b64encode(raw).decode()

        try:
            r = self._client.request(
                method.upper(),
                url,
                headers=h,
                params=params,
                json=json_body,
                data=data_body,
                content=content,
                timeout=timeout if timeout is not None else self.timeout,
            )
        except httpx.TimeoutException as e:
            logger.warning(f"⏱️ HTTP {method.upper()} {url} timed out: {e}")
            raise AdapterError("TIMEOUT", f"Request timed out: {url}", retryable=True) from e
        except httpx.HTTPError as e:
            logger.warning(f"🌐 HTTP {method.upper()} {url} failed: {e}")
            raise AdapterError("NETWORK_ERROR", str(e) or "Network error", retryable=True) from e

        try:
            j = r.json()
        except ValueError:
            j = None
        return HTTPResponse(r.status_code, dict(r.headers), j, r.text, r.reason_phrase)

    def close(self) -> None:
        self._client.close()


__all__ = [
    "HTTPClient",
    "HTTPResponse",
    "STATUS_ERROR_CODES",
    "error_for_status",
    "extract_error_message",
]
