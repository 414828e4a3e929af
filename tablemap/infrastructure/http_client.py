"""
HTTP client for fetching remote JSON payloads.

Thin wrapper over httpx: joins endpoints onto a base URL, sends JSON bodies
for write methods, decodes JSON responses (falling back to raw text) and
raises ApiError for transport failures and non-2xx statuses.
"""

from __future__ import annotations

from typing import Any, Dict, Mapping, Optional

import httpx

from tablemap.config import get_settings
from tablemap.errors import ApiError
from tablemap.utils.logging import get_logger

log = get_logger(__name__)

_BODY_METHODS = frozenset({"POST", "PUT", "PATCH"})


class ApiClient:
    """
    Fetch JSON from a REST API.

    Parameters
    ----------
    base_url : str | None
        API root; defaults to settings.api_base_url.
    headers : Mapping[str, str] | None
        Headers sent with every request.
    timeout : float | None
        Request timeout in seconds; defaults to settings.api_timeout_seconds.
    transport : httpx.BaseTransport | None
        Optional transport (e.g., httpx.MockTransport in tests).
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        headers: Optional[Mapping[str, str]] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        settings = get_settings()
        self.base_url = (base_url or settings.api_base_url or "").rstrip("/")
        self.client = httpx.Client(
            headers=dict(headers or {}),
            timeout=timeout or settings.api_timeout_seconds,
            transport=transport,
        )

    def _url(self, endpoint: str) -> str:
        if endpoint.startswith(("http://", "https://")):
            return endpoint
        if not self.base_url:
            raise ApiError(f"No base URL configured for endpoint '{endpoint}'")
        return f"{self.base_url}/{endpoint.lstrip('/')}"

    def fetch(
        self,
        endpoint: str,
        method: str = "GET",
        params: Optional[Mapping[str, Any]] = None,
        body: Any = None,
        headers: Optional[Mapping[str, str]] = None,
    ) -> Any:
        """
        Send a request and return the decoded JSON body.

        Query parameters are sent for GET requests; `body` is JSON-encoded for
        POST, PUT and PATCH. A 2xx response that is not JSON is returned as text.

        Raises
        ------
        ApiError
            On transport failure or a non-2xx status.
        """
        method = method.upper()
        url = self._url(endpoint)
        request_headers: Dict[str, str] = dict(headers or {})
        kwargs: Dict[str, Any] = {"headers": request_headers}
        if method == "GET" and params:
            kwargs["params"] = dict(params)
        if method in _BODY_METHODS:
            kwargs["json"] = body if body is not None else {}

        try:
            response = self.client.request(method, url, **kwargs)
        except httpx.HTTPError as exc:
            raise ApiError(f"Request to {url} failed: {exc}") from exc

        try:
            payload = response.json()
        except ValueError:
            payload = None

        if not response.is_success:
            message = "API request failed"
            if isinstance(payload, Mapping) and payload.get("message"):
                message = str(payload["message"])
            log.warning(
                "API request failed",
                extra={"url": url, "status": response.status_code},
            )
            raise ApiError(message, status=response.status_code, response=payload)

        log.debug("API request succeeded", extra={"url": url, "status": response.status_code})
        return payload if payload is not None else response.text

    def close(self) -> None:
        self.client.close()

    def __enter__(self) -> "ApiClient":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()


__all__ = ["ApiClient"]
