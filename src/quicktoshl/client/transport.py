"""Blocking HTTP layer between :class:`~quicktoshl.client.toshl.ToshlClient` and the API.

Every request carries ``Accept: application/json`` plus the Basic header
from :func:`~quicktoshl.auth.api_key_auth`. Error statuses and network
failures surface as :class:`~quicktoshl.exceptions.TransportError`
subclasses, which is what the reference-data cache falls back on.

Retries are opt-in (``RequestConfig.max_retries``): the Toshl API is rate
limited, so by default a failed call fails once.
"""

from __future__ import annotations

import logging
import time
from typing import Any, Optional

import httpx

from quicktoshl.auth import AuthResult
from quicktoshl.cache.fetch import FetchResult
from quicktoshl.exceptions import (
    AuthError,
    BadRequestError,
    ConnectionError_,
    MalformedResponseError,
    NotFoundError,
    ServerError,
    TransportError,
)
from quicktoshl.models import RequestConfig

logger = logging.getLogger(__name__)

_STATUS_ERRORS: dict[int, type[TransportError]] = {
    400: BadRequestError,
    401: AuthError,
    403: AuthError,
    404: NotFoundError,
}


class Transport:
    """:class:`httpx.Client` wrapper; use it as a context manager.

    Args:
        base_url: API root, e.g. ``https://api.toshl.com``.
        request_config: Timeout, TLS verification and retry count.
        auth: Headers merged into every request.
        http_transport: Replaces the network layer (tests pass
            :class:`httpx.MockTransport`).

    Example::

        with Transport("https://api.toshl.com", auth=api_key_auth(key)) as t:
            me = t.decode(t.get("/me"))
    """

    def __init__(
        self,
        base_url: str,
        request_config: Optional[RequestConfig] = None,
        auth: Optional[AuthResult] = None,
        http_transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._config = request_config or RequestConfig()
        self._auth = auth
        self._http_transport = http_transport
        self._client: Optional[httpx.Client] = None

    def __enter__(self) -> Transport:
        self._client = httpx.Client(
            base_url=self._base_url,
            timeout=self._config.timeout,
            verify=self._config.verify_ssl,
            follow_redirects=True,
            transport=self._http_transport,
        )
        return self

    def __exit__(self, *args: object) -> None:
        if self._client is not None:
            self._client.close()
            self._client = None

    def request(
        self,
        method: str,
        path: str,
        params: Optional[dict[str, Any]] = None,
        headers: Optional[dict[str, str]] = None,
        json_body: Optional[Any] = None,
    ) -> httpx.Response:
        """Send one API call and return a response whose status is below 400.

        Raises:
            BadRequestError: 400.
            AuthError: 401 or 403.
            NotFoundError: 404.
            ServerError: 5xx once retries are spent, or any other 4xx.
            ConnectionError_: Network failure, timeout or redirect loop once
                retries are spent.
            MalformedResponseError: The body cannot be decoded (bad
                ``Content-Encoding``).
        """
        if self._client is None:
            raise RuntimeError("Transport is not open; use it as a context manager")

        send_headers = {"Accept": "application/json"}
        if self._auth is not None:
            send_headers.update(self._auth.headers)
        send_headers.update(headers or {})

        logger.debug("%s %s%s params=%s", method.upper(), self._base_url, path, params or {})
        extra: dict[str, Any] = {} if json_body is None else {"json": json_body}
        attempts = self._config.max_retries + 1
        for attempt in range(1, attempts + 1):
            try:
                response = self._client.request(
                    method, path, headers=send_headers, params=params, **extra
                )
            except httpx.DecodingError as exc:
                raise MalformedResponseError(
                    f"Response from {path} could not be decoded: {exc}"
                ) from exc
            except httpx.RequestError as exc:
                if attempt == attempts:
                    raise ConnectionError_(
                        f"Connection failed after {attempts} attempt(s): {exc}"
                    ) from exc
                self._backoff(attempt, f"connection error: {exc}")
                continue
            if response.status_code >= 500 and attempt < attempts:
                self._backoff(attempt, f"HTTP {response.status_code}")
                continue
            break

        _raise_for_status(response)
        return response

    def fetch(
        self,
        path: str,
        params: Optional[dict[str, Any]] = None,
        headers: Optional[dict[str, str]] = None,
    ) -> FetchResult:
        """Conditional GET used by :class:`~quicktoshl.cache.fetch.ConditionalFetcher`.

        A 304 comes back as a result with ``body=None``; any other non-2xx
        status raises.
        """
        response = self.request("GET", path, params=params, headers=headers)
        if response.status_code == 304:
            return FetchResult(status_code=304, headers=response.headers)
        if response.status_code >= 300:
            raise ServerError(
                f"HTTP {response.status_code}: unexpected status for {path}",
                status_code=response.status_code,
            )
        return FetchResult(
            status_code=response.status_code,
            body=self.decode(response),
            headers=response.headers,
        )

    def decode(self, response: httpx.Response) -> Any:
        """JSON body of *response*, ``None`` when the body is empty.

        Raises:
            MalformedResponseError: The body is not JSON.
        """
        if not response.content:
            return None
        try:
            return response.json()
        except ValueError as exc:
            raise MalformedResponseError(
                f"Response from {response.request.url.path} is not valid JSON: {exc}",
                status_code=response.status_code,
            ) from exc

    def get(self, path: str, **kwargs: Any) -> httpx.Response:
        return self.request("GET", path, **kwargs)

    def post(self, path: str, **kwargs: Any) -> httpx.Response:
        return self.request("POST", path, **kwargs)

    def put(self, path: str, **kwargs: Any) -> httpx.Response:
        return self.request("PUT", path, **kwargs)

    def delete(self, path: str, **kwargs: Any) -> httpx.Response:
        return self.request("DELETE", path, **kwargs)

    def _backoff(self, attempt: int, reason: str) -> None:
        delay = 2 ** (attempt - 1)
        logger.debug(
            "Retrying in %ss after %s (attempt %d/%d)",
            delay, reason, attempt, self._config.max_retries,
        )
        time.sleep(delay)


def _error_detail(response: httpx.Response) -> str:
    """Toshl error bodies carry ``description``; fall back to raw text."""
    try:
        body = response.json()
    except ValueError:
        return response.text[:200]
    if isinstance(body, dict):
        return body.get("description") or body.get("error") or body.get("message") or ""
    return str(body)


def _raise_for_status(response: httpx.Response) -> None:
    status = response.status_code
    if status < 400:
        return
    detail = _error_detail(response)
    message = f"HTTP {status}: {detail}" if detail else f"HTTP {status}"
    raise _STATUS_ERRORS.get(status, ServerError)(message, status_code=status)
