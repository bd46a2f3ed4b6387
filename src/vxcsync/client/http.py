"""Low-level JSON HTTP client wrapper for the provisioning API."""

from __future__ import annotations

import importlib.metadata
import logging
from typing import Any

import requests

from vxcsync.client.errors import (
    SERVICE_NOT_FOUND_MARKER,
    RemoteNotFoundError,
    RemoteParseError,
    RemoteRequestError,
    RemoteResponseError,
)

logger = logging.getLogger(__name__)

try:
    _VERSION: str = importlib.metadata.version("vxcsync")
except importlib.metadata.PackageNotFoundError:
    _VERSION = "0.0.0"

_USER_AGENT: str = f"vxcsync/{_VERSION}"


def _normalise_base_url(url: str) -> str:
    """Ensure the URL has a scheme and no trailing slash."""
    url = url.rstrip("/")
    if not url.startswith(("http://", "https://")):
        url = "https://" + url
    return url


def _error_message(resp: requests.Response) -> str:
    """Best-effort extraction of the API's ``message`` field from an error body."""
    try:
        body = resp.json()
    except ValueError:
        return resp.text.strip()
    if isinstance(body, dict):
        return str(body.get("message") or body.get("error_description") or "")
    return ""


class JsonHTTP:
    """Low-level HTTP wrapper around :class:`requests.Session`.

    Sends and receives JSON, sets a default ``User-Agent`` header, applies the
    timeout and TLS verification, and maps transport/HTTP errors to
    :mod:`.errors` types.

    Args:
        base_url: API base URL, e.g. ``https://api.example.net``.
        timeout_s: Request timeout in seconds (default 30).
        verify_tls: Whether to verify TLS certificates (default True).
    """

    def __init__(
        self,
        base_url: str,
        timeout_s: float = 30.0,
        verify_tls: bool = True,
    ) -> None:
        self.base_url: str = _normalise_base_url(base_url)
        self.timeout_s: float = timeout_s
        self.verify_tls: bool = verify_tls
        self._session: requests.Session = requests.Session()
        self._session.headers.update(
            {"User-Agent": _USER_AGENT, "Accept": "application/json"}
        )

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def request(
        self,
        method: str,
        path: str,
        *,
        json_body: Any = None,
        form: dict[str, str] | None = None,
        params: dict[str, str] | None = None,
        headers: dict[str, str] | None = None,
    ) -> Any:
        """Send an HTTP request to *path* and return the decoded JSON body.

        Args:
            method: HTTP verb (``GET``, ``POST``, ``PUT``, ``DELETE``).
            path: URL path relative to :attr:`base_url`.
            json_body: Optional JSON-serializable request body.
            form: Optional form-encoded body (used by the token endpoint).
            params: Optional query-string parameters.
            headers: Extra headers for this request only.

        Returns:
            The decoded JSON document, or ``None`` for an empty body.

        Raises:
            RemoteRequestError: On any transport-level failure.
            RemoteNotFoundError: On HTTP 404, or HTTP 400 naming an unknown UID.
            RemoteResponseError: On any other non-2xx HTTP status code.
            RemoteParseError: If a non-empty body is not valid JSON.
        """
        url = self.base_url + path
        logger.debug("%s %s body=%r", method, url, json_body)
        try:
            resp = self._session.request(
                method,
                url,
                json=json_body,
                data=form,
                params=params,
                headers=headers,
                timeout=self.timeout_s,
                verify=self.verify_tls,
            )
        except requests.exceptions.RequestException as exc:
            raise RemoteRequestError(url, exc) from exc
        self._raise_for_status(resp)
        if not resp.content:
            return None
        try:
            return resp.json()
        except ValueError as exc:
            raise RemoteParseError(f"Invalid JSON from {url!r}: {exc}") from exc

    def get(self, path: str, **kwargs: Any) -> Any:
        """Shorthand for ``request("GET", path, ...)``."""
        return self.request("GET", path, **kwargs)

    def post(self, path: str, **kwargs: Any) -> Any:
        """Shorthand for ``request("POST", path, ...)``."""
        return self.request("POST", path, **kwargs)

    def put(self, path: str, **kwargs: Any) -> Any:
        """Shorthand for ``request("PUT", path, ...)``."""
        return self.request("PUT", path, **kwargs)

    def delete(self, path: str, **kwargs: Any) -> Any:
        """Shorthand for ``request("DELETE", path, ...)``."""
        return self.request("DELETE", path, **kwargs)

    def close(self) -> None:
        """Close the underlying :class:`requests.Session`."""
        self._session.close()

    def __enter__(self) -> JsonHTTP:
        return self

    def __exit__(self, *args: object) -> None:
        self.close()

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    @staticmethod
    def _raise_for_status(resp: requests.Response) -> None:
        if resp.ok:
            return
        message = _error_message(resp)
        if resp.status_code == 404 or (
            resp.status_code == 400 and SERVICE_NOT_FOUND_MARKER in message
        ):
            raise RemoteNotFoundError(resp.url, message)
        raise RemoteResponseError(resp.status_code, resp.url, message)
