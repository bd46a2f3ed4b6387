"""Authenticated HTTP session for the provisioning API."""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass
from typing import Any

from vxcsync.client.errors import (
    RemoteAuthError,
    RemoteParseError,
    RemoteResponseError,
)
from vxcsync.client.http import JsonHTTP
from vxcsync.vendor.endpoints import TOKEN

logger = logging.getLogger(__name__)

# Refresh the token this many seconds before the server says it expires.
_EXPIRY_SLACK_S: float = 30.0


@dataclass(frozen=True)
class ApiCredentials:
    """Immutable client-credentials pair for the provisioning API.

    Args:
        client_id: OAuth2 client identifier (API key).
        client_secret: OAuth2 client secret.
    """

    client_id: str
    client_secret: str


class ApiSession:
    """Manages a persistent, authenticated HTTP session to the provisioning API.

    Wraps :class:`.JsonHTTP` and adds:
    - Bearer-token authentication via the OAuth2 ``TOKEN`` endpoint.
    - Unwrapping of the ``{"data": ...}`` response envelope.
    - Single transparent re-login on HTTP 401 responses.

    Args:
        base_url: API base URL, e.g. ``https://api.example.net``.
        credentials: Client id/secret pair.
        timeout_s: Request timeout in seconds (default 30).
        verify_tls: Whether to verify TLS certificates (default True).
    """

    def __init__(
        self,
        base_url: str,
        credentials: ApiCredentials,
        timeout_s: float = 30.0,
        verify_tls: bool = True,
    ) -> None:
        self._http: JsonHTTP = JsonHTTP(
            base_url=base_url,
            timeout_s=timeout_s,
            verify_tls=verify_tls,
        )
        self._credentials: ApiCredentials = credentials
        self._token: str | None = None
        self._expires_at: float = 0.0
        # worker threads share one session; token refresh happens under this lock
        self._auth_lock = threading.RLock()

    # ------------------------------------------------------------------
    # Authentication
    # ------------------------------------------------------------------

    def login(self) -> None:
        """Obtain a fresh bearer token.

        Raises:
            RemoteAuthError: If the token endpoint rejects the credentials.
            RemoteParseError: If the token response lacks ``access_token``.
        """
        with self._auth_lock:
            try:
                result = self._http.post(
                    TOKEN,
                    form={
                        "grant_type": "client_credentials",
                        "client_id": self._credentials.client_id,
                        "client_secret": self._credentials.client_secret,
                    },
                )
            except RemoteResponseError as exc:
                self._token = None
                if exc.status_code in (400, 401, 403):
                    raise RemoteAuthError(
                        f"Credentials rejected: HTTP {exc.status_code} {exc.message}"
                    ) from exc
                raise
            if not isinstance(result, dict) or "access_token" not in result:
                raise RemoteParseError(f"Token response missing access_token: {result!r}")
            self._token = str(result["access_token"])
            self._expires_at = time.monotonic() + float(result.get("expires_in", 3600))
            logger.debug("Obtained API token from %s", self._http.base_url)

    @property
    def logged_in(self) -> bool:
        """``True`` once a token has been obtained and not dropped."""
        return self._token is not None

    def ensure_session(self) -> None:
        """Log in if there is no token or it is about to expire."""
        with self._auth_lock:
            if self._token is None or time.monotonic() >= self._expires_at - _EXPIRY_SLACK_S:
                self.login()

    # ------------------------------------------------------------------
    # Public request methods
    # ------------------------------------------------------------------

    def request(
        self,
        method: str,
        path: str,
        json_body: Any = None,
        params: dict[str, str] | None = None,
    ) -> Any:
        """Perform an authenticated request and return the unwrapped payload.

        On HTTP 401 (token revoked or expired), re-authenticates once and
        retries the request.

        Args:
            method: HTTP verb.
            path: API path relative to the base URL.
            json_body: Optional JSON request body.
            params: Optional query-string parameters.

        Returns:
            The ``data`` member of the response envelope when present,
            otherwise the whole decoded body.
        """
        token = self._valid_token()
        try:
            result = self._do_request(method, path, json_body, params, token)
        except RemoteResponseError as exc:
            if exc.status_code != 401:
                raise
            logger.debug("Token rejected (%s %s); re-logging in", method, path)
            token = self._refresh_token(token)
            result = self._do_request(method, path, json_body, params, token)
        if isinstance(result, dict) and "data" in result:
            return result["data"]
        return result

    def get(self, path: str, params: dict[str, str] | None = None) -> Any:
        """Authenticated GET."""
        return self.request("GET", path, params=params)

    def post(self, path: str, json_body: Any = None) -> Any:
        """Authenticated POST."""
        return self.request("POST", path, json_body=json_body)

    def put(self, path: str, json_body: Any = None) -> Any:
        """Authenticated PUT."""
        return self.request("PUT", path, json_body=json_body)

    def delete(self, path: str) -> Any:
        """Authenticated DELETE."""
        return self.request("DELETE", path)

    def close(self) -> None:
        """Drop the token and close the HTTP session."""
        self._token = None
        self._http.close()

    def __enter__(self) -> ApiSession:
        return self

    def __exit__(self, *args: object) -> None:
        self.close()

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _valid_token(self) -> str | None:
        with self._auth_lock:
            self.ensure_session()
            return self._token

    def _refresh_token(self, rejected: str | None) -> str | None:
        """Log in again unless another thread already replaced *rejected*."""
        with self._auth_lock:
            if self._token is None or self._token == rejected:
                self.login()
            return self._token

    def _do_request(
        self,
        method: str,
        path: str,
        json_body: Any,
        params: dict[str, str] | None,
        token: str | None,
    ) -> Any:
        return self._http.request(
            method,
            path,
            json_body=json_body,
            params=params,
            headers={"Authorization": f"Bearer {token}"},
        )
