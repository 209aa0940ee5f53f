"""
Backend API Client.

Thin wrapper around a requests.Session that talks to the JobPulse REST
backend. One client is created per Flask request (see get_api) and closed when
the app context tears down, so no backend call outlives the page that issued it.
"""

import logging
from typing import Any, Dict, Optional

import requests
from flask import current_app, g, has_request_context, request, session
from tenacity import (
    retry,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
)

from .config import get_settings

logger = logging.getLogger(__name__)

DEFAULT_ERROR = "Request failed"


class ApiError(Exception):
    """
    Error returned by (or while reaching) the backend.

    Attributes:
        status_code: HTTP status (503 for connection errors, 504 for timeouts)
        message: The backend's ``error`` field when present
        payload: Decoded response body, if any
    """

    def __init__(self, message: str, status_code: Optional[int] = None, payload: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.payload = payload or {}

    @property
    def is_unauthorized(self) -> bool:
        return self.status_code == 401

    @property
    def is_forbidden(self) -> bool:
        return self.status_code == 403


def _is_transient(exc: BaseException) -> bool:
    return isinstance(exc, ApiError) and exc.status_code in (503, 504)


class ApiClient:
    """Client for the backend REST API with bearer-token support."""

    def __init__(self, base_url: str, timeout: int = 10, http: Optional[requests.Session] = None):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.http = http or requests.Session()
        self.http.headers.update({"Content-Type": "application/json"})

    # ------------------------------------------------------------------
    # Default Authorization header
    # ------------------------------------------------------------------

    @property
    def token(self) -> Optional[str]:
        header = self.http.headers.get("Authorization", "")
        if header.startswith("Bearer "):
            return header[len("Bearer "):]
        return None

    def set_token(self, token: str) -> None:
        self.http.headers["Authorization"] = f"Bearer {token}"

    def clear_token(self) -> None:
        self.http.headers.pop("Authorization", None)

    # ------------------------------------------------------------------
    # Requests
    # ------------------------------------------------------------------

    def _url(self, path: str) -> str:
        return f"{self.base_url}/{path.lstrip('/')}"

    def _send(self, method: str, path: str, **kwargs) -> Dict[str, Any]:
        """Send a request and decode the JSON body, raising ApiError on failure."""
        try:
            response = self.http.request(method, self._url(path), timeout=self.timeout, **kwargs)
        except requests.exceptions.Timeout:
            logger.error(f"Backend timeout: {method} {path}")
            raise ApiError("Backend service timeout", status_code=504)
        except requests.exceptions.ConnectionError:
            logger.error(f"Cannot connect to backend: {method} {path}")
            raise ApiError("Cannot connect to backend service", status_code=503)

        try:
            payload = response.json() if response.content else {}
        except ValueError:
            payload = {}

        if response.status_code >= 400:
            message = DEFAULT_ERROR
            if isinstance(payload, dict):
                message = payload.get("error") or payload.get("message") or DEFAULT_ERROR
            if response.status_code != 401:
                logger.warning(f"API Error {response.status_code} on {method} {path}: {message}")
            raise ApiError(message, status_code=response.status_code, payload=payload)

        return payload

    @retry(
        stop=stop_after_attempt(2),
        wait=wait_exponential(multiplier=0.2, max=1),
        retry=retry_if_exception(_is_transient),
        reraise=True,
    )
    def get(self, path: str, params: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        """GET with one retry on timeouts and connection failures."""
        return self._send("GET", path, params=params)

    def post(self, path: str, data: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        return self._send("POST", path, json=data or {})

    def put(self, path: str, data: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        return self._send("PUT", path, json=data or {})

    def patch(self, path: str, data: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        return self._send("PATCH", path, json=data or {})

    def delete(self, path: str) -> Dict[str, Any]:
        return self._send("DELETE", path)

    def upload(self, path: str, files: Dict[str, Any], data: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        """Multipart POST. The JSON content type is dropped so requests sets the boundary."""
        return self._send("POST", path, files=files, data=data or {}, headers={"Content-Type": None})

    def close(self) -> None:
        self.http.close()


def data_of(payload: Dict[str, Any]) -> Dict[str, Any]:
    """Unwrap the backend's ``{"success": ..., "data": {...}}`` envelope."""
    return payload.get("data") or {}


def get_api() -> ApiClient:
    """
    Get the API client for the current request, creating it on first use.

    The bearer token is read from the token cookie (falling back to the
    session) so public pages can call the backend before the session store
    has been restored.
    """
    if "api_client" not in g:
        settings = get_settings()
        base_url = current_app.config.get("API_BASE_URL", settings.api_base_url)
        client = ApiClient(base_url, timeout=settings.api_timeout)
        if has_request_context():
            token = request.cookies.get("token") or session.get("token")
            if token:
                client.set_token(token)
        g.api_client = client
    return g.api_client


def close_api(exc: Optional[BaseException] = None) -> None:
    """Teardown hook: close the request's HTTP session."""
    client = g.pop("api_client", None)
    if client is not None:
        client.close()
