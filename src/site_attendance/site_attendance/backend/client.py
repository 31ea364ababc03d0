"""
HR backend API client
Handles authentication, the ``{success, data}`` envelope and error mapping.
"""

from __future__ import annotations

from typing import Any, Optional

import httpx
import structlog

from ..core.exceptions import BackendError, SessionConflict, ValidationError

logger = structlog.get_logger(__name__)


class BackendClient:
    """Thin JSON client for the remote HR backend."""

    def __init__(
        self,
        base_url: str,
        *,
        api_token: Optional[str] = None,
        timeout: float = 30.0,
        transport: httpx.BaseTransport | None = None,
    ):
        if not base_url:
            raise ValueError("Backend base URL is required")
        self.base_url = base_url.rstrip("/")
        self.api_token = api_token
        self.timeout = float(timeout)
        self._transport = transport

    def _get_auth_header(self) -> dict[str, str]:
        if not self.api_token:
            return {}
        return {"Authorization": f"Bearer {self.api_token}"}

    def _request(self, method: str, endpoint: str, **kwargs) -> Any:
        url = f"{self.base_url}/{endpoint.lstrip('/')}"
        headers = {"Accept": "application/json"}
        headers.update(self._get_auth_header())
        headers.update(kwargs.pop("headers", {}))

        try:
            with httpx.Client(timeout=self.timeout, transport=self._transport) as client:
                response = client.request(method, url, headers=headers, **kwargs)
        except httpx.HTTPError as e:
            logger.error("backend_unreachable", method=method, endpoint=endpoint, error=str(e))
            raise BackendError(f"Backend unreachable: {e}") from e

        payload = self._json(response)
        if response.is_success:
            return self._unwrap(payload)

        message = self._message(payload) or f"Backend returned HTTP {response.status_code}"
        logger.warning("backend_rejected", method=method, endpoint=endpoint, status=response.status_code, message=message)

        if response.status_code == 409:
            raise SessionConflict(message)
        if response.status_code in (400, 422):
            raise ValidationError(message, self._field_errors(payload))
        raise BackendError(message, status_code=response.status_code)

    def get(self, endpoint: str, params: Optional[dict] = None) -> Any:
        return self._request("GET", endpoint, params={k: v for k, v in (params or {}).items() if v is not None})

    def post(self, endpoint: str, body: Optional[dict] = None) -> Any:
        return self._request("POST", endpoint, json=body or {})

    @staticmethod
    def _json(response: httpx.Response) -> Any:
        if not response.content:
            return None
        try:
            return response.json()
        except ValueError:
            # Proxies answer with HTML error pages; keep the status, drop the body.
            return None

    @staticmethod
    def _unwrap(payload: Any) -> Any:
        if isinstance(payload, dict) and "success" in payload:
            if payload.get("success") is False:
                raise BackendError(BackendClient._message(payload) or "Backend reported failure")
            return payload.get("data")
        return payload

    @staticmethod
    def _message(payload: Any) -> Optional[str]:
        if isinstance(payload, dict):
            msg = payload.get("message") or payload.get("error")
            return str(msg) if msg else None
        return None

    @staticmethod
    def _field_errors(payload: Any) -> dict[str, str]:
        if not isinstance(payload, dict):
            return {}
        errors = payload.get("errors")
        if not isinstance(errors, dict):
            errors = payload.get("data")
        if not isinstance(errors, dict):
            return {}

        out: dict[str, str] = {}
        for field, value in errors.items():
            if isinstance(value, (list, tuple)):
                value = value[0] if value else ""
            out[str(field)] = str(value)
        return out
