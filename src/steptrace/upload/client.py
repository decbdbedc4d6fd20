"""Remote upload contract and the Xray Cloud client implementing it."""
from __future__ import annotations

import datetime as dt
import logging
from typing import Any, Dict, Mapping, Optional, Protocol

import requests

from .config import DEFAULT_BASE_URL, UploadSettings

logger = logging.getLogger(__name__)

TOKEN_LIFETIME = dt.timedelta(minutes=55)


class UploadError(RuntimeError):
    """Raised when a batch could not be delivered to the remote service."""


class UploadClient(Protocol):
    """Narrow contract the orchestrator depends on.

    ``payload`` is ``{tests, testExecutionKey?, info?}``; the returned mapping
    carries ``key`` and ``id`` when a new execution was created.
    """

    def upload(self, payload: Mapping[str, Any]) -> Mapping[str, Any]:  # pragma: no cover - protocol
        ...


class XrayClient:
    """Authenticates against Xray Cloud and imports execution results."""

    def __init__(
        self,
        client_id: Optional[str],
        client_secret: Optional[str],
        *,
        base_url: str = DEFAULT_BASE_URL,
        timeout: float = 60.0,
        session: Optional[requests.Session] = None,
    ) -> None:
        self._client_id = client_id
        self._client_secret = client_secret
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout
        self._session = session or requests.Session()
        self._token: Optional[str] = None
        self._token_expiry: Optional[dt.datetime] = None

    @classmethod
    def from_settings(cls, settings: UploadSettings, **kwargs: Any) -> "XrayClient":
        return cls(settings.client_id, settings.client_secret, base_url=settings.base_url, **kwargs)

    def authenticate(self) -> str:
        now = dt.datetime.now(dt.timezone.utc)
        if self._token and self._token_expiry and now < self._token_expiry:
            return self._token
        if not self._client_id or not self._client_secret:
            raise UploadError("Xray credentials are missing (XRAY_CLIENT_ID / XRAY_CLIENT_SECRET)")
        try:
            response = self._session.post(
                f"{self._base_url}/authenticate",
                json={"client_id": self._client_id, "client_secret": self._client_secret},
                timeout=self._timeout,
            )
            response.raise_for_status()
        except requests.RequestException as exc:
            logger.error("Xray authentication failed: %s", exc)
            raise UploadError(f"Xray authentication failed: {exc}") from exc
        self._token = _decode_token(response)
        self._token_expiry = now + TOKEN_LIFETIME
        return self._token

    def upload(self, payload: Mapping[str, Any]) -> Mapping[str, Any]:
        token = self.authenticate()
        count = len(payload.get("tests", []))
        if payload.get("testExecutionKey"):
            logger.info("Uploading %d test result(s) to %s", count, payload["testExecutionKey"])
        else:
            logger.info("Uploading %d test result(s) into a new test execution", count)
        try:
            response = self._session.post(
                f"{self._base_url}/import/execution",
                json=dict(payload),
                headers={"Authorization": f"Bearer {token}"},
                timeout=self._timeout,
            )
            response.raise_for_status()
        except requests.RequestException as exc:
            detail = _response_detail(getattr(exc, "response", None))
            raise UploadError(f"Xray import failed: {exc}{detail}") from exc
        data: Dict[str, Any] = {}
        if response.content:
            try:
                decoded = response.json()
            except ValueError:
                decoded = None
            if isinstance(decoded, dict):
                data = decoded
        if data.get("key"):
            logger.info("Xray test execution %s (id %s)", data["key"], data.get("id"))
        return data


def _decode_token(response: requests.Response) -> str:
    try:
        token = response.json()
    except ValueError:
        token = response.text
    if not isinstance(token, str):
        raise UploadError("Unexpected Xray authentication response")
    return token.strip().strip('"')


def _response_detail(response: Optional[requests.Response]) -> str:
    if response is None:
        return ""
    return f" (status {response.status_code}: {response.text[:500]})"
