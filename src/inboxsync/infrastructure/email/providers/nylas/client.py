"""Nylas v3 REST client bound to a single account credential."""

from __future__ import annotations

from typing import Any, Mapping, Optional

import httpx
from loguru import logger

from inboxsync.application.ports.mail_provider import (
    MailProvider,
    ProviderResponse,
    normalize_response,
    unwrap_object,
)
from inboxsync.domain.entities import Account
from inboxsync.domain.errors import CredentialError, ProviderError
from inboxsync.infrastructure.settings import Settings, get_settings

DEFAULT_API_URI = "https://api.us.nylas.com"


class NylasMailClient(MailProvider):
    """Typed wrapper over the Nylas grants API.

    The bearer token is fixed at construction; one instance per account.
    """

    def __init__(
        self,
        token: str,
        api_uri: str = DEFAULT_API_URI,
        timeout: float = 30.0,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        if not token:
            raise CredentialError("A bearer token is required")
        self._token = token
        self.api_uri = api_uri.rstrip("/")
        self.timeout = timeout
        self._transport = transport

    @classmethod
    def for_account(cls, account: Account, settings: Settings | None = None) -> "NylasMailClient":
        settings = settings or get_settings()
        return cls(
            token=account.token,
            api_uri=settings.nylas_api_uri,
            timeout=settings.http_timeout_seconds,
        )

    @property
    def token_hint(self) -> str:
        return f"{self._token[:6]}..."

    def _request(
        self,
        method: str,
        path: str,
        params: Optional[Mapping[str, Any]] = None,
        json: Optional[Mapping[str, Any]] = None,
        timeout: Optional[float] = None,
    ) -> Any:
        """One HTTP call. `timeout` can only shorten the configured timeout."""
        url = f"{self.api_uri}{path}"
        headers = {
            "Authorization": f"Bearer {self._token}",
            "Accept": "application/json",
        }
        clean_params = {k: v for k, v in (params or {}).items() if v is not None}
        request_timeout = self.timeout if timeout is None else min(timeout, self.timeout)

        try:
            with httpx.Client(transport=self._transport, timeout=request_timeout) as client:
                response = client.request(method, url, headers=headers, params=clean_params, json=json)
        except httpx.TimeoutException as e:
            logger.error(f"Nylas API timeout on {method} {path}")
            raise ProviderError(f"Request timeout: {method} {path}") from e
        except httpx.HTTPError as e:
            logger.error(f"Nylas API transport error on {method} {path}: {e}")
            raise ProviderError(f"Transport error: {e}") from e

        if response.status_code in (401, 403):
            logger.error(f"Nylas rejected credential {self.token_hint} ({response.status_code})")
            raise CredentialError(
                f"HTTP {response.status_code}: credential rejected",
                status_code=response.status_code,
            )
        if response.status_code >= 400:
            error_text = response.text
            logger.error(f"Nylas API error {response.status_code} on {method} {path}: {error_text[:200]}")
            raise ProviderError(
                f"HTTP {response.status_code}: {error_text[:200]}",
                status_code=response.status_code,
            )

        try:
            return response.json()
        except ValueError as e:
            raise ProviderError(f"Invalid JSON from {method} {path}", status_code=response.status_code) from e

    def list_messages(
        self,
        identifier: str,
        limit: int,
        offset: Optional[int] = None,
        filters: Optional[Mapping[str, Any]] = None,
        timeout: Optional[float] = None,
    ) -> ProviderResponse:
        params: dict[str, Any] = {"limit": limit, "offset": offset}
        params.update(filters or {})
        return normalize_response(
            self._request("GET", f"/v3/grants/{identifier}/messages", params=params, timeout=timeout)
        )

    def list_threads(self, identifier: str, limit: int, offset: Optional[int] = None) -> ProviderResponse:
        params = {"limit": limit, "offset": offset}
        return normalize_response(self._request("GET", f"/v3/grants/{identifier}/threads", params=params))

    def get_account_info(self) -> ProviderResponse:
        return normalize_response(self._request("GET", "/v3/grants"))

    def get_grant(self, grant_id: str) -> dict[str, Any]:
        return unwrap_object(self._request("GET", f"/v3/grants/{grant_id}"))

    def create_draft(self, identifier: str, payload: Mapping[str, Any]) -> dict[str, Any]:
        return unwrap_object(self._request("POST", f"/v3/grants/{identifier}/drafts", json=payload))

    def send_draft(self, identifier: str, draft_id: str) -> dict[str, Any]:
        return unwrap_object(self._request("POST", f"/v3/grants/{identifier}/drafts/{draft_id}"))
