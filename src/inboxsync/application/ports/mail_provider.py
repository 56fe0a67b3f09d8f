from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any, Mapping, Optional, Protocol, Union

from inboxsync.domain.errors import ProviderResponseError


@dataclass(frozen=True)
class ArrayResponse:
    # Provider answered with a bare JSON array
    items: list[dict[str, Any]] = field(default_factory=list)


@dataclass(frozen=True)
class WrappedResponse:
    # Provider answered with {"data": [...], "next_cursor": ..., "request_id": ...}
    items: list[dict[str, Any]] = field(default_factory=list)
    next_cursor: Optional[str] = None
    request_id: Optional[str] = None


ProviderResponse = Union[ArrayResponse, WrappedResponse]


def normalize_response(payload: Any) -> ProviderResponse:
    """Turn a list response of either shape into a ProviderResponse."""
    if isinstance(payload, list):
        return ArrayResponse(items=[p for p in payload if isinstance(p, dict)])
    if isinstance(payload, Mapping) and isinstance(payload.get("data"), list):
        return WrappedResponse(
            items=[p for p in payload["data"] if isinstance(p, dict)],
            next_cursor=payload.get("next_cursor"),
            request_id=payload.get("request_id"),
        )
    raise ProviderResponseError(f"Unexpected list response shape: {type(payload).__name__}")


def unwrap_object(payload: Any) -> dict[str, Any]:
    """Single-object responses come as {"data": {...}} or as the object itself."""
    if isinstance(payload, Mapping):
        inner = payload.get("data")
        if isinstance(inner, Mapping):
            return dict(inner)
        return dict(payload)
    raise ProviderResponseError(f"Unexpected object response shape: {type(payload).__name__}")


class MailProvider(Protocol):
    def list_messages(
        self,
        identifier: str,
        limit: int,
        offset: Optional[int] = None,
        filters: Optional[Mapping[str, Any]] = None,
        timeout: Optional[float] = None,
    ) -> ProviderResponse: ...

    def list_threads(self, identifier: str, limit: int, offset: Optional[int] = None) -> ProviderResponse: ...

    def get_account_info(self) -> ProviderResponse: ...

    def get_grant(self, grant_id: str) -> dict[str, Any]: ...

    def create_draft(self, identifier: str, payload: Mapping[str, Any]) -> dict[str, Any]: ...

    def send_draft(self, identifier: str, draft_id: str) -> dict[str, Any]: ...
