"""Error taxonomy for the sync core.

Credential errors are fatal for a whole sync. Provider errors are
transient and recovered by the fetch resolver. Mapping and persistence
errors skip a single record. Send errors are fatal for that send only.
"""

from __future__ import annotations

from typing import Optional


class InboxSyncError(Exception):
    """Base class for all sync core errors."""


class CredentialError(InboxSyncError):
    """Raised when the account's bearer token is rejected by the provider."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class ProviderError(InboxSyncError):
    """Raised when a provider call fails for a non-credential reason."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class ProviderResponseError(ProviderError):
    """Raised when a provider response has an unexpected shape."""


class MappingError(InboxSyncError):
    """Raised when a raw provider record cannot be mapped."""


class PersistenceError(InboxSyncError):
    """Raised when a canonical message cannot be stored."""


class SendError(InboxSyncError):
    pass


class DraftCreateError(SendError):
    """Draft creation failed; nothing was sent."""


class DraftSendError(SendError):
    """The draft exists but sending it failed."""

    def __init__(self, message: str, draft_id: str):
        super().__init__(message)
        self.draft_id = draft_id


class AccountNotFoundError(InboxSyncError):
    pass


class ThreadNotFoundError(InboxSyncError):
    pass
