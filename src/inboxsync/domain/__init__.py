"""Domain entities and errors."""

from inboxsync.domain.entities import (
    Account,
    EmailAddress,
    EmailAttachment,
    EmailMessage,
    Thread,
    classify_labels,
)
from inboxsync.domain.errors import (
    AccountNotFoundError,
    CredentialError,
    DraftCreateError,
    DraftSendError,
    InboxSyncError,
    MappingError,
    PersistenceError,
    ProviderError,
    ProviderResponseError,
    SendError,
    ThreadNotFoundError,
)

__all__ = [
    "Account",
    "EmailAddress",
    "EmailAttachment",
    "EmailMessage",
    "Thread",
    "classify_labels",
    "InboxSyncError",
    "CredentialError",
    "ProviderError",
    "ProviderResponseError",
    "MappingError",
    "PersistenceError",
    "SendError",
    "DraftCreateError",
    "DraftSendError",
    "AccountNotFoundError",
    "ThreadNotFoundError",
]
