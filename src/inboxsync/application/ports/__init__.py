from inboxsync.application.ports.mail_provider import (
    ArrayResponse,
    MailProvider,
    ProviderResponse,
    WrappedResponse,
    normalize_response,
    unwrap_object,
)
from inboxsync.application.ports.mail_store import MailStore

__all__ = [
    "ArrayResponse",
    "WrappedResponse",
    "ProviderResponse",
    "MailProvider",
    "MailStore",
    "normalize_response",
    "unwrap_object",
]
