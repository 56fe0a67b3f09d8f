"""Nylas mail provider."""

from inboxsync.infrastructure.email.providers.nylas.client import NylasMailClient
from inboxsync.infrastructure.email.providers.nylas.mapper import epoch_to_iso, nylas_to_email_message

__all__ = [
    "NylasMailClient",
    "epoch_to_iso",
    "nylas_to_email_message",
]
