"""Infrastructure layer - provider client, storage, and configuration."""

from inboxsync.infrastructure.log_config import configure_logging
from inboxsync.infrastructure.settings import Settings, get_settings
from inboxsync.infrastructure.stores import SQLiteMailStore, get_mail_store

__all__ = [
    # Settings
    "Settings",
    "get_settings",
    # Logging
    "configure_logging",
    # Storage
    "SQLiteMailStore",
    "get_mail_store",
]
