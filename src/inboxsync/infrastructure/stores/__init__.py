"""Store implementations."""

from inboxsync.infrastructure.stores.sqlite_mail_store import SQLiteMailStore, get_mail_store

__all__ = [
    "SQLiteMailStore",
    "get_mail_store",
]
