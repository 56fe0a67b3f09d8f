"""Read-side queries over synced threads, as used by the mail views."""

from __future__ import annotations

from typing import Optional

from inboxsync.application.ports.mail_store import MailStore
from inboxsync.domain.entities import EmailAddress, EmailMessage, Thread

# UI tab -> thread status filter
TAB_STATUS = {
    "inbox": "inbox",
    "sent": "sent",
    "drafts": "draft",
}


class MailboxQueries:
    def __init__(self, store: MailStore) -> None:
        self.store = store

    def list_threads(
        self,
        account_id: str,
        tab: str,
        done: bool,
        limit: int = 50,
        offset: int = 0,
    ) -> list[Thread]:
        """Threads for a tab, most recent activity first. Unknown tabs are unfiltered."""
        return self.store.list_threads(
            account_id, status=TAB_STATUS.get(tab), done=done, limit=limit, offset=offset
        )

    def count_threads(self, account_id: str, tab: str) -> int:
        return self.store.count_threads(account_id, status=TAB_STATUS.get(tab))

    def get_thread(self, account_id: str, thread_id: str) -> Optional[Thread]:
        return self.store.get_thread(account_id, thread_id)

    def reply_details(self, account_id: str, thread_id: str) -> Optional[EmailMessage]:
        latest = self.store.list_thread_messages(account_id, thread_id, newest_first=True, limit=1)
        return latest[0] if latest else None

    def set_done(self, account_id: str, thread_id: str) -> bool:
        return self.store.set_thread_done(account_id, thread_id, True)

    def set_undone(self, account_id: str, thread_id: str) -> bool:
        return self.store.set_thread_done(account_id, thread_id, False)

    def email_suggestions(self, account_id: str, query: str, limit: int = 5) -> list[EmailAddress]:
        return self.store.search_email_addresses(account_id, query, limit=limit)
