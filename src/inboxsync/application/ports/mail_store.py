from __future__ import annotations
from typing import Iterable, Optional, Protocol

from inboxsync.domain.entities import Account, EmailAddress, EmailMessage, Thread


class MailStore(Protocol):
    """Persistence capability the sync core writes through.

    Every upsert is keyed by a natural key and expected to be atomic.
    """

    def get_account(self, account_id: str) -> Optional[Account]: ...
    def upsert_account(self, account: Account) -> Account: ...

    # Creates the thread row if missing, in the same unit of work as the message
    def upsert_message(self, account_id: str, msg: EmailMessage) -> None: ...

    def list_thread_messages(
        self,
        account_id: str,
        thread_id: str,
        newest_first: bool = False,
        limit: Optional[int] = None,
    ) -> list[EmailMessage]: ...

    def update_thread_aggregates(
        self,
        account_id: str,
        thread_id: str,
        *,
        inbox_status: bool,
        sent_status: bool,
        draft_status: bool,
        last_message_date: Optional[str],
        participants: Iterable[str] = (),
    ) -> None: ...

    def get_thread(self, account_id: str, thread_id: str, include_emails: bool = True) -> Optional[Thread]: ...

    def list_threads(
        self,
        account_id: str,
        status: Optional[str] = None,
        done: Optional[bool] = None,
        limit: int = 50,
        offset: int = 0,
    ) -> list[Thread]: ...

    def count_threads(self, account_id: str, status: Optional[str] = None) -> int: ...
    def set_thread_done(self, account_id: str, thread_id: str, done: bool) -> bool: ...
    def search_email_addresses(self, account_id: str, query: str, limit: int = 5) -> list[EmailAddress]: ...
