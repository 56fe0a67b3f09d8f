"""Merge canonical messages into storage and refresh thread aggregates."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Iterable, Optional

from loguru import logger

from inboxsync.application.ports.mail_store import MailStore
from inboxsync.domain.entities import DRAFT, INBOX, SENT, EmailMessage, classify_labels


@dataclass
class MergeResult:
    stored: int = 0
    failed: int = 0
    threads: list[str] = field(default_factory=list)
    failed_ids: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class ThreadAggregate:
    inbox_status: bool
    sent_status: bool
    draft_status: bool
    last_message_date: Optional[str]
    participants: list[str]


def _parse_iso(value: str) -> datetime:
    return datetime.fromisoformat(value.replace("Z", "+00:00"))


def latest_timestamp(values: Iterable[str]) -> Optional[str]:
    """Max by parsed time; returns the original string."""
    best: Optional[str] = None
    best_dt: Optional[datetime] = None
    for value in values:
        if not value:
            continue
        dt = _parse_iso(value)
        if best_dt is None or dt > best_dt:
            best, best_dt = value, dt
    return best


def compute_thread_aggregate(messages: Iterable[EmailMessage]) -> ThreadAggregate:
    """Derive thread status flags and last message date from its members."""
    categories: set[str] = set()
    participants: list[str] = []
    sent_dates: list[str] = []

    for msg in messages:
        # email_label only stands in when the provider labels are unrecognized
        categories |= classify_labels(msg.sys_labels) or classify_labels([msg.email_label])
        sent_dates.append(msg.sent_at)
        for addr in msg.participants():
            if addr.address not in participants:
                participants.append(addr.address)

    return ThreadAggregate(
        inbox_status=INBOX in categories,
        sent_status=SENT in categories,
        draft_status=DRAFT in categories,
        last_message_date=latest_timestamp(sent_dates),
        participants=participants,
    )


class EmailMergeEngine:
    """Idempotent upsert of canonical messages for one account.

    Messages are keyed by (account, message id) and threads by
    (account, thread id). The store writes a message and its thread row
    together, so a rejected message leaves no empty thread behind.
    Aggregates are recomputed from every persisted
    member of a touched thread, not only from the incoming batch.
    """

    def __init__(self, store: MailStore) -> None:
        self.store = store

    def merge(self, account_id: str, messages: Iterable[EmailMessage]) -> MergeResult:
        result = MergeResult()
        touched: list[str] = []

        for msg in messages:
            try:
                self.store.upsert_message(account_id, msg)
            except Exception as e:
                logger.error(f"Failed to store message {msg.id} for account {account_id}: {e}")
                result.failed += 1
                result.failed_ids.append(msg.id)
                continue

            result.stored += 1
            if msg.thread_id not in touched:
                touched.append(msg.thread_id)

        if result.stored == 0 and result.failed == 0:
            logger.debug(f"Nothing to merge for account {account_id}")
            return result

        for thread_id in touched:
            try:
                self.refresh_thread(account_id, thread_id)
                result.threads.append(thread_id)
            except Exception as e:
                logger.error(f"Failed to refresh thread {thread_id} for account {account_id}: {e}")

        logger.info(
            f"Merged {result.stored} emails into {len(result.threads)} threads "
            f"for account {account_id} ({result.failed} failed)"
        )
        return result

    def refresh_thread(self, account_id: str, thread_id: str) -> ThreadAggregate:
        members = self.store.list_thread_messages(account_id, thread_id)
        aggregate = compute_thread_aggregate(members)
        self.store.update_thread_aggregates(
            account_id,
            thread_id,
            inbox_status=aggregate.inbox_status,
            sent_status=aggregate.sent_status,
            draft_status=aggregate.draft_status,
            last_message_date=aggregate.last_message_date,
            participants=aggregate.participants,
        )
        return aggregate
