"""Sync one mailbox: fetch best result set, normalize, merge."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Mapping, Optional

from loguru import logger

from inboxsync.application.ports.mail_provider import MailProvider
from inboxsync.application.ports.mail_store import MailStore
from inboxsync.application.use_cases.fetch_strategy import FetchStrategyResolver, ReadinessStatus
from inboxsync.application.use_cases.merge_emails import EmailMergeEngine
from inboxsync.domain.entities import EmailMessage
from inboxsync.domain.errors import AccountNotFoundError, MappingError


def _record_id(raw: Any) -> str:
    return str(raw.get("id", "?")) if isinstance(raw, Mapping) else "?"


@dataclass
class SyncReport:
    account_id: str
    strategy: Optional[str] = None
    readiness: Optional[ReadinessStatus] = None
    fetched: int = 0
    mapped: int = 0
    skipped: int = 0
    stored: int = 0
    failed: int = 0
    threads: int = 0


class SyncMailboxUseCase:
    """Pull, normalize and persist the messages of one account.

    Flow:
    1. Resolver picks the best of the fetch strategies
    2. Each raw record is mapped; malformed records are skipped
    3. Canonical messages are merged into the store

    Credential errors propagate; everything else degrades to a smaller
    (possibly empty) sync.
    """

    def __init__(
        self,
        provider: MailProvider,
        store: MailStore,
        account_id: str,
        mapper: Callable[[Mapping[str, Any]], EmailMessage],
        resolver: Optional[FetchStrategyResolver] = None,
        merge_engine: Optional[EmailMergeEngine] = None,
        default_limit: int = 100,
    ) -> None:
        self.provider = provider
        self.store = store
        self.account_id = account_id
        self.mapper = mapper
        self.resolver = resolver or FetchStrategyResolver(provider, account_id)
        self.merge_engine = merge_engine or EmailMergeEngine(store)
        self.default_limit = default_limit

    def run(self, limit: Optional[int] = None) -> SyncReport:
        limit = limit or self.default_limit
        logger.info(f"Starting email sync for account {self.account_id} (limit {limit})")
        fetched = self.resolver.fetch_messages(limit=limit)

        report = SyncReport(
            account_id=self.account_id,
            strategy=fetched.strategy,
            readiness=fetched.readiness,
            fetched=fetched.count,
        )

        messages: list[EmailMessage] = []
        for raw in fetched.items:
            try:
                messages.append(self.mapper(raw))
            except MappingError as e:
                logger.warning(f"Skipping malformed message {_record_id(raw)}: {e}")
                report.skipped += 1
            except Exception as e:
                logger.error(f"Failed to map message {_record_id(raw)}: {e}")
                report.skipped += 1
        report.mapped = len(messages)

        if not messages:
            logger.info(f"No emails to sync for account {self.account_id}")
            return report

        merged = self.merge_engine.merge(self.account_id, messages)
        report.stored = merged.stored
        report.failed = merged.failed
        report.threads = len(merged.threads)

        logger.info(
            f"Email sync complete for account {self.account_id}: "
            f"{report.stored}/{report.fetched} stored via {report.strategy}"
        )
        return report

    def run_initial(self, limit: Optional[int] = None) -> SyncReport:
        """First sync after authorization; the account must already be stored."""
        if self.store.get_account(self.account_id) is None:
            raise AccountNotFoundError(f"Account {self.account_id} not found")
        logger.info(f"Starting initial sync for account {self.account_id}")
        return self.run(limit=limit)
