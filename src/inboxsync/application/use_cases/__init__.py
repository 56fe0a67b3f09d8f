from inboxsync.application.use_cases.fetch_strategy import (
    DEFAULT_STRATEGIES,
    FetchAttempt,
    FetchResult,
    FetchStrategy,
    FetchStrategyResolver,
    ReadinessPoll,
    ReadinessStatus,
    default_strategies,
)
from inboxsync.application.use_cases.mailbox_queries import MailboxQueries
from inboxsync.application.use_cases.merge_emails import EmailMergeEngine, MergeResult
from inboxsync.application.use_cases.register_account import register_account
from inboxsync.application.use_cases.send_reply import (
    OutgoingEmail,
    SendCoordinator,
    SendResult,
    build_reply,
)
from inboxsync.application.use_cases.sync_mailbox import SyncMailboxUseCase, SyncReport

__all__ = [
    "DEFAULT_STRATEGIES",
    "FetchAttempt",
    "FetchResult",
    "FetchStrategy",
    "FetchStrategyResolver",
    "ReadinessPoll",
    "ReadinessStatus",
    "default_strategies",
    "EmailMergeEngine",
    "MergeResult",
    "MailboxQueries",
    "register_account",
    "OutgoingEmail",
    "SendCoordinator",
    "SendResult",
    "build_reply",
    "SyncMailboxUseCase",
    "SyncReport",
]
