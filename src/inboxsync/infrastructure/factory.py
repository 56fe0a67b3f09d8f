"""Wire provider, store and use cases for one account from settings."""

from __future__ import annotations

from loguru import logger

from inboxsync.application.ports.mail_store import MailStore
from inboxsync.application.use_cases.fetch_strategy import (
    FetchStrategyResolver,
    ReadinessPoll,
    default_strategies,
)
from inboxsync.application.use_cases.send_reply import SendCoordinator
from inboxsync.application.use_cases.sync_mailbox import SyncMailboxUseCase
from inboxsync.domain.entities import Account
from inboxsync.infrastructure.email.providers.nylas import NylasMailClient, nylas_to_email_message
from inboxsync.infrastructure.settings import Settings, get_settings
from inboxsync.infrastructure.stores import get_mail_store


class MailSyncFactory:
    """Factory for per-account sync and send components."""

    @staticmethod
    def resolver(provider, account_id: str, settings: Settings | None = None) -> FetchStrategyResolver:
        settings = settings or get_settings()
        return FetchStrategyResolver(
            provider,
            account_id,
            strategies=default_strategies(
                high_limit=settings.sync_high_limit,
                recent_days=settings.sync_recent_days,
            ),
            readiness=ReadinessPoll(
                timeout=settings.readiness_timeout_seconds,
                interval=settings.readiness_interval_seconds,
            ),
        )

    @staticmethod
    def sync_for(
        account: Account,
        store: MailStore | None = None,
        settings: Settings | None = None,
    ) -> SyncMailboxUseCase:
        settings = settings or get_settings()
        store = store or get_mail_store()
        provider = NylasMailClient.for_account(account, settings)
        logger.debug(f"Building sync for account {account.id} via {settings.nylas_api_uri}")
        return SyncMailboxUseCase(
            provider=provider,
            store=store,
            account_id=account.id,
            mapper=nylas_to_email_message,
            resolver=MailSyncFactory.resolver(provider, account.id, settings),
            default_limit=settings.sync_default_limit,
        )

    @staticmethod
    def sender_for(account: Account, settings: Settings | None = None) -> SendCoordinator:
        provider = NylasMailClient.for_account(account, settings)
        return SendCoordinator(provider, account.grant_id or account.id)
