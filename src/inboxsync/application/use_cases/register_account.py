from __future__ import annotations
from typing import Any, Mapping, Optional

from loguru import logger

from inboxsync.application.ports.mail_store import MailStore
from inboxsync.domain.entities import Account


def register_account(
    store: MailStore,
    token: str,
    grant: Optional[Mapping[str, Any]],
    fallback_id: str,
) -> Account:
    """Persist the account produced by an authorization exchange.

    Upserts by token, so re-authorizing an existing mailbox updates it in
    place. The grant id becomes the account id when the exchange returned one.
    """
    grant = grant or {}
    grant_id = grant.get("grant_id") or grant.get("id") or ""
    account = Account(
        id=str(grant_id or fallback_id),
        token=token,
        provider=grant.get("provider") or "google",
        email_address=grant.get("email") or "",
        name=grant.get("name") or "",
        grant_id=str(grant_id),
    )
    stored = store.upsert_account(account)
    logger.info(f"Registered account {stored.id} ({stored.email_address or 'unknown address'})")
    return stored
