"""Build replies and send them through the provider's draft-then-send API."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Optional

from loguru import logger

from inboxsync.application.ports.mail_provider import MailProvider, unwrap_object
from inboxsync.application.ports.mail_store import MailStore
from inboxsync.domain.entities import EmailAddress, EmailMessage
from inboxsync.domain.errors import DraftCreateError, DraftSendError, ThreadNotFoundError

REPLY_PREFIX = "Re:"


@dataclass(frozen=True)
class OutgoingEmail:
    subject: str
    body: str
    to: list[EmailAddress]
    cc: list[EmailAddress] = field(default_factory=list)
    bcc: list[EmailAddress] = field(default_factory=list)
    reply_to: Optional[EmailAddress] = None
    in_reply_to: Optional[str] = None
    references: Optional[str] = None
    thread_id: Optional[str] = None


@dataclass(frozen=True)
class SendResult:
    draft_id: str
    message: dict[str, Any]

    @property
    def message_id(self) -> Optional[str]:
        return self.message.get("id")


def reply_subject(subject: str) -> str:
    subject = subject or ""
    if subject.lower().startswith(REPLY_PREFIX.lower()):
        return subject
    return f"{REPLY_PREFIX} {subject}"


def build_reply(original: EmailMessage, body: str, thread_id: Optional[str] = None) -> OutgoingEmail:
    """Reply envelope for the most recent message of a thread."""
    return OutgoingEmail(
        subject=reply_subject(original.subject),
        body=body,
        to=list(original.to),
        cc=list(original.cc),
        reply_to=original.sender if original.sender.address else None,
        in_reply_to=original.id,
        references=original.references or None,
        thread_id=thread_id or original.thread_id,
    )


def _participant(addr: EmailAddress) -> dict[str, str]:
    return {"name": addr.name or addr.address, "email": addr.address}


def draft_payload(email: OutgoingEmail) -> dict[str, Any]:
    payload: dict[str, Any] = {
        "subject": email.subject,
        "body": email.body,
        "to": [_participant(a) for a in email.to],
        "cc": [_participant(a) for a in email.cc],
        "bcc": [_participant(a) for a in email.bcc],
        "reply_to": [_participant(email.reply_to)] if email.reply_to else [],
    }
    if email.in_reply_to:
        payload["reply_to_message_id"] = email.in_reply_to
    if email.references:
        payload["references"] = email.references
    if email.thread_id:
        payload["thread_id"] = email.thread_id
    return payload


class SendCoordinator:
    """Two-phase send: create a draft, then send that draft by its returned id.

    Draft creation failures raise DraftCreateError and nothing is sent.
    Send failures raise DraftSendError carrying the orphaned draft id;
    the draft is left in place for the caller to decide.
    """

    def __init__(self, provider: MailProvider, identifier: str) -> None:
        self.provider = provider
        self.identifier = identifier

    def send(self, email: OutgoingEmail) -> SendResult:
        logger.info(
            f"Sending email '{email.subject[:50]}' to {[a.address for a in email.to]} "
            f"(cc: {[a.address for a in email.cc]})"
        )

        try:
            draft = unwrap_object(self.provider.create_draft(self.identifier, draft_payload(email)))
        except Exception as e:
            logger.error(f"Draft creation failed for {self.identifier}: {e}")
            raise DraftCreateError(f"Failed to create draft: {e}") from e

        draft_id = draft.get("id")
        if not draft_id:
            logger.error(f"Draft created for {self.identifier} but no draft id returned")
            raise DraftCreateError("Failed to create draft - no draft id returned")
        draft_id = str(draft_id)

        try:
            sent = unwrap_object(self.provider.send_draft(self.identifier, draft_id))
        except Exception as e:
            logger.error(f"Sending draft {draft_id} failed for {self.identifier}: {e}")
            raise DraftSendError(f"Failed to send draft {draft_id}: {e}", draft_id=draft_id) from e

        logger.info(f"Email sent from draft {draft_id}, message_id={sent.get('id')}")
        return SendResult(draft_id=draft_id, message=sent)

    def reply(self, store: MailStore, account_id: str, thread_id: str, body: str) -> SendResult:
        latest = store.list_thread_messages(account_id, thread_id, newest_first=True, limit=1)
        if not latest:
            raise ThreadNotFoundError(f"No messages in thread {thread_id} for account {account_id}")
        return self.send(build_reply(latest[0], body, thread_id=thread_id))
