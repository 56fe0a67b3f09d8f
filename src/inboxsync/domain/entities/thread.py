from __future__ import annotations
from dataclasses import dataclass, field
from typing import Iterable, Optional

from inboxsync.domain.entities.email_message import EmailMessage

INBOX = "inbox"
SENT = "sent"
DRAFT = "draft"

# Provider label names/ids (lowercased) -> thread category
_LABEL_CATEGORIES = {
    "inbox": INBOX,
    "important": INBOX,
    "sent": SENT,
    "sent items": SENT,
    "sent mail": SENT,
    "draft": DRAFT,
    "drafts": DRAFT,
}


def classify_labels(labels: Iterable[str]) -> set[str]:
    """Map provider labels onto the inbox/sent/draft categories."""
    out: set[str] = set()
    for label in labels:
        category = _LABEL_CATEGORIES.get((label or "").strip().lower())
        if category:
            out.add(category)
    return out


def primary_label(labels: Iterable[str]) -> str:
    categories = classify_labels(labels)
    for category in (INBOX, SENT, DRAFT):
        if category in categories:
            return category
    return INBOX


@dataclass(frozen=True)
class Thread:
    id: str
    account_id: str
    subject: str = ""
    inbox_status: bool = False
    sent_status: bool = False
    draft_status: bool = False
    done: bool = False
    last_message_date: Optional[str] = None
    participants: list[str] = field(default_factory=list)
    emails: list[EmailMessage] = field(default_factory=list)
