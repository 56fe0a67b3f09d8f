from inboxsync.domain.entities.account import Account
from inboxsync.domain.entities.email_message import EmailAddress, EmailAttachment, EmailMessage
from inboxsync.domain.entities.thread import DRAFT, INBOX, SENT, Thread, classify_labels, primary_label

__all__ = [
    "Account",
    "EmailAddress",
    "EmailAttachment",
    "EmailMessage",
    "Thread",
    "INBOX",
    "SENT",
    "DRAFT",
    "classify_labels",
    "primary_label",
]
