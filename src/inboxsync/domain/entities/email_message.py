from __future__ import annotations
from dataclasses import dataclass, field


@dataclass(frozen=True)
class EmailAddress:
    name: str
    address: str  # identity key for recipient dedup


@dataclass(frozen=True)
class EmailAttachment:
    id: str
    name: str
    mime_type: str
    size: int
    inline: bool = False
    content_id: str = ""


@dataclass(frozen=True)
class EmailMessage:
    """Provider-agnostic message record shared by storage and UI.

    Every optional field carries a concrete default so consumers never
    branch on absence. Timestamps are ISO-8601 UTC strings.
    """

    id: str
    thread_id: str
    subject: str
    body: str
    body_snippet: str
    sent_at: str
    received_at: str
    sender: EmailAddress = field(default_factory=lambda: EmailAddress("", ""))
    to: list[EmailAddress] = field(default_factory=list)
    cc: list[EmailAddress] = field(default_factory=list)
    bcc: list[EmailAddress] = field(default_factory=list)
    reply_to: list[EmailAddress] = field(default_factory=list)
    internet_message_id: str = ""
    in_reply_to: str = ""
    references: str = ""
    has_attachments: bool = False
    attachments: list[EmailAttachment] = field(default_factory=list)
    sys_labels: list[str] = field(default_factory=list)
    email_label: str = "inbox"
    sensitivity: str = "normal"
    keywords: list[str] = field(default_factory=list)

    def participants(self) -> list[EmailAddress]:
        """Sender and all recipients, first occurrence per address wins."""
        seen: set[str] = set()
        out: list[EmailAddress] = []
        for addr in [self.sender, *self.to, *self.cc, *self.bcc, *self.reply_to]:
            if not addr.address or addr.address in seen:
                continue
            seen.add(addr.address)
            out.append(addr)
        return out
