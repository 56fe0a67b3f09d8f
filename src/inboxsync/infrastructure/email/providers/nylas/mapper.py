from __future__ import annotations
from datetime import datetime, timezone
from typing import Any, Iterable, Mapping, Optional

from inboxsync.domain.entities import EmailAddress, EmailAttachment, EmailMessage, primary_label
from inboxsync.domain.errors import MappingError


def _get(raw: Mapping[str, Any], *keys: str, default: Any = None) -> Any:
    # Nylas REST returns snake_case, the SDKs camelCase
    for key in keys:
        value = raw.get(key)
        if value is not None:
            return value
    return default


def epoch_to_iso(seconds: Any) -> str:
    """Epoch seconds -> '2024-01-01T00:00:00.000Z'."""
    if isinstance(seconds, bool) or not isinstance(seconds, (int, float)):
        raise MappingError(f"Invalid message date: {seconds!r}")
    try:
        dt = datetime.fromtimestamp(seconds, tz=timezone.utc)
    except (OverflowError, OSError, ValueError) as e:
        raise MappingError(f"Invalid message date: {seconds!r}") from e
    return dt.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def _address(entry: Any) -> EmailAddress:
    if isinstance(entry, str):
        return EmailAddress(name="", address=entry)
    if isinstance(entry, Mapping):
        return EmailAddress(
            name=entry.get("name") or "",
            address=_get(entry, "email", "address", default=""),
        )
    return EmailAddress(name="", address="")


def _addresses(entries: Optional[Iterable[Any]]) -> list[EmailAddress]:
    seen: set[str] = set()
    out: list[EmailAddress] = []
    for entry in entries or []:
        addr = _address(entry)
        if addr.address and addr.address in seen:
            continue
        seen.add(addr.address)
        out.append(addr)
    return out


def _attachments(message_id: str, entries: Optional[Iterable[Any]]) -> list[EmailAttachment]:
    out: list[EmailAttachment] = []
    for index, file in enumerate(entries or []):
        if not isinstance(file, Mapping):
            continue
        out.append(
            EmailAttachment(
                id=str(file.get("id") or f"{message_id}:{index}"),
                name=file.get("filename") or "",
                mime_type=_get(file, "content_type", "contentType", default=""),
                size=int(file.get("size") or 0),
                inline=bool(_get(file, "is_inline", "isInline", default=False)),
                content_id=_get(file, "content_id", "contentId", default=""),
            )
        )
    return out


def _label_names(raw: Mapping[str, Any]) -> list[str]:
    labels = raw.get("labels")
    if labels is None:
        labels = raw.get("folders")
    names: list[str] = []
    for label in labels or []:
        if isinstance(label, Mapping):
            name = label.get("name")
        else:
            name = label
        if name:
            names.append(str(name))
    return names


def _references(value: Any) -> str:
    if isinstance(value, (list, tuple)):
        return " ".join(str(v) for v in value if v)
    return str(value) if value else ""


def nylas_to_email_message(raw: Mapping[str, Any]) -> EmailMessage:
    """Convert one raw Nylas message into the canonical EmailMessage.

    Pure and deterministic. Fields the canonical schema does not know
    about are dropped.
    """
    if not isinstance(raw, Mapping):
        raise MappingError(f"Message is not an object: {type(raw).__name__}")

    message_id = raw.get("id")
    thread_id = _get(raw, "thread_id", "threadId")
    if not message_id:
        raise MappingError("Message has no id")
    if not thread_id:
        raise MappingError(f"Message {message_id} has no thread id")

    timestamp = epoch_to_iso(raw.get("date"))
    senders = _addresses(raw.get("from"))
    attachments = _attachments(str(message_id), _get(raw, "attachments", "files"))
    labels = _label_names(raw)

    return EmailMessage(
        id=str(message_id),
        thread_id=str(thread_id),
        subject=raw.get("subject") or "",
        body=raw.get("body") or "",
        body_snippet=raw.get("snippet") or "",
        sent_at=timestamp,
        received_at=timestamp,
        sender=senders[0] if senders else EmailAddress(name="", address=""),
        to=_addresses(raw.get("to")),
        cc=_addresses(raw.get("cc")),
        bcc=_addresses(raw.get("bcc")),
        reply_to=_addresses(_get(raw, "reply_to", "replyTo")),
        internet_message_id=_get(raw, "message_id", "messageId", default=""),
        in_reply_to=_get(raw, "in_reply_to", "inReplyTo", default=""),
        references=_references(raw.get("references")),
        has_attachments=len(attachments) > 0,
        attachments=attachments,
        sys_labels=labels,
        email_label=primary_label(labels),
    )
