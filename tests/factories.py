from __future__ import annotations

from typing import Any, Optional, Sequence, Union

from inboxsync.application.ports.mail_provider import ArrayResponse, WrappedResponse
from inboxsync.domain.entities import EmailAddress, EmailAttachment, EmailMessage

# 2024-01-01T00:00:00Z
BASE_EPOCH = 1704067200

Result = Union[Sequence[dict], Exception]


def raw_message(**overrides: Any) -> dict[str, Any]:
    """A Nylas v3 message as returned by GET /messages."""
    msg: dict[str, Any] = {
        "id": "msg-1",
        "grant_id": "grant-1",
        "object": "message",
        "thread_id": "thread-1",
        "subject": "Meeting notes",
        "body": "<p>Notes attached</p>",
        "snippet": "Notes attached",
        "date": BASE_EPOCH,
        "from": [{"name": "Alice", "email": "alice@example.com"}],
        "to": [{"name": "Bob", "email": "bob@example.com"}],
        "cc": [{"name": "", "email": "carol@example.com"}],
        "bcc": [],
        "reply_to": [],
        "attachments": [
            {
                "id": "att-1",
                "filename": "notes.pdf",
                "content_type": "application/pdf",
                "size": 2048,
                "is_inline": False,
            }
        ],
        "folders": ["INBOX"],
        "unread": True,
        "starred": False,
    }
    msg.update(overrides)
    return msg


def raw_messages(count: int, prefix: str = "m") -> list[dict[str, Any]]:
    return [
        raw_message(id=f"{prefix}-{i}", thread_id=f"{prefix}-thread-{i % 3}", date=BASE_EPOCH + i * 60)
        for i in range(count)
    ]


def make_email(**overrides: Any) -> EmailMessage:
    fields: dict[str, Any] = dict(
        id="msg-1",
        thread_id="thread-1",
        subject="Meeting notes",
        body="Notes attached",
        body_snippet="Notes attached",
        sent_at="2024-01-01T00:00:00.000Z",
        received_at="2024-01-01T00:00:00.000Z",
        sender=EmailAddress("Alice", "alice@example.com"),
        to=[EmailAddress("Bob", "bob@example.com")],
        cc=[EmailAddress("", "carol@example.com")],
        sys_labels=["INBOX"],
        email_label="inbox",
        attachments=[EmailAttachment(id="att-1", name="notes.pdf", mime_type="application/pdf", size=2048)],
        has_attachments=True,
    )
    fields.update(overrides)
    if "received_at" not in overrides and "sent_at" in overrides:
        fields["received_at"] = overrides["sent_at"]
    return EmailMessage(**fields)


class FakeMailProvider:
    """In-memory MailProvider.

    `variant_results` are consumed one per strategy call (list_messages with
    an offset); the readiness check (limit=1, no offset) answers from
    `ready_items`. `grants` answers the grant list and `grant` the lookup
    by id, which defaults to an empty object.
    """

    def __init__(
        self,
        variant_results: Optional[list[Result]] = None,
        thread_results: Optional[list[Result]] = None,
        ready_items: Optional[list[dict]] = None,
        grants: Union[list[dict], Exception, None] = None,
        grant: Union[dict, Exception, None] = None,
        draft: Union[dict, Exception, None] = None,
        sent: Union[dict, Exception, None] = None,
        wrapped: bool = False,
    ) -> None:
        self.variant_results = list(variant_results or [])
        self.thread_results = list(thread_results or [])
        self.ready_items = ready_items if ready_items is not None else [{"id": "ready-1"}]
        self.grants = grants if grants is not None else []
        self.grant = grant if grant is not None else {}
        self.draft = draft if draft is not None else {"id": "draft-1"}
        self.sent = sent if sent is not None else {"id": "sent-1"}
        self.wrapped = wrapped
        self.calls: list[tuple] = []

    def _respond(self, result: Result):
        if isinstance(result, Exception):
            raise result
        if self.wrapped:
            return WrappedResponse(items=list(result))
        return ArrayResponse(items=list(result))

    def list_messages(self, identifier, limit, offset=None, filters=None, timeout=None):
        if offset is None and filters is None and limit == 1:
            self.calls.append(("ready_check", identifier, limit, timeout))
            return ArrayResponse(items=list(self.ready_items))
        self.calls.append(("list_messages", identifier, limit, dict(filters or {})))
        result = self.variant_results.pop(0) if self.variant_results else []
        return self._respond(result)

    def list_threads(self, identifier, limit, offset=None):
        self.calls.append(("list_threads", identifier, limit))
        result = self.thread_results.pop(0) if self.thread_results else []
        return self._respond(result)

    def get_account_info(self):
        self.calls.append(("get_account_info",))
        if isinstance(self.grants, Exception):
            raise self.grants
        return ArrayResponse(items=list(self.grants))

    def get_grant(self, grant_id):
        self.calls.append(("get_grant", grant_id))
        if isinstance(self.grant, Exception):
            raise self.grant
        return self.grant

    def create_draft(self, identifier, payload):
        self.calls.append(("create_draft", identifier, payload))
        if isinstance(self.draft, Exception):
            raise self.draft
        return self.draft

    def send_draft(self, identifier, draft_id):
        self.calls.append(("send_draft", identifier, draft_id))
        if isinstance(self.sent, Exception):
            raise self.sent
        return self.sent

    def calls_named(self, name: str) -> list[tuple]:
        return [c for c in self.calls if c[0] == name]


def items(count: int, prefix: str = "x") -> list[dict]:
    return [{"id": f"{prefix}-{i}"} for i in range(count)]


class FakeClock:
    """Monotonic clock whose sleep advances time instantly."""

    def __init__(self, start: float = 0.0) -> None:
        self.now = start
        self.sleeps: list[float] = []

    def __call__(self) -> float:
        return self.now

    def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds
