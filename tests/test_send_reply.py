import pytest

from inboxsync.application.use_cases.merge_emails import EmailMergeEngine
from inboxsync.application.use_cases.send_reply import (
    OutgoingEmail,
    SendCoordinator,
    build_reply,
    draft_payload,
    reply_subject,
)
from inboxsync.domain.entities import EmailAddress
from inboxsync.domain.errors import DraftCreateError, DraftSendError, ProviderError, ThreadNotFoundError
from tests.factories import FakeMailProvider, make_email


@pytest.mark.parametrize(
    "subject, expected",
    [
        ("Meeting notes", "Re: Meeting notes"),
        ("Re: Meeting notes", "Re: Meeting notes"),
        ("RE: Budget", "RE: Budget"),
        ("", "Re: "),
    ],
)
def test_reply_subject(subject, expected):
    assert reply_subject(subject) == expected


def test_build_reply_from_latest_message():
    original = make_email(references="<root@x>", thread_id="thread-9")

    reply = build_reply(original, "Thanks!")

    assert reply.subject == "Re: Meeting notes"
    assert reply.body == "Thanks!"
    assert reply.to == [EmailAddress("Bob", "bob@example.com")]
    assert reply.cc == [EmailAddress("", "carol@example.com")]
    assert reply.reply_to == EmailAddress("Alice", "alice@example.com")
    assert reply.in_reply_to == "msg-1"
    assert reply.references == "<root@x>"
    assert reply.thread_id == "thread-9"


def test_build_reply_without_sender_has_no_reply_to():
    reply = build_reply(make_email(sender=EmailAddress("", "")), "ok")

    assert reply.reply_to is None


def test_draft_payload_shape():
    payload = draft_payload(
        OutgoingEmail(
            subject="Hello",
            body="<p>Hi</p>",
            to=[EmailAddress("", "bob@example.com")],
            bcc=[EmailAddress("Audit", "audit@example.com")],
            reply_to=EmailAddress("Alice", "alice@example.com"),
            in_reply_to="msg-1",
            thread_id="thread-1",
        )
    )

    assert payload == {
        "subject": "Hello",
        "body": "<p>Hi</p>",
        "to": [{"name": "bob@example.com", "email": "bob@example.com"}],
        "cc": [],
        "bcc": [{"name": "Audit", "email": "audit@example.com"}],
        "reply_to": [{"name": "Alice", "email": "alice@example.com"}],
        "reply_to_message_id": "msg-1",
        "thread_id": "thread-1",
    }


def test_draft_payload_omits_empty_threading_fields():
    payload = draft_payload(OutgoingEmail(subject="s", body="b", to=[]))

    assert "reply_to_message_id" not in payload
    assert "references" not in payload
    assert "thread_id" not in payload
    assert payload["reply_to"] == []


def test_send_uses_returned_draft_id():
    provider = FakeMailProvider(draft={"id": "draft-77"}, sent={"id": "sent-5", "thread_id": "thread-1"})

    result = SendCoordinator(provider, "grant-1").send(build_reply(make_email(), "Thanks!"))

    assert result.draft_id == "draft-77"
    assert result.message_id == "sent-5"
    assert provider.calls_named("send_draft") == [("send_draft", "grant-1", "draft-77")]
    _, identifier, payload = provider.calls_named("create_draft")[0]
    assert identifier == "grant-1"
    assert payload["subject"] == "Re: Meeting notes"


def test_send_handles_enveloped_draft_response():
    provider = FakeMailProvider(draft={"request_id": "r-1", "data": {"id": "draft-env"}})

    result = SendCoordinator(provider, "grant-1").send(OutgoingEmail(subject="s", body="b", to=[]))

    assert result.draft_id == "draft-env"


def test_missing_draft_id_aborts_before_send():
    provider = FakeMailProvider(draft={"data": {"object": "draft"}})

    with pytest.raises(DraftCreateError):
        SendCoordinator(provider, "grant-1").send(OutgoingEmail(subject="s", body="b", to=[]))

    assert provider.calls_named("send_draft") == []


def test_draft_creation_failure_aborts_before_send():
    provider = FakeMailProvider(draft=ProviderError("HTTP 500", status_code=500))

    with pytest.raises(DraftCreateError) as excinfo:
        SendCoordinator(provider, "grant-1").send(OutgoingEmail(subject="s", body="b", to=[]))

    assert isinstance(excinfo.value.__cause__, ProviderError)
    assert provider.calls_named("send_draft") == []


def test_send_failure_reports_draft_id():
    provider = FakeMailProvider(draft={"id": "draft-3"}, sent=ProviderError("HTTP 502", status_code=502))

    with pytest.raises(DraftSendError) as excinfo:
        SendCoordinator(provider, "grant-1").send(OutgoingEmail(subject="s", body="b", to=[]))

    assert excinfo.value.draft_id == "draft-3"


def test_reply_targets_latest_message_in_thread(store, account):
    EmailMergeEngine(store).merge(
        account.id,
        [
            make_email(id="old", sent_at="2024-01-01T00:00:00.000Z"),
            make_email(
                id="new",
                subject="Re: Meeting notes",
                sent_at="2024-01-02T00:00:00.000Z",
                sender=EmailAddress("Bob", "bob@example.com"),
                to=[EmailAddress("Me", "me@example.com")],
                cc=[],
            ),
        ],
    )
    provider = FakeMailProvider()

    result = SendCoordinator(provider, account.grant_id).reply(store, account.id, "thread-1", "Sounds good")

    assert result.draft_id == "draft-1"
    payload = provider.calls_named("create_draft")[0][2]
    assert payload["subject"] == "Re: Meeting notes"
    assert payload["reply_to_message_id"] == "new"
    assert payload["reply_to"] == [{"name": "Bob", "email": "bob@example.com"}]
    assert payload["thread_id"] == "thread-1"


def test_reply_to_unknown_thread_raises(store, account):
    provider = FakeMailProvider()

    with pytest.raises(ThreadNotFoundError):
        SendCoordinator(provider, account.grant_id).reply(store, account.id, "missing", "hi")

    assert provider.calls == []
