import json

import httpx
import pytest

from inboxsync.application.ports.mail_provider import ArrayResponse, WrappedResponse
from inboxsync.domain.entities import Account
from inboxsync.domain.errors import CredentialError, ProviderError, ProviderResponseError
from inboxsync.infrastructure.email.providers.nylas import NylasMailClient

API = "https://api.test.nylas.com"


class Recorder:
    """MockTransport handler that records requests and answers from a fixed response."""

    def __init__(self, status_code=200, payload=None, content=None, exc=None):
        self.status_code = status_code
        self.payload = payload
        self.content = content
        self.exc = exc
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.exc is not None:
            raise self.exc
        if self.content is not None:
            return httpx.Response(self.status_code, content=self.content)
        return httpx.Response(self.status_code, json=self.payload)


def make_client(handler, token="token-abc123"):
    return NylasMailClient(token, api_uri=API, transport=httpx.MockTransport(handler))


def test_list_messages_sends_bearer_and_params():
    handler = Recorder(payload={"request_id": "r-1", "data": [{"id": "m1"}], "next_cursor": "c-2"})

    response = make_client(handler).list_messages(
        "grant-1", 50, offset=0, filters={"in": "INBOX,SENT,DRAFT", "received_after": 0}
    )

    request = handler.requests[0]
    assert request.method == "GET"
    assert request.url.path == "/v3/grants/grant-1/messages"
    assert request.headers["Authorization"] == "Bearer token-abc123"
    assert request.url.params["limit"] == "50"
    assert request.url.params["offset"] == "0"
    assert request.url.params["in"] == "INBOX,SENT,DRAFT"
    assert request.url.params["received_after"] == "0"
    assert response == WrappedResponse(items=[{"id": "m1"}], next_cursor="c-2", request_id="r-1")


def test_none_params_are_not_sent():
    handler = Recorder(payload=[])

    make_client(handler).list_messages("grant-1", 1)

    assert "offset" not in handler.requests[0].url.params


def test_bare_array_response():
    handler = Recorder(payload=[{"id": "t1"}, {"id": "t2"}])

    response = make_client(handler).list_threads("grant-1", 10, offset=0)

    assert handler.requests[0].url.path == "/v3/grants/grant-1/threads"
    assert response == ArrayResponse(items=[{"id": "t1"}, {"id": "t2"}])


def test_get_account_info_lists_grants():
    handler = Recorder(payload={"data": [{"id": "grant-9", "email": "me@example.com"}]})

    response = make_client(handler).get_account_info()

    assert handler.requests[0].url.path == "/v3/grants"
    assert response.items[0]["id"] == "grant-9"


def test_unexpected_shape_raises_response_error():
    handler = Recorder(payload={"data": {"id": "not-a-list"}})

    with pytest.raises(ProviderResponseError):
        make_client(handler).list_messages("grant-1", 10)


@pytest.mark.parametrize("status", [401, 403])
def test_rejected_credential(status):
    handler = Recorder(status_code=status, payload={"error": {"type": "unauthorized"}})

    with pytest.raises(CredentialError) as excinfo:
        make_client(handler).list_messages("grant-1", 10)

    assert excinfo.value.status_code == status


def test_server_error_is_provider_error():
    handler = Recorder(status_code=500, payload={"error": "internal"})

    with pytest.raises(ProviderError) as excinfo:
        make_client(handler).list_messages("grant-1", 10)

    assert excinfo.value.status_code == 500
    assert not isinstance(excinfo.value, CredentialError)


def test_timeout_is_provider_error():
    handler = Recorder(exc=httpx.ReadTimeout("slow"))

    with pytest.raises(ProviderError, match="timeout"):
        make_client(handler).list_threads("grant-1", 10)


def test_connection_error_is_provider_error():
    handler = Recorder(exc=httpx.ConnectError("refused"))

    with pytest.raises(ProviderError):
        make_client(handler).get_account_info()


def test_invalid_json_is_provider_error():
    handler = Recorder(content=b"<html>gateway</html>")

    with pytest.raises(ProviderError):
        make_client(handler).list_messages("grant-1", 10)


def test_create_and_send_draft():
    handler = Recorder(payload={"request_id": "r-1", "data": {"id": "draft-1", "object": "draft"}})
    client = make_client(handler)

    draft = client.create_draft("grant-1", {"subject": "Hi", "to": [{"name": "Bob", "email": "bob@x.com"}]})
    sent = client.send_draft("grant-1", draft["id"])

    create, send = handler.requests
    assert create.method == "POST"
    assert create.url.path == "/v3/grants/grant-1/drafts"
    assert json.loads(create.content)["subject"] == "Hi"
    assert send.method == "POST"
    assert send.url.path == "/v3/grants/grant-1/drafts/draft-1"
    assert draft["id"] == "draft-1"
    assert sent["object"] == "draft"


def test_empty_token_rejected():
    with pytest.raises(CredentialError):
        NylasMailClient("")


def test_token_hint_does_not_leak_token():
    client = NylasMailClient("supersecrettoken")

    assert client.token_hint == "supers..."


def test_for_account_uses_settings(test_settings):
    account = Account(id="acct-1", token="token-xyz")

    client = NylasMailClient.for_account(account, test_settings)

    assert client.api_uri == "https://api.test.nylas.com"
    assert client.timeout == test_settings.http_timeout_seconds


@pytest.mark.parametrize("per_call, expected", [(None, 30.0), (0.25, 0.25), (60.0, 30.0)])
def test_per_call_timeout_only_shortens(per_call, expected):
    handler = Recorder(payload=[])

    make_client(handler).list_messages("grant-1", 1, timeout=per_call)

    assert handler.requests[0].extensions["timeout"]["read"] == expected


def test_get_grant_by_id():
    handler = Recorder(payload={"request_id": "r-1", "data": {"id": "grant-9", "grant_status": "valid"}})

    grant = make_client(handler).get_grant("grant-9")

    assert handler.requests[0].url.path == "/v3/grants/grant-9"
    assert grant["id"] == "grant-9"


def test_get_grant_not_found():
    handler = Recorder(status_code=404, payload={"error": {"type": "not_found"}})

    with pytest.raises(ProviderError) as excinfo:
        make_client(handler).get_grant("missing")

    assert excinfo.value.status_code == 404
