from __future__ import annotations
from dataclasses import dataclass


@dataclass(frozen=True)
class Account:
    """An authorized mailbox connection.

    `id` is the local row id; `grant_id` is the provider-side handle when
    the authorization exchange returned one.
    """

    id: str
    token: str
    provider: str = "google"
    email_address: str = ""
    name: str = ""
    grant_id: str = ""
