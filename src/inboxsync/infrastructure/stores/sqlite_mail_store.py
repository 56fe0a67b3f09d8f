"""SQLite implementation of the mail store (accounts, threads, emails)."""

from __future__ import annotations

import json
import sqlite3
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Generator, Iterable, Optional

from loguru import logger

from inboxsync.application.ports.mail_store import MailStore
from inboxsync.domain.entities import (
    Account,
    EmailAddress,
    EmailAttachment,
    EmailMessage,
    Thread,
)
from inboxsync.domain.errors import PersistenceError

RECIPIENT_ROLES = ("to", "cc", "bcc", "reply_to")

# Thread status filter -> column
STATUS_COLUMNS = {
    "inbox": "inbox_status",
    "sent": "sent_status",
    "draft": "draft_status",
}


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


class SQLiteMailStore(MailStore):
    """Mail store backed by a single SQLite file.

    Every upsert is one INSERT ... ON CONFLICT statement keyed on the
    natural key, so concurrent syncs of different accounts only contend
    on SQLite's writer lock.
    """

    def __init__(self, db_path: str | Path = "/app/data/mail.db"):
        self.db_path = Path(db_path)
        self._ensure_db()

    def _ensure_db(self) -> None:
        """Create database and tables if they don't exist."""
        self.db_path.parent.mkdir(parents=True, exist_ok=True)

        with self._connection() as conn:
            conn.executescript("""
                PRAGMA journal_mode=WAL;

                CREATE TABLE IF NOT EXISTS accounts (
                    id TEXT PRIMARY KEY,
                    token TEXT NOT NULL UNIQUE,
                    provider TEXT NOT NULL DEFAULT '',
                    email_address TEXT NOT NULL DEFAULT '',
                    name TEXT NOT NULL DEFAULT '',
                    grant_id TEXT NOT NULL DEFAULT '',
                    created_at TEXT NOT NULL,
                    updated_at TEXT NOT NULL
                );

                CREATE TABLE IF NOT EXISTS threads (
                    account_id TEXT NOT NULL,
                    id TEXT NOT NULL,
                    subject TEXT NOT NULL DEFAULT '',
                    inbox_status INTEGER NOT NULL DEFAULT 0,
                    sent_status INTEGER NOT NULL DEFAULT 0,
                    draft_status INTEGER NOT NULL DEFAULT 0,
                    done INTEGER NOT NULL DEFAULT 0,
                    last_message_date TEXT,
                    participants_json TEXT NOT NULL DEFAULT '[]',
                    created_at TEXT NOT NULL,
                    updated_at TEXT NOT NULL,

                    PRIMARY KEY (account_id, id),
                    FOREIGN KEY (account_id) REFERENCES accounts(id)
                );

                CREATE TABLE IF NOT EXISTS email_addresses (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    account_id TEXT NOT NULL,
                    address TEXT NOT NULL,
                    name TEXT NOT NULL DEFAULT '',

                    UNIQUE (account_id, address)
                );

                CREATE TABLE IF NOT EXISTS emails (
                    account_id TEXT NOT NULL,
                    id TEXT NOT NULL,
                    thread_id TEXT NOT NULL,
                    internet_message_id TEXT NOT NULL DEFAULT '',
                    subject TEXT NOT NULL DEFAULT '',
                    body TEXT NOT NULL DEFAULT '',
                    body_snippet TEXT NOT NULL DEFAULT '',
                    sent_at TEXT NOT NULL,
                    received_at TEXT NOT NULL,
                    from_address_id INTEGER,
                    from_name TEXT NOT NULL DEFAULT '',
                    in_reply_to TEXT NOT NULL DEFAULT '',
                    message_references TEXT NOT NULL DEFAULT '',
                    has_attachments INTEGER NOT NULL DEFAULT 0,
                    sys_labels_json TEXT NOT NULL DEFAULT '[]',
                    email_label TEXT NOT NULL DEFAULT 'inbox',
                    sensitivity TEXT NOT NULL DEFAULT 'normal',
                    keywords_json TEXT NOT NULL DEFAULT '[]',

                    PRIMARY KEY (account_id, id),
                    FOREIGN KEY (account_id, thread_id) REFERENCES threads(account_id, id),
                    FOREIGN KEY (from_address_id) REFERENCES email_addresses(id)
                );

                CREATE TABLE IF NOT EXISTS email_recipients (
                    account_id TEXT NOT NULL,
                    email_id TEXT NOT NULL,
                    role TEXT NOT NULL CHECK(role IN ('to','cc','bcc','reply_to')),
                    address_id INTEGER NOT NULL,
                    name TEXT NOT NULL DEFAULT '',
                    position INTEGER NOT NULL,

                    PRIMARY KEY (account_id, email_id, role, address_id),
                    FOREIGN KEY (account_id, email_id) REFERENCES emails(account_id, id),
                    FOREIGN KEY (address_id) REFERENCES email_addresses(id)
                );

                CREATE TABLE IF NOT EXISTS attachments (
                    account_id TEXT NOT NULL,
                    id TEXT NOT NULL,
                    email_id TEXT NOT NULL,
                    name TEXT NOT NULL DEFAULT '',
                    mime_type TEXT NOT NULL DEFAULT '',
                    size INTEGER NOT NULL DEFAULT 0,
                    inline INTEGER NOT NULL DEFAULT 0,
                    content_id TEXT NOT NULL DEFAULT '',

                    PRIMARY KEY (account_id, id),
                    FOREIGN KEY (account_id, email_id) REFERENCES emails(account_id, id)
                );

                CREATE INDEX IF NOT EXISTS idx_threads_account_last
                    ON threads(account_id, last_message_date);
                CREATE INDEX IF NOT EXISTS idx_emails_thread_sent
                    ON emails(account_id, thread_id, sent_at);
            """)
            logger.info(f"SQLite mail store initialized at {self.db_path}")

    @contextmanager
    def _connection(self) -> Generator[sqlite3.Connection, None, None]:
        """Context manager for database connections."""
        conn = sqlite3.connect(self.db_path, timeout=30.0)
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA foreign_keys = ON")
        try:
            yield conn
            conn.commit()
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

    # Accounts

    def _row_to_account(self, row: sqlite3.Row) -> Account:
        return Account(
            id=row["id"],
            token=row["token"],
            provider=row["provider"],
            email_address=row["email_address"],
            name=row["name"],
            grant_id=row["grant_id"],
        )

    def get_account(self, account_id: str) -> Optional[Account]:
        with self._connection() as conn:
            row = conn.execute("SELECT * FROM accounts WHERE id = ?", (account_id,)).fetchone()
        return self._row_to_account(row) if row else None

    def upsert_account(self, account: Account) -> Account:
        """Upsert keyed by token; a known id with a new token is a re-authorization."""
        now = _now()
        with self._connection() as conn:
            existing = conn.execute("SELECT id FROM accounts WHERE token = ?", (account.token,)).fetchone()
            if existing is None:
                existing = conn.execute("SELECT id FROM accounts WHERE id = ?", (account.id,)).fetchone()

            if existing is None:
                conn.execute(
                    """INSERT INTO accounts
                       (id, token, provider, email_address, name, grant_id, created_at, updated_at)
                       VALUES (?, ?, ?, ?, ?, ?, ?, ?)""",
                    (account.id, account.token, account.provider, account.email_address,
                     account.name, account.grant_id, now, now),
                )
                logger.info(f"Created account {account.id} ({account.email_address})")
                account_id = account.id
            else:
                account_id = existing["id"]
                conn.execute(
                    """UPDATE accounts
                       SET token = ?, email_address = ?, name = ?, grant_id = ?, updated_at = ?
                       WHERE id = ?""",
                    (account.token, account.email_address, account.name, account.grant_id, now, account_id),
                )
                logger.info(f"Updated account {account_id} ({account.email_address})")

            row = conn.execute("SELECT * FROM accounts WHERE id = ?", (account_id,)).fetchone()
        return self._row_to_account(row)

    # Threads

    def _upsert_thread(self, conn: sqlite3.Connection, account_id: str, thread_id: str, subject: str) -> None:
        now = _now()
        conn.execute(
            """INSERT INTO threads (account_id, id, subject, created_at, updated_at)
               VALUES (?, ?, ?, ?, ?)
               ON CONFLICT(account_id, id) DO UPDATE SET
                   subject = CASE WHEN threads.subject = '' THEN excluded.subject ELSE threads.subject END,
                   updated_at = excluded.updated_at""",
            (account_id, thread_id, subject, now, now),
        )

    def update_thread_aggregates(
        self,
        account_id: str,
        thread_id: str,
        *,
        inbox_status: bool,
        sent_status: bool,
        draft_status: bool,
        last_message_date: Optional[str],
        participants: Iterable[str] = (),
    ) -> None:
        with self._connection() as conn:
            conn.execute(
                """UPDATE threads
                   SET inbox_status = ?, sent_status = ?, draft_status = ?,
                       last_message_date = ?, participants_json = ?, updated_at = ?
                   WHERE account_id = ? AND id = ?""",
                (int(inbox_status), int(sent_status), int(draft_status), last_message_date,
                 json.dumps(list(participants)), _now(), account_id, thread_id),
            )

    def set_thread_done(self, account_id: str, thread_id: str, done: bool) -> bool:
        with self._connection() as conn:
            cursor = conn.execute(
                "UPDATE threads SET done = ?, updated_at = ? WHERE account_id = ? AND id = ?",
                (int(done), _now(), account_id, thread_id),
            )
            return cursor.rowcount > 0

    def _row_to_thread(self, row: sqlite3.Row, emails: Optional[list[EmailMessage]] = None) -> Thread:
        return Thread(
            id=row["id"],
            account_id=row["account_id"],
            subject=row["subject"],
            inbox_status=bool(row["inbox_status"]),
            sent_status=bool(row["sent_status"]),
            draft_status=bool(row["draft_status"]),
            done=bool(row["done"]),
            last_message_date=row["last_message_date"],
            participants=json.loads(row["participants_json"] or "[]"),
            emails=emails or [],
        )

    def get_thread(self, account_id: str, thread_id: str, include_emails: bool = True) -> Optional[Thread]:
        with self._connection() as conn:
            row = conn.execute(
                "SELECT * FROM threads WHERE account_id = ? AND id = ?",
                (account_id, thread_id),
            ).fetchone()
            if row is None:
                return None
            emails = self._select_messages(conn, account_id, thread_id) if include_emails else []
        return self._row_to_thread(row, emails)

    def _thread_filter(self, account_id: str, status: Optional[str], done: Optional[bool]) -> tuple[str, list]:
        clauses = ["account_id = ?"]
        params: list = [account_id]
        column = STATUS_COLUMNS.get(status or "")
        if column:
            clauses.append(f"{column} = 1")
        if done is not None:
            clauses.append("done = ?")
            params.append(int(done))
        return " AND ".join(clauses), params

    def list_threads(
        self,
        account_id: str,
        status: Optional[str] = None,
        done: Optional[bool] = None,
        limit: int = 50,
        offset: int = 0,
    ) -> list[Thread]:
        """Threads newest first, each with its emails newest first."""
        where, params = self._thread_filter(account_id, status, done)
        with self._connection() as conn:
            rows = conn.execute(
                f"""SELECT * FROM threads WHERE {where}
                    ORDER BY last_message_date IS NULL, last_message_date DESC
                    LIMIT ? OFFSET ?""",
                (*params, limit, offset),
            ).fetchall()
            return [
                self._row_to_thread(
                    row, self._select_messages(conn, account_id, row["id"], newest_first=True)
                )
                for row in rows
            ]

    def count_threads(self, account_id: str, status: Optional[str] = None) -> int:
        where, params = self._thread_filter(account_id, status, None)
        with self._connection() as conn:
            row = conn.execute(f"SELECT COUNT(*) AS n FROM threads WHERE {where}", params).fetchone()
        return int(row["n"])

    # Email addresses

    def _upsert_address(self, conn: sqlite3.Connection, account_id: str, addr: EmailAddress) -> Optional[int]:
        if not addr.address:
            return None
        conn.execute(
            """INSERT INTO email_addresses (account_id, address, name)
               VALUES (?, ?, ?)
               ON CONFLICT(account_id, address) DO UPDATE SET
                   name = CASE WHEN excluded.name != '' THEN excluded.name ELSE email_addresses.name END""",
            (account_id, addr.address, addr.name),
        )
        row = conn.execute(
            "SELECT id FROM email_addresses WHERE account_id = ? AND address = ?",
            (account_id, addr.address),
        ).fetchone()
        return int(row["id"])

    def search_email_addresses(self, account_id: str, query: str, limit: int = 5) -> list[EmailAddress]:
        with self._connection() as conn:
            rows = conn.execute(
                """SELECT name, address FROM email_addresses
                   WHERE account_id = ? AND instr(lower(address), lower(?)) > 0
                   ORDER BY address
                   LIMIT ?""",
                (account_id, query, limit),
            ).fetchall()
        return [EmailAddress(name=row["name"], address=row["address"]) for row in rows]

    # Emails

    def upsert_message(self, account_id: str, msg: EmailMessage) -> None:
        """Store a message together with its thread row, recipients and attachments.

        One transaction: a failure anywhere leaves no thread, email or link
        rows behind for this message.
        """
        try:
            with self._connection() as conn:
                self._upsert_thread(conn, account_id, msg.thread_id, msg.subject)
                from_id = self._upsert_address(conn, account_id, msg.sender)
                conn.execute(
                    """INSERT INTO emails
                       (account_id, id, thread_id, internet_message_id, subject, body, body_snippet,
                        sent_at, received_at, from_address_id, from_name, in_reply_to, message_references,
                        has_attachments, sys_labels_json, email_label, sensitivity, keywords_json)
                       VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                       ON CONFLICT(account_id, id) DO UPDATE SET
                           thread_id = excluded.thread_id,
                           internet_message_id = excluded.internet_message_id,
                           subject = excluded.subject,
                           body = excluded.body,
                           body_snippet = excluded.body_snippet,
                           sent_at = excluded.sent_at,
                           received_at = excluded.received_at,
                           from_address_id = excluded.from_address_id,
                           from_name = excluded.from_name,
                           in_reply_to = excluded.in_reply_to,
                           message_references = excluded.message_references,
                           has_attachments = excluded.has_attachments,
                           sys_labels_json = excluded.sys_labels_json,
                           email_label = excluded.email_label,
                           sensitivity = excluded.sensitivity,
                           keywords_json = excluded.keywords_json""",
                    (account_id, msg.id, msg.thread_id, msg.internet_message_id, msg.subject, msg.body,
                     msg.body_snippet, msg.sent_at, msg.received_at, from_id, msg.sender.name,
                     msg.in_reply_to, msg.references, int(msg.has_attachments),
                     json.dumps(msg.sys_labels), msg.email_label, msg.sensitivity, json.dumps(msg.keywords)),
                )

                # Recipient and attachment rows are rewritten so a re-sync reflects the current lists
                conn.execute(
                    "DELETE FROM email_recipients WHERE account_id = ? AND email_id = ?",
                    (account_id, msg.id),
                )
                for role in RECIPIENT_ROLES:
                    for position, addr in enumerate(getattr(msg, role)):
                        address_id = self._upsert_address(conn, account_id, addr)
                        if address_id is None:
                            continue
                        conn.execute(
                            """INSERT OR IGNORE INTO email_recipients
                               (account_id, email_id, role, address_id, name, position)
                               VALUES (?, ?, ?, ?, ?, ?)""",
                            (account_id, msg.id, role, address_id, addr.name, position),
                        )

                conn.execute(
                    "DELETE FROM attachments WHERE account_id = ? AND email_id = ?",
                    (account_id, msg.id),
                )
                for att in msg.attachments:
                    conn.execute(
                        """INSERT INTO attachments
                           (account_id, id, email_id, name, mime_type, size, inline, content_id)
                           VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                           ON CONFLICT(account_id, id) DO UPDATE SET
                               email_id = excluded.email_id,
                               name = excluded.name,
                               mime_type = excluded.mime_type,
                               size = excluded.size,
                               inline = excluded.inline,
                               content_id = excluded.content_id""",
                        (account_id, att.id, msg.id, att.name, att.mime_type, att.size,
                         int(att.inline), att.content_id),
                    )
        except sqlite3.Error as e:
            raise PersistenceError(f"Failed to store message {msg.id}: {e}") from e

        logger.debug(f"Upserted email {account_id}:{msg.id} in thread {msg.thread_id}")

    def list_thread_messages(
        self,
        account_id: str,
        thread_id: str,
        newest_first: bool = False,
        limit: Optional[int] = None,
    ) -> list[EmailMessage]:
        with self._connection() as conn:
            return self._select_messages(conn, account_id, thread_id, newest_first=newest_first, limit=limit)

    def _select_messages(
        self,
        conn: sqlite3.Connection,
        account_id: str,
        thread_id: str,
        newest_first: bool = False,
        limit: Optional[int] = None,
    ) -> list[EmailMessage]:
        order = "DESC" if newest_first else "ASC"
        rows = conn.execute(
            f"""SELECT e.*, a.address AS from_address
                FROM emails e LEFT JOIN email_addresses a ON a.id = e.from_address_id
                WHERE e.account_id = ? AND e.thread_id = ?
                ORDER BY e.sent_at {order}, e.id {order}
                LIMIT ?""",
            (account_id, thread_id, -1 if limit is None else limit),
        ).fetchall()
        return [self._load_message(conn, row) for row in rows]

    def _load_message(self, conn: sqlite3.Connection, row: sqlite3.Row) -> EmailMessage:
        recipients: dict[str, list[EmailAddress]] = {role: [] for role in RECIPIENT_ROLES}
        for r in conn.execute(
            """SELECT r.role, r.name, a.address
               FROM email_recipients r JOIN email_addresses a ON a.id = r.address_id
               WHERE r.account_id = ? AND r.email_id = ?
               ORDER BY r.role, r.position""",
            (row["account_id"], row["id"]),
        ):
            recipients[r["role"]].append(EmailAddress(name=r["name"], address=r["address"]))

        attachments = [
            EmailAttachment(
                id=a["id"],
                name=a["name"],
                mime_type=a["mime_type"],
                size=a["size"],
                inline=bool(a["inline"]),
                content_id=a["content_id"],
            )
            for a in conn.execute(
                "SELECT * FROM attachments WHERE account_id = ? AND email_id = ? ORDER BY id",
                (row["account_id"], row["id"]),
            )
        ]

        return EmailMessage(
            id=row["id"],
            thread_id=row["thread_id"],
            subject=row["subject"],
            body=row["body"],
            body_snippet=row["body_snippet"],
            sent_at=row["sent_at"],
            received_at=row["received_at"],
            sender=EmailAddress(name=row["from_name"], address=row["from_address"] or ""),
            to=recipients["to"],
            cc=recipients["cc"],
            bcc=recipients["bcc"],
            reply_to=recipients["reply_to"],
            internet_message_id=row["internet_message_id"],
            in_reply_to=row["in_reply_to"],
            references=row["message_references"],
            has_attachments=bool(row["has_attachments"]),
            attachments=attachments,
            sys_labels=json.loads(row["sys_labels_json"] or "[]"),
            email_label=row["email_label"],
            sensitivity=row["sensitivity"],
            keywords=json.loads(row["keywords_json"] or "[]"),
        )


# Singleton instance
_store: SQLiteMailStore | None = None


def get_mail_store(db_path: str | None = None) -> SQLiteMailStore:
    """Get or create the SQLite mail store singleton."""
    global _store
    if _store is None:
        from inboxsync.infrastructure.settings import get_settings
        settings = get_settings()
        _store = SQLiteMailStore(db_path=db_path or settings.sqlite_db_path)
    return _store
