"""Pick the best of several alternative provider fetch queries.

Providers return inconsistent result sets depending on the query mode
(field selection, date floors, folder scoping, page size). Instead of
trusting any single mode, every strategy is tried in order and the one
with the largest yield wins.

Flow:
1. Resolve the provider-side grant identifier (fall back to the local id)
2. Poll with a limit=1 check until the mailbox answers or the deadline passes;
   each check request is itself bounded by the time left
3. Run each strategy sequentially, recording (strategy, count, error)
4. Keep the items of the strategy with the largest count (first wins ties)
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Optional, Sequence

from loguru import logger

from inboxsync.application.ports.mail_provider import MailProvider, ProviderResponse
from inboxsync.domain.errors import CredentialError

ESSENTIAL_FIELDS = "id,thread_id,subject,body,snippet,from,to,cc,bcc,date,unread,starred,attachments,reply_to"
SYSTEM_FOLDERS = ("INBOX", "SENT", "DRAFT")
SECONDS_PER_DAY = 24 * 60 * 60
# Floor for the last check's own timeout once the deadline has passed
MIN_CHECK_SECONDS = 0.1


@dataclass(frozen=True)
class FetchStrategy:
    """One declarative query variant."""

    name: str
    limit: Optional[int] = None  # None -> use the requested limit
    select: Optional[str] = None
    received_after: Optional[int] = None
    recent_days: Optional[int] = None
    in_folders: tuple[str, ...] = ()

    @property
    def filtered(self) -> bool:
        return bool(
            self.select
            or self.received_after is not None
            or self.recent_days
            or self.in_folders
        )

    def effective_limit(self, requested: int) -> int:
        return self.limit if self.limit is not None else requested

    def filters(self, now: float) -> dict[str, Any]:
        out: dict[str, Any] = {}
        if self.select:
            out["select"] = self.select
        if self.received_after is not None:
            out["received_after"] = self.received_after
        if self.recent_days:
            out["received_after"] = int(now - self.recent_days * SECONDS_PER_DAY)
        if self.in_folders:
            out["in"] = ",".join(self.in_folders)
        return out


def default_strategies(high_limit: int = 500, recent_days: int = 30) -> tuple[FetchStrategy, ...]:
    return (
        FetchStrategy(name="unfiltered"),
        FetchStrategy(name="field_restricted", select=ESSENTIAL_FIELDS),
        FetchStrategy(name="all_time", received_after=0),
        FetchStrategy(name="recent", recent_days=recent_days),
        FetchStrategy(name="labels", in_folders=SYSTEM_FOLDERS),
        FetchStrategy(name="high_limit", limit=high_limit),
    )


DEFAULT_STRATEGIES = default_strategies()


class ReadinessStatus(str, Enum):
    READY = "ready"
    TIMED_OUT = "timed_out"
    ERROR = "error"


@dataclass(frozen=True)
class FetchAttempt:
    strategy: str
    count: int
    error: Optional[str] = None


@dataclass
class FetchResult:
    identifier: str
    items: list[dict[str, Any]] = field(default_factory=list)
    strategy: Optional[str] = None
    attempts: list[FetchAttempt] = field(default_factory=list)
    readiness: Optional[ReadinessStatus] = None

    @property
    def count(self) -> int:
        return len(self.items)


@dataclass
class ReadinessPoll:
    """Bounded wait for the mailbox to return anything at all.

    The check is called with the seconds left before the deadline and must
    not block longer than that. Sleeps never pass the deadline either, so
    `wait` returns within `timeout` plus at most MIN_CHECK_SECONDS.
    """

    timeout: float = 30.0
    interval: float = 2.0
    clock: Callable[[], float] = time.monotonic
    sleep: Callable[[float], None] = time.sleep

    def wait(self, check: Callable[[float], int]) -> ReadinessStatus:
        deadline = self.clock() + self.timeout
        last_error: Optional[Exception] = None

        while True:
            try:
                if check(max(deadline - self.clock(), MIN_CHECK_SECONDS)) > 0:
                    logger.info("Mailbox is ready, check returned results")
                    return ReadinessStatus.READY
                last_error = None
            except CredentialError:
                raise
            except Exception as e:
                last_error = e
                logger.debug(f"Readiness check failed: {e}")

            remaining = deadline - self.clock()
            if remaining <= 0:
                break
            self.sleep(min(self.interval, remaining))

        if last_error is not None:
            logger.warning(f"Readiness poll gave up after {self.timeout}s, last check error: {last_error}")
            return ReadinessStatus.ERROR

        logger.warning(f"Mailbox not ready after {self.timeout}s, continuing anyway")
        return ReadinessStatus.TIMED_OUT


class FetchStrategyResolver:
    """Runs the strategy list against one account and keeps the best yield."""

    def __init__(
        self,
        provider: MailProvider,
        account_id: str,
        strategies: Sequence[FetchStrategy] = DEFAULT_STRATEGIES,
        readiness: Optional[ReadinessPoll] = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.provider = provider
        self.account_id = account_id
        self.strategies = tuple(strategies)
        self.readiness = readiness or ReadinessPoll()
        self.clock = clock

    def resolve_identifier(self) -> str:
        """Provider grant id from the grant list, else a direct lookup of the
        stored id, else the stored id itself."""
        grant_id = self._listed_grant_id() or self._found_grant_id()
        if not grant_id:
            logger.debug(f"No grant found, using stored id {self.account_id}")
            return self.account_id
        return str(grant_id)

    def _listed_grant_id(self) -> Optional[str]:
        try:
            grants = self.provider.get_account_info().items
        except CredentialError:
            raise
        except Exception as e:
            logger.warning(f"Grant list lookup failed for {self.account_id}: {e}")
            return None
        return grants[0].get("id") if grants else None

    def _found_grant_id(self) -> Optional[str]:
        try:
            grant = self.provider.get_grant(self.account_id)
        except CredentialError:
            raise
        except Exception as e:
            logger.warning(f"Grant lookup by id failed for {self.account_id}: {e}")
            return None
        return grant.get("id")

    def wait_until_ready(self, identifier: str) -> ReadinessStatus:
        logger.info(f"Waiting for mailbox {identifier} to become ready")
        return self.readiness.wait(
            lambda remaining: len(self.provider.list_messages(identifier, 1, timeout=remaining).items)
        )

    def fetch_messages(self, limit: int = 100) -> FetchResult:
        identifier = self.resolve_identifier()
        readiness = self.wait_until_ready(identifier)
        now = self.clock()

        def call(strategy: FetchStrategy) -> ProviderResponse:
            return self.provider.list_messages(
                identifier,
                strategy.effective_limit(limit),
                offset=0,
                filters=strategy.filters(now) or None,
            )

        result = self._select(identifier, self.strategies, call)
        result.readiness = readiness
        return result

    def fetch_threads(self, limit: int = 100) -> FetchResult:
        """Same selection over list_threads, which takes no query filters."""
        identifier = self.resolve_identifier()
        readiness = self.wait_until_ready(identifier)
        strategies = [s for s in self.strategies if not s.filtered]

        def call(strategy: FetchStrategy) -> ProviderResponse:
            return self.provider.list_threads(identifier, strategy.effective_limit(limit), offset=0)

        result = self._select(identifier, strategies, call)
        result.readiness = readiness
        return result

    def _select(
        self,
        identifier: str,
        strategies: Sequence[FetchStrategy],
        call: Callable[[FetchStrategy], ProviderResponse],
    ) -> FetchResult:
        result = FetchResult(identifier=identifier)

        for strategy in strategies:
            try:
                items = call(strategy).items
            except CredentialError:
                raise
            except Exception as e:
                logger.warning(f"Strategy {strategy.name} failed for {identifier}: {e}")
                result.attempts.append(FetchAttempt(strategy=strategy.name, count=0, error=str(e)))
                continue

            logger.debug(f"Strategy {strategy.name} returned {len(items)} items")
            result.attempts.append(FetchAttempt(strategy=strategy.name, count=len(items)))

            if result.strategy is None or len(items) > len(result.items):
                result.strategy = strategy.name
                result.items = list(items)

        logger.info(
            f"Best result for {identifier}: {result.count} items "
            f"from strategy {result.strategy or '(none succeeded)'}"
        )
        return result
