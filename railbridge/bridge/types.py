"""Bridge types: configuration, results, queue jobs and retry policy."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from enum import Enum


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class BridgeConfig:
    """Polling bounds for bridge execution.

    Attributes:
        source_confirmation_attempts: Receipt polls before giving up on the source tx.
        source_confirmation_interval: Seconds between receipt polls.
        completion_attempts: Provider polls before giving up on the destination release.
        completion_interval: Seconds between provider polls.
    """

    source_confirmation_attempts: int = 30
    source_confirmation_interval: float = 2.0
    completion_attempts: int = 60
    completion_interval: float = 5.0


@dataclass
class BridgeResult:
    """Outcome of a completed bridge transfer."""

    bridge_tx: str
    destination_tx: str
    source_chain: str
    dest_chain: str
    message_id: str | None = None


@dataclass
class LiquidityQuote:
    """Destination liquidity observed for one asset."""

    has_liquidity: bool
    available_amount: int
    source_chain: str
    dest_chain: str
    asset: str


class BridgeStatus(str, Enum):
    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    DEAD_LETTER = "dead_letter"


@dataclass
class RetryPolicy:
    """Exponential backoff for bridge jobs.

    Attempt ``n`` (1-based) that fails is retried after
    ``min(base_delay * 2 ** (n - 1), max_delay)`` seconds, until
    ``max_attempts`` have failed.
    """

    max_attempts: int = 5
    base_delay: float = 2.0
    max_delay: float = 60.0

    def delay_for(self, attempt: int) -> float:
        return min(self.base_delay * (2 ** max(attempt - 1, 0)), self.max_delay)

    def exhausted(self, attempts: int) -> bool:
        return attempts >= self.max_attempts


@dataclass
class BridgeJob:
    """A bridge transfer owed after a successful source-chain settlement.

    ``bridge_tx`` is recorded as soon as the transfer is initiated so that a
    retried job resumes by polling instead of initiating a second time.
    """

    source_chain: str
    source_tx: str
    dest_chain: str
    asset: str
    amount: str
    recipient: str
    status: BridgeStatus = BridgeStatus.PENDING
    attempts: int = 0
    bridge_tx: str | None = None
    dest_tx: str | None = None
    last_error: str | None = None
    next_attempt_at: datetime = field(default_factory=utcnow)
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)

    @property
    def id(self) -> str:
        return job_id(self.source_chain, self.source_tx)

    def schedule_retry(self, error: str, delay: float) -> None:
        self.status = BridgeStatus.PENDING
        self.last_error = error
        self.next_attempt_at = utcnow() + timedelta(seconds=delay)
        self.updated_at = utcnow()

    def mark_completed(self, result: BridgeResult) -> None:
        self.status = BridgeStatus.COMPLETED
        self.bridge_tx = result.bridge_tx
        self.dest_tx = result.destination_tx
        self.last_error = None
        self.updated_at = utcnow()

    def mark_dead_letter(self, error: str) -> None:
        self.status = BridgeStatus.DEAD_LETTER
        self.last_error = error
        self.updated_at = utcnow()


def job_id(source_chain: str, source_tx: str) -> str:
    """Stable job id: one bridge per source settlement."""
    return f"{source_chain}:{source_tx}"
