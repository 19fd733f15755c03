"""Persistence for bridge jobs.

``InMemoryBridgeJobStore`` keeps jobs for the life of the process.
``SqlBridgeJobStore`` persists them through SQLAlchemy's async engine so
jobs survive a restart between settlement and bridge completion.
"""

from __future__ import annotations

import asyncio
import dataclasses
import logging
from datetime import datetime, timezone
from typing import Protocol, runtime_checkable

from sqlalchemy import Column, DateTime, Integer, String, Text, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncEngine, async_sessionmaker, create_async_engine
from sqlalchemy.orm import declarative_base

from .types import BridgeJob, BridgeStatus, utcnow

logger = logging.getLogger(__name__)


@runtime_checkable
class BridgeJobStore(Protocol):
    """Storage contract used by ``BridgeQueue``.

    Jobs are claimed by moving them from ``pending`` to ``in_progress``; only
    the claimer may save further changes.
    """

    async def initialize(self) -> None: ...

    async def add(self, job: BridgeJob) -> bool:
        """Insert ``job``; False if a job with the same id already exists."""
        ...

    async def get(self, job_id: str) -> BridgeJob | None: ...

    async def save(self, job: BridgeJob) -> None: ...

    async def claim_due(self, now: datetime, limit: int) -> list[BridgeJob]: ...

    async def list_by_status(self, status: BridgeStatus) -> list[BridgeJob]: ...

    async def reset_in_progress(self) -> int:
        """Return interrupted jobs to ``pending``; returns how many."""
        ...

    async def close(self) -> None: ...


class InMemoryBridgeJobStore:
    """Process-local job store."""

    def __init__(self) -> None:
        self._jobs: dict[str, BridgeJob] = {}
        self._lock = asyncio.Lock()

    async def initialize(self) -> None:
        return None

    async def add(self, job: BridgeJob) -> bool:
        async with self._lock:
            if job.id in self._jobs:
                return False
            self._jobs[job.id] = dataclasses.replace(job)
            return True

    async def get(self, job_id: str) -> BridgeJob | None:
        job = self._jobs.get(job_id)
        return dataclasses.replace(job) if job else None

    async def save(self, job: BridgeJob) -> None:
        async with self._lock:
            self._jobs[job.id] = dataclasses.replace(job)

    async def claim_due(self, now: datetime, limit: int) -> list[BridgeJob]:
        async with self._lock:
            due = sorted(
                (
                    job
                    for job in self._jobs.values()
                    if job.status == BridgeStatus.PENDING and job.next_attempt_at <= now
                ),
                key=lambda job: job.next_attempt_at,
            )[:limit]
            claimed = []
            for job in due:
                job.status = BridgeStatus.IN_PROGRESS
                job.updated_at = utcnow()
                claimed.append(dataclasses.replace(job))
            return claimed

    async def list_by_status(self, status: BridgeStatus) -> list[BridgeJob]:
        return [dataclasses.replace(job) for job in self._jobs.values() if job.status == status]

    async def reset_in_progress(self) -> int:
        async with self._lock:
            count = 0
            for job in self._jobs.values():
                if job.status == BridgeStatus.IN_PROGRESS:
                    job.status = BridgeStatus.PENDING
                    count += 1
            return count

    async def close(self) -> None:
        return None


Base = declarative_base()


class BridgeJobModel(Base):
    """ORM model for the bridge_jobs table."""

    __tablename__ = "bridge_jobs"

    id = Column(String, primary_key=True)
    source_chain = Column(String, nullable=False)
    source_tx = Column(String, nullable=False)
    dest_chain = Column(String, nullable=False)
    asset = Column(String, nullable=False)
    amount = Column(String, nullable=False)
    recipient = Column(String, nullable=False)
    status = Column(String, nullable=False, index=True)
    attempts = Column(Integer, nullable=False, default=0)
    bridge_tx = Column(String)
    dest_tx = Column(String)
    last_error = Column(Text)
    next_attempt_at = Column(DateTime, nullable=False, index=True)
    created_at = Column(DateTime, nullable=False)
    updated_at = Column(DateTime, nullable=False)


def _to_db_time(value: datetime) -> datetime:
    # Stored as naive UTC; SQLite drops tzinfo.
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


def _from_db_time(value: datetime) -> datetime:
    return value.replace(tzinfo=timezone.utc) if value.tzinfo is None else value


def _to_job(row: BridgeJobModel) -> BridgeJob:
    return BridgeJob(
        source_chain=row.source_chain,
        source_tx=row.source_tx,
        dest_chain=row.dest_chain,
        asset=row.asset,
        amount=row.amount,
        recipient=row.recipient,
        status=BridgeStatus(row.status),
        attempts=row.attempts,
        bridge_tx=row.bridge_tx,
        dest_tx=row.dest_tx,
        last_error=row.last_error,
        next_attempt_at=_from_db_time(row.next_attempt_at),
        created_at=_from_db_time(row.created_at),
        updated_at=_from_db_time(row.updated_at),
    )


def _row_values(job: BridgeJob) -> dict[str, object]:
    return {
        "id": job.id,
        "source_chain": job.source_chain,
        "source_tx": job.source_tx,
        "dest_chain": job.dest_chain,
        "asset": job.asset,
        "amount": job.amount,
        "recipient": job.recipient,
        "status": job.status.value,
        "attempts": job.attempts,
        "bridge_tx": job.bridge_tx,
        "dest_tx": job.dest_tx,
        "last_error": job.last_error,
        "next_attempt_at": _to_db_time(job.next_attempt_at),
        "created_at": _to_db_time(job.created_at),
        "updated_at": _to_db_time(job.updated_at),
    }


class SqlBridgeJobStore:
    """Bridge job ledger backed by an SQLAlchemy async engine.

    Args:
        database_url: Async SQLAlchemy URL, e.g. ``sqlite+aiosqlite:///bridge.db``.
        engine: Pre-built engine (overrides ``database_url``).
    """

    def __init__(self, database_url: str | None = None, engine: AsyncEngine | None = None) -> None:
        if engine is None:
            if database_url is None:
                raise ValueError("database_url or engine is required")
            engine = create_async_engine(database_url, pool_pre_ping=True)
        self._engine = engine
        self._sessions = async_sessionmaker(engine, expire_on_commit=False)

    async def initialize(self) -> None:
        async with self._engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    async def add(self, job: BridgeJob) -> bool:
        async with self._sessions() as session:
            session.add(BridgeJobModel(**_row_values(job)))
            try:
                await session.commit()
            except IntegrityError:
                await session.rollback()
                return False
        return True

    async def get(self, job_id: str) -> BridgeJob | None:
        async with self._sessions() as session:
            row = await session.get(BridgeJobModel, job_id)
            return _to_job(row) if row else None

    async def save(self, job: BridgeJob) -> None:
        values = _row_values(job)
        async with self._sessions() as session:
            await session.execute(
                update(BridgeJobModel).where(BridgeJobModel.id == values.pop("id")).values(**values)
            )
            await session.commit()

    async def claim_due(self, now: datetime, limit: int) -> list[BridgeJob]:
        claimed: list[BridgeJob] = []
        async with self._sessions() as session:
            result = await session.execute(
                select(BridgeJobModel)
                .where(BridgeJobModel.status == BridgeStatus.PENDING.value)
                .where(BridgeJobModel.next_attempt_at <= _to_db_time(now))
                .order_by(BridgeJobModel.next_attempt_at)
                .limit(limit)
            )
            candidates = [_to_job(row) for row in result.scalars().all()]

            for job in candidates:
                # Conditional update so two workers never claim the same job.
                outcome = await session.execute(
                    update(BridgeJobModel)
                    .where(BridgeJobModel.id == job.id)
                    .where(BridgeJobModel.status == BridgeStatus.PENDING.value)
                    .values(
                        status=BridgeStatus.IN_PROGRESS.value,
                        updated_at=_to_db_time(utcnow()),
                    )
                )
                if outcome.rowcount == 1:
                    job.status = BridgeStatus.IN_PROGRESS
                    claimed.append(job)
            await session.commit()
        return claimed

    async def list_by_status(self, status: BridgeStatus) -> list[BridgeJob]:
        async with self._sessions() as session:
            result = await session.execute(
                select(BridgeJobModel)
                .where(BridgeJobModel.status == status.value)
                .order_by(BridgeJobModel.created_at)
            )
            return [_to_job(row) for row in result.scalars().all()]

    async def reset_in_progress(self) -> int:
        async with self._sessions() as session:
            outcome = await session.execute(
                update(BridgeJobModel)
                .where(BridgeJobModel.status == BridgeStatus.IN_PROGRESS.value)
                .values(status=BridgeStatus.PENDING.value)
            )
            await session.commit()
            return outcome.rowcount or 0

    async def close(self) -> None:
        await self._engine.dispose()
