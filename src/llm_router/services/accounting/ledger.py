"""Append-only usage ledgers: in-memory and SQLModel-backed."""

from __future__ import annotations

import threading
from typing import TYPE_CHECKING, Protocol

import structlog
from sqlalchemy.pool import NullPool
from sqlmodel import Session, SQLModel, col, create_engine, select

from llm_router.core.errors import ValidationError
from llm_router.models.usage import TimeWindow, UsageRecord, UsageRow, to_naive_utc

from .repository import AsyncRepository

if TYPE_CHECKING:
    from sqlalchemy import Engine

logger = structlog.get_logger()

SUPPORTED_URL_SCHEMES = ("duckdb:///", "sqlite:///")


class UsageLedger(Protocol):
    """
    UsageLedger is the protocol every ledger backend satisfies.

    Records are only ever appended; snapshots return copies so callers can
    fold over them without holding any lock.
    """

    async def append(self, record: UsageRecord) -> None: ...

    async def snapshot(
        self,
        organization_id: str | None = None,
        window: TimeWindow | None = None,
    ) -> list[UsageRecord]: ...

    async def close(self) -> None: ...


class InMemoryUsageLedger:
    """List-backed ledger guarded by a lock.

    The lock is a threading lock, so writers on worker threads and tasks on
    the event loop are both serialized. No await happens while it is held.
    """

    def __init__(self) -> None:
        self._records: list[UsageRecord] = []
        self._lock = threading.Lock()

    async def append(self, record: UsageRecord) -> None:
        with self._lock:
            self._records.append(record)

    async def snapshot(
        self,
        organization_id: str | None = None,
        window: TimeWindow | None = None,
    ) -> list[UsageRecord]:
        with self._lock:
            records = list(self._records)
        return [
            record
            for record in records
            if (organization_id is None or record.organization_id == organization_id)
            and (window is None or window.contains(record.occurred_at))
        ]

    async def close(self) -> None:
        logger.debug("ledger_closed", backend="memory", records=len(self))

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)


class SQLUsageLedger(AsyncRepository):
    """Ledger persisted to a `usage_records` table through SQLModel.

    Usage:
        ledger = SQLUsageLedger(create_engine("duckdb:///usage.duckdb"))
        await ledger.append(record)
    """

    def __init__(self, engine: Engine) -> None:
        super().__init__(engine)
        SQLModel.metadata.create_all(engine, tables=[UsageRow.__table__])

    async def append(self, record: UsageRecord) -> None:
        row = UsageRow.from_record(record)

        def _save(session: Session) -> None:
            session.add(row)
            session.commit()

        await self._run_session(_save)

    async def snapshot(
        self,
        organization_id: str | None = None,
        window: TimeWindow | None = None,
    ) -> list[UsageRecord]:
        def _query(session: Session) -> list[UsageRecord]:
            statement = select(UsageRow)
            if organization_id is not None:
                statement = statement.where(UsageRow.organization_id == organization_id)
            if window is not None and window.start is not None:
                statement = statement.where(
                    col(UsageRow.occurred_at) >= to_naive_utc(window.start)
                )
            if window is not None and window.end is not None:
                statement = statement.where(col(UsageRow.occurred_at) < to_naive_utc(window.end))
            statement = statement.order_by(col(UsageRow.occurred_at))
            return [row.to_record() for row in session.exec(statement).all()]

        return await self._run_session(_query)

    async def close(self) -> None:
        self._engine.dispose()
        logger.debug("ledger_closed", backend="sql")


def create_ledger(database_url: str | None = None) -> UsageLedger:
    """Create a ledger for the given database URL.

    Args:
        database_url: `duckdb:///path` or `sqlite:///path`. None keeps usage
            in memory.

    Returns:
        UsageLedger instance.

    Raises:
        ValidationError: If the URL scheme is not supported.
    """
    if database_url is None:
        return InMemoryUsageLedger()

    if not database_url.startswith(SUPPORTED_URL_SCHEMES):
        raise ValidationError(
            "ledger_url",
            "Use a duckdb:/// or sqlite:/// URL, or omit it to keep usage in memory.",
        )

    # NullPool avoids sharing connections across worker threads
    engine = create_engine(database_url, poolclass=NullPool)
    logger.info("ledger_init", backend=database_url.split(":", 1)[0])
    return SQLUsageLedger(engine)
