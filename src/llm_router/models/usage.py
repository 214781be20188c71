"""Usage accounting types and the persisted usage table."""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import UTC, datetime
from decimal import ROUND_HALF_UP, Decimal

from sqlmodel import Field, SQLModel

_DISPLAY_QUANTUM = Decimal("0.000001")


def to_naive_utc(moment: datetime) -> datetime:
    """Convert to a naive UTC datetime for columns without timezone support."""
    if moment.tzinfo is None:
        return moment
    return moment.astimezone(UTC).replace(tzinfo=None)


def format_cost(cost: Decimal) -> str:
    """Render a cost for display, rounded to 6 decimal places."""
    return str(cost.quantize(_DISPLAY_QUANTUM, rounding=ROUND_HALF_UP))


@dataclass(frozen=True)
class UsageRecord:
    """Immutable accounting entry for one completed provider call."""

    organization_id: str
    provider_name: str
    model_name: str
    input_tokens: int
    output_tokens: int
    total_tokens: int
    computed_cost: Decimal
    occurred_at: datetime = field(default_factory=lambda: datetime.now(UTC))
    task_label: str | None = None
    request_id: str = field(default_factory=lambda: str(uuid.uuid4()))

    def __post_init__(self) -> None:
        if self.input_tokens < 0 or self.output_tokens < 0:
            raise ValueError("Token counts must be non-negative")
        if self.total_tokens != self.input_tokens + self.output_tokens:
            raise ValueError(
                f"total_tokens must equal input_tokens + output_tokens, got {self.total_tokens}"
            )
        if self.computed_cost < 0:
            raise ValueError("computed_cost must be >= 0")


@dataclass(frozen=True)
class TimeWindow:
    """Half-open time range [start, end). Either bound may be open."""

    start: datetime | None = None
    end: datetime | None = None

    def __post_init__(self) -> None:
        if self.start is not None and self.end is not None and self.end <= self.start:
            raise ValueError("TimeWindow end must be after start")

    def contains(self, moment: datetime) -> bool:
        if self.start is not None and moment < self.start:
            return False
        return not (self.end is not None and moment >= self.end)


@dataclass(frozen=True)
class CostSummary:
    """Aggregated spend for one organization."""

    organization_id: str
    total_cost: Decimal
    total_tokens: int
    request_count: int
    cost_by_model: dict[str, Decimal]

    @property
    def breakdown(self) -> dict[str, Decimal]:
        return self.cost_by_model

    def display_cost(self) -> str:
        return format_cost(self.total_cost)

    @classmethod
    def from_records(cls, organization_id: str, records: list[UsageRecord]) -> CostSummary:
        """Fold usage records into a summary.

        Args:
            organization_id: Tenant the records belong to.
            records: Records already filtered to the tenant and time window.

        Returns:
            CostSummary with exact (unrounded) totals.
        """
        total_cost = Decimal(0)
        total_tokens = 0
        cost_by_model: dict[str, Decimal] = {}
        for record in records:
            total_cost += record.computed_cost
            total_tokens += record.total_tokens
            cost_by_model[record.model_name] = (
                cost_by_model.get(record.model_name, Decimal(0)) + record.computed_cost
            )
        return cls(
            organization_id=organization_id,
            total_cost=total_cost,
            total_tokens=total_tokens,
            request_count=len(records),
            cost_by_model=cost_by_model,
        )


class UsageRow(SQLModel, table=True):
    """Persisted form of a UsageRecord."""

    __tablename__ = "usage_records"

    id: str = Field(primary_key=True)
    organization_id: str = Field(index=True)
    provider_name: str
    model_name: str = Field(index=True)
    input_tokens: int
    output_tokens: int
    total_tokens: int
    # Decimal string; kept as text so no precision is lost in storage
    computed_cost: str
    occurred_at: datetime = Field(index=True)
    task_label: str | None = Field(default=None, index=True)

    @classmethod
    def from_record(cls, record: UsageRecord) -> UsageRow:
        return cls(
            id=record.request_id,
            organization_id=record.organization_id,
            provider_name=record.provider_name,
            model_name=record.model_name,
            input_tokens=record.input_tokens,
            output_tokens=record.output_tokens,
            total_tokens=record.total_tokens,
            computed_cost=str(record.computed_cost),
            occurred_at=to_naive_utc(record.occurred_at),
            task_label=record.task_label,
        )

    def to_record(self) -> UsageRecord:
        occurred_at = self.occurred_at
        # SQLite and DuckDB hand back naive datetimes; stored values are UTC
        if occurred_at.tzinfo is None:
            occurred_at = occurred_at.replace(tzinfo=UTC)
        return UsageRecord(
            organization_id=self.organization_id,
            provider_name=self.provider_name,
            model_name=self.model_name,
            input_tokens=self.input_tokens,
            output_tokens=self.output_tokens,
            total_tokens=self.total_tokens,
            computed_cost=Decimal(self.computed_cost),
            occurred_at=occurred_at,
            task_label=self.task_label,
            request_id=self.id,
        )
