"""Cost accounting for provider calls."""

from __future__ import annotations

from typing import TYPE_CHECKING

import structlog

from llm_router.models.usage import CostSummary, TimeWindow, UsageRecord, format_cost

from .ledger import InMemoryUsageLedger, UsageLedger

if TYPE_CHECKING:
    from llm_router.models.catalog import ModelDescriptor

logger = structlog.get_logger()


class CostTracker:
    """Computes per-call cost and keeps the per-organization usage ledger.

    Usage:
        tracker = CostTracker()
        record = await tracker.record_usage("org-1", model, 100, 50, task_label="chat")
        summary = await tracker.summarize("org-1")
    """

    def __init__(self, ledger: UsageLedger | None = None) -> None:
        """Initialize cost tracker.

        Args:
            ledger: Append-only store for usage records. Defaults to in-memory.
        """
        self._ledger = ledger if ledger is not None else InMemoryUsageLedger()

    @property
    def ledger(self) -> UsageLedger:
        return self._ledger

    async def record_usage(
        self,
        organization_id: str,
        model: ModelDescriptor,
        input_tokens: int,
        output_tokens: int,
        task_label: str | None = None,
    ) -> UsageRecord:
        """Compute cost and append a usage record to the ledger.

        Args:
            organization_id: Tenant the call was made for.
            model: Catalog entry whose rates apply.
            input_tokens: Provider-reported prompt tokens.
            output_tokens: Provider-reported completion tokens (0 for embeddings).
            task_label: Optional task tag.

        Returns:
            The stored UsageRecord.

        Raises:
            ValueError: If a token count is negative.
        """
        if input_tokens < 0 or output_tokens < 0:
            msg = "Token counts must be non-negative"
            raise ValueError(msg)

        record = UsageRecord(
            organization_id=organization_id,
            provider_name=model.provider_name,
            model_name=model.model_name,
            input_tokens=input_tokens,
            output_tokens=output_tokens,
            total_tokens=input_tokens + output_tokens,
            computed_cost=model.compute_cost(input_tokens, output_tokens),
            task_label=task_label,
        )
        await self._ledger.append(record)

        logger.debug(
            "usage_recorded",
            organization_id=organization_id,
            model=model.model_name,
            cost_usd=format_cost(record.computed_cost),
            tokens=record.total_tokens,
            task_label=task_label,
        )
        return record

    async def summarize(
        self,
        organization_id: str,
        window: TimeWindow | None = None,
    ) -> CostSummary:
        """Aggregate spend for one organization.

        Args:
            organization_id: Tenant to summarize.
            window: Optional [start, end) range on occurred_at.

        Returns:
            CostSummary folded over exactly that tenant's records.
        """
        records = await self._ledger.snapshot(organization_id, window)
        summary = CostSummary.from_records(organization_id, records)
        logger.debug(
            "cost_summary",
            organization_id=organization_id,
            total_cost=summary.display_cost(),
            requests=summary.request_count,
        )
        return summary

    async def records(self, organization_id: str | None = None) -> list[UsageRecord]:
        """Snapshot of stored records, optionally for one organization."""
        return await self._ledger.snapshot(organization_id)

    async def close(self) -> None:
        await self._ledger.close()
