"""Per-request routing constraints."""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal

from llm_router.models.catalog import QualityTier


@dataclass(frozen=True)
class RoutingConstraints:
    """Cost/latency/quality/capability requirements for one request.

    Attributes:
        max_cost: Ceiling on a model's combined per-1k input+output rate.
            None means no ceiling; zero admits only free models.
        max_latency_ms: Ceiling on a model's expected latency. None means
            no ceiling.
        minimum_quality_tier: At-least filter on the model's quality tier.
        required_capabilities: Tags that must all be present on a candidate.
        task_label: Informational tag carried into logs and usage records.
        locale_hint: Informational tag; does not affect selection.
    """

    max_cost: Decimal | None = None
    max_latency_ms: int | None = None
    minimum_quality_tier: QualityTier = QualityTier.LOW
    required_capabilities: frozenset[str] = field(default_factory=frozenset)
    task_label: str | None = None
    locale_hint: str | None = None

    def __post_init__(self) -> None:
        if self.max_cost is not None:
            max_cost = Decimal(str(self.max_cost))
            if max_cost < 0:
                raise ValueError("max_cost must be >= 0")
            object.__setattr__(self, "max_cost", max_cost)
        if self.max_latency_ms is not None and self.max_latency_ms < 0:
            raise ValueError("max_latency_ms must be >= 0")
        object.__setattr__(self, "minimum_quality_tier", QualityTier(self.minimum_quality_tier))
        object.__setattr__(self, "required_capabilities", frozenset(self.required_capabilities))
