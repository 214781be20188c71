"""Catalog entry types: quality tiers, capability tags and model descriptors."""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum

REASONING = "reasoning"
BASIC_REASONING = "basic_reasoning"
CREATIVITY = "creativity"
ANALYSIS = "analysis"
MULTIMODAL = "multimodal"
EMBEDDINGS = "embeddings"

_THOUSAND = Decimal(1000)


class QualityTier(str, Enum):
    """Ordered quality classification: low < medium < high."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"

    @property
    def rank(self) -> int:
        return _TIER_RANK[self]

    def __ge__(self, other: object) -> bool:
        if not isinstance(other, QualityTier):
            return NotImplemented
        return self.rank >= other.rank

    def __gt__(self, other: object) -> bool:
        if not isinstance(other, QualityTier):
            return NotImplemented
        return self.rank > other.rank

    def __le__(self, other: object) -> bool:
        if not isinstance(other, QualityTier):
            return NotImplemented
        return self.rank <= other.rank

    def __lt__(self, other: object) -> bool:
        if not isinstance(other, QualityTier):
            return NotImplemented
        return self.rank < other.rank


_TIER_RANK = {QualityTier.LOW: 0, QualityTier.MEDIUM: 1, QualityTier.HIGH: 2}


@dataclass(frozen=True)
class ModelDescriptor:
    """Immutable description of one invocable backing model."""

    provider_name: str
    model_name: str
    max_context_tokens: int
    cost_per_1k_input: Decimal  # USD per 1000 input tokens
    cost_per_1k_output: Decimal  # USD per 1000 output tokens
    expected_latency_ms: int
    quality_tier: QualityTier
    capabilities: frozenset[str] = field(default_factory=frozenset)

    def __post_init__(self) -> None:
        if not self.model_name or not self.model_name.strip():
            raise ValueError("model_name cannot be empty")
        if self.max_context_tokens <= 0:
            raise ValueError(f"max_context_tokens must be > 0 for {self.model_name}")
        if self.expected_latency_ms <= 0:
            raise ValueError(f"expected_latency_ms must be > 0 for {self.model_name}")
        # Accept str/float/int rates but always store Decimal
        for name in ("cost_per_1k_input", "cost_per_1k_output"):
            value = Decimal(str(getattr(self, name)))
            if value < 0:
                raise ValueError(f"{name} must be >= 0 for {self.model_name}")
            object.__setattr__(self, name, value)
        object.__setattr__(self, "quality_tier", QualityTier(self.quality_tier))
        object.__setattr__(self, "capabilities", frozenset(self.capabilities))

    @property
    def combined_rate(self) -> Decimal:
        """Input plus output rate per 1000 tokens, used for ranking."""
        return self.cost_per_1k_input + self.cost_per_1k_output

    @property
    def supports_embeddings(self) -> bool:
        return EMBEDDINGS in self.capabilities

    def compute_cost(self, input_tokens: int, output_tokens: int) -> Decimal:
        """Compute the exact cost of a call.

        Args:
            input_tokens: Number of prompt tokens.
            output_tokens: Number of completion tokens.

        Returns:
            Unrounded cost in USD.
        """
        input_cost = (Decimal(input_tokens) / _THOUSAND) * self.cost_per_1k_input
        output_cost = (Decimal(output_tokens) / _THOUSAND) * self.cost_per_1k_output
        return input_cost + output_cost
