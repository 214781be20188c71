"""Data types for the LLM router."""

from llm_router.models.catalog import (
    ANALYSIS,
    BASIC_REASONING,
    CREATIVITY,
    EMBEDDINGS,
    MULTIMODAL,
    REASONING,
    ModelDescriptor,
    QualityTier,
)
from llm_router.models.messages import (
    ChatMessage,
    ChatOptions,
    ChatResponse,
    ChatResult,
    EmbeddingResponse,
    EmbeddingResult,
)
from llm_router.models.routing import RoutingConstraints
from llm_router.models.usage import CostSummary, TimeWindow, UsageRecord, UsageRow, format_cost

__all__ = [
    "ANALYSIS",
    "BASIC_REASONING",
    "CREATIVITY",
    "EMBEDDINGS",
    "MULTIMODAL",
    "REASONING",
    "ChatMessage",
    "ChatOptions",
    "ChatResponse",
    "ChatResult",
    "CostSummary",
    "EmbeddingResponse",
    "EmbeddingResult",
    "ModelDescriptor",
    "QualityTier",
    "RoutingConstraints",
    "TimeWindow",
    "UsageRecord",
    "UsageRow",
    "format_cost",
]
