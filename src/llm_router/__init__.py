"""LLM Router.

Cost-aware model selection, execution and per-organization usage
accounting for chat completions and embeddings.
"""

from llm_router.core.config import RouterConfig, load_config
from llm_router.models import (
    ChatMessage,
    ChatOptions,
    ChatResponse,
    CostSummary,
    EmbeddingResponse,
    ModelDescriptor,
    QualityTier,
    RoutingConstraints,
    UsageRecord,
)
from llm_router.router import LLMRouter, create_router
from llm_router.services.catalog import ModelCatalog
from llm_router.services.selector import select_model

__version__ = "0.1.0"
__all__ = [
    "ChatMessage",
    "ChatOptions",
    "ChatResponse",
    "CostSummary",
    "EmbeddingResponse",
    "LLMRouter",
    "ModelCatalog",
    "ModelDescriptor",
    "QualityTier",
    "RouterConfig",
    "RoutingConstraints",
    "UsageRecord",
    "__version__",
    "create_router",
    "load_config",
    "select_model",
]
