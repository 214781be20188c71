"""Core configuration, errors and logging for the LLM router."""

from llm_router.core.config import (
    DEFAULT_BASE_URL,
    ModelEntryConfig,
    RouterConfig,
    load_config,
)
from llm_router.core.errors import (
    APIKeyError,
    ConfigurationError,
    InvalidRequestError,
    ModelNotFoundError,
    NoFeasibleModelError,
    ProviderError,
    RateLimitedError,
    RouterError,
    ValidationError,
)
from llm_router.core.logging import configure_logging

__all__ = [
    "DEFAULT_BASE_URL",
    "ModelEntryConfig",
    "RouterConfig",
    "configure_logging",
    "load_config",
    "APIKeyError",
    "ConfigurationError",
    "InvalidRequestError",
    "ModelNotFoundError",
    "NoFeasibleModelError",
    "ProviderError",
    "RateLimitedError",
    "RouterError",
    "ValidationError",
]
