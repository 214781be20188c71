from .client import (
    FakeProviderAdapter,
    OpenAIAdapter,
    ProviderAdapter,
    classify_http_error,
    create_adapter,
    normalize_chat_payload,
    normalize_embedding_payload,
)

__all__ = [
    "FakeProviderAdapter",
    "OpenAIAdapter",
    "ProviderAdapter",
    "classify_http_error",
    "create_adapter",
    "normalize_chat_payload",
    "normalize_embedding_payload",
]
