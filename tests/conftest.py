from collections.abc import Sequence

import pytest

from llm_router.models import ChatMessage, ChatOptions, ChatResult, EmbeddingResult
from llm_router.models.catalog import ModelDescriptor
from llm_router.router import LLMRouter
from llm_router.services.accounting import CostTracker
from llm_router.services.catalog import ModelCatalog
from llm_router.services.llm import ProviderAdapter


class StubAdapter(ProviderAdapter):
    """Adapter returning fixed usage figures and recording every call."""

    def __init__(self) -> None:
        self.chat_result = ChatResult(
            content="ok",
            input_tokens=100,
            output_tokens=50,
            finish_reason="stop",
        )
        self.error: Exception | None = None
        self.chat_calls: list[tuple[str, list[ChatMessage], ChatOptions]] = []
        self.embedding_calls: list[tuple[str, list[str]]] = []
        self.closed = False

    async def execute_chat(
        self,
        model: ModelDescriptor,
        messages: Sequence[ChatMessage],
        params: ChatOptions,
    ) -> ChatResult:
        self.chat_calls.append((model.model_name, list(messages), params))
        if self.error is not None:
            raise self.error
        return self.chat_result

    async def execute_embeddings(
        self,
        model: ModelDescriptor,
        input_texts: Sequence[str],
    ) -> EmbeddingResult:
        self.embedding_calls.append((model.model_name, list(input_texts)))
        if self.error is not None:
            raise self.error
        return EmbeddingResult(
            vectors=[[float(i), 1.0] for i in range(len(input_texts))],
            input_tokens=7 * len(input_texts),
        )

    async def close(self) -> None:
        self.closed = True


@pytest.fixture()
def catalog() -> ModelCatalog:
    """
    built-in catalog: gpt-4o (high), gpt-4o-mini (medium),
    gpt-3.5-turbo (low) and text-embedding-3-small.
    """
    return ModelCatalog()


@pytest.fixture()
def stub_adapter() -> StubAdapter:
    return StubAdapter()


@pytest.fixture()
def tracker() -> CostTracker:
    return CostTracker()


@pytest.fixture()
def router(stub_adapter: StubAdapter, catalog: ModelCatalog, tracker: CostTracker) -> LLMRouter:
    return LLMRouter(stub_adapter, catalog=catalog, cost_tracker=tracker)
