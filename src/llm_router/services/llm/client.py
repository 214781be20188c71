"""Provider execution adapters with response normalization and error mapping."""

from __future__ import annotations

import asyncio
import hashlib
import math
from abc import ABC, abstractmethod
from collections.abc import Sequence
from typing import TYPE_CHECKING, Any

import httpx
import structlog
from tenacity import (
    AsyncRetrying,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
)

from llm_router.core.config import DEFAULT_BASE_URL
from llm_router.core.errors import (
    InvalidRequestError,
    ProviderError,
    RateLimitedError,
    RouterError,
)
from llm_router.models.messages import ChatMessage, ChatOptions, ChatResult, EmbeddingResult

if TYPE_CHECKING:
    from llm_router.models.catalog import ModelDescriptor

logger = structlog.get_logger()


class ProviderAdapter(ABC):
    """Abstract base class for async provider adapters.

    Implementations perform exactly one outbound call per operation and hold
    no state between calls beyond a connection pool.
    """

    @abstractmethod
    async def execute_chat(
        self,
        model: ModelDescriptor,
        messages: Sequence[ChatMessage],
        params: ChatOptions,
    ) -> ChatResult:
        """Generate a chat completion.

        Args:
            model: Catalog entry to invoke.
            messages: Ordered conversation turns.
            params: Generation parameters.

        Returns:
            ChatResult with content and provider-reported token usage.
        """

    @abstractmethod
    async def execute_embeddings(
        self,
        model: ModelDescriptor,
        input_texts: Sequence[str],
    ) -> EmbeddingResult:
        """Generate one embedding vector per input text, in input order.

        Args:
            model: Embeddings-capable catalog entry.
            input_texts: One or more strings to embed.

        Returns:
            EmbeddingResult with vectors and provider-reported input tokens.
        """

    async def close(self) -> None:  # noqa: B027
        """Close any resources. Override if needed."""


def _token_count(usage: dict[str, Any], key: str) -> int:
    value = usage.get(key)
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        msg = f"Malformed provider response: usage.{key} is not a token count ({value!r})"
        raise ProviderError(msg)
    return value


def _usage_block(data: dict[str, Any]) -> dict[str, Any]:
    usage = data.get("usage")
    if not isinstance(usage, dict):
        msg = "Provider response missing usage data"
        raise ProviderError(msg)
    return usage


def normalize_chat_payload(data: Any) -> ChatResult:
    """Map an OpenAI-style chat completion body onto a ChatResult.

    Raises:
        ProviderError: If content or usage cannot be extracted.
    """
    if not isinstance(data, dict):
        msg = "Malformed provider response: expected a JSON object"
        raise ProviderError(msg)
    try:
        choice = data["choices"][0]
        message = choice["message"]
    except (KeyError, IndexError, TypeError):
        msg = "Malformed provider response: missing choices[0].message"
        raise ProviderError(msg) from None

    usage = _usage_block(data)
    return ChatResult(
        content=message.get("content") or "",
        input_tokens=_token_count(usage, "prompt_tokens"),
        output_tokens=_token_count(usage, "completion_tokens"),
        finish_reason=choice.get("finish_reason"),
        provider_model=data.get("model"),
    )


def normalize_embedding_payload(data: Any, expected_count: int) -> EmbeddingResult:
    """Map an OpenAI-style embeddings body onto an EmbeddingResult.

    Items are ordered by their reported index so vectors[i] matches input i.

    Raises:
        ProviderError: If vectors or usage cannot be extracted, or the number
            of vectors differs from the number of inputs.
    """
    if not isinstance(data, dict) or not isinstance(data.get("data"), list):
        msg = "Malformed provider response: missing data list"
        raise ProviderError(msg)
    try:
        items = sorted(data["data"], key=lambda item: item["index"])
        vectors = [[float(x) for x in item["embedding"]] for item in items]
    except (KeyError, TypeError, ValueError):
        msg = "Malformed provider response: invalid embedding item"
        raise ProviderError(msg) from None

    if len(vectors) != expected_count:
        msg = f"Provider returned {len(vectors)} embeddings for {expected_count} inputs"
        raise ProviderError(msg)

    usage = _usage_block(data)
    return EmbeddingResult(vectors=vectors, input_tokens=_token_count(usage, "prompt_tokens"))


def _retry_after_seconds(response: httpx.Response) -> float | None:
    header = response.headers.get("retry-after")
    if header is None:
        return None
    try:
        return max(float(header), 0.0)
    except ValueError:
        return None


def _error_detail(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.text[:200]
    error = body.get("error") if isinstance(body, dict) else None
    if isinstance(error, dict):
        return str(error.get("message", error))
    return str(error or body)[:200]


def classify_http_error(response: httpx.Response, model_name: str) -> RouterError:
    """Translate a non-2xx provider response into the router's error taxonomy."""
    status = response.status_code
    detail = _error_detail(response)
    if status == 429:
        return RateLimitedError(
            f"Provider rate limited the request: {detail}",
            retry_after=_retry_after_seconds(response),
            model_name=model_name,
        )
    if status >= 500:
        return ProviderError(
            f"Provider server error {status}: {detail}",
            status_code=status,
            model_name=model_name,
        )
    return InvalidRequestError(
        f"Provider rejected the request ({status}): {detail}",
        status_code=status,
        model_name=model_name,
    )


def _is_retryable(exc: BaseException) -> bool:
    return isinstance(exc, RouterError) and exc.retryable


class OpenAIAdapter(ProviderAdapter):
    """Async adapter for OpenAI-compatible chat and embeddings endpoints."""

    def __init__(
        self,
        api_key: str,
        base_url: str = DEFAULT_BASE_URL,
        timeout: float = 60.0,
        max_attempts: int = 1,
        retry_backoff: float = 1.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        """Initialize adapter.

        Args:
            api_key: Provider API key.
            base_url: API root; chat and embeddings paths are appended.
            timeout: Per-request timeout in seconds.
            max_attempts: Attempts for retryable failures. 1 disables retries.
            retry_backoff: Exponential backoff multiplier in seconds.
            client: Optional preconfigured HTTP client.
        """
        if max_attempts < 1:
            msg = "max_attempts must be >= 1"
            raise ValueError(msg)
        self.base_url = base_url.rstrip("/")
        self.max_attempts = max_attempts
        self.retry_backoff = retry_backoff
        self.client = client or httpx.AsyncClient(
            timeout=timeout,
            headers={
                "Authorization": f"Bearer {api_key}",
                "Content-Type": "application/json",
            },
        )

    async def execute_chat(
        self,
        model: ModelDescriptor,
        messages: Sequence[ChatMessage],
        params: ChatOptions,
    ) -> ChatResult:
        max_tokens = params.resolved_max_tokens(model.max_context_tokens)
        payload = {
            "model": model.model_name,
            "messages": [message.to_payload() for message in messages],
            "max_tokens": max_tokens,
            "temperature": params.resolved_temperature(),
            "top_p": params.resolved_top_p(),
            "stream": False,
        }
        logger.info("provider_chat_call", model=model.model_name, max_tokens=max_tokens)
        data = await self._post("/chat/completions", payload, model.model_name)
        result = normalize_chat_payload(data)
        logger.debug(
            "provider_chat_response",
            model=model.model_name,
            prompt_tokens=result.input_tokens,
            completion_tokens=result.output_tokens,
            finish_reason=result.finish_reason,
        )
        return result

    async def execute_embeddings(
        self,
        model: ModelDescriptor,
        input_texts: Sequence[str],
    ) -> EmbeddingResult:
        payload = {"model": model.model_name, "input": list(input_texts)}
        logger.info("provider_embeddings_call", model=model.model_name, inputs=len(input_texts))
        data = await self._post("/embeddings", payload, model.model_name)
        result = normalize_embedding_payload(data, len(input_texts))
        logger.debug(
            "provider_embeddings_response",
            model=model.model_name,
            prompt_tokens=result.input_tokens,
        )
        return result

    async def _post(self, path: str, payload: dict[str, Any], model_name: str) -> Any:
        if self.max_attempts == 1:
            return await self._send(path, payload, model_name)

        retrying = AsyncRetrying(
            stop=stop_after_attempt(self.max_attempts),
            wait=wait_exponential(multiplier=self.retry_backoff, max=30),
            retry=retry_if_exception(_is_retryable),
            reraise=True,
        )
        async for attempt in retrying:
            with attempt:
                return await self._send(path, payload, model_name)
        msg = "retry loop exited without a result"
        raise RuntimeError(msg)

    async def _send(self, path: str, payload: dict[str, Any], model_name: str) -> Any:
        """Make one API call and map failures onto router errors.

        Raises:
            RateLimitedError: On 429.
            ProviderError: On 5xx, transport failures and non-JSON bodies.
            InvalidRequestError: On other 4xx.
        """
        try:
            response = await self.client.post(f"{self.base_url}{path}", json=payload)
        except httpx.RequestError as exc:
            logger.warning("provider_call_failed", model=model_name, error=str(exc))
            raise ProviderError(
                f"Provider request failed: {exc.__class__.__name__}: {exc}",
                model_name=model_name,
            ) from exc

        if response.is_error:
            error = classify_http_error(response, model_name)
            logger.warning(
                "provider_call_failed",
                model=model_name,
                status=response.status_code,
                retryable=error.retryable,
            )
            raise error

        try:
            return response.json()
        except ValueError as exc:
            msg = "Malformed provider response: body is not JSON"
            raise ProviderError(msg, model_name=model_name) from exc

    async def close(self) -> None:
        """Close HTTP client."""
        await self.client.aclose()


class FakeProviderAdapter(ProviderAdapter):
    """Deterministic offline adapter for tests and dry runs."""

    def __init__(self, seed: int = 42, embedding_dimensions: int = 8, delay: float = 0.0) -> None:
        """Initialize fake adapter.

        Args:
            seed: Seed mixed into generated embedding vectors.
            embedding_dimensions: Length of each generated vector.
            delay: Simulated provider latency in seconds.
        """
        self.seed = seed
        self.embedding_dimensions = embedding_dimensions
        self.delay = delay
        self.chat_calls = 0
        self.embedding_calls = 0

    async def execute_chat(
        self,
        model: ModelDescriptor,
        messages: Sequence[ChatMessage],
        params: ChatOptions,
    ) -> ChatResult:
        if self.delay:
            await asyncio.sleep(self.delay)
        self.chat_calls += 1

        last_content = messages[-1].content if messages else ""
        content = f"[{model.model_name}] {last_content}".strip()
        words = content.split()
        max_tokens = params.resolved_max_tokens(model.max_context_tokens)
        # Simulate token counts from word counts
        input_tokens = sum(len(m.content.split()) for m in messages) * 2
        output_tokens = min(len(words) * 2, max_tokens)
        return ChatResult(
            content=content,
            input_tokens=input_tokens,
            output_tokens=output_tokens,
            finish_reason="stop",
            provider_model=model.model_name,
        )

    async def execute_embeddings(
        self,
        model: ModelDescriptor,
        input_texts: Sequence[str],
    ) -> EmbeddingResult:
        if self.delay:
            await asyncio.sleep(self.delay)
        self.embedding_calls += 1

        vectors = [self._vector(text) for text in input_texts]
        input_tokens = sum(max(len(text.split()), 1) for text in input_texts)
        return EmbeddingResult(vectors=vectors, input_tokens=input_tokens)

    def _vector(self, text: str) -> list[float]:
        digest = hashlib.sha256(f"{self.seed}:{text}".encode()).digest()
        raw = [
            (digest[i % len(digest)] / 255.0) - 0.5 for i in range(self.embedding_dimensions)
        ]
        norm = math.sqrt(sum(x * x for x in raw)) or 1.0
        return [x / norm for x in raw]


def create_adapter(
    api_key: str | None = None,
    base_url: str = DEFAULT_BASE_URL,
    timeout: float = 60.0,
    max_attempts: int = 1,
    dry_run: bool = False,
    seed: int = 42,
) -> ProviderAdapter:
    """Create appropriate provider adapter based on settings.

    Args:
        api_key: Provider API key (required unless dry_run).
        base_url: Root URL of an OpenAI-compatible API.
        timeout: Per-request timeout in seconds.
        max_attempts: Attempts per call for retryable failures.
        dry_run: Use fake adapter instead of real API.
        seed: Random seed for fake adapter.

    Returns:
        ProviderAdapter instance.
    """
    if dry_run:
        logger.info("using_fake_adapter", seed=seed)
        return FakeProviderAdapter(seed=seed)

    if not api_key:
        msg = "API key required for real API calls"
        raise ValueError(msg)

    return OpenAIAdapter(api_key, base_url=base_url, timeout=timeout, max_attempts=max_attempts)
