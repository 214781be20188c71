"""Request and response shapes for chat and embedding calls."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Literal

from pydantic import BaseModel, Field, field_validator

from llm_router.models.routing import RoutingConstraints
from llm_router.models.usage import UsageRecord

DEFAULT_MAX_TOKENS = 1000
DEFAULT_TEMPERATURE = 0.7
DEFAULT_TOP_P = 1.0


class ChatMessage(BaseModel):
    """A single role-tagged conversation turn."""

    role: Literal["system", "user", "assistant"]
    content: str
    name: str | None = None

    def to_payload(self) -> dict[str, str]:
        payload = {"role": self.role, "content": self.content}
        if self.name:
            payload["name"] = self.name
        return payload


class ChatOptions(BaseModel):
    """Generation parameters and routing overrides for a chat call.

    Attributes:
        model: Explicit catalog model name; bypasses constraint selection.
        max_tokens: Requested output cap, further capped by the model's context.
        temperature: Sampling temperature in [0, 2].
        top_p: Nucleus sampling in [0, 1].
        stream: Must be False; streaming responses are not supported.
        constraints: Explicit routing constraints replacing the defaults.
        task_label: Tag recorded on the usage record when no constraints carry one.
    """

    model: str | None = None
    max_tokens: int | None = Field(default=None, gt=0)
    temperature: float | None = Field(default=None, ge=0.0, le=2.0)
    top_p: float | None = Field(default=None, ge=0.0, le=1.0)
    stream: bool = False
    constraints: RoutingConstraints | None = None
    task_label: str | None = None

    @field_validator("stream")
    @classmethod
    def validate_stream_disabled(cls, v: bool) -> bool:
        if v:
            raise ValueError("Streaming is not supported")
        return v

    def resolved_max_tokens(self, max_context_tokens: int) -> int:
        """Requested max tokens (default 1000) capped at the model context size."""
        return min(self.max_tokens or DEFAULT_MAX_TOKENS, max_context_tokens)

    def resolved_temperature(self) -> float:
        return DEFAULT_TEMPERATURE if self.temperature is None else self.temperature

    def resolved_top_p(self) -> float:
        return DEFAULT_TOP_P if self.top_p is None else self.top_p


@dataclass(frozen=True)
class ChatResult:
    """Normalized output of a provider chat call."""

    content: str
    input_tokens: int
    output_tokens: int
    finish_reason: str | None = None
    provider_model: str | None = None


@dataclass(frozen=True)
class EmbeddingResult:
    """Normalized output of a provider embeddings call."""

    vectors: list[list[float]]
    input_tokens: int


@dataclass(frozen=True)
class ChatResponse:
    """Envelope returned by the router for a chat completion."""

    provider_name: str
    model_name: str
    content: str
    usage: UsageRecord
    latency_ms: float
    metadata: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class EmbeddingResponse:
    """Envelope returned by the router for an embeddings call."""

    provider_name: str
    model_name: str
    content: list[list[float]]
    usage: UsageRecord
    latency_ms: float
    metadata: dict[str, Any] = field(default_factory=dict)
