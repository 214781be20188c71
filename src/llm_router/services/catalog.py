"""Static registry of the backing models the router can invoke."""

from __future__ import annotations

from collections.abc import Iterable, Iterator
from decimal import Decimal
from typing import TYPE_CHECKING

from llm_router.core.errors import ModelNotFoundError
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

if TYPE_CHECKING:
    from llm_router.core.config import ModelEntryConfig

DEFAULT_MODELS: tuple[ModelDescriptor, ...] = (
    ModelDescriptor(
        provider_name="openai",
        model_name="gpt-4o",
        max_context_tokens=128000,
        cost_per_1k_input=Decimal("0.005"),
        cost_per_1k_output=Decimal("0.015"),
        expected_latency_ms=2000,
        quality_tier=QualityTier.HIGH,
        capabilities=frozenset({REASONING, CREATIVITY, ANALYSIS, MULTIMODAL}),
    ),
    ModelDescriptor(
        provider_name="openai",
        model_name="gpt-4o-mini",
        max_context_tokens=128000,
        cost_per_1k_input=Decimal("0.00015"),
        cost_per_1k_output=Decimal("0.0006"),
        expected_latency_ms=1000,
        quality_tier=QualityTier.MEDIUM,
        capabilities=frozenset({REASONING, CREATIVITY, ANALYSIS}),
    ),
    ModelDescriptor(
        provider_name="openai",
        model_name="gpt-3.5-turbo",
        max_context_tokens=16385,
        cost_per_1k_input=Decimal("0.0005"),
        cost_per_1k_output=Decimal("0.0015"),
        expected_latency_ms=500,
        quality_tier=QualityTier.LOW,
        capabilities=frozenset({BASIC_REASONING, CREATIVITY}),
    ),
    ModelDescriptor(
        provider_name="openai",
        model_name="text-embedding-3-small",
        max_context_tokens=8192,
        cost_per_1k_input=Decimal("0.00002"),
        cost_per_1k_output=Decimal("0"),
        expected_latency_ms=200,
        quality_tier=QualityTier.MEDIUM,
        capabilities=frozenset({EMBEDDINGS}),
    ),
)


class ModelCatalog:
    """Read-only, insertion-ordered registry of model descriptors.

    Usage:
        catalog = ModelCatalog()
        mini = catalog.get_model("gpt-4o-mini")
    """

    def __init__(self, models: Iterable[ModelDescriptor] | None = None) -> None:
        """Initialize catalog.

        Args:
            models: Entries to register. Defaults to the built-in table.

        Raises:
            ValueError: If two entries share a model name.
        """
        entries = DEFAULT_MODELS if models is None else tuple(models)
        self._models: dict[str, ModelDescriptor] = {}
        for model in entries:
            if model.model_name in self._models:
                msg = f"Duplicate model name in catalog: {model.model_name}"
                raise ValueError(msg)
            self._models[model.model_name] = model
        self._ordered = tuple(self._models.values())

    @classmethod
    def from_config(cls, entries: Iterable[ModelEntryConfig]) -> ModelCatalog:
        """Build a catalog from configuration entries."""
        return cls(entry.to_descriptor() for entry in entries)

    def list_models(self) -> tuple[ModelDescriptor, ...]:
        """List all entries in insertion order."""
        return self._ordered

    def get_model(self, model_name: str) -> ModelDescriptor:
        """Look up an entry by model name.

        Raises:
            ModelNotFoundError: If no entry has this name.
        """
        try:
            return self._models[model_name]
        except KeyError:
            raise ModelNotFoundError(model_name) from None

    def __contains__(self, model_name: object) -> bool:
        return model_name in self._models

    def __iter__(self) -> Iterator[ModelDescriptor]:
        return iter(self._ordered)

    def __len__(self) -> int:
        return len(self._ordered)
