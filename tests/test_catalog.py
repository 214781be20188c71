"""Tests for model descriptors and the model catalog."""

from decimal import Decimal

import pytest

from llm_router.core.errors import ModelNotFoundError
from llm_router.models.catalog import EMBEDDINGS, REASONING, ModelDescriptor, QualityTier
from llm_router.services.catalog import ModelCatalog


def _descriptor(name: str, **overrides) -> ModelDescriptor:
    fields = {
        "provider_name": "openai",
        "model_name": name,
        "max_context_tokens": 4096,
        "cost_per_1k_input": Decimal("0.001"),
        "cost_per_1k_output": Decimal("0.002"),
        "expected_latency_ms": 800,
        "quality_tier": QualityTier.MEDIUM,
        "capabilities": frozenset({REASONING}),
    }
    fields.update(overrides)
    return ModelDescriptor(**fields)


class TestQualityTier:
    """Tests for tier ordering."""

    def test_ordering(self):
        assert QualityTier.LOW < QualityTier.MEDIUM < QualityTier.HIGH
        assert QualityTier.HIGH >= QualityTier.MEDIUM
        assert not QualityTier.LOW >= QualityTier.MEDIUM

    def test_parses_from_string(self):
        assert QualityTier("medium") is QualityTier.MEDIUM


class TestModelDescriptor:
    """Tests for ModelDescriptor validation and cost arithmetic."""

    def test_combined_rate(self):
        model = _descriptor("m")
        assert model.combined_rate == Decimal("0.003")

    def test_compute_cost_is_exact(self):
        """100 input / 50 output tokens on gpt-4o-mini rates."""
        model = _descriptor(
            "mini",
            cost_per_1k_input=Decimal("0.00015"),
            cost_per_1k_output=Decimal("0.0006"),
        )
        assert model.compute_cost(100, 50) == Decimal("0.000045")

    def test_string_rates_become_decimal(self):
        model = _descriptor("m", cost_per_1k_input="0.5", cost_per_1k_output=0.25)
        assert model.cost_per_1k_input == Decimal("0.5")
        assert model.cost_per_1k_output == Decimal("0.25")

    def test_negative_rate_rejected(self):
        with pytest.raises(ValueError, match="cost_per_1k_input"):
            _descriptor("m", cost_per_1k_input=Decimal("-0.1"))

    def test_empty_name_rejected(self):
        with pytest.raises(ValueError, match="model_name"):
            _descriptor(" ")

    def test_non_positive_context_rejected(self):
        with pytest.raises(ValueError, match="max_context_tokens"):
            _descriptor("m", max_context_tokens=0)

    def test_supports_embeddings(self):
        assert _descriptor("e", capabilities=frozenset({EMBEDDINGS})).supports_embeddings
        assert not _descriptor("c").supports_embeddings


class TestModelCatalog:
    """Tests for ModelCatalog."""

    def test_default_entries(self, catalog: ModelCatalog):
        names = [m.model_name for m in catalog.list_models()]
        assert names == ["gpt-4o", "gpt-4o-mini", "gpt-3.5-turbo", "text-embedding-3-small"]

    def test_default_catalog_has_one_model_per_tier_and_embeddings(self, catalog: ModelCatalog):
        chat = [m for m in catalog if not m.supports_embeddings]
        assert {m.quality_tier for m in chat} == set(QualityTier)
        embedding = [m for m in catalog if m.supports_embeddings]
        assert [m.model_name for m in embedding] == ["text-embedding-3-small"]
        assert embedding[0].capabilities == frozenset({EMBEDDINGS})

    def test_get_model(self, catalog: ModelCatalog):
        model = catalog.get_model("gpt-4o-mini")
        assert model.quality_tier is QualityTier.MEDIUM
        assert model.cost_per_1k_input == Decimal("0.00015")

    def test_get_unknown_model_raises(self, catalog: ModelCatalog):
        with pytest.raises(ModelNotFoundError) as exc_info:
            catalog.get_model("gpt-99")
        assert exc_info.value.model_name == "gpt-99"
        assert exc_info.value.retryable is False

    def test_contains_and_len(self, catalog: ModelCatalog):
        assert "gpt-4o" in catalog
        assert "missing" not in catalog
        assert len(catalog) == 4

    def test_custom_entries_keep_insertion_order(self):
        catalog = ModelCatalog([_descriptor("b"), _descriptor("a")])
        assert [m.model_name for m in catalog.list_models()] == ["b", "a"]

    def test_duplicate_names_rejected(self):
        with pytest.raises(ValueError, match="Duplicate model name"):
            ModelCatalog([_descriptor("a"), _descriptor("a")])

    def test_empty_catalog_allowed(self):
        assert len(ModelCatalog([])) == 0
