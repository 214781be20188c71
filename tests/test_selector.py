"""Tests for constraint-based model selection."""

import itertools
from decimal import Decimal

import pytest

from llm_router.core.errors import NoFeasibleModelError
from llm_router.models.catalog import (
    ANALYSIS,
    CREATIVITY,
    EMBEDDINGS,
    MULTIMODAL,
    REASONING,
    ModelDescriptor,
    QualityTier,
)
from llm_router.models.routing import RoutingConstraints
from llm_router.services.catalog import ModelCatalog
from llm_router.services.selector import feasible_models, select_model


def _model(name: str, rate_in: str, rate_out: str, latency: int, tier: QualityTier, caps=None):
    return ModelDescriptor(
        provider_name="test",
        model_name=name,
        max_context_tokens=8000,
        cost_per_1k_input=Decimal(rate_in),
        cost_per_1k_output=Decimal(rate_out),
        expected_latency_ms=latency,
        quality_tier=tier,
        capabilities=frozenset(caps or {REASONING}),
    )


class TestRoutingConstraints:
    """Tests for RoutingConstraints validation."""

    def test_defaults_have_no_ceilings(self):
        constraints = RoutingConstraints()
        assert constraints.max_cost is None
        assert constraints.max_latency_ms is None
        assert constraints.minimum_quality_tier is QualityTier.LOW
        assert constraints.required_capabilities == frozenset()

    def test_float_cost_becomes_decimal(self):
        assert RoutingConstraints(max_cost=0.1).max_cost == Decimal("0.1")

    def test_negative_values_rejected(self):
        with pytest.raises(ValueError, match="max_cost"):
            RoutingConstraints(max_cost=Decimal("-1"))
        with pytest.raises(ValueError, match="max_latency_ms"):
            RoutingConstraints(max_latency_ms=-1)

    def test_capabilities_accept_any_iterable(self):
        constraints = RoutingConstraints(required_capabilities=[REASONING, REASONING])
        assert constraints.required_capabilities == frozenset({REASONING})


class TestSelectModel:
    """Tests for select_model over the built-in catalog."""

    def test_example_scenario_picks_cheapest_medium_or_better(self, catalog: ModelCatalog):
        """gpt-3.5-turbo is excluded by quality; gpt-4o-mini beats gpt-4o on cost."""
        constraints = RoutingConstraints(
            minimum_quality_tier=QualityTier.MEDIUM,
            max_cost=Decimal("0.10"),
            required_capabilities=frozenset({REASONING}),
        )
        names = [m.model_name for m in feasible_models(catalog, constraints)]
        assert names == ["gpt-4o-mini", "gpt-4o"]
        assert select_model(catalog, constraints).model_name == "gpt-4o-mini"

    def test_high_quality_requirement(self, catalog: ModelCatalog):
        constraints = RoutingConstraints(minimum_quality_tier=QualityTier.HIGH)
        assert select_model(catalog, constraints).model_name == "gpt-4o"

    def test_capability_filter(self, catalog: ModelCatalog):
        constraints = RoutingConstraints(required_capabilities=frozenset({MULTIMODAL}))
        assert select_model(catalog, constraints).model_name == "gpt-4o"

    def test_embeddings_capability_selects_embedding_model(self, catalog: ModelCatalog):
        constraints = RoutingConstraints(required_capabilities=frozenset({EMBEDDINGS}))
        assert select_model(catalog, constraints).model_name == "text-embedding-3-small"

    def test_chat_capability_never_selects_embedding_model(self, catalog: ModelCatalog):
        constraints = RoutingConstraints(required_capabilities=frozenset({CREATIVITY}))
        feasible = feasible_models(catalog, constraints)
        assert all(not m.supports_embeddings for m in feasible)
        assert feasible[0].model_name == "gpt-4o-mini"

    def test_cost_ceiling_excludes_expensive_models(self, catalog: ModelCatalog):
        constraints = RoutingConstraints(
            max_cost=Decimal("0.002"),
            required_capabilities=frozenset({CREATIVITY}),
        )
        names = [m.model_name for m in feasible_models(catalog, constraints)]
        assert names == ["gpt-4o-mini", "gpt-3.5-turbo"]

    def test_cost_ceiling_is_inclusive(self, catalog: ModelCatalog):
        constraints = RoutingConstraints(
            max_cost=Decimal("0.00075"),
            required_capabilities=frozenset({REASONING}),
        )
        assert select_model(catalog, constraints).model_name == "gpt-4o-mini"

    def test_latency_ceiling(self, catalog: ModelCatalog):
        constraints = RoutingConstraints(
            max_latency_ms=600,
            required_capabilities=frozenset({CREATIVITY}),
        )
        assert select_model(catalog, constraints).model_name == "gpt-3.5-turbo"

    def test_no_feasible_model(self, catalog: ModelCatalog):
        constraints = RoutingConstraints(
            minimum_quality_tier=QualityTier.HIGH,
            max_cost=Decimal("0.01"),
            task_label="vision",
        )
        with pytest.raises(NoFeasibleModelError) as exc_info:
            select_model(catalog, constraints)
        assert exc_info.value.constraints is constraints
        assert exc_info.value.task_label == "vision"
        assert exc_info.value.retryable is False

    def test_unknown_capability_has_no_candidates(self, catalog: ModelCatalog):
        constraints = RoutingConstraints(required_capabilities=frozenset({"telepathy"}))
        assert feasible_models(catalog, constraints) == []
        with pytest.raises(NoFeasibleModelError):
            select_model(catalog, constraints)

    def test_excluded_capabilities_skip_embedding_model(self, catalog: ModelCatalog):
        constraints = RoutingConstraints()
        assert select_model(catalog, constraints).model_name == "text-embedding-3-small"

        feasible = feasible_models(catalog, constraints, excluded_capabilities={EMBEDDINGS})
        assert [m.model_name for m in feasible] == ["gpt-4o-mini", "gpt-3.5-turbo", "gpt-4o"]
        selected = select_model(catalog, constraints, excluded_capabilities=[EMBEDDINGS])
        assert selected.model_name == "gpt-4o-mini"

    def test_excluding_every_candidate(self, catalog: ModelCatalog):
        constraints = RoutingConstraints(required_capabilities=frozenset({EMBEDDINGS}))
        with pytest.raises(NoFeasibleModelError):
            select_model(catalog, constraints, excluded_capabilities=(EMBEDDINGS,))

    def test_informational_tags_do_not_affect_selection(self, catalog: ModelCatalog):
        base = RoutingConstraints(required_capabilities=frozenset({ANALYSIS}))
        tagged = RoutingConstraints(
            required_capabilities=frozenset({ANALYSIS}),
            task_label="sentiment",
            locale_hint="de",
        )
        assert select_model(catalog, base) == select_model(catalog, tagged)


class TestSelectionOrdering:
    """Tests for tie-breaking and ceiling conventions on custom catalogs."""

    def test_tie_broken_by_latency(self):
        catalog = ModelCatalog(
            [
                _model("slow", "0.001", "0.001", 900, QualityTier.MEDIUM),
                _model("fast", "0.0015", "0.0005", 300, QualityTier.MEDIUM),
            ]
        )
        assert select_model(catalog, RoutingConstraints()).model_name == "fast"

    def test_full_tie_broken_by_catalog_order(self):
        catalog = ModelCatalog(
            [
                _model("first", "0.001", "0.001", 500, QualityTier.LOW),
                _model("second", "0.001", "0.001", 500, QualityTier.HIGH),
            ]
        )
        assert select_model(catalog, RoutingConstraints()).model_name == "first"

    def test_zero_cost_ceiling_admits_only_free_models(self):
        catalog = ModelCatalog(
            [
                _model("paid", "0.001", "0.001", 500, QualityTier.HIGH),
                _model("free", "0", "0", 900, QualityTier.LOW),
            ]
        )
        constraints = RoutingConstraints(max_cost=Decimal(0))
        assert [m.model_name for m in feasible_models(catalog, constraints)] == ["free"]

    def test_none_cost_ceiling_is_unbounded(self):
        catalog = ModelCatalog([_model("pricey", "50", "150", 500, QualityTier.HIGH)])
        assert select_model(catalog, RoutingConstraints(max_cost=None)).model_name == "pricey"

    def test_selection_is_deterministic(self, catalog: ModelCatalog):
        constraints = RoutingConstraints(required_capabilities=frozenset({REASONING}))
        first = select_model(catalog, constraints)
        assert all(select_model(catalog, constraints) is first for _ in range(10))

    def test_selected_model_is_cheapest_fully_feasible(self, catalog: ModelCatalog):
        """Across a grid of constraints the result always satisfies every filter."""
        tiers = list(QualityTier)
        capability_sets = [
            frozenset(),
            frozenset({REASONING}),
            frozenset({CREATIVITY}),
            frozenset({REASONING, MULTIMODAL}),
            frozenset({EMBEDDINGS}),
        ]
        ceilings = [None, Decimal("0.0001"), Decimal("0.001"), Decimal("0.005"), Decimal("0.1")]

        for tier, caps, ceiling in itertools.product(tiers, capability_sets, ceilings):
            constraints = RoutingConstraints(
                minimum_quality_tier=tier,
                required_capabilities=caps,
                max_cost=ceiling,
            )
            expected = [
                m
                for m in catalog
                if m.quality_tier >= tier
                and caps <= m.capabilities
                and (ceiling is None or m.combined_rate <= ceiling)
            ]
            if not expected:
                with pytest.raises(NoFeasibleModelError):
                    select_model(catalog, constraints)
                continue

            selected = select_model(catalog, constraints)
            assert selected in expected
            assert selected.combined_rate == min(m.combined_rate for m in expected)
