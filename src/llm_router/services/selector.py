"""Constraint-based model selection.

Filters the catalog by quality tier, capabilities, cost and latency, then
picks the cheapest survivor.
"""

from __future__ import annotations

from collections.abc import Iterable
from typing import TYPE_CHECKING

import structlog

from llm_router.core.errors import NoFeasibleModelError
from llm_router.models.usage import format_cost

if TYPE_CHECKING:
    from llm_router.models.catalog import ModelDescriptor
    from llm_router.models.routing import RoutingConstraints
    from llm_router.services.catalog import ModelCatalog

logger = structlog.get_logger()


def _is_feasible(
    model: ModelDescriptor,
    constraints: RoutingConstraints,
    excluded_capabilities: frozenset[str],
) -> bool:
    if excluded_capabilities & model.capabilities:
        return False
    if model.quality_tier < constraints.minimum_quality_tier:
        return False
    if not constraints.required_capabilities <= model.capabilities:
        return False
    # Compares the blended input+output rate against a single ceiling
    if constraints.max_cost is not None and model.combined_rate > constraints.max_cost:
        return False
    return not (
        constraints.max_latency_ms is not None
        and model.expected_latency_ms > constraints.max_latency_ms
    )


def feasible_models(
    catalog: ModelCatalog,
    constraints: RoutingConstraints,
    excluded_capabilities: Iterable[str] = (),
) -> list[ModelDescriptor]:
    """List models satisfying the constraints, best candidate first.

    Models carrying any of `excluded_capabilities` are skipped. Ordering is
    by combined per-1k rate, then expected latency, then catalog insertion
    order.
    """
    excluded = frozenset(excluded_capabilities)
    candidates = [
        (index, model)
        for index, model in enumerate(catalog.list_models())
        if _is_feasible(model, constraints, excluded)
    ]
    candidates.sort(
        key=lambda item: (item[1].combined_rate, item[1].expected_latency_ms, item[0])
    )
    return [model for _, model in candidates]


def select_model(
    catalog: ModelCatalog,
    constraints: RoutingConstraints,
    excluded_capabilities: Iterable[str] = (),
) -> ModelDescriptor:
    """Pick the cheapest model satisfying the constraints.

    Args:
        catalog: Models to choose from.
        constraints: Quality, capability, cost and latency requirements.
        excluded_capabilities: Tags that disqualify a model, e.g. embeddings
            for chat requests.

    Returns:
        The selected ModelDescriptor.

    Raises:
        NoFeasibleModelError: If no model satisfies every filter.
    """
    excluded = frozenset(excluded_capabilities)
    candidates = feasible_models(catalog, constraints, excluded)
    if not candidates:
        logger.warning(
            "no_feasible_model",
            task_label=constraints.task_label,
            minimum_quality=constraints.minimum_quality_tier.value,
            capabilities=sorted(constraints.required_capabilities),
            max_cost=constraints.max_cost,
            max_latency_ms=constraints.max_latency_ms,
            excluded=sorted(excluded),
        )
        raise NoFeasibleModelError(constraints)

    selected = candidates[0]
    logger.debug(
        "model_selected",
        model=selected.model_name,
        combined_rate=format_cost(selected.combined_rate),
        candidates=len(candidates),
        task_label=constraints.task_label,
        locale=constraints.locale_hint,
    )
    return selected
