"""Router facade: select a model, execute the call, account for its cost.

Each request moves through selecting -> executing -> accounting. A failure
while selecting or executing ends the request before anything is recorded,
so the ledger only ever holds calls that returned provider usage.
"""

from __future__ import annotations

import time
from collections.abc import Iterable, Mapping, Sequence
from datetime import UTC, datetime, timedelta
from decimal import Decimal
from typing import TYPE_CHECKING, Any

import pydantic
import structlog

from llm_router.core.config import RouterConfig
from llm_router.core.errors import ConfigurationError, InvalidRequestError, RouterError
from llm_router.core.logging import configure_logging
from llm_router.models.catalog import EMBEDDINGS, REASONING, QualityTier
from llm_router.models.messages import (
    ChatMessage,
    ChatOptions,
    ChatResponse,
    EmbeddingResponse,
)
from llm_router.models.routing import RoutingConstraints
from llm_router.models.usage import CostSummary, TimeWindow, format_cost
from llm_router.services.accounting import CostTracker, create_ledger
from llm_router.services.catalog import ModelCatalog
from llm_router.services.llm import ProviderAdapter, create_adapter
from llm_router.services.selector import select_model

if TYPE_CHECKING:
    from llm_router.models.catalog import ModelDescriptor
    from llm_router.services.accounting import UsageLedger

logger = structlog.get_logger()

CHAT_TASK_LABEL = "chat"
EMBEDDINGS_TASK_LABEL = "embeddings"
# Embeddings-only models never serve chat requests
CHAT_EXCLUDED_CAPABILITIES = frozenset({EMBEDDINGS})


def parse_period(period: str | None) -> TimeWindow | None:
    """Turn a "YYYY-MM" or "YYYY-MM-DD" period into a UTC time window.

    Args:
        period: Calendar month or day, or None for all time.

    Returns:
        TimeWindow covering the period, or None.

    Raises:
        InvalidRequestError: If the period has another format.
    """
    if period is None:
        return None
    for fmt, is_month in (("%Y-%m", True), ("%Y-%m-%d", False)):
        try:
            start = datetime.strptime(period, fmt).replace(tzinfo=UTC)
        except ValueError:
            continue
        if not is_month:
            return TimeWindow(start, start + timedelta(days=1))
        if start.month == 12:
            end = start.replace(year=start.year + 1, month=1)
        else:
            end = start.replace(month=start.month + 1)
        return TimeWindow(start, end)
    msg = f"Invalid period '{period}': expected YYYY-MM or YYYY-MM-DD"
    raise InvalidRequestError(msg)


class LLMRouter:
    """Single entry point for chat completions, embeddings and cost summaries.

    Usage:
        async with create_router(RouterConfig(dry_run=True)) as router:
            response = await router.chat_completion(
                [{"role": "user", "content": "Draft a launch post"}], "org-1"
            )
            summary = await router.get_cost_summary("org-1")
    """

    def __init__(
        self,
        adapters: ProviderAdapter | Mapping[str, ProviderAdapter],
        catalog: ModelCatalog | None = None,
        cost_tracker: CostTracker | None = None,
        default_max_cost: Decimal | None = Decimal("0.10"),
        default_max_latency_ms: int | None = 5000,
    ) -> None:
        """Initialize router.

        Args:
            adapters: One adapter for every provider, or a mapping from
                provider name to adapter.
            catalog: Models to route between. Defaults to the built-in table.
            cost_tracker: Accountant owning the usage ledger.
            default_max_cost: Rate ceiling for chat calls without constraints.
            default_max_latency_ms: Latency ceiling for chat calls without
                constraints.
        """
        self.catalog = catalog or ModelCatalog()
        self.cost_tracker = cost_tracker or CostTracker()
        self.default_max_cost = default_max_cost
        self.default_max_latency_ms = default_max_latency_ms
        if isinstance(adapters, ProviderAdapter):
            self._adapters = {model.provider_name: adapters for model in self.catalog}
        else:
            self._adapters = dict(adapters)

    def default_chat_constraints(self, task_label: str | None = None) -> RoutingConstraints:
        """Constraints applied to chat calls that supply none."""
        return RoutingConstraints(
            max_cost=self.default_max_cost,
            max_latency_ms=self.default_max_latency_ms,
            minimum_quality_tier=QualityTier.MEDIUM,
            required_capabilities=frozenset({REASONING}),
            task_label=task_label or CHAT_TASK_LABEL,
        )

    def route(
        self,
        constraints: RoutingConstraints,
        excluded_capabilities: Iterable[str] = (),
    ) -> ModelDescriptor:
        """Select a model without executing anything."""
        return select_model(self.catalog, constraints, excluded_capabilities)

    def _adapter_for(self, model: ModelDescriptor) -> ProviderAdapter:
        try:
            return self._adapters[model.provider_name]
        except KeyError:
            msg = f"No adapter registered for provider '{model.provider_name}'"
            raise ConfigurationError(
                msg, "Pass an adapter for every provider in the catalog."
            ) from None

    async def chat_completion(
        self,
        messages: Sequence[ChatMessage | Mapping[str, Any]],
        organization_id: str,
        options: ChatOptions | Mapping[str, Any] | None = None,
    ) -> ChatResponse:
        """Route and execute a chat completion, then record its cost.

        Args:
            messages: Ordered turns, as ChatMessage or dicts with role/content/name.
            organization_id: Tenant to bill.
            options: Generation parameters, explicit model or constraints.

        Returns:
            ChatResponse with content, usage record and adapter latency.

        Raises:
            InvalidRequestError: On malformed input or provider 4xx.
            NoFeasibleModelError: If no model satisfies the constraints.
            ModelNotFoundError: If options.model is not in the catalog.
            RateLimitedError: If the provider throttled the call.
            ProviderError: On transient provider failures.
        """
        _require_organization(organization_id)
        chat_messages = _parse_messages(messages, organization_id)
        params = _parse_options(options, organization_id)

        if params.model is not None:
            task_label = params.task_label or CHAT_TASK_LABEL
            try:
                model = self.catalog.get_model(params.model)
            except RouterError as exc:
                exc.with_context(organization_id=organization_id, task_label=task_label)
                raise
            if model.supports_embeddings:
                msg = f"Model '{model.model_name}' only supports embeddings"
                raise InvalidRequestError(
                    msg,
                    model_name=model.model_name,
                    organization_id=organization_id,
                    task_label=task_label,
                )
        else:
            constraints = params.constraints or self.default_chat_constraints(params.task_label)
            task_label = constraints.task_label or params.task_label or CHAT_TASK_LABEL
            model = self._select(
                constraints, organization_id, task_label, CHAT_EXCLUDED_CAPABILITIES
            )

        adapter = self._adapter_for(model)
        started = time.perf_counter()
        try:
            result = await adapter.execute_chat(model, chat_messages, params)
        except RouterError as exc:
            self._log_failure(exc, model, organization_id, task_label)
            raise
        latency_ms = (time.perf_counter() - started) * 1000

        usage = await self.cost_tracker.record_usage(
            organization_id,
            model,
            result.input_tokens,
            result.output_tokens,
            task_label=task_label,
        )
        logger.info(
            "chat_completed",
            organization_id=organization_id,
            model=model.model_name,
            tokens=usage.total_tokens,
            cost_usd=format_cost(usage.computed_cost),
            latency_ms=round(latency_ms, 1),
        )
        return ChatResponse(
            provider_name=model.provider_name,
            model_name=model.model_name,
            content=result.content,
            usage=usage,
            latency_ms=latency_ms,
            metadata={
                "finish_reason": result.finish_reason,
                "provider_model": result.provider_model or model.model_name,
                "task_label": task_label,
            },
        )

    async def generate_embeddings(
        self,
        input: str | Sequence[str],
        organization_id: str,
        task_label: str | None = None,
    ) -> EmbeddingResponse:
        """Route and execute an embeddings call, then record its cost.

        Args:
            input: A string or a non-empty sequence of strings.
            organization_id: Tenant to bill.
            task_label: Optional tag for the usage record.

        Returns:
            EmbeddingResponse with one vector per input, in input order.
        """
        _require_organization(organization_id)
        texts = [input] if isinstance(input, str) else list(input)
        if not texts or not all(isinstance(text, str) for text in texts):
            msg = "Embedding input must be a string or a non-empty list of strings"
            raise InvalidRequestError(msg, organization_id=organization_id)

        constraints = RoutingConstraints(
            required_capabilities=frozenset({EMBEDDINGS}),
            task_label=task_label or EMBEDDINGS_TASK_LABEL,
        )
        model = self._select(constraints, organization_id, constraints.task_label)

        adapter = self._adapter_for(model)
        started = time.perf_counter()
        try:
            result = await adapter.execute_embeddings(model, texts)
        except RouterError as exc:
            self._log_failure(exc, model, organization_id, constraints.task_label)
            raise
        latency_ms = (time.perf_counter() - started) * 1000

        usage = await self.cost_tracker.record_usage(
            organization_id,
            model,
            result.input_tokens,
            0,
            task_label=constraints.task_label,
        )
        logger.info(
            "embeddings_completed",
            organization_id=organization_id,
            model=model.model_name,
            inputs=len(texts),
            tokens=usage.total_tokens,
            cost_usd=format_cost(usage.computed_cost),
        )
        return EmbeddingResponse(
            provider_name=model.provider_name,
            model_name=model.model_name,
            content=result.vectors,
            usage=usage,
            latency_ms=latency_ms,
            metadata={
                "task_label": constraints.task_label,
                "dimensions": _dimensions(result.vectors),
            },
        )

    async def get_cost_summary(
        self, organization_id: str, period: str | None = None
    ) -> CostSummary:
        """Summarize an organization's spend.

        Args:
            organization_id: Tenant to summarize.
            period: "YYYY-MM", "YYYY-MM-DD" (UTC), or None for all time.
        """
        _require_organization(organization_id)
        window = parse_period(period)
        return await self.cost_tracker.summarize(organization_id, window)

    def _select(
        self,
        constraints: RoutingConstraints,
        organization_id: str,
        task_label: str | None,
        excluded_capabilities: Iterable[str] = (),
    ) -> ModelDescriptor:
        try:
            return select_model(self.catalog, constraints, excluded_capabilities)
        except RouterError as exc:
            exc.with_context(organization_id=organization_id, task_label=task_label)
            raise

    def _log_failure(
        self,
        exc: RouterError,
        model: ModelDescriptor,
        organization_id: str,
        task_label: str | None,
    ) -> None:
        exc.with_context(
            model_name=model.model_name,
            organization_id=organization_id,
            task_label=task_label,
        )
        logger.warning("router_request_failed", error=exc.message, **exc.context())

    async def close(self) -> None:
        """Close adapters and flush the ledger."""
        for adapter in {id(a): a for a in self._adapters.values()}.values():
            await adapter.close()
        await self.cost_tracker.close()

    async def __aenter__(self) -> LLMRouter:
        return self

    async def __aexit__(self, *args: object) -> None:
        await self.close()


def _require_organization(organization_id: str) -> None:
    if not organization_id or not organization_id.strip():
        msg = "organization_id is required"
        raise InvalidRequestError(msg)


def _parse_messages(
    messages: Sequence[ChatMessage | Mapping[str, Any]], organization_id: str
) -> list[ChatMessage]:
    if not messages:
        msg = "At least one message is required"
        raise InvalidRequestError(msg, organization_id=organization_id)
    try:
        return [
            m if isinstance(m, ChatMessage) else ChatMessage.model_validate(dict(m))
            for m in messages
        ]
    except (pydantic.ValidationError, TypeError, ValueError) as exc:
        msg = f"Invalid chat message: {exc}"
        raise InvalidRequestError(msg, organization_id=organization_id) from exc


def _parse_options(
    options: ChatOptions | Mapping[str, Any] | None, organization_id: str
) -> ChatOptions:
    if options is None:
        return ChatOptions()
    if isinstance(options, ChatOptions):
        return options
    try:
        return ChatOptions.model_validate(dict(options))
    except pydantic.ValidationError as exc:
        msg = f"Invalid chat options: {exc}"
        raise InvalidRequestError(msg, organization_id=organization_id) from exc


def _dimensions(vectors: list[list[float]]) -> int:
    return len(vectors[0]) if vectors else 0


def create_router(
    config: RouterConfig | None = None,
    adapter: ProviderAdapter | None = None,
    ledger: UsageLedger | None = None,
) -> LLMRouter:
    """Create a router from configuration.

    Applies config.log_level through configure_logging unless structlog has
    already been configured by the application.

    Args:
        config: Router settings. Defaults to RouterConfig().
        adapter: Adapter override; otherwise built from config.
        ledger: Ledger override; otherwise built from config.ledger_url.

    Returns:
        LLMRouter instance.

    Raises:
        APIKeyError: If a real adapter is needed and no key is configured.
    """
    config = config or RouterConfig()
    # Leave logging alone when the application already configured structlog
    if not structlog.is_configured():
        configure_logging(config.log_level)
    catalog = ModelCatalog.from_config(config.models) if config.models else ModelCatalog()

    if adapter is None:
        if config.dry_run:
            adapter = create_adapter(dry_run=True)
        else:
            adapter = create_adapter(
                api_key=config.get_api_key(),
                base_url=config.provider_base_url,
                timeout=config.request_timeout,
                max_attempts=config.max_attempts,
            )

    tracker = CostTracker(ledger if ledger is not None else create_ledger(config.ledger_url))
    logger.info(
        "router_init",
        models=len(catalog),
        dry_run=config.dry_run,
        default_max_cost=config.default_max_cost,
    )
    return LLMRouter(
        adapter,
        catalog=catalog,
        cost_tracker=tracker,
        default_max_cost=config.default_max_cost,
        default_max_latency_ms=config.default_max_latency_ms,
    )
