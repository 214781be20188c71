"""Configuration schemas and loading for the LLM router."""

from __future__ import annotations

import os
from decimal import Decimal
from pathlib import Path

import yaml
from dotenv import load_dotenv
from pydantic import BaseModel, Field, field_validator

from llm_router.core.errors import APIKeyError
from llm_router.models.catalog import ModelDescriptor, QualityTier

DEFAULT_BASE_URL = "https://api.openai.com/v1"
ENV_PREFIX = "LLM_ROUTER_"


class ModelEntryConfig(BaseModel):
    """Configuration for a single catalog entry."""

    provider: str = "openai"
    model: str
    max_context_tokens: int = Field(..., gt=0)
    cost_per_1k_input: Decimal = Field(..., ge=0)
    cost_per_1k_output: Decimal = Field(default=Decimal(0), ge=0)
    latency_ms: int = Field(..., gt=0)
    quality: QualityTier
    capabilities: list[str] = Field(default_factory=list)

    @field_validator("model")
    @classmethod
    def validate_model_name(cls, v: str) -> str:
        if not v or not v.strip():
            msg = "Model names cannot be empty"
            raise ValueError(msg)
        return v

    def to_descriptor(self) -> ModelDescriptor:
        return ModelDescriptor(
            provider_name=self.provider,
            model_name=self.model,
            max_context_tokens=self.max_context_tokens,
            cost_per_1k_input=self.cost_per_1k_input,
            cost_per_1k_output=self.cost_per_1k_output,
            expected_latency_ms=self.latency_ms,
            quality_tier=self.quality,
            capabilities=frozenset(self.capabilities),
        )


class RouterConfig(BaseModel):
    """Complete router configuration.

    Attributes:
        provider_api_key: Credential for the backing provider. Falls back to
            the OPENAI_API_KEY environment variable.
        provider_base_url: Base URL of an OpenAI-compatible API.
        default_max_cost: Combined per-1k rate ceiling applied when a chat
            caller supplies no constraints. None disables the ceiling.
        default_max_latency_ms: Latency ceiling for default constraints.
        request_timeout: Seconds before an outbound provider call times out.
        max_attempts: Attempts per provider call for retryable failures.
            1 disables adapter-level retries.
        ledger_url: SQLAlchemy URL for a persistent usage ledger. None keeps
            usage in memory.
        dry_run: Use the fake provider adapter instead of real API calls.
        models: Replacement catalog entries. None uses the built-in table.
    """

    provider_api_key: str | None = None
    provider_base_url: str = DEFAULT_BASE_URL
    default_max_cost: Decimal | None = Field(default=Decimal("0.10"), ge=0)
    default_max_latency_ms: int | None = Field(default=5000, ge=0)
    request_timeout: float = Field(default=60.0, gt=0)
    max_attempts: int = Field(default=1, ge=1, le=10)
    ledger_url: str | None = None
    log_level: str = "info"
    dry_run: bool = False
    models: list[ModelEntryConfig] | None = None

    @field_validator("models")
    @classmethod
    def validate_unique_models(
        cls, v: list[ModelEntryConfig] | None
    ) -> list[ModelEntryConfig] | None:
        if v is None:
            return v
        if not v:
            msg = "At least one model must be defined in 'models'"
            raise ValueError(msg)
        names = [entry.model for entry in v]
        duplicates = sorted({name for name in names if names.count(name) > 1})
        if duplicates:
            msg = f"Duplicate model names: {', '.join(duplicates)}"
            raise ValueError(msg)
        return v

    def get_api_key(self) -> str:
        """Get provider API key from config or environment."""
        key = self.provider_api_key or os.environ.get("OPENAI_API_KEY")
        if not key:
            raise APIKeyError
        return key

    @classmethod
    def from_env(cls, env_file: str | Path | None = None) -> RouterConfig:
        """Build configuration from environment variables.

        Reads a .env file first (without overriding variables already set),
        then LLM_ROUTER_* variables.
        """
        load_dotenv(env_file)
        data: dict[str, str] = {}
        for field_name in (
            "provider_api_key",
            "provider_base_url",
            "default_max_cost",
            "default_max_latency_ms",
            "request_timeout",
            "max_attempts",
            "ledger_url",
            "log_level",
            "dry_run",
        ):
            value = os.environ.get(f"{ENV_PREFIX}{field_name.upper()}")
            if value is not None:
                data[field_name] = value
        return cls.model_validate(data)


def load_config(path: str | Path) -> RouterConfig:
    """Load and validate configuration from YAML file.

    Args:
        path: Path to YAML configuration file.

    Returns:
        Validated RouterConfig instance.

    Raises:
        FileNotFoundError: If config file doesn't exist.
        ValidationError: If config is invalid.
    """
    config_path = Path(path)
    if not config_path.exists():
        msg = f"Configuration file not found: {config_path}"
        raise FileNotFoundError(msg)

    with config_path.open() as f:
        data = yaml.safe_load(f)

    return RouterConfig.model_validate(data or {})
