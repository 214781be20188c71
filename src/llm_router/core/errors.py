"""Custom exceptions for configuration problems and routing failures."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from llm_router.models.routing import RoutingConstraints


class ConfigurationError(Exception):
    """Base exception for configuration errors with optional suggestions."""

    def __init__(self, message: str, suggestion: str | None = None) -> None:
        self.message = message
        self.suggestion = suggestion
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        msg = f"[Configuration Error] {self.message}"
        if self.suggestion:
            msg += f"\n[Suggestion] {self.suggestion}"
        return msg


class APIKeyError(ConfigurationError):
    """Error when the provider API key is missing."""

    def __init__(self) -> None:
        super().__init__(
            "Provider API key required for real API calls",
            "Set OPENAI_API_KEY or add provider_api_key to the router config.",
        )


class ValidationError(ConfigurationError):
    """Error when configuration validation fails."""

    def __init__(self, field: str, reason: str) -> None:
        super().__init__(
            f"Invalid value for '{field}'",
            f"{reason}",
        )


class RouterError(Exception):
    """Base exception for failures while routing or executing a request.

    Attributes:
        retryable: Whether repeating the same call may succeed.
        model_name: Catalog model involved, when known.
        organization_id: Tenant the request was made for, when known.
        task_label: Informational task tag from the routing constraints.
    """

    retryable: bool = False

    def __init__(
        self,
        message: str,
        *,
        model_name: str | None = None,
        organization_id: str | None = None,
        task_label: str | None = None,
    ) -> None:
        self.message = message
        self.model_name = model_name
        self.organization_id = organization_id
        self.task_label = task_label
        super().__init__(message)

    def with_context(
        self,
        *,
        model_name: str | None = None,
        organization_id: str | None = None,
        task_label: str | None = None,
    ) -> RouterError:
        """Fill in missing context fields and return self for re-raising."""
        if self.model_name is None:
            self.model_name = model_name
        if self.organization_id is None:
            self.organization_id = organization_id
        if self.task_label is None:
            self.task_label = task_label
        return self

    def context(self) -> dict[str, Any]:
        """Context fields as a dict, convenient for structured logging."""
        return {
            "model": self.model_name,
            "organization_id": self.organization_id,
            "task_label": self.task_label,
            "retryable": self.retryable,
        }

    def __str__(self) -> str:
        details = [
            f"{key}={value}"
            for key, value in (
                ("model", self.model_name),
                ("org", self.organization_id),
                ("task", self.task_label),
            )
            if value
        ]
        if not details:
            return self.message
        return f"{self.message} ({', '.join(details)})"


class NoFeasibleModelError(RouterError):
    """No catalog entry satisfies the routing constraints."""

    def __init__(self, constraints: RoutingConstraints) -> None:
        self.constraints = constraints
        super().__init__(
            "No models available for the given constraints",
            task_label=constraints.task_label,
        )


class ModelNotFoundError(RouterError):
    """Requested model name is not in the catalog."""

    def __init__(self, model_name: str) -> None:
        super().__init__(f"Unknown model: {model_name}", model_name=model_name)


class InvalidRequestError(RouterError):
    """Malformed input, rejected locally or by the provider (4xx)."""

    def __init__(self, message: str, *, status_code: int | None = None, **context: Any) -> None:
        self.status_code = status_code
        super().__init__(message, **context)


class RateLimitedError(RouterError):
    """Provider-side throttling (429). Retry with backoff."""

    retryable = True

    def __init__(self, message: str, *, retry_after: float | None = None, **context: Any) -> None:
        self.retry_after = retry_after
        super().__init__(message, **context)


class ProviderError(RouterError):
    """Transient network or server failure, or an unusable provider response."""

    retryable = True

    def __init__(self, message: str, *, status_code: int | None = None, **context: Any) -> None:
        self.status_code = status_code
        super().__init__(message, **context)
