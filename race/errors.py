"""Error taxonomy raised by the engine."""

from __future__ import annotations

import openai


class RACEError(Exception):
    """Base class for all engine errors."""


class ValidationError(RACEError, ValueError):
    """Malformed or empty input rejected before any provider call."""


class NotInitializedError(RACEError):
    """A question was asked for a material whose index is not ready."""

    def __init__(self, material_id: str, variant: str) -> None:
        self.material_id = material_id
        self.variant = variant
        super().__init__(
            f"Material {material_id!r} ({variant}) is not initialized. "
            "Call ensure_ready first."
        )


class ProviderError(RACEError):
    """An upstream provider returned an error status or a malformed payload."""

    def __init__(
        self,
        message: str,
        *,
        provider: str,
        status_code: int | None = None,
        key_hint: str | None = None,
    ) -> None:
        self.provider = provider
        self.status_code = status_code
        self.key_hint = key_hint
        super().__init__(message)

    @property
    def kind(self) -> str:
        return type(self).__name__


class RateLimitError(ProviderError):
    """The provider rejected the call with HTTP 429."""

    def __init__(
        self,
        message: str,
        *,
        provider: str,
        status_code: int | None = 429,
        key_hint: str | None = None,
        retry_after: float | None = None,
    ) -> None:
        super().__init__(
            message, provider=provider, status_code=status_code, key_hint=key_hint
        )
        self.retry_after = retry_after


class ProviderTimeoutError(ProviderError, TimeoutError):
    """The bounded wait for a provider response was exceeded."""


def mask_key(api_key: str | None) -> str:
    """Return a log-safe hint for an API key.

    Returns:
        The last four characters prefixed with an ellipsis, or ``"<unset>"``.
    """
    if not api_key:
        return "<unset>"
    return f"...{api_key[-4:]}"


def _retry_after(exc: openai.APIStatusError) -> float | None:
    headers = getattr(exc.response, "headers", None) or {}
    value = headers.get("retry-after")
    if value is None:
        return None
    try:
        return max(0.0, float(value))
    except ValueError:
        return None


def from_openai_error(
    exc: openai.OpenAIError,
    *,
    provider: str,
    api_key: str | None,
) -> ProviderError:
    """Translate an OpenAI SDK exception into the engine taxonomy.

    Returns:
        The matching ProviderError subclass, ready to be raised from ``exc``.
    """
    key_hint = mask_key(api_key)
    if isinstance(exc, openai.APITimeoutError):
        return ProviderTimeoutError(
            f"{provider} request timed out", provider=provider, key_hint=key_hint
        )
    if isinstance(exc, openai.RateLimitError):
        return RateLimitError(
            f"{provider} rate limit exceeded",
            provider=provider,
            status_code=exc.status_code,
            key_hint=key_hint,
            retry_after=_retry_after(exc),
        )
    if isinstance(exc, openai.APIStatusError):
        return ProviderError(
            f"{provider} returned HTTP {exc.status_code}",
            provider=provider,
            status_code=exc.status_code,
            key_hint=key_hint,
        )
    return ProviderError(
        f"{provider} request failed: {type(exc).__name__}",
        provider=provider,
        key_hint=key_hint,
    )
