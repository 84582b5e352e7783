"""Generation pipeline.

This module turns a validated generation request into a GenerationResult:
build the prompts for the target, call the configured provider under the
request deadline, then normalize the raw text.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Optional

from config import Settings
from core.exceptions import ConfigurationError, ProviderTimeoutError, ValidationError
from utils.code_extractor import GenerationResult, normalize_response
from utils.prompts import Target, build_system_prompt, build_user_prompt, resolve_target
from utils.providers import TextProvider, create_provider, parse_provider_kind

logger = logging.getLogger(__name__)


@dataclass
class GenerationPayload:
    """A generation request after validation."""

    target: Target
    request: str
    current_code: str = ""


def validate_payload(
    target: Any, request: Any, current_code: Any = None
) -> GenerationPayload:
    """Validate and normalize client input.

    Args:
        target: Target identifier; unknown or non-string values map to the
            default target.
        request: Free-text request; required and a non-blank string.
        current_code: Editor contents, kept verbatim. Non-string values are
            dropped.

    Returns:
        GenerationPayload.

    Raises:
        ValidationError: If request is missing or blank.
    """
    cleaned_request = request.strip() if isinstance(request, str) else ""
    if not cleaned_request:
        raise ValidationError("'request' is required")
    return GenerationPayload(
        target=resolve_target(target if isinstance(target, str) else None),
        request=cleaned_request,
        current_code=current_code if isinstance(current_code, str) else "",
    )


class GenerationService:
    """Runs generation requests against the configured provider."""

    def __init__(
        self,
        provider_name: str,
        model: str,
        api_key: str,
        timeout_ms: int,
        provider: Optional[TextProvider] = None,
    ):
        """Initialize GenerationService.

        Args:
            provider_name: Configured provider identifier.
            model: Model name passed to the provider.
            api_key: Upstream credential.
            timeout_ms: Deadline for one provider call in milliseconds.
            provider: Optional provider instance. If None, one is created per
                request from provider_name.
        """
        self.provider_name = provider_name
        self.model = model
        self.api_key = api_key
        self.timeout_ms = timeout_ms
        self._provider = provider

    @classmethod
    def from_settings(cls, settings: Settings) -> "GenerationService":
        return cls(
            provider_name=settings.provider,
            model=settings.model,
            api_key=settings.api_key,
            timeout_ms=settings.request_timeout_ms,
        )

    def _resolve_provider(self) -> TextProvider:
        if not self.api_key:
            raise ConfigurationError(
                f"Missing API key for provider '{self.provider_name}'. "
                "Set VIBBIT_API_KEY or provider-specific key."
            )
        if self._provider is not None:
            return self._provider
        return create_provider(parse_provider_kind(self.provider_name), self.api_key)

    async def generate(self, payload: GenerationPayload) -> GenerationResult:
        """Generate code for a validated payload.

        Args:
            payload: Validated request.

        Returns:
            GenerationResult with non-empty code.

        Raises:
            ConfigurationError: Missing API key or unsupported provider.
            ProviderError: Upstream failure.
            ProviderTimeoutError: Deadline exceeded.
        """
        provider = self._resolve_provider()
        system_prompt = build_system_prompt(payload.target)
        user_prompt = build_user_prompt(payload.request, payload.current_code)

        try:
            raw = await asyncio.wait_for(
                provider.generate(self.model, system_prompt, user_prompt),
                timeout=self.timeout_ms / 1000.0,
            )
        except asyncio.TimeoutError:
            logger.warning(
                "Generation with %s/%s exceeded %dms",
                self.provider_name,
                self.model,
                self.timeout_ms,
            )
            raise ProviderTimeoutError(
                f"Generation timed out after {self.timeout_ms}ms"
            ) from None

        result = normalize_response(raw, payload.target)
        logger.info(
            "Generated %d chars for %s (%d feedback lines)",
            len(result.code),
            payload.target.value,
            len(result.feedback),
        )
        return result
