"""Upstream text-generation providers.

Every provider exposes the same coroutine, generate(model, system_prompt,
user_prompt) -> raw text, and sends the same sampling settings
(GENERATION_TEMPERATURE, GENERATION_MAX_TOKENS). They differ only in wire
format: OpenAI and OpenRouter take a chat message list through ChatOpenAI,
Gemini takes one content blob over its REST API.

Providers do not enforce the request deadline themselves; the caller wraps
generate() in asyncio.wait_for, and cancellation aborts the in-flight HTTP
call. A transport-level timeout reported by the client library is still
surfaced as ProviderTimeoutError.
"""

import logging
from abc import ABC, abstractmethod
from enum import Enum
from typing import Any, Dict, Optional, Type
from urllib.parse import quote

import httpx
import openai
from langchain_core.messages import HumanMessage, SystemMessage
from langchain_openai import ChatOpenAI

from config import GENERATION_MAX_TOKENS, GENERATION_TEMPERATURE, LLM_PROVIDERS
from core.exceptions import (
    ConfigurationError,
    ProviderError,
    ProviderTimeoutError,
)

logger = logging.getLogger(__name__)


class ProviderKind(str, Enum):
    """Supported upstream providers."""

    OPENAI = "openai"
    GEMINI = "gemini"
    OPENROUTER = "openrouter"


def parse_provider_kind(value: str) -> ProviderKind:
    """Resolve a configured provider name.

    Raises:
        ConfigurationError: If the provider is not supported.
    """
    try:
        return ProviderKind((value or "").strip().lower())
    except ValueError:
        raise ConfigurationError(f"Unsupported VIBBIT_PROVIDER '{value}'") from None


class TextProvider(ABC):
    """Common interface for generation backends."""

    kind: ProviderKind

    def __init__(self, api_key: str):
        self.api_key = api_key

    @property
    def display_name(self) -> str:
        return LLM_PROVIDERS[self.kind.value]["display_name"]

    @abstractmethod
    async def generate(self, model: str, system_prompt: str, user_prompt: str) -> str:
        """Run one generation and return the raw text.

        Args:
            model: Provider model name.
            system_prompt: Instructions fixing target and output format.
            user_prompt: The student's request (and current code).

        Returns:
            Raw model text; empty when the provider produced nothing usable.

        Raises:
            ProviderError: Non-success status or transport failure.
            ProviderTimeoutError: Client-side timeout.
        """


class ChatCompletionsProvider(TextProvider):
    """Provider speaking the OpenAI chat-completions protocol."""

    def __init__(self, api_key: str, llm: Optional[Any] = None):
        """Initialize the provider.

        Args:
            api_key: Upstream API key.
            llm: Optional chat model instance. If None, a ChatOpenAI client is
                built per call for the requested model.
        """
        super().__init__(api_key)
        self._llm = llm

    @property
    def base_url(self) -> Optional[str]:
        return LLM_PROVIDERS[self.kind.value]["base_url"]

    def _get_llm(self, model: str) -> Any:
        if self._llm is not None:
            return self._llm
        kwargs = {
            "model": model,
            "api_key": self.api_key,
            "temperature": GENERATION_TEMPERATURE,
            "max_tokens": GENERATION_MAX_TOKENS,
            "max_retries": 0,
        }
        if self.base_url:
            kwargs["base_url"] = self.base_url
        return ChatOpenAI(**kwargs)

    async def generate(self, model: str, system_prompt: str, user_prompt: str) -> str:
        llm = self._get_llm(model)
        messages = [
            SystemMessage(content=system_prompt),
            HumanMessage(content=user_prompt),
        ]
        try:
            response = await llm.ainvoke(messages)
        except openai.APITimeoutError as exc:
            raise ProviderTimeoutError(f"{self.display_name} request timed out") from exc
        except openai.APIStatusError as exc:
            logger.warning("%s returned status %s", self.display_name, exc.status_code)
            raise ProviderError(
                f"{self.display_name} error ({exc.status_code})", exc.status_code
            ) from exc
        except openai.APIConnectionError as exc:
            raise ProviderError(f"{self.display_name} connection failed") from exc
        return _message_text(response)


def _message_text(response: Any) -> str:
    """Extract text from an AIMessage (string or list of content parts)."""
    content = response.content if hasattr(response, "content") else response
    if isinstance(content, str):
        return content
    if isinstance(content, list):
        parts = []
        for part in content:
            if isinstance(part, str):
                parts.append(part)
            elif isinstance(part, dict) and part.get("type") == "text":
                parts.append(part.get("text", ""))
        return "".join(parts)
    return ""


class OpenAIProvider(ChatCompletionsProvider):
    kind = ProviderKind.OPENAI


class OpenRouterProvider(ChatCompletionsProvider):
    kind = ProviderKind.OPENROUTER


class GeminiProvider(TextProvider):
    """Google Gemini through the generateContent REST endpoint."""

    kind = ProviderKind.GEMINI

    def __init__(self, api_key: str, client: Optional[httpx.AsyncClient] = None):
        """Initialize the provider.

        Args:
            api_key: Gemini API key.
            client: Optional shared AsyncClient. If None, a client is opened
                per call.
        """
        super().__init__(api_key)
        self._client = client

    @property
    def base_url(self) -> str:
        return LLM_PROVIDERS[self.kind.value]["base_url"]

    def _build_body(self, system_prompt: str, user_prompt: str) -> Dict[str, Any]:
        return {
            "contents": [
                {"role": "user", "parts": [{"text": f"{system_prompt}\n\n{user_prompt}"}]}
            ],
            "generationConfig": {
                "temperature": GENERATION_TEMPERATURE,
                "maxOutputTokens": GENERATION_MAX_TOKENS,
            },
        }

    async def _post(self, client: httpx.AsyncClient, url: str, body: Dict[str, Any]) -> httpx.Response:
        return await client.post(url, params={"key": self.api_key}, json=body)

    async def generate(self, model: str, system_prompt: str, user_prompt: str) -> str:
        url = f"{self.base_url}/models/{quote(model, safe='')}:generateContent"
        body = self._build_body(system_prompt, user_prompt)
        try:
            if self._client is not None:
                response = await self._post(self._client, url, body)
            else:
                # Deadline is enforced by the caller
                async with httpx.AsyncClient(timeout=None) as client:
                    response = await self._post(client, url, body)
        except httpx.TimeoutException as exc:
            raise ProviderTimeoutError("Gemini request timed out") from exc
        except httpx.HTTPError as exc:
            # The request URL carries the API key, so only the error type is reported
            raise ProviderError(f"Gemini request failed ({type(exc).__name__})") from exc

        if not response.is_success:
            logger.warning("Gemini returned status %s", response.status_code)
            raise ProviderError(
                f"Gemini error ({response.status_code})", response.status_code
            )
        try:
            data = response.json()
        except ValueError as exc:
            raise ProviderError("Gemini returned a malformed response") from exc
        return extract_gemini_text(data)


def extract_gemini_text(data: Any) -> str:
    """Return the text of the first candidate.

    A safety block, at prompt or candidate level, yields "" rather than
    whatever partial text came back.
    """
    if not isinstance(data, dict):
        return ""
    prompt_feedback = data.get("promptFeedback") or {}
    if isinstance(prompt_feedback, dict) and prompt_feedback.get("blockReason"):
        logger.info("Gemini blocked the prompt: %s", prompt_feedback.get("blockReason"))
        return ""
    candidates = data.get("candidates") or []
    if not candidates or not isinstance(candidates[0], dict):
        return ""
    candidate = candidates[0]
    finish_reason = str(candidate.get("finishReason") or "")
    if "BLOCK" in finish_reason.upper():
        logger.info("Gemini blocked the response: %s", finish_reason)
        return ""
    parts = (candidate.get("content") or {}).get("parts") or []
    text = "".join(
        part.get("text", "") for part in parts if isinstance(part, dict)
    )
    return text.strip()


PROVIDER_CLASSES: Dict[ProviderKind, Type[TextProvider]] = {
    ProviderKind.OPENAI: OpenAIProvider,
    ProviderKind.GEMINI: GeminiProvider,
    ProviderKind.OPENROUTER: OpenRouterProvider,
}


def create_provider(kind: ProviderKind, api_key: str) -> TextProvider:
    return PROVIDER_CLASSES[kind](api_key)
