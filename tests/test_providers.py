import json

import httpx
import openai
import pytest
from langchain_core.messages import AIMessage, HumanMessage, SystemMessage

from core.exceptions import ConfigurationError, ProviderError, ProviderTimeoutError
from utils.providers import (
    GeminiProvider,
    OpenAIProvider,
    OpenRouterProvider,
    ProviderKind,
    create_provider,
    extract_gemini_text,
    parse_provider_kind,
)

OPENAI_URL = "https://api.openai.com/v1/chat/completions"


class FakeChatModel:
    """Records ainvoke calls and replies with a canned message or error."""

    def __init__(self, content="basic.showNumber(1)", error=None):
        self.content = content
        self.error = error
        self.messages = None

    async def ainvoke(self, messages):
        self.messages = messages
        if self.error is not None:
            raise self.error
        return AIMessage(content=self.content)


def _gemini_client(handler) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


def _gemini_reply(text, finish_reason="STOP"):
    return {
        "candidates": [
            {"content": {"parts": [{"text": text}]}, "finishReason": finish_reason}
        ]
    }


@pytest.mark.parametrize(
    "value, expected",
    [
        ("openai", ProviderKind.OPENAI),
        ("Gemini", ProviderKind.GEMINI),
        (" openrouter ", ProviderKind.OPENROUTER),
    ],
)
def test_parse_provider_kind(value, expected):
    assert parse_provider_kind(value) is expected


def test_parse_provider_kind_rejects_unknown():
    with pytest.raises(ConfigurationError) as excinfo:
        parse_provider_kind("anthropic")
    assert "anthropic" in str(excinfo.value)


def test_create_provider_picks_class():
    assert isinstance(create_provider(ProviderKind.OPENAI, "k"), OpenAIProvider)
    assert isinstance(create_provider(ProviderKind.OPENROUTER, "k"), OpenRouterProvider)
    assert isinstance(create_provider(ProviderKind.GEMINI, "k"), GeminiProvider)


def test_chat_model_built_with_shared_sampling_settings():
    llm = OpenRouterProvider("sk-test")._get_llm("openrouter/auto")
    assert llm.model_name == "openrouter/auto"
    assert llm.temperature == 0.1
    assert llm.max_tokens == 3072
    assert llm.max_retries == 0
    assert llm.openai_api_base == "https://openrouter.ai/api/v1"

    assert OpenAIProvider("sk-test")._get_llm("gpt-4o-mini").openai_api_base is None


@pytest.mark.asyncio
async def test_chat_provider_sends_system_and_user_messages():
    llm = FakeChatModel(content="FEEDBACK: ok\nbasic.pause(1)")
    provider = OpenAIProvider("sk-test", llm=llm)

    text = await provider.generate("gpt-4o-mini", "system text", "user text")

    assert text == "FEEDBACK: ok\nbasic.pause(1)"
    assert isinstance(llm.messages[0], SystemMessage)
    assert llm.messages[0].content == "system text"
    assert isinstance(llm.messages[1], HumanMessage)
    assert llm.messages[1].content == "user text"


@pytest.mark.asyncio
async def test_chat_provider_joins_content_parts():
    llm = FakeChatModel(content=[{"type": "text", "text": "a"}, "b"])
    assert await OpenAIProvider("k", llm=llm).generate("m", "s", "u") == "ab"


@pytest.mark.asyncio
async def test_chat_provider_maps_status_errors():
    response = httpx.Response(429, request=httpx.Request("POST", OPENAI_URL))
    error = openai.APIStatusError("rate limited", response=response, body=None)
    provider = OpenRouterProvider("k", llm=FakeChatModel(error=error))

    with pytest.raises(ProviderError) as excinfo:
        await provider.generate("m", "s", "u")
    assert excinfo.value.upstream_status == 429
    assert "OpenRouter" in str(excinfo.value)
    assert "429" in str(excinfo.value)


@pytest.mark.asyncio
async def test_chat_provider_maps_timeouts():
    error = openai.APITimeoutError(request=httpx.Request("POST", OPENAI_URL))
    provider = OpenAIProvider("k", llm=FakeChatModel(error=error))

    with pytest.raises(ProviderTimeoutError):
        await provider.generate("m", "s", "u")


@pytest.mark.asyncio
async def test_chat_provider_maps_connection_errors():
    error = openai.APIConnectionError(request=httpx.Request("POST", OPENAI_URL))
    provider = OpenAIProvider("k", llm=FakeChatModel(error=error))

    with pytest.raises(ProviderError) as excinfo:
        await provider.generate("m", "s", "u")
    assert not isinstance(excinfo.value, ProviderTimeoutError)


@pytest.mark.asyncio
async def test_gemini_request_shape_and_text():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["path"] = request.url.path
        seen["key"] = request.url.params.get("key")
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json=_gemini_reply("  basic.showNumber(2)  "))

    async with _gemini_client(handler) as client:
        text = await GeminiProvider("g-key", client=client).generate(
            "gemini-2.5-flash", "SYS", "USR"
        )

    assert text == "basic.showNumber(2)"
    assert seen["path"] == "/v1/models/gemini-2.5-flash:generateContent"
    assert seen["key"] == "g-key"
    assert seen["body"]["contents"][0]["parts"][0]["text"] == "SYS\n\nUSR"
    assert seen["body"]["generationConfig"] == {"temperature": 0.1, "maxOutputTokens": 3072}


@pytest.mark.asyncio
async def test_gemini_safety_block_yields_empty_text():
    def handler(request):
        return httpx.Response(200, json=_gemini_reply("partial", finish_reason="BLOCKLIST"))

    async with _gemini_client(handler) as client:
        assert await GeminiProvider("k", client=client).generate("m", "s", "u") == ""


@pytest.mark.asyncio
async def test_gemini_error_status_raises_without_leaking_key():
    def handler(request):
        return httpx.Response(500, json={"error": {"message": "boom"}})

    async with _gemini_client(handler) as client:
        with pytest.raises(ProviderError) as excinfo:
            await GeminiProvider("secret-key", client=client).generate("m", "s", "u")
    assert excinfo.value.upstream_status == 500
    assert "secret-key" not in str(excinfo.value)


@pytest.mark.asyncio
async def test_gemini_transport_timeout():
    def handler(request):
        raise httpx.ReadTimeout("timed out", request=request)

    async with _gemini_client(handler) as client:
        with pytest.raises(ProviderTimeoutError):
            await GeminiProvider("k", client=client).generate("m", "s", "u")


@pytest.mark.asyncio
async def test_gemini_transport_failure_hides_url():
    def handler(request):
        raise httpx.ConnectError(f"cannot reach {request.url}", request=request)

    async with _gemini_client(handler) as client:
        with pytest.raises(ProviderError) as excinfo:
            await GeminiProvider("secret-key", client=client).generate("m", "s", "u")
    assert "secret-key" not in str(excinfo.value)


@pytest.mark.asyncio
async def test_gemini_malformed_json():
    def handler(request):
        return httpx.Response(200, text="<html>")

    async with _gemini_client(handler) as client:
        with pytest.raises(ProviderError):
            await GeminiProvider("k", client=client).generate("m", "s", "u")


def test_extract_gemini_text_edge_cases():
    assert extract_gemini_text({"promptFeedback": {"blockReason": "SAFETY"}}) == ""
    assert extract_gemini_text({"candidates": []}) == ""
    assert extract_gemini_text(None) == ""
    assert extract_gemini_text(
        {"candidates": [{"content": {"parts": [{"text": "a"}, {"text": "b"}]}}]}
    ) == "ab"
