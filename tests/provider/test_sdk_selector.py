from typing import Any, Dict, List

import pytest

from relay.models import ProviderCredentials, StreamDelta
from relay.provider import openai_sdk
from relay.provider.base import StreamableModel
from relay.provider.sdk_selector import (
    CLAUDE_DRIVER,
    GOOGLE_DRIVER,
    OLLAMA_PLACEHOLDER_KEY,
    OPENAI_DRIVER,
    SDKDriver,
    SDKModelHandle,
    build_model_handle,
    get_sdk_driver,
    resolve_endpoint,
)


def test_official_sdks_are_used_for_anthropic_and_google():
    assert get_sdk_driver("Anthropic") is CLAUDE_DRIVER
    assert get_sdk_driver("Google") is GOOGLE_DRIVER
    for provider in ("OpenAI", "Groq", "Deepseek", "xAI", "OpenRouter", "Mistral", "OpenAILike", "Ollama"):
        assert get_sdk_driver(provider) is OPENAI_DRIVER


@pytest.mark.parametrize(
    "provider,base_url",
    [
        ("OpenAI", None),
        ("Groq", "https://api.groq.com/openai/v1"),
        ("Deepseek", "https://api.deepseek.com/beta"),
        ("xAI", "https://api.x.ai/v1"),
        ("OpenRouter", "https://openrouter.ai/api/v1"),
        ("Mistral", "https://api.mistral.ai/v1"),
    ],
)
def test_openai_compatible_vendors_use_fixed_endpoints(provider, base_url):
    creds = ProviderCredentials(api_key="sk-test")  # pragma: allowlist secret
    assert resolve_endpoint(provider, creds) == ("sk-test", base_url)


def test_openai_like_base_url_is_normalised():
    creds = ProviderCredentials(api_key=None, base_url=" http://localhost:1234/v1/ ")
    assert resolve_endpoint("OpenAILike", creds) == ("", "http://localhost:1234/v1")


@pytest.mark.parametrize("provider", ["Groq", "Deepseek", "xAI", "OpenRouter", "Mistral", "OpenAILike"])
def test_missing_vendor_key_never_falls_back_to_openai_key(monkeypatch, provider):
    monkeypatch.setenv("OPENAI_API_KEY", "sk-openai-secret")  # pragma: allowlist secret

    handle = build_model_handle(
        provider, "some-model", ProviderCredentials(base_url="http://localhost:1234/v1")
    )
    client = openai_sdk._create_client(handle.api_key, handle.base_url)

    assert handle.api_key == ""
    assert client.api_key != "sk-openai-secret"  # pragma: allowlist secret


def test_ollama_gets_v1_suffix_and_placeholder_key():
    creds = ProviderCredentials(base_url="http://host.docker.internal:11434")
    assert resolve_endpoint("Ollama", creds) == (
        OLLAMA_PLACEHOLDER_KEY,
        "http://host.docker.internal:11434/v1",
    )
    assert resolve_endpoint("Ollama", ProviderCredentials()) == (
        OLLAMA_PLACEHOLDER_KEY,
        "http://localhost:11434/v1",
    )


def test_build_model_handle_satisfies_streamable_model():
    handle = build_model_handle(
        "Groq", "llama-3.1-8b-instant", ProviderCredentials(api_key="gsk-test")  # pragma: allowlist secret
    )

    assert isinstance(handle, StreamableModel)
    assert handle.driver is OPENAI_DRIVER
    assert handle.base_url == "https://api.groq.com/openai/v1"


@pytest.mark.asyncio
async def test_handle_stream_forwards_arguments_to_driver():
    seen: List[Dict[str, Any]] = []

    async def _fake_stream_chat(**kwargs):
        seen.append(kwargs)
        yield StreamDelta(text="hi")
        yield StreamDelta(finish_reason="stop")

    handle = SDKModelHandle(
        provider="OpenAI",
        model_id="gpt-4o",
        driver=SDKDriver(name="fake", stream_chat=_fake_stream_chat),
        api_key="sk-test",  # pragma: allowlist secret
        base_url=None,
    )
    messages = [{"role": "user", "content": "hello"}]
    deltas = [d async for d in handle.stream(messages, max_tokens=42, tool_choice="none")]

    assert deltas == [StreamDelta(text="hi"), StreamDelta(finish_reason="stop")]
    assert seen == [
        {
            "api_key": "sk-test",  # pragma: allowlist secret
            "base_url": None,
            "model_id": "gpt-4o",
            "messages": messages,
            "max_tokens": 42,
            "tool_choice": "none",
        }
    ]
