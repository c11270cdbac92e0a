"""
Provider -> SDK dispatch.

Anthropic and Google go through their official SDKs; every other provider
speaks the OpenAI chat-completions dialect and goes through the openai SDK
with a vendor base URL. Unknown providers are treated as Ollama models.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, AsyncIterator, Callable, Dict, List, Optional, Tuple

from relay.models import ProviderCredentials, StreamDelta
from relay.provider import claude_sdk, google_sdk, openai_sdk

# Fixed endpoints of OpenAI-compatible vendors.
OPENAI_COMPATIBLE_BASE_URLS: Dict[str, Optional[str]] = {
    "OpenAI": None,
    "Groq": "https://api.groq.com/openai/v1",
    "Deepseek": "https://api.deepseek.com/beta",
    "xAI": "https://api.x.ai/v1",
    "OpenRouter": "https://openrouter.ai/api/v1",
    "Mistral": "https://api.mistral.ai/v1",
}

# Ollama ignores the key, but the openai SDK refuses to start without one.
OLLAMA_PLACEHOLDER_KEY = "ollama"


@dataclass(frozen=True)
class SDKDriver:
    name: str
    stream_chat: Callable[..., AsyncIterator[StreamDelta]]


OPENAI_DRIVER = SDKDriver(
    name="openai",
    stream_chat=openai_sdk.stream_chat,
)
CLAUDE_DRIVER = SDKDriver(
    name="claude",
    stream_chat=claude_sdk.stream_chat,
)
GOOGLE_DRIVER = SDKDriver(
    name="google",
    stream_chat=google_sdk.stream_chat,
)


def normalize_base_url(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text.rstrip("/") or None


def get_sdk_driver(provider: str) -> SDKDriver:
    if provider == "Anthropic":
        return CLAUDE_DRIVER
    if provider == "Google":
        return GOOGLE_DRIVER
    return OPENAI_DRIVER


def resolve_endpoint(
    provider: str, credentials: ProviderCredentials
) -> Tuple[Optional[str], Optional[str]]:
    """
    Return the (api_key, base_url) pair the SDK client should be built with.
    """
    if provider in ("Anthropic", "Google", "OpenAI"):
        return credentials.api_key, None

    # The openai SDK reads OPENAI_API_KEY when api_key is None; other vendors
    # must never receive that key, so a missing key stays empty.
    if provider in OPENAI_COMPATIBLE_BASE_URLS:
        return credentials.api_key or "", OPENAI_COMPATIBLE_BASE_URLS[provider]
    if provider == "OpenAILike":
        return credentials.api_key or "", normalize_base_url(credentials.base_url)

    # Ollama exposes an OpenAI-compatible API under /v1.
    base_url = normalize_base_url(credentials.base_url) or "http://localhost:11434"
    return credentials.api_key or OLLAMA_PLACEHOLDER_KEY, f"{base_url}/v1"


@dataclass(frozen=True)
class SDKModelHandle:
    """
    StreamableModel backed by a vendor SDK driver.
    """

    provider: str
    model_id: str
    driver: SDKDriver
    api_key: Optional[str]
    base_url: Optional[str]

    def stream(
        self,
        messages: List[Dict[str, Any]],
        *,
        max_tokens: int,
        tool_choice: Optional[str] = None,
    ) -> AsyncIterator[StreamDelta]:
        return self.driver.stream_chat(
            api_key=self.api_key,
            base_url=self.base_url,
            model_id=self.model_id,
            messages=messages,
            max_tokens=max_tokens,
            tool_choice=tool_choice,
        )


def build_model_handle(
    provider: str, model_id: str, credentials: ProviderCredentials
) -> SDKModelHandle:
    api_key, base_url = resolve_endpoint(provider, credentials)
    return SDKModelHandle(
        provider=provider,
        model_id=model_id,
        driver=get_sdk_driver(provider),
        api_key=api_key,
        base_url=base_url,
    )


__all__ = [
    "SDKDriver",
    "SDKModelHandle",
    "build_model_handle",
    "get_sdk_driver",
    "normalize_base_url",
    "resolve_endpoint",
]
