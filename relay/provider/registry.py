"""
Model / provider registry.

The registry is a read-only lookup table built once at startup:

- a static list of well-known models, optionally preceded by models
  discovered on local servers (see relay.provider.discovery);
- per-provider credentials resolved from settings (env / .env);
- a factory turning a (provider, model) pair into a StreamableModel.

Routing components receive the registry by reference (app.state / FastAPI
dependencies); nothing mutates it after construction.
"""

from __future__ import annotations

from typing import Callable, Dict, Iterable, List, Optional, Sequence

from relay.models import ModelInfo, ProviderCredentials
from relay.provider.base import StreamableModel
from relay.provider.sdk_selector import build_model_handle
from relay.settings import Settings, settings as default_settings

HandleFactory = Callable[[str, str, ProviderCredentials], StreamableModel]


def _m(name: str, label: str, provider: str) -> ModelInfo:
    return ModelInfo(name=name, label=label, provider=provider)


STATIC_MODELS: Sequence[ModelInfo] = (
    _m("claude-3-5-sonnet-20240620", "Claude 3.5 Sonnet", "Anthropic"),
    _m("gpt-4o", "GPT-4o", "OpenAI"),
    _m("anthropic/claude-3.5-sonnet", "Anthropic: Claude 3.5 Sonnet (OpenRouter)", "OpenRouter"),
    _m("anthropic/claude-3-haiku", "Anthropic: Claude 3 Haiku (OpenRouter)", "OpenRouter"),
    _m("deepseek/deepseek-coder", "Deepseek-Coder V2 236B (OpenRouter)", "OpenRouter"),
    _m("google/gemini-flash-1.5", "Google Gemini Flash 1.5 (OpenRouter)", "OpenRouter"),
    _m("google/gemini-pro-1.5", "Google Gemini Pro 1.5 (OpenRouter)", "OpenRouter"),
    _m("x-ai/grok-beta", "xAI Grok Beta (OpenRouter)", "OpenRouter"),
    _m("mistralai/mistral-nemo", "OpenRouter Mistral Nemo (OpenRouter)", "OpenRouter"),
    _m("qwen/qwen-110b-chat", "OpenRouter Qwen 110b Chat (OpenRouter)", "OpenRouter"),
    _m("cohere/command", "Cohere Command (OpenRouter)", "OpenRouter"),
    _m("gemini-1.5-flash-latest", "Gemini 1.5 Flash", "Google"),
    _m("gemini-1.5-pro-latest", "Gemini 1.5 Pro", "Google"),
    _m("llama-3.1-70b-versatile", "Llama 3.1 70b (Groq)", "Groq"),
    _m("llama-3.1-8b-instant", "Llama 3.1 8b (Groq)", "Groq"),
    _m("llama-3.2-11b-vision-preview", "Llama 3.2 11b (Groq)", "Groq"),
    _m("llama-3.2-3b-preview", "Llama 3.2 3b (Groq)", "Groq"),
    _m("llama-3.2-1b-preview", "Llama 3.2 1b (Groq)", "Groq"),
    _m("claude-3-opus-20240229", "Claude 3 Opus", "Anthropic"),
    _m("claude-3-sonnet-20240229", "Claude 3 Sonnet", "Anthropic"),
    _m("claude-3-haiku-20240307", "Claude 3 Haiku", "Anthropic"),
    _m("gpt-4o-mini", "GPT-4o Mini", "OpenAI"),
    _m("gpt-4-turbo", "GPT-4 Turbo", "OpenAI"),
    _m("gpt-4", "GPT-4", "OpenAI"),
    _m("gpt-3.5-turbo", "GPT-3.5 Turbo", "OpenAI"),
    _m("grok-beta", "xAI Grok Beta", "xAI"),
    _m("deepseek-coder", "Deepseek-Coder", "Deepseek"),
    _m("deepseek-chat", "Deepseek-Chat", "Deepseek"),
    _m("open-mistral-7b", "Mistral 7B", "Mistral"),
    _m("open-mixtral-8x7b", "Mistral 8x7B", "Mistral"),
    _m("open-mixtral-8x22b", "Mistral 8x22B", "Mistral"),
    _m("open-codestral-mamba", "Codestral Mamba", "Mistral"),
    _m("open-mistral-nemo", "Mistral Nemo", "Mistral"),
    _m("ministral-8b-latest", "Mistral 8B", "Mistral"),
    _m("mistral-small-latest", "Mistral Small", "Mistral"),
    _m("codestral-latest", "Codestral", "Mistral"),
    _m("mistral-large-latest", "Mistral Large Latest", "Mistral"),
)

# Provider name -> Settings attribute holding its API key.
_API_KEY_FIELDS: Dict[str, str] = {
    "Anthropic": "anthropic_api_key",
    "OpenAI": "openai_api_key",
    "Google": "google_api_key",
    "Groq": "groq_api_key",
    "OpenRouter": "open_router_api_key",
    "Deepseek": "deepseek_api_key",
    "Mistral": "mistral_api_key",
    "OpenAILike": "openai_like_api_key",
    "xAI": "xai_api_key",
}


class ModelRegistry:
    """
    Immutable model list plus credential lookup and model handle factory.
    """

    def __init__(
        self,
        models: Iterable[ModelInfo] = STATIC_MODELS,
        *,
        settings: Optional[Settings] = None,
        default_model: Optional[str] = None,
        default_provider: Optional[str] = None,
        handle_factory: HandleFactory = build_model_handle,
    ) -> None:
        self._settings = settings or default_settings
        self._models: tuple[ModelInfo, ...] = tuple(models)
        self._by_name: Dict[str, ModelInfo] = {}
        for model in self._models:
            # First entry wins so discovered models shadow static ones.
            self._by_name.setdefault(model.name, model)
        self.default_model = default_model or self._settings.default_model
        self.default_provider = default_provider or self._settings.default_provider
        self._handle_factory = handle_factory

    @property
    def models(self) -> List[ModelInfo]:
        return list(self._models)

    def find(self, name: str) -> Optional[ModelInfo]:
        return self._by_name.get(name)

    def is_known(self, name: Optional[str]) -> bool:
        return bool(name) and name in self._by_name

    def provider_for(self, name: str) -> str:
        """
        Provider of a registered model, or the default provider.
        """
        info = self.find(name)
        return info.provider if info else self.default_provider

    def resolve(self, provider: str) -> ProviderCredentials:
        """
        Look up credentials for a provider. Missing values resolve to None.
        """
        key_field = _API_KEY_FIELDS.get(provider)
        api_key = getattr(self._settings, key_field, None) if key_field else None

        base_url: Optional[str] = None
        if provider == "OpenAILike":
            base_url = self._settings.openai_like_api_base_url or None
        elif provider == "Ollama":
            base_url = self._settings.get_ollama_base_url()

        return ProviderCredentials(api_key=api_key or None, base_url=base_url)

    def model_handle(self, provider: str, model_id: str) -> StreamableModel:
        return self._handle_factory(provider, model_id, self.resolve(provider))


__all__ = ["STATIC_MODELS", "ModelRegistry", "HandleFactory"]
