from relay.models import ModelInfo, ProviderCredentials
from relay.provider.registry import STATIC_MODELS, ModelRegistry
from relay.provider.sdk_selector import SDKModelHandle
from relay.settings import Settings


def _settings(**overrides) -> Settings:
    data = {
        "default_model": "claude-3-5-sonnet-20240620",
        "default_provider": "Anthropic",
        "anthropic_api_key": "sk-ant-test",  # pragma: allowlist secret
        "openai_api_key": None,
        "openai_like_api_key": None,
        "openai_like_api_base_url": None,
        "ollama_api_base_url": "http://localhost:11434",
        "running_in_docker": False,
    }
    data.update(overrides)
    return Settings(_env_file=None, **data)


def test_static_models_are_registered_in_order():
    registry = ModelRegistry(settings=_settings())

    assert len(registry.models) == len(STATIC_MODELS)
    assert registry.models[0].name == "claude-3-5-sonnet-20240620"
    assert registry.find("gpt-4o") == ModelInfo(name="gpt-4o", label="GPT-4o", provider="OpenAI")
    assert registry.provider_for("deepseek-coder") == "Deepseek"
    assert registry.provider_for("anthropic/claude-3.5-sonnet") == "OpenRouter"


def test_unknown_model_falls_back_to_default_provider():
    registry = ModelRegistry(settings=_settings())

    assert not registry.is_known("not-a-model")
    assert not registry.is_known("")
    assert registry.provider_for("not-a-model") == "Anthropic"


def test_explicit_defaults_override_settings():
    registry = ModelRegistry(
        settings=_settings(), default_model="gpt-4o-mini", default_provider="OpenAI"
    )

    assert registry.default_model == "gpt-4o-mini"
    assert registry.default_provider == "OpenAI"


def test_first_registration_of_a_name_wins():
    local = ModelInfo(name="gpt-4o", label="gpt-4o (local)", provider="Ollama")
    registry = ModelRegistry([local, *STATIC_MODELS], settings=_settings())

    assert registry.provider_for("gpt-4o") == "Ollama"
    assert len(registry.models) == len(STATIC_MODELS) + 1


def test_resolve_reads_api_keys_and_tolerates_missing_ones():
    registry = ModelRegistry(settings=_settings())

    assert registry.resolve("Anthropic") == ProviderCredentials(
        api_key="sk-ant-test", base_url=None  # pragma: allowlist secret
    )
    assert registry.resolve("OpenAI") == ProviderCredentials(api_key=None, base_url=None)
    assert registry.resolve("SomethingElse") == ProviderCredentials()


def test_resolve_self_hosted_base_urls():
    registry = ModelRegistry(
        settings=_settings(
            openai_like_api_base_url="http://localhost:1234/v1",
            ollama_api_base_url="http://localhost:11434",
            running_in_docker=True,
        )
    )

    assert registry.resolve("OpenAILike").base_url == "http://localhost:1234/v1"
    assert registry.resolve("Ollama").base_url == "http://host.docker.internal:11434"


def test_model_handle_uses_factory_with_resolved_credentials():
    seen = []

    def _factory(provider, model_id, credentials):
        seen.append((provider, model_id, credentials))
        return object()

    registry = ModelRegistry(settings=_settings(), handle_factory=_factory)
    registry.model_handle("Anthropic", "claude-3-haiku-20240307")

    assert seen == [
        (
            "Anthropic",
            "claude-3-haiku-20240307",
            ProviderCredentials(api_key="sk-ant-test"),  # pragma: allowlist secret
        )
    ]


def test_default_factory_builds_sdk_handle():
    registry = ModelRegistry(settings=_settings())
    handle = registry.model_handle("Anthropic", "claude-3-opus-20240229")

    assert isinstance(handle, SDKModelHandle)
    assert handle.provider == "Anthropic"
    assert handle.model_id == "claude-3-opus-20240229"
    assert handle.api_key == "sk-ant-test"  # pragma: allowlist secret
