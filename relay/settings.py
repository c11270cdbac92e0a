from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # Read from OS env and optional .env file in project root.
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    # Routing defaults used when a conversation carries no usable directive.
    default_model: str = Field(
        "claude-3-5-sonnet-20240620",
        alias="DEFAULT_MODEL",
        description="Model used when no [Model: ...] directive selects another one",
    )
    default_provider: str = Field(
        "Anthropic",
        alias="DEFAULT_PROVIDER",
        description="Provider used when the selected model is not in the registry",
    )

    # Generation limits.
    max_tokens: int = Field(
        8000,
        alias="MAX_TOKENS",
        description="Hard cap on output tokens for a single provider call",
        gt=0,
    )
    max_response_segments: int = Field(
        2,
        alias="MAX_RESPONSE_SEGMENTS",
        description=(
            "How many times a length-truncated response may be continued "
            "before the session fails"
        ),
        ge=0,
    )
    stream_buffer_size: int = Field(
        64,
        alias="STREAM_BUFFER_SIZE",
        description="Chunks buffered between the active upstream and the caller",
        gt=0,
    )

    # HTTP timeouts
    upstream_timeout: float = Field(600.0, alias="UPSTREAM_TIMEOUT")
    discovery_timeout: float = Field(5.0, alias="DISCOVERY_TIMEOUT")

    # Query local model servers (Ollama / OpenAI-like) once at startup.
    model_discovery_enabled: bool = Field(True, alias="MODEL_DISCOVERY_ENABLED")

    # Provider credentials. Missing keys resolve to None, never an error.
    anthropic_api_key: Optional[str] = Field(None, alias="ANTHROPIC_API_KEY")
    openai_api_key: Optional[str] = Field(None, alias="OPENAI_API_KEY")
    google_api_key: Optional[str] = Field(None, alias="GOOGLE_GENERATIVE_AI_API_KEY")
    groq_api_key: Optional[str] = Field(None, alias="GROQ_API_KEY")
    open_router_api_key: Optional[str] = Field(None, alias="OPEN_ROUTER_API_KEY")
    deepseek_api_key: Optional[str] = Field(None, alias="DEEPSEEK_API_KEY")
    mistral_api_key: Optional[str] = Field(None, alias="MISTRAL_API_KEY")
    openai_like_api_key: Optional[str] = Field(None, alias="OPENAI_LIKE_API_KEY")
    xai_api_key: Optional[str] = Field(None, alias="XAI_API_KEY")

    # Self-hosted endpoints.
    openai_like_api_base_url: Optional[str] = Field(
        None,
        alias="OPENAI_LIKE_API_BASE_URL",
        description="Base URL of an OpenAI-compatible server, e.g. 'http://localhost:1234/v1'",
    )
    ollama_api_base_url: str = Field(
        "http://localhost:11434",
        alias="OLLAMA_API_BASE_URL",
        description="Base URL of the local Ollama server",
    )
    running_in_docker: bool = Field(
        False,
        alias="RUNNING_IN_DOCKER",
        description="Rewrite localhost to host.docker.internal for local servers",
    )

    # Application log level for our relay logger.
    # Can be overridden via LOG_LEVEL env var, e.g. "DEBUG" while debugging.
    log_level: str = Field(
        "INFO",
        alias="LOG_LEVEL",
        description="Application log level: DEBUG, INFO, WARNING, ERROR, CRITICAL",
    )
    log_timezone: Optional[str] = Field(
        default=None,
        alias="LOG_TIMEZONE",
        description="Timezone name for log timestamps, e.g. 'Europe/Berlin'. Defaults to system local time.",
    )
    log_dir: str = Field("logs", alias="LOG_DIR")
    log_retention_days: int = Field(
        7,
        alias="LOG_RETENTION_DAYS",
        description="Number of daily log files kept under LOG_DIR",
    )

    def get_ollama_base_url(self) -> str:
        """
        Return the Ollama base URL, pointing at the Docker host when the
        relay itself runs inside a container.
        """
        base_url = self.ollama_api_base_url or "http://localhost:11434"
        if self.running_in_docker:
            base_url = base_url.replace("localhost", "host.docker.internal")
        return base_url


settings = Settings()  # Reads from environment if available
