"""
Startup discovery of models served by locally reachable servers.

Two sources are queried once when the app starts:

- Ollama: GET {OLLAMA_API_BASE_URL}/api/tags
- OpenAI-compatible server: GET {OPENAI_LIKE_API_BASE_URL}/models

Discovery never blocks startup: an unreachable server, an HTTP error or an
unexpected payload simply yields no models for that source.
"""

from __future__ import annotations

from typing import Any, List, Optional

import httpx

from relay.logging_config import logger
from relay.models import ModelInfo
from relay.provider.registry import STATIC_MODELS, ModelRegistry
from relay.settings import Settings, settings as default_settings


async def fetch_ollama_models(client: httpx.AsyncClient, base_url: str) -> List[ModelInfo]:
    url = f"{base_url.rstrip('/')}/api/tags"
    try:
        resp = await client.get(url)
        resp.raise_for_status()
        payload: Any = resp.json()
        models = []
        for item in payload["models"]:
            size = (item.get("details") or {}).get("parameter_size")
            models.append(
                ModelInfo(
                    name=item["name"],
                    label=f"{item['name']} ({size})",
                    provider="Ollama",
                )
            )
        return models
    except Exception as exc:
        logger.info("Ollama model discovery skipped (%s): %s", url, exc)
        return []


async def fetch_openai_like_models(
    client: httpx.AsyncClient,
    base_url: Optional[str],
    api_key: Optional[str],
) -> List[ModelInfo]:
    if not base_url:
        return []

    url = f"{base_url.rstrip('/')}/models"
    try:
        resp = await client.get(
            url, headers={"Authorization": f"Bearer {api_key or ''}"}
        )
        resp.raise_for_status()
        payload: Any = resp.json()
        return [
            ModelInfo(name=item["id"], label=item["id"], provider="OpenAILike")
            for item in payload["data"]
        ]
    except Exception as exc:
        logger.info("OpenAI-like model discovery skipped (%s): %s", url, exc)
        return []


async def build_model_registry(
    client: httpx.AsyncClient,
    settings: Optional[Settings] = None,
) -> ModelRegistry:
    """
    Build the process-wide registry: discovered models first, then the
    static list.
    """
    cfg = settings or default_settings
    if not cfg.model_discovery_enabled:
        return ModelRegistry(STATIC_MODELS, settings=cfg)

    ollama_models = await fetch_ollama_models(client, cfg.get_ollama_base_url())
    openai_like_models = await fetch_openai_like_models(
        client, cfg.openai_like_api_base_url, cfg.openai_like_api_key
    )
    if ollama_models or openai_like_models:
        logger.info(
            "Discovered %d Ollama and %d OpenAI-like models",
            len(ollama_models),
            len(openai_like_models),
        )
    return ModelRegistry(
        [*ollama_models, *openai_like_models, *STATIC_MODELS], settings=cfg
    )


__all__ = [
    "fetch_ollama_models",
    "fetch_openai_like_models",
    "build_model_registry",
]
