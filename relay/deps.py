from fastapi import Request

from .provider.registry import ModelRegistry
from .settings import settings


def get_model_registry(request: Request) -> ModelRegistry:
    """
    Process-wide registry built once at startup (see routes.create_app).
    """
    registry = getattr(request.app.state, "model_registry", None)
    if registry is None:
        # Startup discovery has not run (e.g. app used without lifespan).
        registry = ModelRegistry(settings=settings)
        request.app.state.model_registry = registry
    return registry
