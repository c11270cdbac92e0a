from typing import Optional

from pydantic import BaseModel, Field


class ModelInfo(BaseModel):
    """
    One entry of the model registry.
    """

    name: str = Field(..., description="Model identifier sent to the provider")
    label: str = Field(..., description="Human readable model name")
    provider: str = Field(..., description="Provider name, e.g. 'OpenAI'")


class ProviderCredentials(BaseModel):
    """
    Credentials resolved for a provider. Unset values stay None.
    """

    api_key: Optional[str] = Field(None, description="API key or token")
    base_url: Optional[str] = Field(None, description="Custom API base URL")


__all__ = ["ModelInfo", "ProviderCredentials"]
