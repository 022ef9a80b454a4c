"""Embedding provider factory.

Creates the appropriate EmbeddingProvider based on engine settings.
"""

from typing import Any

from ..exceptions import ConfigurationError
from .interface import EmbeddingProvider
from .openai_provider import OpenAIEmbeddingProvider


def create_embedding_provider(settings: Any) -> EmbeddingProvider:
    """Create an embedding provider based on settings.

    Args:
        settings: Engine settings with an `embedding_provider` attribute.
            Supported values: "openai".

    Returns:
        An EmbeddingProvider implementation.

    Raises:
        ValueError: If the provider name is unknown.
        ConfigurationError: If the selected provider is missing credentials.
    """
    provider_name = getattr(settings, "embedding_provider", "openai")

    if provider_name == "openai":
        api_key = settings.openai_api_key_str
        if not api_key:
            raise ConfigurationError(
                "CONTEXT_ENGINE_OPENAI_API_KEY is required for the openai "
                "embedding provider"
            )
        return OpenAIEmbeddingProvider(
            model=settings.embedding_model,
            api_key=api_key,
            base_url=settings.openai_base_url,
            dimensions=settings.embedding_dimensions,
        )

    raise ValueError(
        f"Unknown embedding provider: '{provider_name}'. "
        f"Supported providers: 'openai'"
    )
