"""Embedding provider interface.

Defines the Protocol the retriever uses to turn query text into a vector.
Any backend (OpenAI, a self-hosted model, a test double) that implements
``embed`` can be plugged into the pipeline.
"""

from typing import Protocol


class EmbeddingProvider(Protocol):
    """Protocol defining the embedding provider interface."""

    async def embed(self, text: str) -> list[float]:
        """Embed a single piece of text.

        Args:
            text: The text to embed.

        Returns:
            A fixed-dimension vector.

        Raises:
            EmbeddingError: If the provider fails or returns no vector.
        """
        ...
