"""OpenAI-compatible embedding provider.

Uses the openai SDK, so any endpoint speaking the OpenAI embeddings API
(OpenAI itself, Azure-style gateways, local servers) works with a base_url.
"""

import time
from typing import Optional

import structlog
from openai import AsyncOpenAI, OpenAIError

from ..exceptions import EmbeddingError

logger = structlog.get_logger()


class OpenAIEmbeddingProvider:
    """Embedding provider backed by ``AsyncOpenAI.embeddings``."""

    def __init__(
        self,
        model: str,
        api_key: str,
        base_url: Optional[str] = None,
        dimensions: Optional[int] = None,
    ) -> None:
        self.client = AsyncOpenAI(api_key=api_key, base_url=base_url)
        self.model = model
        self.dimensions = dimensions

    async def embed(self, text: str) -> list[float]:
        """Embed text with the configured model."""
        start = time.monotonic()
        kwargs = {"model": self.model, "input": text}
        if self.dimensions:
            kwargs["dimensions"] = self.dimensions

        try:
            response = await self.client.embeddings.create(**kwargs)
        except OpenAIError as exc:
            raise EmbeddingError(f"Embedding request failed: {exc}") from exc

        if not response.data:
            raise EmbeddingError("Embedding response contained no vectors")

        vector = list(response.data[0].embedding)
        logger.debug(
            "Embedded query",
            model=self.model,
            dimensions=len(vector),
            duration_ms=int((time.monotonic() - start) * 1000),
        )
        return vector
