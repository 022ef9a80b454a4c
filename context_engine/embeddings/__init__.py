"""Embedding providers used to vectorize retrieval queries."""

from .factory import create_embedding_provider
from .interface import EmbeddingProvider
from .openai_provider import OpenAIEmbeddingProvider

__all__ = ["EmbeddingProvider", "OpenAIEmbeddingProvider", "create_embedding_provider"]
