"""Tests for embedding provider factory."""

from unittest.mock import MagicMock, patch

import pytest

from context_engine.embeddings.factory import create_embedding_provider
from context_engine.embeddings.openai_provider import OpenAIEmbeddingProvider
from context_engine.exceptions import ConfigurationError


@pytest.fixture
def mock_settings():
    """Create mock settings with embedding fields."""
    settings = MagicMock()
    settings.embedding_provider = "openai"
    settings.openai_api_key_str = "sk-test"
    settings.openai_base_url = None
    settings.embedding_model = "text-embedding-3-small"
    settings.embedding_dimensions = None
    return settings


class TestCreateEmbeddingProvider:
    """Tests for create_embedding_provider factory function."""

    def test_openai_returns_openai_provider(self, mock_settings):
        with patch("context_engine.embeddings.openai_provider.AsyncOpenAI"):
            provider = create_embedding_provider(mock_settings)

        assert isinstance(provider, OpenAIEmbeddingProvider)
        assert provider.model == "text-embedding-3-small"

    def test_openai_without_key_raises(self, mock_settings):
        mock_settings.openai_api_key_str = None

        with pytest.raises(ConfigurationError, match="OPENAI_API_KEY"):
            create_embedding_provider(mock_settings)

    def test_unknown_provider_raises_value_error(self, mock_settings):
        mock_settings.embedding_provider = "word2vec"

        with pytest.raises(ValueError, match="Unknown embedding provider"):
            create_embedding_provider(mock_settings)
