"""Memory context pipeline: resolve, retrieve, rank, compress, fit, record."""

from .access import AccessRecorder
from .compressor import MemoryCompressor
from .fitter import estimate_memory_tokens, estimate_tokens, fit_to_context_window
from .manager import MemoryContextManager, create_context_manager
from .models import (
    CompressionRecord,
    ContextConfiguration,
    ContextMetadata,
    ContextResult,
    FitResult,
    MemoryCount,
)
from .prioritizer import prioritization_strategy, prioritize_memories
from .resolver import ConfigurationResolver
from .retriever import MemoryRetriever

__all__ = [
    "AccessRecorder",
    "CompressionRecord",
    "ConfigurationResolver",
    "ContextConfiguration",
    "ContextMetadata",
    "ContextResult",
    "FitResult",
    "MemoryCompressor",
    "MemoryContextManager",
    "MemoryCount",
    "MemoryRetriever",
    "create_context_manager",
    "estimate_memory_tokens",
    "estimate_tokens",
    "fit_to_context_window",
    "prioritization_strategy",
    "prioritize_memories",
]
