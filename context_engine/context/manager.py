"""MemoryContextManager: builds the memory context for a response.

Runs one linear pipeline per request: resolve the organization's
configuration, retrieve candidates, prioritize, compress when the set is far
over budget, fit to the token budget, and record access in the background.
Every stage degrades instead of raising, and anything unexpected is turned
into an empty "error" result at this boundary.
"""

import asyncio
import time
from datetime import datetime, timezone
from typing import Callable, Optional

import structlog

from ..config.settings import Settings
from ..embeddings.factory import create_embedding_provider
from ..embeddings.interface import EmbeddingProvider
from ..memory.models import TenantScope
from ..storage.database import DatabaseManager
from ..storage.memory_repository import MemoryRepository
from ..storage.subscription_repository import SubscriptionRepository
from .access import AccessRecorder
from .compressor import MemoryCompressor
from .fitter import fit_to_context_window
from .models import (
    ContextConfiguration,
    ContextMetadata,
    ContextResult,
    MemoryCount,
)
from .prioritizer import prioritization_strategy, prioritize_memories
from .resolver import ConfigurationResolver
from .retriever import MemoryRetriever

logger = structlog.get_logger()

DEFAULT_PIPELINE_TIMEOUT = 15.0


class MemoryContextManager:
    """Entry point used by the response generator."""

    def __init__(
        self,
        resolver: ConfigurationResolver,
        retriever: MemoryRetriever,
        compressor: MemoryCompressor,
        access_recorder: AccessRecorder,
        pipeline_timeout: float = DEFAULT_PIPELINE_TIMEOUT,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        self._resolver = resolver
        self._retriever = retriever
        self._compressor = compressor
        self._access_recorder = access_recorder
        self._pipeline_timeout = pipeline_timeout
        self._clock = clock or _utcnow

    async def get_config_for_organization(
        self, organization_id: str, user_id: Optional[str] = None
    ) -> ContextConfiguration:
        """Resolve the context configuration for an organization."""
        return await self._resolver.resolve(organization_id, user_id)

    async def build_optimized_context(
        self,
        query: str,
        organization_id: str,
        user_id: Optional[str] = None,
    ) -> ContextResult:
        """Build the ranked, budgeted memory context for a query.

        Args:
            query: Text the response is being generated for.
            organization_id: Tenant whose memories may be used.
            user_id: Optional user; adds that user's private memories and
                per-user settings.

        Returns:
            ContextResult. Never raises; on failure the result is empty with
            ``prioritization_strategy == "error"``.
        """
        start = time.monotonic()
        try:
            return await asyncio.wait_for(
                self._build(query, TenantScope(organization_id, user_id), start),
                timeout=self._pipeline_timeout,
            )
        except asyncio.TimeoutError:
            logger.error(
                "Context build timed out",
                organization_id=organization_id,
                timeout=self._pipeline_timeout,
            )
        except Exception:
            logger.exception(
                "Error building optimized context",
                organization_id=organization_id,
            )
        return ContextResult.error(retrieval_time_ms=_elapsed_ms(start))

    async def _build(
        self, query: str, scope: TenantScope, start: float
    ) -> ContextResult:
        config = await self._resolver.resolve(scope.organization_id, scope.user_id)

        candidates = await self._retriever.retrieve(query, scope, config)
        prioritized = prioritize_memories(candidates, config, now=self._clock())
        compression = self._compressor.compress(prioritized, config)
        fit = fit_to_context_window(
            compression.compressed_memories, config.max_context_size
        )

        self._access_recorder.record(fit.memories, scope, query=query)

        result = ContextResult(
            memories=fit.memories,
            total_tokens=fit.total_tokens,
            truncated=fit.truncated,
            prioritization_strategy=prioritization_strategy(config),
            metadata=ContextMetadata(
                memory_count=MemoryCount(
                    retrieved=len(candidates),
                    selected=len(fit.memories),
                    compressed=compression.compressed_count,
                ),
                context_utilization=fit.total_tokens / config.max_context_size,
                retrieval_time_ms=_elapsed_ms(start),
                compression_ratio=compression.compression_ratio,
                token_savings=compression.token_savings,
                subscription_tier=config.subscription_tier,
            ),
        )

        logger.info(
            "Built memory context",
            organization_id=scope.organization_id,
            tier=config.subscription_tier.value,
            retrieved=len(candidates),
            selected=len(fit.memories),
            total_tokens=fit.total_tokens,
            truncated=fit.truncated,
        )
        return result

    def format_for_prompt(self, result: ContextResult) -> str:
        """Format selected memories as text for system prompt injection."""
        if not result.memories:
            return ""

        lines = [f"Relevant memories ({len(result.memories)}):"]
        for index, memory in enumerate(result.memories, start=1):
            lines.append(
                f"[{index}] ({memory.memory_type.value}, "
                f"importance {memory.importance_score:.2f}) {memory.content}"
            )
        return "\n".join(lines)

    async def close(self) -> None:
        """Wait for background access updates to finish."""
        await self._access_recorder.drain()


def create_context_manager(
    settings: Settings,
    db_manager: DatabaseManager,
    embedding_provider: Optional[EmbeddingProvider] = None,
    clock: Optional[Callable[[], datetime]] = None,
) -> MemoryContextManager:
    """Wire a MemoryContextManager over the SQLite reference datastore."""
    embedder = embedding_provider or create_embedding_provider(settings)
    memory_store = MemoryRepository(db_manager)

    return MemoryContextManager(
        resolver=ConfigurationResolver(
            SubscriptionRepository(db_manager),
            clamp_user_override=settings.clamp_user_context_override,
        ),
        retriever=MemoryRetriever(
            embedder,
            memory_store,
            candidate_limit=settings.retrieval_candidate_limit,
            embedding_timeout=settings.embedding_timeout_seconds,
            search_timeout=settings.search_timeout_seconds,
            short_term_days=settings.short_term_memory_days,
        ),
        compressor=MemoryCompressor(
            trigger_ratio=settings.compression_trigger_ratio,
            target_ratio=settings.compression_target_ratio,
        ),
        access_recorder=AccessRecorder(memory_store),
        pipeline_timeout=settings.pipeline_timeout_seconds,
        clock=clock,
    )


def _elapsed_ms(start: float) -> int:
    return int((time.monotonic() - start) * 1000)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)
