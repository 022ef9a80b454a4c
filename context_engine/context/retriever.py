"""Semantic retrieval of candidate memories inside a tenant scope."""

import asyncio
from datetime import datetime, timedelta, timezone
from typing import Optional

import structlog

from ..embeddings.interface import EmbeddingProvider
from ..memory.models import Memory, TenantScope
from ..storage.interface import MemoryStore
from .models import ContextConfiguration

logger = structlog.get_logger()

DEFAULT_CANDIDATE_LIMIT = 50


class MemoryRetriever:
    """Embeds the query and runs a scoped nearest-neighbour search.

    Failures degrade to an empty candidate list; the pipeline always
    completes.
    """

    def __init__(
        self,
        embedder: EmbeddingProvider,
        store: MemoryStore,
        candidate_limit: int = DEFAULT_CANDIDATE_LIMIT,
        embedding_timeout: float = 5.0,
        search_timeout: float = 5.0,
        short_term_days: int = 30,
    ) -> None:
        self._embedder = embedder
        self._store = store
        self._candidate_limit = candidate_limit
        self._embedding_timeout = embedding_timeout
        self._search_timeout = search_timeout
        self._short_term_days = short_term_days

    async def retrieve(
        self,
        query: str,
        scope: TenantScope,
        config: ContextConfiguration,
        limit: Optional[int] = None,
    ) -> list[Memory]:
        """Return up to ``limit`` candidates, most similar first."""
        if not query or not query.strip():
            return []

        try:
            embedding = await asyncio.wait_for(
                self._embedder.embed(query), timeout=self._embedding_timeout
            )
        except asyncio.TimeoutError:
            logger.warning(
                "Query embedding timed out",
                organization_id=scope.organization_id,
                timeout=self._embedding_timeout,
            )
            return []
        except Exception as exc:
            logger.warning(
                "Query embedding failed",
                organization_id=scope.organization_id,
                error=str(exc),
            )
            return []

        created_after = None
        if not config.feature_flags.enable_long_term_memory:
            created_after = datetime.now(timezone.utc) - timedelta(
                days=self._short_term_days
            )

        try:
            candidates = await asyncio.wait_for(
                self._store.search_similar(
                    embedding,
                    scope,
                    limit or self._candidate_limit,
                    created_after=created_after,
                ),
                timeout=self._search_timeout,
            )
        except asyncio.TimeoutError:
            logger.warning(
                "Memory search timed out",
                organization_id=scope.organization_id,
                timeout=self._search_timeout,
            )
            return []
        except Exception as exc:
            logger.warning(
                "Memory search failed",
                organization_id=scope.organization_id,
                error=str(exc),
            )
            return []

        return self._enforce_scope(candidates, scope)

    @staticmethod
    def _enforce_scope(candidates: list[Memory], scope: TenantScope) -> list[Memory]:
        """Drop anything the store returned outside the scope."""
        admitted = [m for m in candidates if scope.admits(m)]
        leaked = len(candidates) - len(admitted)
        if leaked:
            logger.error(
                "Memory store returned out-of-scope rows",
                organization_id=scope.organization_id,
                dropped=leaked,
            )
        return admitted
