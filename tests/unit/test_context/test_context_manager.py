"""Tests for MemoryContextManager."""

import asyncio
from datetime import UTC, datetime, timedelta
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from context_engine.config.settings import Settings
from context_engine.config.tiers import FeatureFlags, SubscriptionTier
from context_engine.context.access import AccessRecorder
from context_engine.context.compressor import MemoryCompressor
from context_engine.context.manager import MemoryContextManager, create_context_manager
from context_engine.context.models import ContextConfiguration, ContextResult
from context_engine.exceptions import ConfigurationError
from context_engine.memory.models import Memory, MemoryType

PRO = ContextConfiguration.for_tier(SubscriptionTier.PRO)
FREE = ContextConfiguration.for_tier(SubscriptionTier.FREE)


def _memory(memory_id: str, tokens: int = 100, **overrides) -> Memory:
    defaults = dict(
        id=memory_id,
        organization_id="org-1",
        content="z" * (tokens * 4),
        importance_score=0.5,
        similarity=0.9,
    )
    defaults.update(overrides)
    return Memory(**defaults)


def _make_manager(config=PRO, candidates=None, **overrides):
    resolver = MagicMock()
    resolver.resolve = AsyncMock(return_value=config)
    retriever = MagicMock()
    retriever.retrieve = AsyncMock(return_value=candidates or [])
    recorder = MagicMock()
    recorder.drain = AsyncMock()

    kwargs = dict(
        resolver=resolver,
        retriever=retriever,
        compressor=MemoryCompressor(),
        access_recorder=recorder,
    )
    kwargs.update(overrides)
    return MemoryContextManager(**kwargs)


class TestBuildOptimizedContext:
    async def test_selects_within_budget(self):
        candidates = [_memory("a", 3000), _memory("b", 3000), _memory("c", 3000)]
        manager = _make_manager(candidates=candidates)

        result = await manager.build_optimized_context("query", "org-1", "user-1")

        assert [m.id for m in result.memories] == ["a", "b"]
        assert result.total_tokens == 6000
        assert result.truncated is True
        assert result.prioritization_strategy == "weighted"
        assert result.metadata.memory_count.retrieved == 3
        assert result.metadata.memory_count.selected == 2
        assert result.metadata.memory_count.compressed == 0
        assert result.metadata.context_utilization == pytest.approx(0.75)
        assert result.metadata.compression_ratio == 1.0
        assert result.metadata.subscription_tier is SubscriptionTier.PRO
        assert result.metadata.retrieval_time_ms >= 0

    async def test_ranks_against_injected_clock(self):
        now = datetime(2026, 10, 17, 12, 0, tzinfo=UTC)
        candidates = [
            _memory("C", importance_score=0.95, created_at=now - timedelta(days=3)),
            _memory("A", importance_score=0.8, created_at=now - timedelta(days=1)),
        ]
        manager = _make_manager(candidates=candidates, clock=lambda: now)

        result = await manager.build_optimized_context("query", "org-1")

        assert [m.id for m in result.memories] == ["A", "C"]

    async def test_passes_scope_and_config_downstream(self):
        manager = _make_manager()

        await manager.build_optimized_context("query", "org-1", "user-1")

        manager._resolver.resolve.assert_awaited_once_with("org-1", "user-1")
        args = manager._retriever.retrieve.await_args.args
        assert args[0] == "query"
        assert args[1].organization_id == "org-1"
        assert args[1].user_id == "user-1"
        assert args[2] is PRO

    async def test_records_access_for_selected_only(self):
        candidates = [_memory("a", 5000), _memory("b", 5000)]
        manager = _make_manager(candidates=candidates)

        result = await manager.build_optimized_context("query", "org-1")

        recorded, scope = manager._access_recorder.record.call_args.args
        assert manager._access_recorder.record.call_args.kwargs == {"query": "query"}
        assert recorded == result.memories
        assert [m.id for m in recorded] == ["a"]
        assert scope.organization_id == "org-1"

    async def test_empty_retrieval_is_not_an_error(self):
        manager = _make_manager(config=FREE, candidates=[])

        result = await manager.build_optimized_context("query", "org-1")

        assert result.memories == []
        assert result.total_tokens == 0
        assert result.truncated is False
        assert result.prioritization_strategy == "recency-only"
        assert result.metadata.context_utilization == 0.0

    async def test_compression_metadata(self):
        config = PRO.with_changes(
            max_context_size=1000,
            feature_flags=FeatureFlags(True, True, True),
        )
        candidates = [_memory(f"m{i}", 400) for i in range(5)]
        manager = _make_manager(config=config, candidates=candidates)

        result = await manager.build_optimized_context("query", "org-1")

        assert result.metadata.memory_count.compressed == 3
        assert result.metadata.compression_ratio < 1.0
        assert result.metadata.token_savings == 600
        assert result.total_tokens <= 1000

    async def test_resolver_failure_gives_error_result(self):
        resolver = MagicMock()
        resolver.resolve = AsyncMock(side_effect=RuntimeError("boom"))
        manager = _make_manager(resolver=resolver)

        result = await manager.build_optimized_context("query", "org-1")

        assert result.prioritization_strategy == "error"
        assert result.memories == []
        assert result.total_tokens == 0
        assert result.truncated is False

    async def test_timeout_gives_error_result(self):
        async def _hang(*args, **kwargs):
            await asyncio.sleep(10)

        retriever = MagicMock()
        retriever.retrieve = AsyncMock(side_effect=_hang)
        manager = _make_manager(retriever=retriever, pipeline_timeout=0.05)

        result = await manager.build_optimized_context("query", "org-1")

        assert result.prioritization_strategy == "error"
        assert result.memories == []


class TestGetConfigForOrganization:
    async def test_delegates_to_resolver(self):
        manager = _make_manager(config=FREE)

        config = await manager.get_config_for_organization("org-1", "user-1")

        assert config is FREE
        manager._resolver.resolve.assert_awaited_once_with("org-1", "user-1")


class TestFormatForPrompt:
    def test_empty_result(self):
        manager = _make_manager()
        assert manager.format_for_prompt(ContextResult.error()) == ""

    def test_numbered_lines(self):
        manager = _make_manager()
        result = ContextResult(
            memories=[
                Memory(
                    id="a",
                    organization_id="org-1",
                    content="Customer prefers email",
                    memory_type=MemoryType.PREFERENCE,
                    importance_score=0.8,
                ),
                Memory(id="b", organization_id="org-1", content="Renewal in May"),
            ],
            total_tokens=10,
            truncated=False,
            prioritization_strategy="weighted",
        )

        text = manager.format_for_prompt(result)

        assert text.splitlines() == [
            "Relevant memories (2):",
            "[1] (preference, importance 0.80) Customer prefers email",
            "[2] (fact, importance 0.50) Renewal in May",
        ]


class TestClose:
    async def test_drains_recorder(self):
        manager = _make_manager()

        await manager.close()

        manager._access_recorder.drain.assert_awaited_once()


class TestCreateContextManager:
    def test_wires_components_from_settings(self):
        settings = Settings(
            _env_file=None,
            clamp_user_context_override=False,
            retrieval_candidate_limit=20,
            pipeline_timeout_seconds=3.0,
        )
        embedder = MagicMock()

        manager = create_context_manager(settings, MagicMock(), embedding_provider=embedder)

        assert isinstance(manager, MemoryContextManager)
        assert isinstance(manager._access_recorder, AccessRecorder)
        assert manager._resolver._clamp_user_override is False
        assert manager._retriever._embedder is embedder
        assert manager._retriever._candidate_limit == 20
        assert manager._pipeline_timeout == 3.0

    def test_builds_embedder_when_not_given(self):
        settings = Settings(_env_file=None, openai_api_key="sk-test")

        with patch(
            "context_engine.context.manager.create_embedding_provider"
        ) as factory:
            create_context_manager(settings, MagicMock())

        factory.assert_called_once_with(settings)

    def test_missing_key_raises(self, monkeypatch):
        monkeypatch.delenv("CONTEXT_ENGINE_OPENAI_API_KEY", raising=False)
        settings = Settings(_env_file=None)

        with pytest.raises(ConfigurationError):
            create_context_manager(settings, MagicMock())
