"""Lossy compression of low-ranked memories when the candidate set is too big."""

from datetime import datetime, timezone

import structlog

from ..memory.models import Memory
from .fitter import CHARS_PER_TOKEN, estimate_memory_tokens, estimate_tokens
from .models import CompressionRecord, ContextConfiguration

logger = structlog.get_logger()

ELLIPSIS = "..."


class MemoryCompressor:
    """Shrinks the tail of a ranked memory list.

    Memories that fit the budget in rank order are kept verbatim; everything
    after them is truncated to ``target_ratio`` of its estimated size. The
    ranking itself is never changed.
    """

    def __init__(self, trigger_ratio: float = 1.5, target_ratio: float = 0.5) -> None:
        self.trigger_ratio = trigger_ratio
        self.target_ratio = target_ratio

    def should_compress(self, original_tokens: int, config: ContextConfiguration) -> bool:
        if not config.feature_flags.enable_memory_compression:
            return False
        return original_tokens > self.trigger_ratio * config.max_context_size

    def compress(
        self, memories: list[Memory], config: ContextConfiguration
    ) -> CompressionRecord:
        """Compress if enabled and worthwhile; otherwise pass through."""
        try:
            original_tokens = estimate_memory_tokens(memories)
            if not memories or not self.should_compress(original_tokens, config):
                return CompressionRecord.passthrough(memories)
            return self._compress(memories, original_tokens, config.max_context_size)
        except Exception as exc:
            logger.warning(
                "Memory compression failed, using uncompressed set",
                memory_count=len(memories),
                error=str(exc),
            )
            return CompressionRecord.passthrough(memories)

    def _compress(
        self, memories: list[Memory], original_tokens: int, budget: int
    ) -> CompressionRecord:
        compressed: list[Memory] = []
        compressed_count = 0
        running = 0
        keep_verbatim = True
        stamp = datetime.now(timezone.utc).isoformat()

        for memory in memories:
            cost = estimate_tokens(memory.content)
            if keep_verbatim and running + cost <= budget:
                compressed.append(memory)
                running += cost
                continue
            keep_verbatim = False

            shortened = self._truncate(memory, cost, stamp)
            if shortened is None:
                compressed.append(memory)
            else:
                compressed.append(shortened)
                compressed_count += 1

        new_tokens = estimate_memory_tokens(compressed)
        if new_tokens > original_tokens:
            raise RuntimeError("compression expanded the memory set")

        ratio = new_tokens / original_tokens if original_tokens else 1.0
        logger.debug(
            "Compressed memories",
            compressed_count=compressed_count,
            original_tokens=original_tokens,
            compressed_tokens=new_tokens,
        )
        return CompressionRecord(
            original_memories=memories,
            compressed_memories=compressed,
            compression_ratio=ratio if ratio > 0 else 1.0,
            token_savings=original_tokens - new_tokens,
            compressed_count=compressed_count,
        )

    def _truncate(self, memory: Memory, cost: int, stamp: str) -> Memory | None:
        """Copy of ``memory`` cut to the target size, or None if no saving."""
        target_tokens = max(1, int(cost * self.target_ratio))
        if target_tokens >= cost:
            return None

        keep_chars = target_tokens * CHARS_PER_TOKEN - len(ELLIPSIS)
        if keep_chars <= 0:
            return None
        content = memory.content[:keep_chars].rstrip() + ELLIPSIS
        if estimate_tokens(content) >= cost:
            return None

        metadata = dict(memory.metadata)
        metadata.update(
            compressed=True,
            original_token_count=cost,
            compression_date=stamp,
        )
        return memory.model_copy(update={"content": content, "metadata": metadata})
