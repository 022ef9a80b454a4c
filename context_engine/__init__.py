"""Tier-aware memory retrieval and context budgeting."""

from .context.manager import MemoryContextManager, create_context_manager
from .context.models import CompressionRecord, ContextConfiguration, ContextResult
from .memory.models import Memory, MemoryType, TenantScope

__all__ = [
    "CompressionRecord",
    "ContextConfiguration",
    "ContextResult",
    "Memory",
    "MemoryContextManager",
    "MemoryType",
    "TenantScope",
    "create_context_manager",
]
