"""Memory records and tenant scoping."""

from .models import AccessRecord, Memory, MemoryType, TenantScope

__all__ = ["AccessRecord", "Memory", "MemoryType", "TenantScope"]
