"""Storage interfaces and the SQLite reference datastore."""

from .database import DatabaseManager
from .interface import MemoryStore, PlanRecord, SubscriptionSource
from .memory_repository import MemoryRepository
from .subscription_repository import SubscriptionRepository

__all__ = [
    "DatabaseManager",
    "MemoryRepository",
    "MemoryStore",
    "PlanRecord",
    "SubscriptionRepository",
    "SubscriptionSource",
]
