"""Context engine exceptions."""


class ContextEngineError(Exception):
    """Base context engine error."""


class ConfigurationError(ContextEngineError):
    """Engine settings are missing or invalid."""


class EmbeddingError(ContextEngineError):
    """The embedding provider failed to return a vector."""


class MemoryStoreError(ContextEngineError):
    """The memory datastore failed a search or update."""


class SubscriptionLookupError(ContextEngineError):
    """The subscription store could not be queried."""
