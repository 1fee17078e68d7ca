"""
Error taxonomy for the persistence layer.

Not-found is not an error: ``find`` returns ``None``. ``initialize`` reports
failure through its boolean result. Everything else that cannot complete
raises ``PersistenceError`` and aborts the caller.
"""


class QueError(Exception):
    """Base class for all que errors."""
    pass


class PersistenceError(QueError):
    """Raised when a storage backend cannot complete an operation."""
    pass


class ConfigurationError(QueError):
    """Raised when the configured adapter cannot be resolved."""
    pass
