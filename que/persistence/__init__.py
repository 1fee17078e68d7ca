"""
Job persistence: adapter contract, built-in adapters, resolver and facade.
"""

from .adapter import Adapter
from .facade import Persistence, get_persistence
from .json_file import JsonFileAdapter
from .memory import MemoryAdapter
from .resilient import RetryingAdapter
from .resolver import configure, get_adapter, load_adapter, reset
from .sql import SqlAdapter

__all__ = [
    "Adapter",
    "Persistence",
    "get_persistence",
    "MemoryAdapter",
    "SqlAdapter",
    "JsonFileAdapter",
    "RetryingAdapter",
    "configure",
    "get_adapter",
    "load_adapter",
    "reset",
]
