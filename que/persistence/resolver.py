"""
Process-wide adapter selection.

The active adapter is configuration, not job data. ``configure`` swaps it;
``get_adapter`` is consulted on every facade call so a swap takes effect for
subsequent calls. Swapping while operations are in flight is not supported;
configure once at startup.
"""

import importlib
import threading
from typing import Dict, Optional, Type, Union

from ..config import Settings, get_settings
from ..errors import ConfigurationError
from ..logger import get_logger
from .adapter import Adapter

logger = get_logger()

BUILTIN_ADAPTERS: Dict[str, str] = {
    "sql": "que.persistence.sql:SqlAdapter",
    "memory": "que.persistence.memory:MemoryAdapter",
    "json": "que.persistence.json_file:JsonFileAdapter",
}

AdapterSpec = Union[Adapter, Type[Adapter], str]

_active: Optional[Adapter] = None
_lock = threading.Lock()


def _import_adapter_class(path: str) -> Type[Adapter]:
    module_name, sep, class_name = path.partition(":")
    if not sep:
        module_name, _, class_name = path.rpartition(".")
    if not module_name or not class_name:
        raise ConfigurationError(f"Invalid adapter path: {path!r}")
    try:
        module = importlib.import_module(module_name)
        return getattr(module, class_name)
    except (ImportError, AttributeError) as e:
        raise ConfigurationError(f"Cannot import adapter {path!r}: {e}") from e


def load_adapter(spec: AdapterSpec, settings: Optional[Settings] = None) -> Adapter:
    """
    Build an adapter without activating it.

    Args:
        spec: Adapter instance, Adapter subclass, built-in name
            ("sql", "memory", "json") or dotted path "package.module:Class"
        settings: Settings used to construct classes (default: process settings)

    Returns:
        Adapter instance
    """
    if isinstance(spec, Adapter):
        return spec

    if isinstance(spec, str):
        name = spec.strip()
        adapter_class = _import_adapter_class(BUILTIN_ADAPTERS.get(name.lower(), name))
    else:
        adapter_class = spec

    if not (isinstance(adapter_class, type) and issubclass(adapter_class, Adapter)):
        raise ConfigurationError(f"{spec!r} is not a persistence adapter")

    try:
        return adapter_class.from_settings(settings or get_settings())
    except TypeError as e:
        # Abstract methods left unimplemented surface here
        raise ConfigurationError(f"Cannot instantiate adapter {adapter_class.__name__}: {e}") from e


def configure(spec: AdapterSpec) -> Adapter:
    """Make ``spec`` the active adapter and return it."""
    global _active
    adapter = load_adapter(spec)
    with _lock:
        _active = adapter
    logger.info("Persistence adapter configured", adapter=type(adapter).__name__)
    return adapter


def get_adapter() -> Adapter:
    """Return the active adapter, building the configured default on first use."""
    global _active
    with _lock:
        if _active is None:
            _active = load_adapter(get_settings().persistence_adapter)
            logger.debug("Default persistence adapter loaded", adapter=type(_active).__name__)
        return _active


def reset():
    """Forget the active adapter (useful for testing)."""
    global _active
    with _lock:
        _active = None
