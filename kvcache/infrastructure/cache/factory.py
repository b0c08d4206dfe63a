"""Builds cache backends from configuration descriptors.

A descriptor is a plain mapping:

    {'backend': 'file', 'path': '/var/cache/app', 'serializer': 'pickle', 'directory_level': 1}

Only the 'file' backend exists; the registry keeps the lookup in one place.
"""

import logging
from typing import Any, Callable, Dict, Mapping

from kvcache.domain.exceptions import CacheConfigurationError
from kvcache.domain.interfaces.cache import Cache
from kvcache.infrastructure.cache.file_cache import DEFAULT_DIRECTORY_LEVEL, FileCache
from kvcache.infrastructure.cache.serializers import get_serializer
from kvcache.infrastructure.config.settings import get_cache_descriptor

logger = logging.getLogger(__name__)


def _create_file_cache(descriptor: Mapping[str, Any]) -> FileCache:
    path = descriptor.get("path")
    if not path:
        raise CacheConfigurationError("The file backend requires a 'path'", backend="file")
    raw_level = descriptor.get("directory_level", DEFAULT_DIRECTORY_LEVEL)
    try:
        directory_level = int(raw_level)
    except (TypeError, ValueError):
        raise CacheConfigurationError(
            f"directory_level must be an integer, got {raw_level!r}", backend="file"
        ) from None
    return FileCache(
        cache_path=path,
        serializer=get_serializer(descriptor.get("serializer") or "pickle"),
        directory_level=directory_level,
    )


BACKENDS: Dict[str, Callable[[Mapping[str, Any]], Cache]] = {
    "file": _create_file_cache,
}


def create_cache(descriptor: Mapping[str, Any]) -> Cache:
    """Creates a cache backend from a descriptor.

    Args:
        descriptor: Mapping with 'backend' (default 'file') and backend options.

    Returns:
        A ready-to-use Cache instance.

    Raises:
        CacheConfigurationError: If the backend is unknown or options are invalid.
        CacheError: If the backend cannot initialize its storage.
    """
    backend = str(descriptor.get("backend") or "file").lower()
    builder = BACKENDS.get(backend)
    if builder is None:
        raise CacheConfigurationError(
            f"Unknown cache backend '{backend}'. Available: {', '.join(sorted(BACKENDS))}",
            backend=backend,
        )
    logger.debug(f"Creating '{backend}' cache backend from descriptor: {dict(descriptor)}")
    return builder(descriptor)


def create_cache_from_config(**overrides: Any) -> Cache:
    """Creates the configured cache backend. Non-None overrides replace descriptor fields."""
    descriptor = get_cache_descriptor()
    descriptor.update({key: value for key, value in overrides.items() if value is not None})
    return create_cache(descriptor)
