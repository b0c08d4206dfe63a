"""kvcache: a key/value cache contract with a file-per-entry backend."""

from kvcache.domain.interfaces.cache import Cache
from kvcache.domain.models.common import MISS, DEFAULT_DURATION
from kvcache.infrastructure.cache.file_cache import FileCache
from kvcache.infrastructure.cache.factory import create_cache

__version__ = "0.1.0"

__all__ = [
    "Cache",
    "FileCache",
    "MISS",
    "DEFAULT_DURATION",
    "create_cache",
]
