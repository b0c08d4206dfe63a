"""Interface for cache backends.

Defines the contract for storing, retrieving, and managing cached data.
Every operation is synchronous and reports storage faults through its
return value (False, MISS, or a list of failed keys); none of them raise
for I/O or serialization problems.
"""

import abc
import hashlib
import json
import logging
from typing import Any, Callable, Dict, Iterable, List, Mapping

from kvcache.domain.models.common import MISS, CacheKey, NormalizedKey

logger = logging.getLogger(__name__)


def _dump(canonical: Any) -> str:
    return json.dumps(canonical, sort_keys=True, separators=(",", ":"), ensure_ascii=False)


def _canonicalize(obj: Any) -> Any:
    """Reduces a key to JSON-encodable data whose text is independent of ordering and hash seed."""
    if obj is None or isinstance(obj, (str, bool, int, float)):
        return obj
    if isinstance(obj, (list, tuple)):
        return [_canonicalize(item) for item in obj]
    if isinstance(obj, Mapping):
        if all(isinstance(k, str) for k in obj):
            return {k: _canonicalize(v) for k, v in obj.items()}
        pairs = [[_canonicalize(k), _canonicalize(v)] for k, v in obj.items()]
        return sorted(pairs, key=_dump)
    if isinstance(obj, (set, frozenset)):
        return sorted((_canonicalize(item) for item in obj), key=_dump)
    return str(obj)


class Cache(abc.ABC):
    """Abstract Base Class for cache backends.

    Subclasses implement the single-key operations. Batch operations and
    key normalization have default implementations built on top of them.
    """

    def build_key(self, key: CacheKey) -> NormalizedKey:
        """Normalizes a logical key into a storage-safe identifier.

        Strings are hashed as they are. Any other key is first reduced to a
        canonical JSON form so structurally equal keys map to the same
        identifier in every process:

        - lists and tuples become JSON arrays;
        - mappings with string keys become JSON objects with sorted keys;
        - other mappings become arrays of ``[key, value]`` pairs, and sets
          become arrays of elements, both ordered by their canonical text;
        - anything else JSON cannot encode is replaced by ``str(obj)``.

        Two logical keys that share a canonical form (for example ``"1"`` and
        ``1``, or a frozenset and the equal sorted list) collide; that is
        accepted. Keys that cannot be canonicalized at all (self-referencing
        containers) fall back to ``repr()``.

        Args:
            key: The logical cache key.

        Returns:
            A 64-character lowercase SHA-256 hex digest.
        """
        if isinstance(key, str):
            canonical = key
        else:
            try:
                canonical = _dump(_canonicalize(key))
            except (TypeError, ValueError, RecursionError) as e:
                logger.warning(f"Falling back to repr() for cache key of type {type(key).__name__}: {e}")
                canonical = repr(key)
        return NormalizedKey(hashlib.sha256(canonical.encode("utf-8")).hexdigest())

    @abc.abstractmethod
    def get(self, key: CacheKey) -> Any:
        """Retrieves a value from the cache.

        Args:
            key: The logical cache key.

        Returns:
            The cached value if present and not expired, otherwise MISS.
        """
        pass

    @abc.abstractmethod
    def exists(self, key: CacheKey) -> bool:
        """Checks whether a live, readable entry exists for a key.

        Makes the same hit/miss decision as get(), so
        ``exists(k) == (get(k) is not MISS)``.
        """
        pass

    @abc.abstractmethod
    def set(self, key: CacheKey, value: Any, duration: int = 0) -> bool:
        """Stores a value, replacing any existing entry.

        Args:
            key: The logical cache key.
            value: The value to store. Must be serializable by the backend.
            duration: Seconds until expiry. Values <= 0 use DEFAULT_DURATION.

        Returns:
            True on success, False if the value could not be persisted.
        """
        pass

    @abc.abstractmethod
    def add(self, key: CacheKey, value: Any, duration: int = 0) -> bool:
        """Stores a value only if no live entry exists for the key.

        Returns:
            True if the value was stored, False if a live entry already
            existed or the write failed. An existing entry is left untouched.
        """
        pass

    @abc.abstractmethod
    def delete(self, key: CacheKey) -> bool:
        """Deletes the entry for a key.

        Returns:
            True if an entry was removed, False if none existed or it could
            not be removed.
        """
        pass

    @abc.abstractmethod
    def flush(self) -> bool:
        """Removes every entry in the backend's storage scope.

        Not atomic: entries written concurrently may survive.

        Returns:
            True if everything found was removed, False otherwise.
        """
        pass

    def mget(self, keys: Iterable[CacheKey]) -> Dict[CacheKey, Any]:
        """Retrieves several keys. Each missing or expired key maps to MISS."""
        return {key: self.get(key) for key in keys}

    def mset(self, items: Mapping[CacheKey, Any], duration: int = 0) -> List[CacheKey]:
        """Stores several values with a shared duration.

        Successful writes are kept even if a later one fails.

        Returns:
            The keys that could not be stored.
        """
        failed = [key for key, value in items.items() if not self.set(key, value, duration)]
        if failed:
            logger.warning(f"mset: {len(failed)} of {len(items)} keys failed")
        return failed

    def madd(self, items: Mapping[CacheKey, Any], duration: int = 0) -> List[CacheKey]:
        """Adds several values, skipping keys that already hold a live entry.

        Returns:
            The keys that were not stored, including keys already present.
        """
        return [key for key, value in items.items() if not self.add(key, value, duration)]

    def get_or_set(self, key: CacheKey, factory: Callable[[], Any], duration: int = 0) -> Any:
        """Returns the cached value, computing and storing it on a miss.

        The computed value is returned even if storing it fails.
        """
        value = self.get(key)
        if value is not MISS:
            return value
        value = factory()
        self.set(key, value, duration)
        return value
