"""Defines common Value Objects used across the cache contexts.

These objects represent simple values like logical and normalized keys,
plus the sentinel returned for a cache miss.
"""

from typing import Any, Dict, Hashable, NewType

# === Caching Context ===
CacheKey = Hashable                               # Logical key supplied by a caller (str, tuple, dict, ...)
NormalizedKey = NewType("NormalizedKey", str)    # Storage-safe identifier derived from a CacheKey
CachePath = NewType("CachePath", str)            # Root directory of a file cache

# Used when a caller asks for duration <= 0. The file store encodes expiry
# in the entry's mtime and has no way to represent "never".
DEFAULT_DURATION = 365 * 24 * 60 * 60  # 365 days


class _Miss:
    """Type of the MISS sentinel. Only one instance exists."""

    _instance = None

    def __new__(cls) -> "_Miss":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __bool__(self) -> bool:
        return False

    def __repr__(self) -> str:
        return "MISS"

    def __reduce__(self) -> str:
        return "MISS"


# Returned by get/mget when a key is absent, expired or unreadable.
# Stored values such as None, False, 0 or "" are returned as themselves.
MISS = _Miss()


def is_miss(value: Any) -> bool:
    """Returns True if a lookup result is the MISS sentinel."""
    return value is MISS


# --- Structured Data ---
CacheDescriptor = Dict[str, Any]  # {'backend': 'file', 'path': ..., 'serializer': ..., 'directory_level': ...}
