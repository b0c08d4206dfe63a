"""Custom exceptions for the cache package.

Contract operations never raise these for storage faults; they report
failure through their return values. Exceptions are raised while building
a backend or resolving configuration.
"""


class CacheError(Exception):
    """Base exception for cache errors."""

    def __init__(self, message: str, backend: str = "unknown") -> None:
        """Initialize error.

        Args:
            message: Error message
            backend: Backend name
        """
        self.backend = backend
        super().__init__(f"[{backend}] {message}")


class CacheConfigurationError(CacheError):
    """Raised when a cache descriptor names an unknown backend or serializer, or lacks a path."""

    pass
