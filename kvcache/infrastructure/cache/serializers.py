"""Value serializers for the file cache.

A serializer turns a Python value into the opaque bytes stored in an entry
file and back. Pickle is the default; JSON is available for caches that
must be readable by other tools.
"""

import json
import pickle
from typing import Any, Dict, Type

from kvcache.domain.exceptions import CacheConfigurationError


class Serializer:
    """Base class for value serializers."""

    name = "base"

    def dumps(self, value: Any) -> bytes:
        raise NotImplementedError

    def loads(self, data: bytes) -> Any:
        raise NotImplementedError


class PickleSerializer(Serializer):
    """Serializes values with pickle (any picklable object)."""

    name = "pickle"

    def __init__(self, protocol: int = pickle.HIGHEST_PROTOCOL):
        self.protocol = protocol

    def dumps(self, value: Any) -> bytes:
        return pickle.dumps(value, protocol=self.protocol)

    def loads(self, data: bytes) -> Any:
        return pickle.loads(data)


class JsonSerializer(Serializer):
    """Serializes values as UTF-8 JSON.

    Only JSON-compatible values round-trip exactly: tuples come back as
    lists and non-string mapping keys come back as strings.
    """

    name = "json"

    def dumps(self, value: Any) -> bytes:
        return json.dumps(value, ensure_ascii=False).encode("utf-8")

    def loads(self, data: bytes) -> Any:
        return json.loads(data.decode("utf-8"))


SERIALIZERS: Dict[str, Type[Serializer]] = {
    PickleSerializer.name: PickleSerializer,
    JsonSerializer.name: JsonSerializer,
}


def get_serializer(name: str) -> Serializer:
    """Returns a serializer instance by name ('pickle' or 'json').

    Raises:
        CacheConfigurationError: If the name is unknown.
    """
    try:
        return SERIALIZERS[name.lower()]()
    except KeyError:
        raise CacheConfigurationError(
            f"Unknown serializer '{name}'. Choose one of: {', '.join(sorted(SERIALIZERS))}",
            backend="file",
        ) from None
