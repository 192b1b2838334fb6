from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any

import orjson


class Serializer(ABC):
    """Abstract base class for record serialization."""

    @abstractmethod
    def serialize(self, data: Any) -> bytes:
        """Serializes data into bytes."""
        pass

    @abstractmethod
    def deserialize(self, data: bytes) -> Any:
        """Deserializes bytes into data."""
        pass


class JsonSerializer(Serializer):
    """Serializer implementation using orjson for repository records."""

    def serialize(self, data: Any) -> bytes:
        """Serializes data to JSON bytes using orjson."""

        def default(obj: Any) -> Any:
            if isinstance(obj, frozenset | set):
                return list(obj)
            if isinstance(obj, Path):
                return str(obj)
            raise TypeError

        return orjson.dumps(data, default=default, option=orjson.OPT_SORT_KEYS)

    def deserialize(self, data: bytes) -> Any:
        """Deserializes JSON bytes to data using orjson."""
        return orjson.loads(data)
