"""In-memory key-value storage and typed item helpers."""

from __future__ import annotations

import json
from enum import Enum
from typing import Any, Callable, Iterable, Iterator

from .errors import NotFoundError, ParseError


class Order(Enum):
    ASCENDING = 1
    DESCENDING = 2


class MemoryStorage:
    """A sorted byte-keyed store."""

    def __init__(self) -> None:
        self._data: dict[bytes, bytes] = {}

    def get(self, key: bytes) -> bytes | None:
        return self._data.get(bytes(key))

    def set(self, key: bytes, value: bytes) -> None:
        self._data[bytes(key)] = bytes(value)

    def remove(self, key: bytes) -> None:
        self._data.pop(bytes(key), None)

    def range(
        self,
        start: bytes | None = None,
        end: bytes | None = None,
        order: Order = Order.ASCENDING,
    ) -> Iterator[tuple[bytes, bytes]]:
        """Iterate over keys in [start, end) in the given order."""
        keys = sorted(
            k
            for k in self._data
            if (start is None or k >= start) and (end is None or k < end)
        )
        if order is Order.DESCENDING:
            keys.reverse()
        snapshot = [(k, self._data[k]) for k in keys]
        return iter(snapshot)


def to_length_prefixed(namespace: bytes) -> bytes:
    """Prefix a namespace with its length as two big-endian bytes."""
    if len(namespace) > 0xFFFF:
        raise ValueError("only supports namespaces up to length 0xFFFF")
    return len(namespace).to_bytes(2, "big") + bytes(namespace)


def namespace_with_key(namespaces: Iterable[bytes], key: bytes) -> bytes:
    return b"".join(to_length_prefixed(ns) for ns in namespaces) + bytes(key)


def _dumps(value: Any) -> bytes:
    return json.dumps(value, separators=(",", ":")).encode()


def _loads(data: bytes, target: str) -> Any:
    try:
        return json.loads(data)
    except ValueError as exc:
        raise ParseError(target, str(exc)) from exc


def load_item(storage: MemoryStorage, key: bytes) -> Any:
    raw = storage.get(to_length_prefixed(key))
    name = bytes(key).decode(errors="replace")
    if raw is None:
        raise NotFoundError(name)
    return _loads(raw, name)


def save_item(storage: MemoryStorage, key: bytes, item: Any) -> None:
    storage.set(to_length_prefixed(key), _dumps(item))


def update_item(storage: MemoryStorage, key: bytes, action: Callable[[Any], Any]) -> Any:
    """Load, transform and store an item, returning the new value."""
    output = action(load_item(storage, key))
    save_item(storage, key, output)
    return output