"""Resource state container and generic list/set expansion helpers."""

from __future__ import annotations

import zlib
from collections.abc import Callable, Iterable, Iterator, Mapping
from typing import Any

_MISSING = object()


def hash_string(value: str) -> int:
    """Return the CRC-32 (IEEE) checksum of a string, used as its set hash."""
    return zlib.crc32(value.encode("utf-8"))


def hash_int(value: int) -> int:
    """Hash an integer through its decimal text form."""
    return hash_string(str(int(value)))


class HashSet:
    """A set keyed by a hash function, listed in the textual order of the hashes.

    When two items share a hash code, the first one added is kept.
    """

    def __init__(
        self,
        hash_func: Callable[[Any], int] = hash_string,
        items: Iterable[Any] = (),
    ) -> None:
        self._hash = hash_func
        self._items: dict[int, Any] = {}
        for item in items:
            self.add(item)

    def add(self, item: Any) -> None:
        self._items.setdefault(self._hash(item), item)

    def to_list(self) -> list[Any]:
        return [self._items[code] for code in sorted(self._items, key=str)]

    def __len__(self) -> int:
        return len(self._items)

    def __iter__(self) -> Iterator[Any]:
        return iter(self.to_list())

    def __contains__(self, item: Any) -> bool:
        return self._hash(item) in self._items

    def __repr__(self) -> str:
        return f"HashSet({self.to_list()!r})"


def _is_zero(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, (bool, int, float, str)):
        return not value
    if isinstance(value, (list, tuple, dict, HashSet)):
        return len(value) == 0
    return False


def _step(container: Any, part: str) -> Any:
    if isinstance(container, Mapping):
        return container.get(part, _MISSING)
    if isinstance(container, HashSet):
        container = container.to_list()
    if isinstance(container, (list, tuple)):
        try:
            index = int(part)
        except ValueError:
            return _MISSING
        return container[index] if 0 <= index < len(container) else _MISSING
    return _MISSING


class ResourceData:
    """Attribute state of one resource, with an identifier.

    Keys may address nested values with dots, as in ``"nrql.0.query"``.
    Unset keys fall back to the given defaults, or to ``None``.
    """

    def __init__(
        self,
        data: Mapping[str, Any] | None = None,
        resource_id: str = "",
        defaults: Mapping[str, Any] | None = None,
    ) -> None:
        self.id = resource_id
        self._data: dict[str, Any] = dict(data or {})
        self._defaults: dict[str, Any] = dict(defaults or {})

    def _lookup(self, key: str) -> Any:
        current: Any = self._data
        for part in key.split("."):
            current = _step(current, part)
            if current is _MISSING:
                return _MISSING
        return current

    def get(self, key: str) -> Any:
        value = self._lookup(key)
        if value is _MISSING or value is None:
            return self._defaults.get(key)
        return value

    def get_ok(self, key: str) -> tuple[Any, bool]:
        """Return the value and whether it is set to something other than a zero value."""
        value = self.get(key)
        return value, not _is_zero(value)

    def get_ok_exists(self, key: str) -> tuple[Any, bool]:
        """Return the value and whether it was set at all, zero values included."""
        value = self._lookup(key)
        exists = value is not _MISSING and value is not None
        return (value if exists else self.get(key)), exists

    def set(self, key: str, value: Any) -> None:
        if "." in key:
            raise ValueError(f"only top-level attributes can be set, got {key!r}")
        if value is None:
            self._data.pop(key, None)
        else:
            self._data[key] = value

    def __repr__(self) -> str:
        return f"ResourceData(id={self.id!r}, data={self._data!r})"


def expand_int_list(configured: Iterable[Any]) -> list[int]:
    """Keep the integer members of a configured list."""
    return [v for v in configured if isinstance(v, int) and not isinstance(v, bool)]


def expand_int_set(configured: HashSet) -> list[int]:
    return expand_int_list(configured.to_list())


def expand_string_list(configured: Iterable[Any]) -> list[str]:
    """Keep the non-empty string members of a configured list."""
    return [v for v in configured if isinstance(v, str) and v]


def expand_string_set(configured: HashSet) -> list[str]:
    return expand_string_list(configured.to_list())