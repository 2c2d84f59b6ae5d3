from __future__ import annotations

from typing import Generic, Iterator, TypeVar

V = TypeVar("V")


class KeyedStore(Generic[V]):
    """
    String-keyed map whose values are only ever replaced whole.

    Callers hand in immutable values, so a reader never sees a half-updated entry.
    Everything runs on one event loop; there is no await between read and write
    inside a single method.
    """

    def __init__(self) -> None:
        self._values: dict[str, V] = {}

    def get(self, key: str) -> V | None:
        return self._values.get(str(key))

    def replace(self, key: str, value: V) -> None:
        self._values[str(key)] = value

    def pop(self, key: str) -> V | None:
        return self._values.pop(str(key), None)

    def keys(self) -> list[str]:
        return list(self._values.keys())

    def __contains__(self, key: object) -> bool:
        return str(key) in self._values

    def __len__(self) -> int:
        return len(self._values)

    def __iter__(self) -> Iterator[str]:
        return iter(self.keys())
