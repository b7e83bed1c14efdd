"""Minimal observable wrappers for values and collections.

Subscribers are plain callables. ``subscribe`` returns a callable that
removes the subscription.
"""

from __future__ import annotations
from collections.abc import MutableSequence
from dataclasses import dataclass
from typing import Any, Callable, Dict, Generic, Iterable, Iterator, List, Optional, Tuple, TypeVar

T = TypeVar("T")
K = TypeVar("K")
V = TypeVar("V")


def _subscribe(subscribers: List[Callable], callback: Callable) -> Callable[[], None]:
    subscribers.append(callback)

    def unsubscribe() -> None:
        if callback in subscribers:
            subscribers.remove(callback)

    return unsubscribe


class ObservableValue(Generic[T]):
    """Value holder notifying subscribers with ``(old, new)`` on change."""

    def __init__(self, value: Optional[T] = None):
        self._value = value
        self._subscribers: List[Callable[[Optional[T], Optional[T]], None]] = []

    @property
    def value(self) -> Optional[T]:
        return self._value

    @value.setter
    def value(self, value: Optional[T]) -> None:
        if value is self._value or value == self._value:
            return
        old, self._value = self._value, value
        for callback in list(self._subscribers):
            callback(old, value)

    def subscribe(self, callback: Callable[[Optional[T], Optional[T]], None]) -> Callable[[], None]:
        return _subscribe(self._subscribers, callback)

    def __repr__(self) -> str:
        return f"ObservableValue({self._value!r})"


@dataclass(frozen=True)
class CollectionChange:
    """One mutation of an observable collection."""

    action: str
    """One of ``add``, ``remove``, ``replace``, ``reset``"""

    items: Tuple[Any, ...] = ()


class ObservableList(MutableSequence, Generic[T]):
    """List emitting exactly one :class:`CollectionChange` per mutation."""

    def __init__(self, items: Optional[Iterable[T]] = None):
        self._items: List[T] = list(items or [])
        self._subscribers: List[Callable[[CollectionChange], None]] = []

    def subscribe(self, callback: Callable[[CollectionChange], None]) -> Callable[[], None]:
        return _subscribe(self._subscribers, callback)

    def _notify(self, action: str, items: Iterable[T]) -> None:
        change = CollectionChange(action, tuple(items))
        for callback in list(self._subscribers):
            callback(change)

    def __getitem__(self, index):
        return self._items[index]

    def __setitem__(self, index, value) -> None:
        self._items[index] = value
        self._notify("replace", value if isinstance(index, slice) else [value])

    def __delitem__(self, index) -> None:
        removed = self._items[index]
        del self._items[index]
        self._notify("remove", removed if isinstance(index, slice) else [removed])

    def __len__(self) -> int:
        return len(self._items)

    def __iter__(self) -> Iterator[T]:
        return iter(list(self._items))

    def insert(self, index: int, value: T) -> None:
        self._items.insert(index, value)
        self._notify("add", [value])

    def extend(self, values: Iterable[T]) -> None:
        values = list(values)
        if not values:
            return
        self._items.extend(values)
        self._notify("add", values)

    def clear(self) -> None:
        removed, self._items = self._items, []
        self._notify("reset", removed)

    def reset(self, values: Iterable[T]) -> None:
        """Replace the whole content with a single notification."""
        self._items = list(values)
        self._notify("reset", self._items)

    def __repr__(self) -> str:
        return f"ObservableList({self._items!r})"


class KeyedCollection(Generic[K, V]):
    """Insertion-ordered mapping with upsert-by-key semantics."""

    def __init__(self):
        self._items: Dict[K, V] = {}
        self._subscribers: List[Callable[[CollectionChange], None]] = []

    def subscribe(self, callback: Callable[[CollectionChange], None]) -> Callable[[], None]:
        return _subscribe(self._subscribers, callback)

    def _notify(self, action: str, items: Iterable[V]) -> None:
        change = CollectionChange(action, tuple(items))
        for callback in list(self._subscribers):
            callback(change)

    def upsert(self, key: K, value: V) -> Optional[V]:
        """Insert or replace the entry of ``key``, returning the replaced value."""
        previous = self._items.get(key)
        self._items[key] = value
        self._notify("replace" if previous is not None else "add", [value])
        return previous

    def remove(self, key: K) -> Optional[V]:
        value = self._items.pop(key, None)
        if value is not None:
            self._notify("remove", [value])
        return value

    def get(self, key: K) -> Optional[V]:
        return self._items.get(key)

    def keys(self) -> List[K]:
        return list(self._items)

    def values(self) -> List[V]:
        return list(self._items.values())

    def clear(self) -> None:
        removed = list(self._items.values())
        self._items.clear()
        self._notify("reset", removed)

    def __contains__(self, key: object) -> bool:
        return key in self._items

    def __len__(self) -> int:
        return len(self._items)

    def __iter__(self) -> Iterator[V]:
        return iter(self.values())

    def __repr__(self) -> str:
        return f"KeyedCollection({self._items!r})"
