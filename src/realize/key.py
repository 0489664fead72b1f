"""Structural identity values for resources.

A key distinguishes a resource from other resources of the same kind. Keys
are only used for identity and diagnostics; verify/realize never look at them.

Variants:
- MapKey: named fields, canonically ordered by field name
- SeqKey: ordered (order-sensitive) list of keys
- StringKey: a plain string
- PathKey: a filesystem path

New variants subclass Key and pick an unused RANK.
"""

from __future__ import annotations

import functools
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from pathlib import PurePath
from typing import Any, ClassVar


def _quote(value: str) -> str:
    escaped = value.replace("\\", "\\\\").replace('"', '\\"')
    return f'"{escaped}"'


@functools.total_ordering
class Key:
    """Base class for all key variants.

    Ordering compares the variant rank first and the content second, so keys
    of different variants never compare by content.
    """

    RANK: ClassVar[int] = 1000

    def _content(self) -> Any:
        raise NotImplementedError("Subclasses must implement _content")

    def _sort_key(self) -> tuple[int, str, Any]:
        return (self.RANK, type(self).__name__, self._content())

    def __lt__(self, other: object) -> bool:
        if not isinstance(other, Key):
            return NotImplemented
        return self._sort_key() < other._sort_key()

    @staticmethod
    def of(value: Any) -> Key:
        """Coerce a plain Python value into a key.

        Raises:
            TypeError: If the value has no key representation.
        """
        if isinstance(value, Key):
            return value
        if isinstance(value, str):
            return StringKey(value)
        if isinstance(value, PurePath):
            return PathKey(value)
        if isinstance(value, Mapping):
            return MapKey.from_mapping(value)
        if isinstance(value, (list, tuple)):
            return SeqKey.from_iterable(value)
        raise TypeError(f"Cannot build a key from {type(value).__name__}: {value!r}")


@dataclass(frozen=True)
class MapKey(Key):
    """A composite key consisting of several named fields."""

    RANK: ClassVar[int] = 0

    fields: tuple[tuple[str, Key], ...] = ()

    def __post_init__(self) -> None:
        names = [name for name, _ in self.fields]
        if len(set(names)) != len(names):
            raise ValueError(f"Duplicate field names in map key: {names}")
        # Canonical order makes equality independent of construction order
        object.__setattr__(self, "fields", tuple(sorted(self.fields, key=lambda item: item[0])))

    @classmethod
    def from_mapping(cls, mapping: Mapping[str, Any]) -> MapKey:
        return cls(tuple((str(name), Key.of(value)) for name, value in mapping.items()))

    def __getitem__(self, name: str) -> Key:
        for field_name, value in self.fields:
            if field_name == name:
                return value
        raise KeyError(name)

    def _content(self) -> Any:
        return self.fields

    def __str__(self) -> str:
        body = ", ".join(f"{name}: {value}" for name, value in self.fields)
        return "{" + body + "}"


@dataclass(frozen=True)
class SeqKey(Key):
    """A composite key consisting of several ordered keys."""

    RANK: ClassVar[int] = 1

    items: tuple[Key, ...] = ()

    @classmethod
    def from_iterable(cls, values: Iterable[Any]) -> SeqKey:
        return cls(tuple(Key.of(value) for value in values))

    def __len__(self) -> int:
        return len(self.items)

    def _content(self) -> Any:
        return self.items

    def __str__(self) -> str:
        return "[" + ", ".join(str(item) for item in self.items) + "]"


@dataclass(frozen=True)
class StringKey(Key):
    """A key that is based on a string value."""

    RANK: ClassVar[int] = 2

    value: str

    def _content(self) -> Any:
        return self.value

    def __str__(self) -> str:
        return _quote(self.value)


@dataclass(frozen=True)
class PathKey(Key):
    """A key that is based on a file system path.

    Paths order component by component, so "a/b" sorts before "a-b".
    """

    RANK: ClassVar[int] = 3

    path: PurePath

    def __post_init__(self) -> None:
        # Path and PurePath of the same location must share one identity
        object.__setattr__(self, "path", PurePath(self.path))

    def _content(self) -> Any:
        return self.path.parts

    def __str__(self) -> str:
        return _quote(str(self.path))
