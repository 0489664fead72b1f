"""Definitions for resources and related types.

A resource is the desired end-state of one manageable unit on the target
system (a file, a directory, a symlink, ...). Resource kinds subclass
Resource and are expected to be immutable values: builder-style methods
return new instances, usually via dataclasses.replace().
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import ClassVar, Protocol

from .key import Key


@dataclass(frozen=True)
class Context:
    """Shared state handed to verify() and realize().

    Attributes:
        logger: Logger used for contextual information about the run.
    """

    logger: logging.Logger = field(default_factory=lambda: logging.getLogger("realize"))


class Ensurer(Protocol):
    """Something that can ensure that resources are realized."""

    def ensure(self, resource: Resource) -> None:
        """Ensure the resource is realized, including its implicit prerequisites."""
        ...


class Resource(ABC):
    """Something that is managed by realize and can be realized on the target system.

    Subclasses MUST:
    - set ``kind`` to a tag that is unique per resource kind
    - implement value equality (frozen dataclasses do this)
    - keep key() pure and stable for the lifetime of the value

    The (kind, key) pair is the identity the Reality deduplicates on.
    """

    kind: ClassVar[str] = ""

    @abstractmethod
    def key(self) -> Key:
        """The key that distinguishes this resource from others of the same kind."""

    @abstractmethod
    def realize(self, ctx: Context) -> None:
        """Perform any operations needed to bring the target system in line.

        Must not assume verify() was called first, and must be safe to call
        again on an already realized system.
        """

    @abstractmethod
    def verify(self, ctx: Context) -> bool:
        """Check whether this resource is already realized.

        This may perform a lot of IO but must not change anything. Returns
        False (rather than raising) when the resource simply does not exist
        yet; only genuine operational failures raise.
        """

    @abstractmethod
    def describe(self) -> str:
        """Human readable summary used in logs and diagnostics."""

    def implicit_ensure(self, ensurer: Ensurer) -> None:
        """Ensure any resources this resource structurally requires.

        Called before the resource itself is registered, so everything
        ensured here precedes it in realize order. The default has none.
        """
        return None

    def identity(self) -> tuple[str, Key]:
        """The (kind, key) pair used to deduplicate declarations."""
        if not self.kind:
            raise TypeError(f"{type(self).__name__} does not define a resource kind")
        return (self.kind, self.key())

    def __str__(self) -> str:
        return self.describe()
