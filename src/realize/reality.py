"""Meta-resources that manage other resources.

The Reality collects resources declared by a configuration procedure, in
declaration order, deduplicated on (kind, key). Implicit prerequisites are
expanded recursively before a resource is registered, which is the only
ordering mechanism: there is no dependency graph solver.

DUPLICATES:
Declaring an identity twice with an equal value is a no-op. Declaring it with
an unequal value keeps the first value and records a DuplicateDeclaration
(first wins, warn). This is never an error and never an overwrite.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator
from dataclasses import dataclass

from .config import DEFAULT_MAX_PREREQUISITE_DEPTH
from .errors import (
    CyclicPrerequisiteError,
    PrerequisiteDepthError,
    RealizeError,
    VerifyError,
)
from .key import Key, SeqKey
from .resource import Context, Resource

logger = logging.getLogger(__name__)

DUPLICATE_DECLARATION = "duplicate declaration"


@dataclass(frozen=True)
class DuplicateDeclaration:
    """Diagnostic for an identity declared twice with different values."""

    kind: str
    key: Key
    kept: str
    rejected: str

    diagnostic: str = DUPLICATE_DECLARATION

    def __str__(self) -> str:
        return (
            f"{self.diagnostic} for {self.kind} {self.key}: "
            f"keeping {self.kept}, ignoring {self.rejected}"
        )


class Reality(Resource):
    """A meta-resource that realizes other resources in dependency order."""

    kind = "reality"

    def __init__(
        self,
        log: logging.Logger | None = None,
        max_prerequisite_depth: int = DEFAULT_MAX_PREREQUISITE_DEPTH,
    ) -> None:
        self._log = log or logger
        self._max_depth = max_prerequisite_depth
        self._resources: dict[tuple[str, Key], Resource] = {}
        self._expanding: list[tuple[tuple[str, Key], Resource]] = []
        self._conflicts: list[DuplicateDeclaration] = []

    @property
    def conflicts(self) -> list[DuplicateDeclaration]:
        """Duplicate declaration diagnostics recorded so far."""
        return list(self._conflicts)

    def ensure(self, resource: Resource) -> None:
        """Add a resource (and its implicit prerequisites) to be realized.

        Raises:
            CyclicPrerequisiteError: If the prerequisites lead back to the resource.
            PrerequisiteDepthError: If the prerequisite chain is too deep.
        """
        identity = resource.identity()

        expanding = [item for item, _ in self._expanding]
        if identity in expanding:
            start = expanding.index(identity)
            cycle = [item.describe() for _, item in self._expanding[start:]]
            raise CyclicPrerequisiteError([*cycle, resource.describe()])
        if len(self._expanding) >= self._max_depth:
            raise PrerequisiteDepthError(resource.describe(), self._max_depth)

        self._expanding.append((identity, resource))
        try:
            resource.implicit_ensure(self)
        finally:
            self._expanding.pop()

        self._register(identity, resource)

    def _register(self, identity: tuple[str, Key], resource: Resource) -> None:
        existing = self._resources.get(identity)
        if existing is None:
            self._resources[identity] = resource
            return

        if existing != resource:
            kind, key = identity
            conflict = DuplicateDeclaration(
                kind=kind,
                key=key,
                kept=existing.describe(),
                rejected=resource.describe(),
            )
            self._conflicts.append(conflict)
            self._log.warning(
                "Duplicate resource definitions; will use the older one",
                extra={"key": str(key), "old": conflict.kept, "new": conflict.rejected},
            )

    def __iter__(self) -> Iterator[Resource]:
        return iter(list(self._resources.values()))

    def __len__(self) -> int:
        return len(self._resources)

    def __contains__(self, resource: object) -> bool:
        if not isinstance(resource, Resource):
            return False
        return resource.identity() in self._resources

    def get(self, kind: str, key: Key) -> Resource | None:
        """Look up the stored resource for an identity."""
        return self._resources.get((kind, key))

    def key(self) -> Key:
        return SeqKey(tuple(resource.key() for resource in self._resources.values()))

    def realize(self, ctx: Context) -> None:
        """Realize every member in order, stopping at the first failure.

        Raises:
            RealizeError: Naming the failing member, chained to its error.
        """
        for resource in self._resources.values():
            try:
                resource.realize(ctx)
            except Exception as e:
                raise RealizeError(resource.describe(), resource.key()) from e

    def verify(self, ctx: Context) -> bool:
        """Verify members in order; False as soon as one is not realized.

        Raises:
            VerifyError: Naming the failing member, chained to its error.
        """
        for resource in self._resources.values():
            try:
                realized = resource.verify(ctx)
            except Exception as e:
                raise VerifyError(resource.describe(), resource.key()) from e
            if not realized:
                return False
        return True

    def describe(self) -> str:
        return f"reality with {len(self._resources)} resources"

    def __repr__(self) -> str:
        return f"Reality({list(self._resources.values())!r})"
