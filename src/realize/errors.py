"""Error taxonomy for declaration and realize operations.

Two categories exist:
- Declaration conflicts (same identity, unequal values) are NOT errors. They
  are recorded as DuplicateDeclaration diagnostics by the Reality.
- Operational errors always propagate. Each composite level wraps the error
  below it (``raise ... from``), so the final exception carries an ordered
  cause chain that cause_chain() can render.
"""

from __future__ import annotations

from .key import Key


class RealizeBaseError(Exception):
    """Base class for all errors raised by realize."""

    pass


class DeclarationError(RealizeBaseError):
    """Raised while declaring resources, before anything is verified."""

    pass


class CyclicPrerequisiteError(DeclarationError):
    """Raised when implicit prerequisites of a resource loop back to it."""

    def __init__(self, cycle: list[str]) -> None:
        self.cycle = cycle
        super().__init__("Circular implicit prerequisite: " + " -> ".join(cycle))


class PrerequisiteDepthError(DeclarationError):
    """Raised when an implicit prerequisite chain grows beyond the limit."""

    def __init__(self, description: str, max_depth: int) -> None:
        self.description = description
        self.max_depth = max_depth
        super().__init__(
            f"Implicit prerequisite chain for {description} exceeds maximum depth of {max_depth}"
        )


class ResourceError(RealizeBaseError):
    """An operational error attributed to one resource."""

    action = "handle"

    def __init__(self, description: str, key: Key) -> None:
        self.description = description
        self.key = key
        super().__init__(f"Could not {self.action} {description} (key {key})")


class VerifyError(ResourceError):
    """Raised when a member of a Reality fails to verify."""

    action = "verify"


class RealizeError(ResourceError):
    """Raised when a member of a Reality fails to realize."""

    action = "realize"


class FileSystemError(RealizeBaseError):
    """Raised by filesystem resources when an OS operation fails."""

    pass


class ApplyError(RealizeBaseError):
    """Raised by the apply orchestrator around any failure of a run."""

    pass


def cause_chain(error: BaseException) -> list[str]:
    """Render an exception and its causes as messages, most specific first.

    Follows explicit causes (``raise ... from``) and, when there is none,
    the implicit exception context.
    """
    chain: list[BaseException] = []
    seen: set[int] = set()
    current: BaseException | None = error
    while current is not None and id(current) not in seen:
        seen.add(id(current))
        chain.append(current)
        current = current.__cause__ or (
            None if current.__suppress_context__ else current.__context__
        )

    messages = []
    for exc in reversed(chain):
        message = str(exc)
        if isinstance(exc, OSError) or not message:
            message = f"{type(exc).__name__}: {message}" if message else type(exc).__name__
        messages.append(message)
    return messages
