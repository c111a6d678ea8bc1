"""Wayfinder exception hierarchy.

Shared across the matcher, persistence, router, and rendering boundary so
every module raises and catches the same types.

Reducer validation failures are not represented here: a rejected
navigation intent is a no-op plus a warning, never an exception.
"""

from dataclasses import dataclass


class WayfinderError(Exception):
    """Base for all wayfinder-specific errors."""


class ConfigurationError(WayfinderError):
    """Raised when router configuration is invalid.

    Typically caught during ``RouterConfig.validate()`` at startup.
    """


class RouterClosed(WayfinderError):
    """Raised when an action is sent to a router whose loop has stopped."""


class RecursionLimitExceeded(WayfinderError):
    """A presented-controller chain was longer than the configured limit.

    Indicates a caller-supplied cyclic structure. Not recoverable.
    """

    def __init__(self, limit: int) -> None:
        super().__init__(f"Maximum recursive loop exceeded ({limit}).")
        self.limit = limit


# ---------------------------------------------------------------------------
# Restore failures
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class RestoreError(WayfinderError):
    """A persisted navigation state could not be restored.

    Callers fall back to a fresh initial state. The stored document has
    already been invalidated when this is raised.
    """

    key: str
    detail: str = ""

    def __str__(self) -> str:
        if self.detail:
            return f"{self.key}: {self.detail}"
        return self.key


class StateNotFound(RestoreError):  # noqa: N818
    """No document is stored under the state key."""

    def __init__(self, key: str, detail: str = "No stored navigation state") -> None:
        super().__init__(key=key, detail=detail)


class StateOutdated(RestoreError):  # noqa: N818
    """The stored document is older than the staleness threshold."""

    def __init__(self, key: str, minutes: int) -> None:
        super().__init__(key=key, detail=f"Stored navigation state is older than {minutes} minutes")


class SelectedModelMismatch(RestoreError):  # noqa: N818
    """No consistent selected/root-selected model exists after rehoming."""

    def __init__(self, key: str, detail: str = "Selected model could not be rehomed") -> None:
        super().__init__(key=key, detail=detail)


class DecodeError(RestoreError):
    """The stored document is not a valid navigation state."""

    def __init__(self, key: str, detail: str = "Stored navigation state is invalid") -> None:
        super().__init__(key=key, detail=detail)
