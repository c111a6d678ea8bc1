"""Router configuration.

RouterConfig is a frozen dataclass — immutable after creation, IDE-autocompletable,
no string-key dict lookups.
"""

from dataclasses import dataclass

from wayfinder.errors import ConfigurationError


@dataclass(frozen=True, slots=True)
class RouterConfig:
    """Router configuration. Immutable after creation.

    All fields have sensible defaults. Override what you need::

        config = RouterConfig(bundle_id="com.example.app", version="2.1", build="88")
    """

    # Persistence key parts (state is invalidated across version bumps)
    bundle_id: str | None = None
    version: str | None = None
    build: str | None = None

    # Stored states older than this are discarded on restore
    staleness_minutes: int = 10

    # Save the state through the attached StateStore after every commit
    autosave: bool = False

    # Dispatch loop
    queue_size: int = 256
    subscriber_queue_size: int = 256

    # Rendering adapter guard for presented-controller chains
    recursion_limit: int = 100

    # Development
    debug: bool = False  # Programmer errors in the reducer raise AssertionError
    log_state_changes: bool = True  # Debug-level dump of every committed state

    def validate(self) -> None:
        """Raise ``ConfigurationError`` when a value is out of range."""
        if self.staleness_minutes < 0:
            msg = f"staleness_minutes must be >= 0, got {self.staleness_minutes}"
            raise ConfigurationError(msg)
        if self.queue_size < 1:
            msg = f"queue_size must be >= 1, got {self.queue_size}"
            raise ConfigurationError(msg)
        if self.subscriber_queue_size < 1:
            msg = f"subscriber_queue_size must be >= 1, got {self.subscriber_queue_size}"
            raise ConfigurationError(msg)
        if self.recursion_limit < 1:
            msg = f"recursion_limit must be >= 1, got {self.recursion_limit}"
            raise ConfigurationError(msg)
