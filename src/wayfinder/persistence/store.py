"""Navigation state persistence.

``StateStore`` writes one JSON document per app build to a minimal
key-value backend and restores it on the next launch::

    store = StateStore(JSONFileStore("~/.cache/app/state.json"), config=config)
    state = store.restore_or_initial(initial_state, config.staleness_minutes)

Restore rules:
    - A document older than the staleness threshold is discarded.
    - Stored root models are matched to the freshly declared ones by
      ``string_identifier`` (the tab name) and rehomed onto the fresh ids
      and routes. Root models that were not stored come from the initial
      state unchanged.
    - Stored presented models are carried over verbatim.
    - The selected and root-selected models must be found again after
      rehoming, otherwise the whole restore fails.
    - The stored document is invalidated on every restore attempt, whether
      it succeeds or fails, so a bad document is never retried.
"""

import json
import logging
import random
import threading
from dataclasses import replace
from datetime import timedelta
from pathlib import Path as FilePath
from typing import Protocol

from wayfinder._internal.types import Clock
from wayfinder.config import RouterConfig
from wayfinder.errors import (
    RestoreError,
    SelectedModelMismatch,
    StateNotFound,
    StateOutdated,
)
from wayfinder.navigation.models import Model
from wayfinder.navigation.state import State, utcnow
from wayfinder.persistence.codec import decode_state, encode_state
from wayfinder.routing.route import Route

logger = logging.getLogger("wayfinder.persistence")


# ---------------------------------------------------------------------------
# Key-value backends
# ---------------------------------------------------------------------------


class KeyValueStore(Protocol):
    """The storage contract: any backend with set, get, and remove."""

    def set(self, key: str, value: str) -> None: ...

    def get(self, key: str) -> str | None: ...

    def remove(self, key: str) -> None: ...


class MemoryStore:
    """In-process backend. Thread-safe."""

    __slots__ = ("_data", "_lock")

    def __init__(self, data: dict[str, str] | None = None) -> None:
        self._data: dict[str, str] = dict(data or {})
        self._lock = threading.Lock()

    def set(self, key: str, value: str) -> None:
        with self._lock:
            self._data[key] = value

    def get(self, key: str) -> str | None:
        with self._lock:
            return self._data.get(key)

    def remove(self, key: str) -> None:
        with self._lock:
            self._data.pop(key, None)

    def __contains__(self, key: object) -> bool:
        with self._lock:
            return key in self._data


class JSONFileStore:
    """Backend that keeps every key in a single JSON object on disk.

    Each write rewrites the file through a sibling temp file and an atomic
    rename. A missing or unreadable file reads as empty.
    """

    __slots__ = ("_lock", "path")

    def __init__(self, path: str | FilePath) -> None:
        self.path = FilePath(path).expanduser()
        self._lock = threading.Lock()

    def _read(self) -> dict[str, str]:
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            return {}
        except (OSError, ValueError):
            logger.warning("Ignoring unreadable state file %s", self.path)
            return {}
        return data if isinstance(data, dict) else {}

    def _write(self, data: dict[str, str]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self.path.with_name(self.path.name + ".tmp")
        tmp.write_text(json.dumps(data), encoding="utf-8")
        tmp.replace(self.path)

    def set(self, key: str, value: str) -> None:
        with self._lock:
            data = self._read()
            data[key] = value
            self._write(data)

    def get(self, key: str) -> str | None:
        with self._lock:
            value = self._read().get(key)
        return value if isinstance(value, str) else None

    def remove(self, key: str) -> None:
        with self._lock:
            data = self._read()
            if data.pop(key, None) is not None:
                self._write(data)


# ---------------------------------------------------------------------------
# State store
# ---------------------------------------------------------------------------


def state_key(bundle_id: str | None, version: str | None, build: str | None) -> str:
    """Derive the storage key for an app build.

    A missing version is replaced by a random number so that an unknown
    build never picks up a document written by another one.
    """
    version = version if version is not None else str(random.randint(1_234_322_000, 1_000_000_000_000))  # noqa: S311
    key = f"navigation_state_{bundle_id or ''}_{version}_{build or ''}"
    return key.replace(" ", "_")


class StateStore:
    """Save and restore the navigation State under a per-build key."""

    __slots__ = ("_clock", "key", "store")

    def __init__(
        self,
        store: KeyValueStore,
        *,
        bundle_id: str | None = None,
        version: str | None = None,
        build: str | None = None,
        config: RouterConfig | None = None,
        clock: Clock = utcnow,
    ) -> None:
        if config is not None:
            bundle_id = bundle_id or config.bundle_id
            version = version or config.version
            build = build or config.build
        self.store = store
        self.key = state_key(bundle_id, version, build)
        self._clock = clock

    def save(self, state: State) -> None:
        """Write *state*. Failures are logged, never raised."""
        try:
            self.store.set(self.key, encode_state(state))
        except (OSError, TypeError, ValueError):
            logger.warning("Failed to save navigation state to %s", self.key, exc_info=True)
            return
        logger.info("Navigation state saved to key %s", self.key)

    def load(self) -> State:
        """Read the stored state without rehoming it."""
        text = self.store.get(self.key)
        if not text:
            raise StateNotFound(self.key)
        return decode_state(text, key=self.key)

    def invalidate(self) -> None:
        self.store.remove(self.key)
        logger.debug("Stored state %s has been removed", self.key)

    def restore(self, initial: State, minutes_threshold: int = 10) -> State:
        """Merge the stored state into *initial*.

        Raises a ``RestoreError`` subclass when nothing usable is stored.
        The stored document is gone afterwards either way.
        """
        try:
            saved = self.load()
            if self._clock() - saved.last_modified >= timedelta(minutes=minutes_threshold):
                raise StateOutdated(self.key, minutes_threshold)
            self.invalidate()
            state = self._rehome(saved, initial)
        except RestoreError as exc:
            logger.info("Failed to load state: %s", exc)
            self.invalidate()
            raise
        logger.info("Saved state loaded from key %s", self.key)
        return state

    def restore_or_initial(self, initial: State, minutes_threshold: int = 10) -> State:
        """Like ``restore`` but fall back to *initial* on any failure."""
        try:
            return self.restore(initial, minutes_threshold)
        except RestoreError:
            return initial

    def _rehome(self, saved: State, initial: State) -> State:
        old_roots = [model for model in saved.navigation_models if not model.is_presented]
        models: list[Model] = []
        for fresh in initial.navigation_models:
            if fresh.is_presented:
                continue
            old = next((model for model in old_roots if model.string_identifier == fresh.string_identifier), None)
            models.append(old.clone(fresh.id, fresh.routes) if old is not None else fresh)

        known = _routes_by_pattern(initial)
        for model in saved.navigation_models:
            if model.is_presented:
                models.append(_reattach_routes(model, known))

        old_selected = saved.model(saved.selected_model_id)
        old_root = saved.model(saved.root_selected_model_id)
        selected = _find_by_identifier(models, old_selected)
        root = _find_by_identifier(models, old_root)
        if selected is None or root is None:
            raise SelectedModelMismatch(self.key)

        return State(
            selected_model_id=selected.id,
            root_selected_model_id=root.id,
            navigation_models=tuple(models),
            available_routes=initial.available_routes,
            last_modified=self._clock(),
        )


def _find_by_identifier(models: list[Model], old: Model | None) -> Model | None:
    if old is None:
        return None
    return next((model for model in models if model.string_identifier == old.string_identifier), None)


def _routes_by_pattern(state: State) -> dict[str, Route]:
    known: dict[str, Route] = {}
    for route in state.available_routes:
        known.setdefault(route.pattern, route)
    for model in state.navigation_models:
        for route in model.routes or ():
            known.setdefault(route.pattern, route)
    return known


def _reattach_routes(model: Model, known: dict[str, Route]) -> Model:
    if model.routes is None:
        return model
    return replace(model, routes=tuple(known.get(route.pattern, route) for route in model.routes))
