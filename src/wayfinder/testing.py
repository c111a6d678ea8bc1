"""Test helpers for wayfinder applications.

Assertions read State snapshots the same way the rendering adapter does.
No mocks of router internals.
"""

from collections.abc import Sequence

from wayfinder.navigation.models import Model
from wayfinder.navigation.state import State
from wayfinder.persistence.store import MemoryStore

# ---------------------------------------------------------------------------
# State assertion helpers
# ---------------------------------------------------------------------------


def stack_of(model: Model) -> list[str | None]:
    """The URL paths of a model's stack, root first."""
    return [path.path for path in model.presented_paths]


def assert_selection_consistent(state: State) -> None:
    """Assert the structural invariants every reducer step preserves.

    - The selected model, when set, resolves and shows its selected path.
    - The root-selected model, when set, is a root model.
    - No model has an empty stack.
    """
    for model in state.navigation_models:
        assert model.presented_paths, f"{model!r} has an empty stack"
        assert model.index_of(model.selected_path.id) is not None, (
            f"{model!r} selects {model.selected_path!r} which is not in its stack {stack_of(model)}"
        )
    if state.selected_model_id is not None:
        assert state.selected_model is not None, f"Selected model {state.selected_model_id} does not exist"
    if state.root_selected_model_id is not None:
        root = state.root_selected_model
        assert root is not None, f"Root-selected model {state.root_selected_model_id} does not exist"
        assert not root.is_presented, f"Root-selected {root!r} is a presented model"


def assert_stack(model: Model | None, expected: Sequence[str], *, selected: str | None = None) -> None:
    """Assert *model* shows exactly *expected* (URL paths, root first).

    *selected* defaults to the last entry.
    """
    assert model is not None, "Model does not exist"
    actual = stack_of(model)
    assert actual == list(expected), f"Expected stack {list(expected)}, got {actual}"
    want = selected if selected is not None else (expected[-1] if expected else None)
    assert model.selected_path.path == want, f"Expected {want!r} selected, got {model.selected_path.path!r}"


def assert_selected(state: State, path: str) -> None:
    """Assert the selected model's selected path is *path*."""
    model = state.selected_model
    assert model is not None, "No model is selected"
    assert model.selected_path.path == path, (
        f"Expected {path!r} selected, got {model.selected_path.path!r} in {model!r}"
    )


# ---------------------------------------------------------------------------
# Persistence
# ---------------------------------------------------------------------------


class RecordingStore(MemoryStore):
    """MemoryStore that records every operation as ``(op, key)``."""

    __slots__ = ("operations",)

    def __init__(self, data: dict[str, str] | None = None) -> None:
        super().__init__(data)
        self.operations: list[tuple[str, str]] = []

    def set(self, key: str, value: str) -> None:
        self.operations.append(("set", key))
        super().set(key, value)

    def get(self, key: str) -> str | None:
        self.operations.append(("get", key))
        return super().get(key)

    def remove(self, key: str) -> None:
        self.operations.append(("remove", key))
        super().remove(key)
