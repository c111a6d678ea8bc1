"""Navigation actions — the closed set of intents the reducer understands.

Every action is a frozen dataclass carrying plain data. ``Action`` is the
union of all of them; the reducer matches on it exhaustively.

Group actions with ``multi_action``::

    multi_action(
        Open(Path.create("/inbox")),
        Open(Path.create("/message/42")) if show_message else None,
    )
"""

import uuid
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, TypeAlias

from wayfinder.navigation.models import (
    AlertModel,
    Completion,
    Detent,
    Icon,
    Model,
    Path,
    PresentationType,
)

if TYPE_CHECKING:
    from wayfinder.navigation.state import State
    from wayfinder.routing.route import Route


# ---------------------------------------------------------------------------
# Open targets
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class CurrentTarget:
    """Push onto the currently selected model."""

    animate: bool = True


@dataclass(frozen=True, slots=True)
class ModelIdTarget:
    """Push onto the model with this id."""

    model_id: uuid.UUID
    animate: bool = True


@dataclass(frozen=True, slots=True)
class ModelTarget:
    """Push onto a specific model."""

    model: Model
    animate: bool = True


@dataclass(frozen=True, slots=True)
class NewTarget:
    """Present a brand-new model with the path as its only entry."""

    routes: tuple["Route", ...] | None = None
    presentation_type: PresentationType = field(default_factory=PresentationType.page_sheet)


Target: TypeAlias = CurrentTarget | ModelIdTarget | ModelTarget | NewTarget


# ---------------------------------------------------------------------------
# Dismiss targets
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class DismissCurrentModel:
    """Dismiss the selected model if it is presented.

    With a completion the removal is deferred: the model is marked
    ``should_be_dismissed`` and the rendering adapter reports back with
    ``SetNavigationDismissed`` once its animation finishes.
    """

    animated: bool = True
    completion: Completion | None = None


@dataclass(frozen=True, slots=True)
class DismissModel:
    model: Model
    animated: bool = True
    completion: Completion | None = None


@dataclass(frozen=True, slots=True)
class DismissPath:
    """Remove a path from its stack.

    If the path is the only one in a presented model the whole model is
    dismissed. The root path of a stack is never removed.
    """

    path: Path
    animated: bool = True
    completion: Completion | None = None


@dataclass(frozen=True, slots=True)
class DismissCurrentPath:
    """Pop the selected path of the selected model."""

    animated: bool = True


@dataclass(frozen=True, slots=True)
class DismissAllPresented:
    including_untracked: bool = True
    completion: Completion | None = None


@dataclass(frozen=True, slots=True)
class PopToRoot:
    model_id: uuid.UUID


DismissTarget: TypeAlias = (
    DismissCurrentModel | DismissModel | DismissPath | DismissCurrentPath | DismissAllPresented | PopToRoot
)


# ---------------------------------------------------------------------------
# Actions
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class MultiAction:
    """Apply several actions in order as a single transition."""

    actions: tuple["Action", ...] = ()


@dataclass(frozen=True, slots=True)
class SetAvailableRoutes:
    routes: tuple["Route", ...]


@dataclass(frozen=True, slots=True)
class SetBadgeValue:
    value: str | None
    model_id: uuid.UUID
    color: str | None = None


@dataclass(frozen=True, slots=True)
class SetIcon:
    model_id: uuid.UUID
    icon: Icon
    selected_icon: Icon | None = None


@dataclass(frozen=True, slots=True)
class SetSelectedPath:
    """Select *path* in *model*; later paths in the stack are discarded."""

    path: Path
    model: Model


@dataclass(frozen=True, slots=True)
class Dismiss:
    target: DismissTarget


@dataclass(frozen=True, slots=True)
class Replace:
    """Swap *path* for *new_path* at the same stack position."""

    path: Path
    new_path: Path
    model: Model


@dataclass(frozen=True, slots=True)
class Update:
    """Re-resolve *path* with a new URL, keeping its id."""

    path: Path
    url: str | None
    model: Model
    haptic_feedback: bool = False


@dataclass(frozen=True, slots=True)
class Open:
    """Push or present *path* in *target*."""

    path: Path | None
    target: Target = field(default_factory=CurrentTarget)
    haptic_feedback: bool = False


@dataclass(frozen=True, slots=True)
class SetNavigationDismissed:
    """Reported by the rendering adapter once a deferred dismissal finished."""

    model: Model


@dataclass(frozen=True, slots=True)
class SelectTab:
    model_id: uuid.UUID


@dataclass(frozen=True, slots=True)
class SelectedDetentChanged:
    identifier: str
    model: Model


@dataclass(frozen=True, slots=True)
class SetNewDetents:
    detents: tuple[Detent, ...]
    selected: Detent
    model: Model
    largest_undimmed: Detent | None = None
    prefers_grabber_visible: bool = False
    preferred_corner_radius: float | None = None
    prefers_scrolling_expands: bool = True


@dataclass(frozen=True, slots=True)
class ShowAlert:
    alert: AlertModel


@dataclass(frozen=True, slots=True)
class DismissedAlert:
    alert: AlertModel


@dataclass(frozen=True, slots=True)
class SetTabTipIdentifier:
    identifier: str | None
    model: Model


@dataclass(frozen=True, slots=True)
class SetLoadedState:
    """Replace the entire state. Prefer the other actions."""

    state: "State"


@dataclass(frozen=True, slots=True)
class UntrackedViewsRemoved:
    """Reported by the rendering adapter after out-of-band views are gone."""


Action: TypeAlias = (
    MultiAction
    | SetAvailableRoutes
    | SetBadgeValue
    | SetIcon
    | SetSelectedPath
    | Dismiss
    | Replace
    | Update
    | Open
    | SetNavigationDismissed
    | SelectTab
    | SelectedDetentChanged
    | SetNewDetents
    | ShowAlert
    | DismissedAlert
    | SetTabTipIdentifier
    | SetLoadedState
    | UntrackedViewsRemoved
)


def multi_action(*actions: "Action | None") -> MultiAction:
    """Build a MultiAction, skipping ``None`` entries."""
    return MultiAction(tuple(action for action in actions if action is not None))


def wants_haptic_feedback(action: "Action") -> bool:
    """True if *action*, or any action nested in it, asked for haptics."""
    if isinstance(action, MultiAction):
        return any(wants_haptic_feedback(child) for child in action.actions)
    if isinstance(action, Open | Update):
        return action.haptic_feedback
    return False


def flatten(action: "Action") -> list["Action"]:
    """Expand nested MultiActions into the flat list the reducer applies."""
    if isinstance(action, MultiAction):
        return [leaf for child in action.actions for leaf in flatten(child)]
    return [action]
