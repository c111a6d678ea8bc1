"""Navigation data model — Path, Model, Tab, presentation, and alerts.

Every entity is a frozen dataclass. The reducer produces new snapshots
with ``dataclasses.replace``; nothing here is mutated in place, so an old
State stays valid after a transition.

Identity rules:
    - Two Paths are equal iff their ids are equal. ``update`` swaps the URL
      and match result of a Path but keeps its id.
    - Two Models are equal iff their ids are equal.
    - Completions, alerts, and alert buttons compare by id; their
      callbacks are never compared or serialized.
"""

import uuid
from collections.abc import Sequence
from dataclasses import dataclass, field, replace
from enum import StrEnum
from typing import TYPE_CHECKING
from urllib.parse import urlsplit

from wayfinder._internal.types import Callback
from wayfinder.routing.matcher import MatchResult, URLMatcher
from wayfinder.routing.params import MatchValue

if TYPE_CHECKING:
    from wayfinder.routing.route import Route


# ---------------------------------------------------------------------------
# Paths
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class NavBarOptions:
    """Display hints for the navigation bar of a single path."""

    hide_navigation_bar: bool = False
    title: str | None = None


@dataclass(frozen=True, slots=True, eq=False)
class Path:
    """One navigable page, identified by a stable id.

    Use ``Path.create(url)`` to build one from a URL string. A Path without
    a URL is a placeholder that no route can validate.
    """

    id: uuid.UUID = field(default_factory=uuid.uuid4)
    url: str | None = None
    match_result: MatchResult | None = None
    name: str | None = None
    has_been_shown: bool = False
    nav_bar_options: NavBarOptions | None = None

    @classmethod
    def create(
        cls,
        url: str | None,
        name: str | None = None,
        nav_bar_options: NavBarOptions | None = None,
    ) -> "Path | None":
        """Create a Path for *url*; ``None`` when there is no URL."""
        if not url:
            return None
        return cls(url=url, name=name, nav_bar_options=nav_bar_options)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Path):
            return NotImplemented
        return self.id == other.id

    def __hash__(self) -> int:
        return hash(self.id)

    def __repr__(self) -> str:
        return f"Path({self.path or 'unknown'})"

    @property
    def path(self) -> str | None:
        """The path component of the URL (scheme, host, and query dropped)."""
        if self.url is None:
            return None
        return urlsplit(self.url).path

    @property
    def params(self) -> dict[str, MatchValue] | None:
        return self.match_result.values if self.match_result is not None else None

    def match_against(self, routes: Sequence["Route"]) -> MatchResult | None:
        """Match this path's URL against the patterns of *routes*."""
        if self.path is None:
            return None
        return URLMatcher().match(self.path, [route.pattern for route in routes])

    def with_match_result_if_missing(self, result: MatchResult | None) -> "Path":
        if self.match_result is not None or result is None:
            return self
        return replace(self, match_result=result)


# ---------------------------------------------------------------------------
# Tabs
# ---------------------------------------------------------------------------


class IconKind(StrEnum):
    IMAGE = "image"
    LOCAL = "local"
    SYSTEM = "system"


@dataclass(frozen=True, slots=True)
class Icon:
    """A tab icon reference; the rendering adapter resolves *name*."""

    name: str
    kind: IconKind = IconKind.SYSTEM

    @classmethod
    def image(cls, name: str) -> "Icon":
        return cls(name, IconKind.IMAGE)

    @classmethod
    def local(cls, name: str) -> "Icon":
        return cls(name, IconKind.LOCAL)

    @classmethod
    def system(cls, name: str) -> "Icon":
        return cls(name, IconKind.SYSTEM)


@dataclass(frozen=True, slots=True)
class Tab:
    """A tab bar item. A Model with a Tab renders as a tab."""

    name: str
    icon: Icon
    selected_icon: Icon | None = None
    badge_value: str | None = None
    badge_color: str | None = None
    tip_identifier: str | None = None

    def __repr__(self) -> str:
        return f"Tab({self.name})"


# ---------------------------------------------------------------------------
# Presentation
# ---------------------------------------------------------------------------


class TransitionStyle(StrEnum):
    COVER_VERTICAL = "cover_vertical"
    FLIP_HORIZONTAL = "flip_horizontal"
    CROSS_DISSOLVE = "cross_dissolve"
    PARTIAL_CURL = "partial_curl"


@dataclass(frozen=True, slots=True)
class TransitionOptions:
    animated: bool = True
    prevent_dismissal: bool = False
    transition_style: TransitionStyle = TransitionStyle.COVER_VERTICAL


@dataclass(frozen=True, slots=True)
class Detent:
    """A discrete height a sheet may rest at.

    ``medium`` and ``large`` are the native sizes; custom detents carry an
    explicit height.
    """

    identifier: str
    height: float | None = None

    @classmethod
    def medium(cls) -> "Detent":
        return cls("medium")

    @classmethod
    def large(cls) -> "Detent":
        return cls("large")

    @classmethod
    def custom(cls, identifier: str, height: float) -> "Detent":
        return cls(identifier, height)


@dataclass(frozen=True, slots=True)
class DetentOptions:
    detents: tuple[Detent, ...]
    selected: Detent | None = None
    largest_undimmed: Detent | None = None
    prefers_grabber_visible: bool = False
    preferred_corner_radius: float | None = None
    prefers_scrolling_expands: bool = True


class PresentationKind(StrEnum):
    PAGE_SHEET = "page_sheet"
    FULLSCREEN = "fullscreen"
    OVER_FULLSCREEN = "over_fullscreen"
    FORM_SHEET = "form_sheet"
    DETENTS = "detents"


@dataclass(frozen=True, slots=True)
class PresentationType:
    """How a presented Model is shown.

    Build with the named constructors::

        PresentationType.page_sheet()
        PresentationType.fullscreen(TransitionOptions(animated=False))
        PresentationType.detents(DetentOptions((Detent.medium(), Detent.large())))
    """

    kind: PresentationKind = PresentationKind.PAGE_SHEET
    options: TransitionOptions = field(default_factory=TransitionOptions)
    detent_options: DetentOptions | None = None

    @classmethod
    def page_sheet(cls, options: TransitionOptions | None = None) -> "PresentationType":
        return cls(PresentationKind.PAGE_SHEET, options or TransitionOptions())

    @classmethod
    def fullscreen(cls, options: TransitionOptions | None = None) -> "PresentationType":
        return cls(PresentationKind.FULLSCREEN, options or TransitionOptions())

    @classmethod
    def over_fullscreen(cls, options: TransitionOptions | None = None) -> "PresentationType":
        return cls(PresentationKind.OVER_FULLSCREEN, options or TransitionOptions())

    @classmethod
    def form_sheet(cls, options: TransitionOptions | None = None) -> "PresentationType":
        return cls(PresentationKind.FORM_SHEET, options or TransitionOptions())

    @classmethod
    def detents(
        cls,
        detent_options: DetentOptions,
        options: TransitionOptions | None = None,
    ) -> "PresentationType":
        return cls(PresentationKind.DETENTS, options or TransitionOptions(), detent_options)

    @property
    def detent_items(self) -> tuple[Detent, ...] | None:
        if self.kind is not PresentationKind.DETENTS or self.detent_options is None:
            return None
        return self.detent_options.detents

    @property
    def selected_detent(self) -> Detent | None:
        if self.kind is not PresentationKind.DETENTS or self.detent_options is None:
            return None
        return self.detent_options.selected


# ---------------------------------------------------------------------------
# Completions and alerts
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True, eq=False)
class Completion:
    """A callback carried in state, compared by id.

    The callback is dropped when the state is persisted; a restored
    Completion keeps its id but does nothing.
    """

    id: uuid.UUID = field(default_factory=uuid.uuid4)
    callback: Callback | None = None

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Completion):
            return NotImplemented
        return self.id == other.id

    def __hash__(self) -> int:
        return hash(self.id)

    def __call__(self) -> None:
        if self.callback is not None:
            self.callback()


class AlertStyle(StrEnum):
    ALERT = "alert"
    ACTION_SHEET = "action_sheet"


class AlertButtonStyle(StrEnum):
    DEFAULT = "default"
    CANCEL = "cancel"
    DESTRUCTIVE = "destructive"


@dataclass(frozen=True, slots=True, eq=False)
class AlertButton:
    label: str
    style: AlertButtonStyle = AlertButtonStyle.DEFAULT
    action: Callback | None = None
    id: uuid.UUID = field(default_factory=uuid.uuid4)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, AlertButton):
            return NotImplemented
        return self.id == other.id

    def __hash__(self) -> int:
        return hash(self.id)


@dataclass(frozen=True, slots=True)
class AlertModel:
    """An alert queued for presentation. The adapter shows one at a time."""

    id: uuid.UUID = field(default_factory=uuid.uuid4)
    style: AlertStyle = AlertStyle.ALERT
    title: str | None = None
    message: str | None = None
    buttons: tuple[AlertButton, ...] | None = None


# ---------------------------------------------------------------------------
# Models (navigation stacks)
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True, eq=False)
class Model:
    """One navigation stack: a tab or a presented (modal) session.

    ``presented_paths`` runs root-to-current and is never empty once the
    model exists; ``selected_path`` is always one of them after a reducer
    step touches the model.
    """

    selected_path: Path
    id: uuid.UUID = field(default_factory=uuid.uuid4)
    routes: tuple["Route", ...] | None = None
    tab: Tab | None = None
    presented_paths: tuple[Path, ...] = ()
    is_presented: bool = True
    presentation_type: PresentationType = field(default_factory=PresentationType)
    selected_detent_identifier: str | None = None
    should_be_dismissed: bool = False
    dismiss_completion_action: Completion | None = None
    animate: bool = True

    @classmethod
    def create(
        cls,
        selected_path: Path,
        *,
        id: uuid.UUID | None = None,  # noqa: A002
        routes: Sequence["Route"] | None = None,
        tab: Tab | None = None,
    ) -> "Model":
        """Create a root (non-presented) model showing *selected_path*."""
        return cls(
            selected_path=selected_path,
            id=id or uuid.uuid4(),
            routes=tuple(routes) if routes is not None else None,
            tab=tab,
            presented_paths=(selected_path,),
            is_presented=False,
        )

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Model):
            return NotImplemented
        return self.id == other.id

    def __hash__(self) -> int:
        return hash(self.id)

    def __repr__(self) -> str:
        return f"Model({self.tab.name if self.tab else self.id})"

    @property
    def string_identifier(self) -> str:
        """Stable name used to rehome a restored tab onto a fresh model."""
        return self.tab.name if self.tab is not None else str(self.id)

    @property
    def path_ids(self) -> list[uuid.UUID]:
        return [path.id for path in self.presented_paths]

    def index_of(self, path_id: uuid.UUID) -> int | None:
        for index, path in enumerate(self.presented_paths):
            if path.id == path_id:
                return index
        return None

    def find_path(self, path_id: uuid.UUID) -> Path | None:
        index = self.index_of(path_id)
        return self.presented_paths[index] if index is not None else None

    def clone(self, new_id: uuid.UUID, new_routes: Sequence["Route"] | None) -> "Model":
        """Copy this model onto a fresh id and route table."""
        return replace(
            self,
            id=new_id,
            routes=tuple(new_routes) if new_routes is not None else None,
        )
