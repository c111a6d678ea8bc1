"""Rendering adapter boundary.

The router never draws anything. A rendering adapter reads State
snapshots, turns every presented path into a displayable unit through a
table of ``ViewConfig`` factories, and reports user interaction back as
actions. It never mutates paths or models itself.

Usage::

    configs = [
        ViewConfig(routes=(Route("/inbox"),), render=lambda view: InboxScreen()),
        ViewConfig(routes=(Route("/message/<int:id>"),), render=lambda view: MessageScreen(view.params["id"])),
        ViewConfig(routes=(), render=lambda view: NotFoundScreen(), default=True),
    ]
    adapter = RenderingAdapter(configs, router.send)
    for stack in adapter.render(router.state):
        ...
"""

from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from typing import Any, TypeVar

from wayfinder.errors import RecursionLimitExceeded
from wayfinder.navigation.actions import (
    Action,
    DismissedAlert,
    SelectedDetentChanged,
    SetNavigationDismissed,
    SetSelectedPath,
    UntrackedViewsRemoved,
)
from wayfinder.navigation.models import AlertButton, AlertModel, Model, Path
from wayfinder.navigation.state import State
from wayfinder.routing.matcher import MatchResult, URLMatcher
from wayfinder.routing.params import MatchValue
from wayfinder.routing.route import AccessLevel, Route

DEFAULT_RECURSION_LIMIT = 100


@dataclass(frozen=True, slots=True)
class RouteView:
    """What a render factory receives: the path and the stack showing it."""

    path: Path
    model: Model

    @property
    def params(self) -> dict[str, MatchValue]:
        return self.path.params or {}


@dataclass(frozen=True, slots=True)
class ViewConfig:
    """Maps one or more routes to a render factory.

    The config marked ``default`` renders paths no other config claims.
    """

    routes: tuple[Route, ...]
    render: Callable[[RouteView], Any] | None = None
    name: str | None = None
    default: bool = False

    def validate(self, result: MatchResult) -> bool:
        route = next((route for route in self.routes if route.pattern == result.pattern), None)
        return route is not None and route.validate(result, AccessLevel.PRIVATE)


def default_config(configs: Sequence[ViewConfig]) -> ViewConfig | None:
    return next((config for config in configs if config.default), None)


def resolve_config(
    path: Path,
    configs: Sequence[ViewConfig],
) -> tuple[ViewConfig | None, MatchResult | None] | None:
    """Find the config that renders *path*.

    Unmatched paths fall back to the default config (with no match
    result). ``None`` means a config claimed the path but its route
    rejected it.
    """
    patterns = [route.pattern for config in configs for route in config.routes]
    result = URLMatcher().match(path.path, patterns) if path.path is not None else None
    config = None
    if result is not None:
        config = next(
            (config for config in configs if any(route.pattern == result.pattern for route in config.routes)),
            None,
        )
    if result is None or config is None:
        return default_config(configs), None
    if not config.validate(result):
        return None
    return config, result


def render_path(path: Path, model: Model, configs: Sequence[ViewConfig]) -> Any | None:
    """Render *path* with its config, falling back to the default config."""
    resolved = resolve_config(path, configs)
    if resolved is None:
        return None
    config, result = resolved
    if config is None:
        return None

    view = RouteView(path.with_match_result_if_missing(result), model)
    rendered = config.render(view) if config.render is not None else None
    if rendered is not None:
        return rendered
    fallback = default_config(configs)
    if fallback is not None and fallback is not config and fallback.render is not None:
        return fallback.render(view)
    return None


T = TypeVar("T")


def walk_presented(
    root: T,
    next_of: Callable[[T], T | None],
    limit: int = DEFAULT_RECURSION_LIMIT,
) -> list[T]:
    """Follow a chain of presented units starting at *root*.

    Returns the chain root first. A chain longer than *limit* means the
    caller handed over a cycle; ``RecursionLimitExceeded`` is raised.
    """
    chain = [root]
    current = next_of(root)
    while current is not None:
        if len(chain) > limit:
            raise RecursionLimitExceeded(limit)
        chain.append(current)
        current = next_of(current)
    return chain


def topmost_alert(state: State) -> AlertModel | None:
    """The alert to show now; the rest wait their turn."""
    return state.alerts[0] if state.alerts else None


# ---------------------------------------------------------------------------
# Adapter
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class RenderedStack:
    """One model as the adapter should show it."""

    model: Model
    views: tuple[Any, ...]
    selected: bool = False


@dataclass(slots=True)
class RenderingAdapter:
    """Glue between State snapshots and a view layer.

    ``render`` produces one ``RenderedStack`` per model, in state order
    (root models first, then presented models bottom to top). The reporting
    methods translate view-layer events into actions sent through
    *dispatch*.
    """

    configs: Sequence[ViewConfig]
    dispatch: Callable[[Action], None]
    recursion_limit: int = DEFAULT_RECURSION_LIMIT
    _presented: list[RenderedStack] = field(default_factory=list, init=False, repr=False)

    def render(self, state: State) -> list[RenderedStack]:
        stacks: list[RenderedStack] = []
        presented = 0
        for model in state.navigation_models:
            views = tuple(
                view
                for view in (render_path(path, model, self.configs) for path in model.presented_paths)
                if view is not None
            )
            stack = RenderedStack(model, views, selected=model.id == state.selected_model_id)
            stacks.append(stack)
            if model.is_presented:
                presented += 1
                if presented > self.recursion_limit:
                    raise RecursionLimitExceeded(self.recursion_limit)

        self._presented = [stack for stack in stacks if stack.model.is_presented]
        if state.remove_untracked_views:
            self.dispatch(UntrackedViewsRemoved())
        return stacks

    def presented_chain(self) -> list[RenderedStack]:
        """The presented stacks from the last render, bottom to top."""
        stacks = self._presented
        if not stacks:
            return []

        def next_of(stack: RenderedStack) -> RenderedStack | None:
            index = stacks.index(stack) + 1
            return stacks[index] if index < len(stacks) else None

        return walk_presented(stacks[0], next_of, self.recursion_limit)

    # -- Reporting --

    def will_show(self, model: Model, path: Path) -> None:
        """The user navigated to a path already in the stack (e.g. back swipe)."""
        self.dispatch(SetSelectedPath(path, model))

    def did_dismiss(self, model: Model) -> None:
        """A presented model finished its dismissal animation."""
        if model.is_presented:
            self.dispatch(SetNavigationDismissed(model))

    def detent_changed(self, identifier: str, model: Model) -> None:
        self.dispatch(SelectedDetentChanged(identifier, model))

    def alert_closed(self, alert: AlertModel, button: AlertButton | None = None) -> None:
        """The user closed *alert*, optionally by tapping *button*."""
        self.dispatch(DismissedAlert(alert))
        if button is not None and button.action is not None:
            button.action()
