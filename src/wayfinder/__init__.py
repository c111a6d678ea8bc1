"""Wayfinder — declarative, URL-driven navigation state.

Screens are addressed by URL patterns. Navigation is a pure reducer over an
immutable State, serialized through a single-writer Router.

Basic usage::

    from wayfinder import Icon, Model, Open, Path, Route, Router, State, Tab

    home = Model.create(Path.create("/home"), tab=Tab("Home", Icon.system("house")))
    router = Router(State.initial([home], [Route("/home"), Route("/message/<int:id>")]))

    state = await router.dispatch(Open(Path.create("/message/42")))

Deep links::

    router.open_deeplink("app://example.com/message/42", AccessLevel.PUBLIC)

Persistence::

    from wayfinder import JSONFileStore, StateStore
    store = StateStore(JSONFileStore("state.json"), config=config)
    state = store.restore_or_initial(initial, config.staleness_minutes)
"""

__version__ = "0.1.0"
__all__ = [
    "AccessLevel",
    "Action",
    "AlertButton",
    "AlertModel",
    "Completion",
    "ConfigurationError",
    "CurrentTarget",
    "Deeplink",
    "Detent",
    "DetentOptions",
    "Dismiss",
    "DismissAllPresented",
    "DismissCurrentModel",
    "DismissCurrentPath",
    "DismissModel",
    "DismissPath",
    "DismissedAlert",
    "Icon",
    "JSONFileStore",
    "MatchResult",
    "MemoryStore",
    "Model",
    "ModelIdTarget",
    "ModelTarget",
    "MultiAction",
    "NavBarOptions",
    "NewTarget",
    "Open",
    "Path",
    "PopToRoot",
    "PresentationType",
    "RecursionLimitExceeded",
    "Replace",
    "RestoreError",
    "Route",
    "Router",
    "RouterClosed",
    "RouterConfig",
    "Rule",
    "SelectTab",
    "SelectedDetentChanged",
    "SetAvailableRoutes",
    "SetBadgeValue",
    "SetIcon",
    "SetLoadedState",
    "SetNavigationDismissed",
    "SetNewDetents",
    "SetSelectedPath",
    "SetTabTipIdentifier",
    "ShowAlert",
    "State",
    "StateChange",
    "StateStore",
    "Tab",
    "TransitionOptions",
    "URLMatcher",
    "UntrackedViewsRemoved",
    "Update",
    "WayfinderError",
    "multi_action",
    "reduce",
]

_ACTIONS = frozenset({
    "Action",
    "CurrentTarget",
    "Dismiss",
    "DismissAllPresented",
    "DismissCurrentModel",
    "DismissCurrentPath",
    "DismissModel",
    "DismissPath",
    "DismissedAlert",
    "ModelIdTarget",
    "ModelTarget",
    "MultiAction",
    "NewTarget",
    "Open",
    "PopToRoot",
    "Replace",
    "SelectTab",
    "SelectedDetentChanged",
    "SetAvailableRoutes",
    "SetBadgeValue",
    "SetIcon",
    "SetLoadedState",
    "SetNavigationDismissed",
    "SetNewDetents",
    "SetSelectedPath",
    "SetTabTipIdentifier",
    "ShowAlert",
    "UntrackedViewsRemoved",
    "Update",
    "multi_action",
})

_MODELS = frozenset({
    "AlertButton",
    "AlertModel",
    "Completion",
    "Detent",
    "DetentOptions",
    "Icon",
    "Model",
    "NavBarOptions",
    "Path",
    "PresentationType",
    "Tab",
    "TransitionOptions",
})


def __getattr__(name: str) -> object:
    """Lazy imports for public API.

    Keeps ``import wayfinder`` fast while providing a clean top-level API.
    """
    if name in _ACTIONS:
        from wayfinder.navigation import actions as _actions

        return getattr(_actions, name)

    if name in _MODELS:
        from wayfinder.navigation import models as _models

        return getattr(_models, name)

    if name == "State":
        from wayfinder.navigation.state import State

        return State

    if name == "reduce":
        from wayfinder.navigation.reducer import reduce

        return reduce

    if name == "Deeplink":
        from wayfinder.navigation.deeplink import Deeplink

        return Deeplink

    if name in ("AccessLevel", "Route", "Rule"):
        from wayfinder.routing import route as _route

        return getattr(_route, name)

    if name in ("MatchResult", "URLMatcher"):
        from wayfinder.routing import matcher as _matcher

        return getattr(_matcher, name)

    if name in ("Router", "StateChange"):
        from wayfinder import router as _router

        return getattr(_router, name)

    if name == "RouterConfig":
        from wayfinder.config import RouterConfig

        return RouterConfig

    if name in ("JSONFileStore", "MemoryStore", "StateStore"):
        from wayfinder.persistence import store as _store

        return getattr(_store, name)

    if name in ("ConfigurationError", "RecursionLimitExceeded", "RestoreError", "RouterClosed", "WayfinderError"):
        from wayfinder import errors as _errors

        return getattr(_errors, name)

    msg = f"module {__name__!r} has no attribute {name!r}"
    raise AttributeError(msg)
