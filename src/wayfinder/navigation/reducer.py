"""The navigation reducer — a pure ``(action, state) -> state`` function.

Every branch is total. An action that cannot apply (unknown route, missing
model, attempt to remove a root path) returns the input state unchanged
apart from ``last_modified`` and logs a warning on ``wayfinder.reducer``.
Nothing here raises for a rejected navigation intent.

Truncation:
    Selecting a path slices the model's ``presented_paths`` to end at that
    path. Selecting an ancestor therefore pops everything above it, which
    is why there is no dedicated pop action. ``SetSelectedPath``, ``Open``,
    and ``Update`` all go through the same truncation.
"""

import logging
from dataclasses import replace
from datetime import datetime

from wayfinder.navigation.actions import (
    Action,
    CurrentTarget,
    Dismiss,
    DismissAllPresented,
    DismissCurrentModel,
    DismissCurrentPath,
    DismissedAlert,
    DismissModel,
    DismissPath,
    DismissTarget,
    ModelIdTarget,
    ModelTarget,
    MultiAction,
    NewTarget,
    Open,
    PopToRoot,
    Replace,
    SelectedDetentChanged,
    SelectTab,
    SetAvailableRoutes,
    SetBadgeValue,
    SetIcon,
    SetLoadedState,
    SetNavigationDismissed,
    SetNewDetents,
    SetSelectedPath,
    SetTabTipIdentifier,
    ShowAlert,
    UntrackedViewsRemoved,
    Update,
)
from wayfinder.navigation.models import (
    Completion,
    DetentOptions,
    Model,
    Path,
    PresentationKind,
    PresentationType,
    TransitionOptions,
)
from wayfinder.navigation.state import State, utcnow
from wayfinder.routing.matcher import URLMatcher
from wayfinder.routing.route import AccessLevel, route_for

logger = logging.getLogger("wayfinder.reducer")


def reduce(
    action: Action,
    state: State,
    *,
    now: datetime | None = None,
    strict: bool = False,
) -> State:
    """Return the state that results from applying *action* to *state*.

    ``last_modified`` is stamped once per call, no matter how many actions
    a ``MultiAction`` carries. *now* pins the clock for replay and tests.
    With *strict*, programmer errors (pushing onto a selected model that
    does not exist) raise ``AssertionError`` instead of only logging.
    """
    state = replace(state, last_modified=now or utcnow())
    return _apply(action, state, strict)


def _apply(action: Action, state: State, strict: bool) -> State:
    match action:
        case MultiAction(actions=actions):
            for child in actions:
                state = _apply(child, state, strict)
            return state

        case SetAvailableRoutes(routes=routes):
            return replace(state, available_routes=tuple(routes))

        case SetBadgeValue(value=value, model_id=model_id, color=color):
            index = state.index_of_model(model_id)
            if index is None or state.navigation_models[index].tab is None:
                logger.warning("Cannot set badge on %s: no such tab", model_id)
                return state
            model = state.navigation_models[index]
            tab = replace(model.tab, badge_value=value, badge_color=color or model.tab.badge_color)
            return state.with_model(index, replace(model, tab=tab))

        case SetIcon(model_id=model_id, icon=icon, selected_icon=selected_icon):
            index = state.index_of_model(model_id)
            if index is None or state.navigation_models[index].tab is None:
                logger.warning("Cannot set icon on %s: no such tab", model_id)
                return state
            model = state.navigation_models[index]
            tab = replace(model.tab, icon=icon, selected_icon=selected_icon or model.tab.selected_icon)
            return state.with_model(index, replace(model, tab=tab))

        case SetSelectedPath(path=path, model=model):
            return _set_selected_path(state, path, model)

        case Dismiss(target=target):
            return _dismiss(state, target)

        case UntrackedViewsRemoved():
            return replace(state, remove_untracked_views=False, dismiss_all_completion=None)

        case Update(path=path, url=url, model=model):
            return _update(state, path, url, model)

        case Open(path=path, target=target, haptic_feedback=haptic_feedback):
            return _open(state, path, target, haptic_feedback, strict)

        case SetNavigationDismissed(model=model):
            index = _presented_index(state, model.id)
            if index is None:
                # The dismissal was superseded; nothing left to remove
                logger.debug("Model %s already dismissed", model.id)
                return state
            return _remove_model(state, index)

        case SelectTab(model_id=model_id):
            target = state.model(model_id)
            if target is None or target.is_presented:
                logger.warning("Cannot select tab %s: not a root model", model_id)
                return state
            return replace(state, selected_model_id=target.id, root_selected_model_id=target.id)

        case Replace(path=path, new_path=new_path, model=model):
            return _replace(state, path, new_path, model)

        case ShowAlert(alert=alert):
            return replace(state, alerts=(*state.alerts, alert))

        case DismissedAlert(alert=alert):
            for index, queued in enumerate(state.alerts):
                if queued.id == alert.id:
                    return replace(state, alerts=state.alerts[:index] + state.alerts[index + 1 :])
            return state

        case SelectedDetentChanged(identifier=identifier, model=model):
            index = state.index_of_model(model.id)
            if index is None:
                return state
            current = state.navigation_models[index]
            return state.with_model(index, replace(current, selected_detent_identifier=identifier))

        case SetNewDetents():
            return _set_new_detents(state, action)

        case SetTabTipIdentifier(identifier=identifier, model=model):
            if state.index_of_model(model.id) is None:
                return state
            return replace(
                state,
                tip_identifier=identifier,
                tip_model_id=model.id if identifier is not None else None,
            )

        case SetLoadedState(state=loaded):
            return replace(loaded, last_modified=state.last_modified)

        case _:
            logger.warning("Ignoring unknown action %r", action)
            return state


# ---------------------------------------------------------------------------
# Shared stack helpers
# ---------------------------------------------------------------------------


def truncate(model: Model) -> Model:
    """Drop every path after the model's selected path."""
    index = model.index_of(model.selected_path.id)
    if index is None:
        return model
    return replace(model, presented_paths=model.presented_paths[: index + 1])


def _presented_index(state: State, model_id: object) -> int | None:
    for index, model in enumerate(state.navigation_models):
        if model.is_presented and model.id == model_id:
            return index
    return None


def _mark_shown(model: Model, index: int) -> Model:
    paths = list(model.presented_paths)
    shown = replace(paths[index], has_been_shown=True)
    paths[index] = shown
    return replace(model, presented_paths=tuple(paths), selected_path=shown)


def _set_selected_path(state: State, path: Path, model: Model) -> State:
    index = state.index_of_model(model.id)
    if index is None:
        logger.warning("Cannot select %r: model %s does not exist", path, model.id)
        return state
    current = state.navigation_models[index]
    path_index = current.index_of(path.id)
    if path_index is None:
        logger.warning("Cannot select %r: it is not presented in %r", path, current)
        return state

    current = _mark_shown(current, path_index)
    current = truncate(replace(current, animate=True))
    state = state.with_model(index, current)
    state = replace(state, selected_model_id=current.id)
    if not current.is_presented:
        state = replace(state, root_selected_model_id=current.id)
    return state


def _push(state: State, index: int, path: Path) -> State:
    """Truncate the model above its selected path, then append *path*."""
    current = truncate(state.navigation_models[index])
    shown = replace(path, has_been_shown=True)
    current = replace(current, selected_path=shown, presented_paths=(*current.presented_paths, shown))
    state = state.with_model(index, current)
    return replace(state, selected_model_id=current.id)


def _remove_model(state: State, index: int) -> State:
    """Remove a presented model and reselect the newest remaining one."""
    state = state.without_model(index)
    remaining = state.presented_models
    if remaining:
        return replace(state, selected_model_id=remaining[-1].id)
    return replace(state, selected_model_id=state.root_selected_model_id)


def _dismiss_model_at(state: State, index: int, animated: bool, completion: Completion | None) -> State:
    if completion is None:
        return _remove_model(state, index)
    # Deferred: the adapter removes it via SetNavigationDismissed
    model = replace(
        state.navigation_models[index],
        animate=animated,
        dismiss_completion_action=completion,
        should_be_dismissed=True,
    )
    return state.with_model(index, model)


# ---------------------------------------------------------------------------
# Dismiss
# ---------------------------------------------------------------------------


def _dismiss(state: State, target: DismissTarget) -> State:
    match target:
        case PopToRoot(model_id=model_id):
            index = state.index_of_model(model_id)
            if index is None or not state.navigation_models[index].presented_paths:
                logger.warning("Cannot pop to root: model %s or its root path does not exist", model_id)
                return state
            model = state.navigation_models[index]
            model = truncate(replace(model, selected_path=model.presented_paths[0]))
            return state.with_model(index, model)

        case DismissCurrentModel(animated=animated, completion=completion):
            index = _presented_index(state, state.selected_model_id)
            if index is None:
                logger.warning("Cannot dismiss the current model: it is not presented")
                return state
            return _dismiss_model_at(state, index, animated, completion)

        case DismissModel(model=model, animated=animated, completion=completion):
            index = _presented_index(state, model.id)
            if index is None:
                logger.warning("Cannot dismiss %r: it is not a presented model", model)
                return state
            return _dismiss_model_at(state, index, animated, completion)

        case DismissCurrentPath(animated=animated):
            index = state.index_of_model(state.selected_model_id)
            model = state.navigation_models[index] if index is not None else None
            path_index = model.index_of(model.selected_path.id) if model is not None else None
            if model is None or path_index is None or path_index == 0:
                logger.warning("Cannot pop the current path: it does not exist or is the root path")
                return state
            paths = tuple(path for path in model.presented_paths if path.id != model.selected_path.id)
            model = replace(
                model,
                animate=animated,
                presented_paths=paths,
                selected_path=model.presented_paths[path_index - 1],
            )
            return state.with_model(index, truncate(model))

        case DismissPath(path=path, animated=animated, completion=completion):
            return _dismiss_path(state, path, animated, completion)

        case DismissAllPresented(including_untracked=including_untracked, completion=completion):
            return replace(
                state,
                navigation_models=tuple(model for model in state.navigation_models if not model.is_presented),
                selected_model_id=state.root_selected_model_id,
                remove_untracked_views=including_untracked,
                alerts=(),
                dismiss_all_completion=completion,
            )

        case _:
            logger.warning("Ignoring unknown dismiss target %r", target)
            return state


def _dismiss_path(state: State, path: Path, animated: bool, completion: Completion | None) -> State:
    index = None
    for candidate_index, candidate in enumerate(state.navigation_models):
        if candidate.index_of(path.id) is not None:
            index = candidate_index
            break
    if index is None:
        logger.warning("Cannot dismiss %r: no model presents it", path)
        return state

    model = state.navigation_models[index]
    # The sole path of a presented model takes the model with it
    if model.is_presented and len(model.presented_paths) == 1:
        return _dismiss_model_at(state, index, animated, completion)

    path_index = model.index_of(path.id)
    if path_index is None or path_index == 0:
        logger.warning("Cannot dismiss %r: it is the root path of %r", path, model)
        return state

    model = truncate(replace(model, selected_path=model.presented_paths[path_index - 1], animate=True))
    state = state.with_model(index, model)
    state = replace(state, selected_model_id=model.id)
    if not model.is_presented:
        state = replace(state, root_selected_model_id=model.id)
    return state


# ---------------------------------------------------------------------------
# Replace / Update / Open
# ---------------------------------------------------------------------------


def validate_path(path: Path | None, state: State) -> Path | None:
    """Resolve *path* against the route table at private access.

    Returns the path with its match result attached, or ``None`` when no
    route matches or the matching route rejects it.
    """
    if path is None:
        logger.warning("Cannot open a missing path")
        return None
    result = path.match_against(state.available_routes)
    if result is None:
        logger.warning("Cannot open %s since it is not supported by any route", path.path or path.id)
        return None
    route = route_for(result, state.available_routes)
    if route is not None and not route.validate(result, AccessLevel.PRIVATE):
        logger.warning("Cannot open %s since %r rejects it", path.path or path.id, route)
        return None
    return replace(path, match_result=result)


def _replace(state: State, path: Path, new_path: Path, model: Model) -> State:
    validated = validate_path(new_path, state)
    index = state.index_of_model(model.id)
    if validated is None or index is None:
        return state
    current = state.navigation_models[index]
    path_index = current.index_of(path.id)
    if path_index is None:
        logger.warning("Cannot replace %r: it is not presented in %r", path, current)
        return state

    paths = list(current.presented_paths)
    paths[path_index] = validated
    selected = validated if current.selected_path.id == path.id else current.selected_path
    current = replace(current, presented_paths=tuple(paths), selected_path=selected, animate=False)
    return state.with_model(index, current)


def _update(state: State, path: Path, url: str | None, model: Model) -> State:
    index = state.index_of_model(model.id)
    current = state.navigation_models[index] if index is not None else None
    path_index = current.index_of(path.id) if current is not None else None
    if current is None or path_index is None:
        logger.warning("Cannot update %r: it is not presented in %r", path, model)
        return state

    existing = current.presented_paths[path_index]
    route = route_for(existing.match_against(state.available_routes), state.available_routes)
    candidate = Path.create(url)
    result = URLMatcher().match(candidate.path or "", [route.pattern]) if route and candidate else None
    if route is None or not route.validate(result, AccessLevel.PRIVATE):
        logger.warning("Cannot update %r since its route does not support %s", path, url)
        return state

    updated = Path(
        id=existing.id,
        url=url,
        match_result=result,
        name=path.name,
        has_been_shown=existing.has_been_shown,
        nav_bar_options=existing.nav_bar_options,
    )
    paths = list(current.presented_paths)
    paths[path_index] = updated
    current = replace(current, presented_paths=tuple(paths), animate=False)
    state = state.with_model(index, current)
    # Selecting the refreshed path turns animation back on
    return _set_selected_path(state, updated, current)


def _open(state: State, path: Path | None, target: object, haptic_feedback: bool, strict: bool) -> State:
    validated = validate_path(path, state)
    if validated is None:
        return state

    match target:
        case CurrentTarget(animate=animate):
            index = state.index_of_model(state.selected_model_id)
            if index is None:
                message = "Cannot push a view to a navigation model that does not exist"
                logger.warning("%s (selected=%s, path=%r)", message, state.selected_model_id, validated)
                if strict:
                    raise AssertionError(message)
                return state
            state = state.with_model(index, replace(state.navigation_models[index], animate=animate))
            return _update_or_open(state, index, validated)

        case ModelIdTarget(model_id=model_id, animate=animate):
            model = state.model(model_id)
            if model is None:
                logger.warning("Cannot open %r in model %s: it does not exist", validated, model_id)
                return state
            return _open(state, validated, ModelTarget(model, animate), haptic_feedback, strict)

        case ModelTarget(model=model, animate=animate):
            index = state.index_of_model(model.id)
            if index is None:
                logger.warning("Cannot open %r in %r: it does not exist", validated, model)
                return state
            current = replace(state.navigation_models[index], animate=animate)
            state = replace(state.with_model(index, current), selected_model_id=current.id)
            if not current.is_presented:
                state = replace(state, root_selected_model_id=current.id)
            return _update_or_open(state, index, validated)

        case NewTarget(routes=routes, presentation_type=presentation_type):
            return _present(state, validated, routes, presentation_type)

        case _:
            logger.warning("Ignoring unknown open target %r", target)
            return state


def _present(
    state: State,
    path: Path,
    routes: tuple | None,
    presentation_type: PresentationType,
) -> State:
    selected_detent = presentation_type.selected_detent
    detents = presentation_type.detent_items
    if selected_detent is not None:
        detent_identifier: str | None = selected_detent.identifier
    elif detents:
        detent_identifier = detents[0].identifier
    else:
        detent_identifier = None

    shown = replace(path, has_been_shown=True)
    model = Model(
        selected_path=shown,
        routes=tuple(routes) if routes is not None else None,
        presented_paths=(shown,),
        is_presented=True,
        presentation_type=presentation_type,
        selected_detent_identifier=detent_identifier,
        animate=presentation_type.options.animated,
    )
    state = state.appending_model(model)
    return replace(state, selected_model_id=model.id)


def _update_or_open(state: State, index: int, path: Path) -> State:
    """Reuse or refresh an equivalent path instead of pushing a duplicate.

    - Exact: a path with the same URL path is already in the stack and
      the route forbids duplicates -> select it.
    - Similar: a path for the same pattern is in the stack, the route
      forbids duplicates and has parameter rules -> update it in place.
    - Otherwise push.
    """
    model = state.navigation_models[index]
    routes = state.available_routes
    result = URLMatcher().match(path.path or "", [route.pattern for route in routes])
    route = route_for(result, routes)

    if route is not None and not route.allows_duplicates:
        exact = next((p for p in model.presented_paths if p.path == path.path), None)
        if exact is not None and route.access.grants(AccessLevel.PRIVATE):
            return _set_selected_path(state, exact, model)

        if route.rules and route.validate(result, AccessLevel.PRIVATE):
            similar = next(
                (p for p in model.presented_paths if _pattern_of(p, routes) == result.pattern),
                None,
            )
            if similar is not None:
                return _update(state, similar, path.url, model)

    return _push(state, index, path)


def _pattern_of(path: Path, routes: tuple) -> str | None:
    result = path.match_against(routes)
    return result.pattern if result is not None else None


# ---------------------------------------------------------------------------
# Detents
# ---------------------------------------------------------------------------


def _set_new_detents(state: State, action: SetNewDetents) -> State:
    index = _presented_index(state, action.model.id)
    if index is None or not action.detents or action.selected not in action.detents:
        logger.warning(
            "Failed to set new detents on %r: the model is missing or not presented, "
            "or the detents are empty or do not contain the selected detent",
            action.model,
        )
        return state

    model = state.navigation_models[index]
    previous = model.presentation_type
    if previous.kind is PresentationKind.DETENTS and previous.detent_options is not None:
        options = replace(previous.detent_options, detents=tuple(action.detents), selected=action.selected)
        transition = previous.options
    else:
        options = DetentOptions(
            detents=tuple(action.detents),
            selected=action.selected,
            largest_undimmed=action.largest_undimmed,
            prefers_grabber_visible=action.prefers_grabber_visible,
            preferred_corner_radius=action.preferred_corner_radius,
            prefers_scrolling_expands=action.prefers_scrolling_expands,
        )
        transition = TransitionOptions()

    model = replace(
        model,
        presentation_type=PresentationType.detents(options, transition),
        selected_detent_identifier=action.selected.identifier,
    )
    return state.with_model(index, model)
