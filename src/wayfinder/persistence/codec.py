"""State <-> JSON document.

The document mirrors the frozen dataclasses field by field. Two things do
not survive a round trip:

- Callbacks. Completions and alert buttons keep their ids but lose their
  callables; a restored Completion does nothing when called.
- Route pre-actions. Restore re-resolves routes against the freshly
  declared ones by pattern, which brings pre-actions back.

Match values carry a type tag so ``42`` and ``"42"`` stay distinct::

    {"id": {"type": "int", "value": 42}}
"""

import json
import uuid
from datetime import datetime
from typing import Any

from wayfinder.errors import DecodeError
from wayfinder.navigation.models import (
    AlertButton,
    AlertButtonStyle,
    AlertModel,
    AlertStyle,
    Completion,
    Detent,
    DetentOptions,
    Icon,
    IconKind,
    Model,
    NavBarOptions,
    Path,
    PresentationKind,
    PresentationType,
    Tab,
    TransitionOptions,
    TransitionStyle,
)
from wayfinder.navigation.state import State
from wayfinder.routing.matcher import MatchResult
from wayfinder.routing.params import MatchValue
from wayfinder.routing.route import AccessLevel, Route, Rule

FORMAT_VERSION = 1


# ---------------------------------------------------------------------------
# Encoding
# ---------------------------------------------------------------------------


def encode_value(value: MatchValue) -> dict[str, Any]:
    if isinstance(value, bool):
        msg = "Boolean match values are not supported"
        raise TypeError(msg)
    if isinstance(value, int):
        return {"type": "int", "value": value}
    if isinstance(value, float):
        return {"type": "float", "value": value}
    if isinstance(value, uuid.UUID):
        return {"type": "uuid", "value": str(value)}
    return {"type": "string", "value": str(value)}


def _encode_match(result: MatchResult | None) -> dict[str, Any] | None:
    if result is None:
        return None
    return {
        "pattern": result.pattern,
        "path": result.path,
        "values": {key: encode_value(value) for key, value in result.values.items()},
    }


def _encode_path(path: Path) -> dict[str, Any]:
    nav = path.nav_bar_options
    return {
        "id": str(path.id),
        "url": path.url,
        "name": path.name,
        "has_been_shown": path.has_been_shown,
        "match_result": _encode_match(path.match_result),
        "nav_bar_options": (
            {"hide_navigation_bar": nav.hide_navigation_bar, "title": nav.title} if nav is not None else None
        ),
    }


def _encode_route(route: Route) -> dict[str, Any]:
    return {
        "pattern": route.pattern,
        "name": route.name,
        "rules": {
            key: [encode_value(value) for value in rule.values] if rule.values is not None else None
            for key, rule in route.rules.items()
        },
        "access": route.access.name.lower(),
        "allows_duplicates": route.allows_duplicates,
        "nested_paths": list(route.nested_paths),
    }


def _encode_icon(icon: Icon | None) -> dict[str, Any] | None:
    return {"name": icon.name, "kind": str(icon.kind)} if icon is not None else None


def _encode_tab(tab: Tab | None) -> dict[str, Any] | None:
    if tab is None:
        return None
    return {
        "name": tab.name,
        "icon": _encode_icon(tab.icon),
        "selected_icon": _encode_icon(tab.selected_icon),
        "badge_value": tab.badge_value,
        "badge_color": tab.badge_color,
        "tip_identifier": tab.tip_identifier,
    }


def _encode_detent(detent: Detent | None) -> dict[str, Any] | None:
    return {"identifier": detent.identifier, "height": detent.height} if detent is not None else None


def _encode_presentation(presentation: PresentationType) -> dict[str, Any]:
    options = presentation.options
    detent_options = presentation.detent_options
    return {
        "kind": str(presentation.kind),
        "options": {
            "animated": options.animated,
            "prevent_dismissal": options.prevent_dismissal,
            "transition_style": str(options.transition_style),
        },
        "detent_options": (
            {
                "detents": [_encode_detent(detent) for detent in detent_options.detents],
                "selected": _encode_detent(detent_options.selected),
                "largest_undimmed": _encode_detent(detent_options.largest_undimmed),
                "prefers_grabber_visible": detent_options.prefers_grabber_visible,
                "preferred_corner_radius": detent_options.preferred_corner_radius,
                "prefers_scrolling_expands": detent_options.prefers_scrolling_expands,
            }
            if detent_options is not None
            else None
        ),
    }


def _encode_model(model: Model) -> dict[str, Any]:
    completion = model.dismiss_completion_action
    return {
        "id": str(model.id),
        "selected_path": _encode_path(model.selected_path),
        "routes": [_encode_route(route) for route in model.routes] if model.routes is not None else None,
        "tab": _encode_tab(model.tab),
        "presented_paths": [_encode_path(path) for path in model.presented_paths],
        "is_presented": model.is_presented,
        "presentation_type": _encode_presentation(model.presentation_type),
        "selected_detent_identifier": model.selected_detent_identifier,
        "should_be_dismissed": model.should_be_dismissed,
        "dismiss_completion_action": str(completion.id) if completion is not None else None,
        "animate": model.animate,
    }


def _encode_alert(alert: AlertModel) -> dict[str, Any]:
    return {
        "id": str(alert.id),
        "style": str(alert.style),
        "title": alert.title,
        "message": alert.message,
        "buttons": (
            [{"id": str(button.id), "label": button.label, "style": str(button.style)} for button in alert.buttons]
            if alert.buttons is not None
            else None
        ),
    }


def _optional_id(value: uuid.UUID | None) -> str | None:
    return str(value) if value is not None else None


def state_to_dict(state: State) -> dict[str, Any]:
    return {
        "format": FORMAT_VERSION,
        "selected_model_id": _optional_id(state.selected_model_id),
        "root_selected_model_id": _optional_id(state.root_selected_model_id),
        "navigation_models": [_encode_model(model) for model in state.navigation_models],
        "alerts": [_encode_alert(alert) for alert in state.alerts],
        "available_routes": [_encode_route(route) for route in state.available_routes],
        "last_modified": state.last_modified.isoformat(),
        "tip_identifier": state.tip_identifier,
        "tip_model_id": _optional_id(state.tip_model_id),
    }


def encode_state(state: State) -> str:
    """Serialize *state* to a JSON document."""
    return json.dumps(state_to_dict(state), separators=(",", ":"))


# ---------------------------------------------------------------------------
# Decoding
# ---------------------------------------------------------------------------


def decode_value(data: dict[str, Any]) -> MatchValue:
    kind, value = data["type"], data["value"]
    if kind == "int":
        return int(value)
    if kind == "float":
        return float(value)
    if kind == "uuid":
        return uuid.UUID(value)
    if kind == "string":
        return str(value)
    msg = f"Unknown match value type {kind!r}"
    raise ValueError(msg)


def _decode_id(value: str | None) -> uuid.UUID | None:
    return uuid.UUID(value) if value is not None else None


def _decode_match(data: dict[str, Any] | None) -> MatchResult | None:
    if data is None:
        return None
    return MatchResult(
        pattern=data["pattern"],
        values={key: decode_value(value) for key, value in data["values"].items()},
        path=data.get("path", ""),
    )


def _decode_path(data: dict[str, Any]) -> Path:
    nav = data.get("nav_bar_options")
    return Path(
        id=uuid.UUID(data["id"]),
        url=data.get("url"),
        match_result=_decode_match(data.get("match_result")),
        name=data.get("name"),
        has_been_shown=bool(data.get("has_been_shown", False)),
        nav_bar_options=NavBarOptions(nav["hide_navigation_bar"], nav.get("title")) if nav is not None else None,
    )


def _decode_route(data: dict[str, Any]) -> Route:
    rules = {
        key: Rule(tuple(decode_value(value) for value in values) if values is not None else None)
        for key, values in data.get("rules", {}).items()
    }
    return Route(
        data["pattern"],
        name=data.get("name"),
        rules=rules,
        access=AccessLevel[data.get("access", "private").upper()],
        allows_duplicates=bool(data.get("allows_duplicates", True)),
        nested_paths=tuple(data.get("nested_paths", ())),
    )


def _decode_icon(data: dict[str, Any] | None) -> Icon | None:
    return Icon(data["name"], IconKind(data["kind"])) if data is not None else None


def _decode_tab(data: dict[str, Any] | None) -> Tab | None:
    if data is None:
        return None
    icon = _decode_icon(data["icon"])
    if icon is None:
        msg = "Tab without icon"
        raise ValueError(msg)
    return Tab(
        name=data["name"],
        icon=icon,
        selected_icon=_decode_icon(data.get("selected_icon")),
        badge_value=data.get("badge_value"),
        badge_color=data.get("badge_color"),
        tip_identifier=data.get("tip_identifier"),
    )


def _decode_detent(data: dict[str, Any] | None) -> Detent | None:
    return Detent(data["identifier"], data.get("height")) if data is not None else None


def _decode_presentation(data: dict[str, Any]) -> PresentationType:
    options = data["options"]
    detent_data = data.get("detent_options")
    detent_options = None
    if detent_data is not None:
        detent_options = DetentOptions(
            detents=tuple(_decode_detent(detent) for detent in detent_data["detents"]),
            selected=_decode_detent(detent_data.get("selected")),
            largest_undimmed=_decode_detent(detent_data.get("largest_undimmed")),
            prefers_grabber_visible=bool(detent_data.get("prefers_grabber_visible", False)),
            preferred_corner_radius=detent_data.get("preferred_corner_radius"),
            prefers_scrolling_expands=bool(detent_data.get("prefers_scrolling_expands", True)),
        )
    return PresentationType(
        kind=PresentationKind(data["kind"]),
        options=TransitionOptions(
            animated=bool(options["animated"]),
            prevent_dismissal=bool(options["prevent_dismissal"]),
            transition_style=TransitionStyle(options["transition_style"]),
        ),
        detent_options=detent_options,
    )


def _decode_model(data: dict[str, Any]) -> Model:
    routes = data.get("routes")
    completion_id = data.get("dismiss_completion_action")
    return Model(
        selected_path=_decode_path(data["selected_path"]),
        id=uuid.UUID(data["id"]),
        routes=tuple(_decode_route(route) for route in routes) if routes is not None else None,
        tab=_decode_tab(data.get("tab")),
        presented_paths=tuple(_decode_path(path) for path in data["presented_paths"]),
        is_presented=bool(data["is_presented"]),
        presentation_type=_decode_presentation(data["presentation_type"]),
        selected_detent_identifier=data.get("selected_detent_identifier"),
        should_be_dismissed=bool(data.get("should_be_dismissed", False)),
        dismiss_completion_action=Completion(id=uuid.UUID(completion_id)) if completion_id else None,
        animate=bool(data.get("animate", True)),
    )


def _decode_alert(data: dict[str, Any]) -> AlertModel:
    buttons = data.get("buttons")
    return AlertModel(
        id=uuid.UUID(data["id"]),
        style=AlertStyle(data.get("style", AlertStyle.ALERT)),
        title=data.get("title"),
        message=data.get("message"),
        buttons=(
            tuple(
                AlertButton(label=button["label"], style=AlertButtonStyle(button["style"]), id=uuid.UUID(button["id"]))
                for button in buttons
            )
            if buttons is not None
            else None
        ),
    )


def state_from_dict(data: dict[str, Any]) -> State:
    if data.get("format") != FORMAT_VERSION:
        msg = f"Unsupported document format {data.get('format')!r}"
        raise ValueError(msg)
    last_modified = datetime.fromisoformat(data["last_modified"])
    if last_modified.tzinfo is None:
        msg = "last_modified must carry a timezone"
        raise ValueError(msg)
    return State(
        selected_model_id=_decode_id(data.get("selected_model_id")),
        root_selected_model_id=_decode_id(data.get("root_selected_model_id")),
        navigation_models=tuple(_decode_model(model) for model in data["navigation_models"]),
        alerts=tuple(_decode_alert(alert) for alert in data.get("alerts", ())),
        available_routes=tuple(_decode_route(route) for route in data.get("available_routes", ())),
        last_modified=last_modified,
        tip_identifier=data.get("tip_identifier"),
        tip_model_id=_decode_id(data.get("tip_model_id")),
    )


def decode_state(text: str | bytes, *, key: str = "") -> State:
    """Parse a JSON document produced by ``encode_state``.

    Raises ``DecodeError`` for anything that is not such a document.
    """
    try:
        data = json.loads(text)
        if not isinstance(data, dict):
            msg = "Document root must be an object"
            raise TypeError(msg)
        return state_from_dict(data)
    except (KeyError, TypeError, ValueError, AttributeError) as exc:
        raise DecodeError(key, f"Stored navigation state is invalid: {exc}") from exc
