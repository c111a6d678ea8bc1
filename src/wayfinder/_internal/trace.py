"""Human-readable state dumps for debug logging.

Output looks like::

    State modified 2026-01-01T12:00:00+00:00, 1 alert(s)
    * Model(Home) root
        /first
      > /third
      Model(1b2c...) presented page_sheet
      > /settings

``*`` marks the selected model, ``>`` the selected path of each model.
"""

from wayfinder.navigation.models import Model
from wayfinder.navigation.state import State


def describe_model(model: Model, *, selected: bool = False) -> list[str]:
    marker = "*" if selected else " "
    kind = f"presented {model.presentation_type.kind}" if model.is_presented else "root"
    if model.should_be_dismissed:
        kind += " (dismissing)"
    lines = [f"{marker} {model!r} {kind}"]
    for path in model.presented_paths:
        pointer = ">" if path.id == model.selected_path.id else " "
        lines.append(f"  {pointer} {path.path or path.id}")
    return lines


def describe_state(state: State) -> str:
    """Render *state* as an indented, multi-line summary."""
    lines = [f"State modified {state.last_modified.isoformat()}, {len(state.alerts)} alert(s)"]
    for model in state.navigation_models:
        lines.extend(describe_model(model, selected=model.id == state.selected_model_id))
    if state.remove_untracked_views:
        lines.append("  (removing untracked views)")
    return "\n".join(lines)
