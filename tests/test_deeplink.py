"""Tests for wayfinder.navigation.deeplink — attributing and resolving external URLs."""

import uuid

import pytest

from wayfinder.navigation.actions import (
    CurrentTarget,
    ModelTarget,
    MultiAction,
    NewTarget,
    Open,
    SelectTab,
    SetSelectedPath,
    Update,
)
from wayfinder.navigation.deeplink import Deeplink, residual_url
from wayfinder.navigation.models import Icon, Model, Path, Tab
from wayfinder.navigation.reducer import reduce
from wayfinder.navigation.state import State
from wayfinder.routing.route import AccessLevel, Route, Rule
from wayfinder.testing import assert_stack

HOST = "app://www.example.com"


def _setup(
    child: Route,
    available: tuple[Route, ...],
    *,
    pre_action: bool = False,
) -> tuple[State, Model]:
    """One plain tab plus a second tab that claims ``/navigationModel2`` links."""
    model_id = uuid.uuid4()
    prefix = Route("/navigationModel2", access=AccessLevel.PUBLIC)
    if pre_action:
        prefix = prefix.with_pre_action(SelectTab(model_id))
    first = Model.create(Path.create("/home1"), tab=Tab("One", Icon.system("1")))
    second = Model.create(
        Path.create("/home2"),
        id=model_id,
        routes=[prefix.append(child)],
        tab=Tab("Two", Icon.system("2")),
    )
    routes = (Route("/home1"), Route("/home2"), *available)
    return State.initial([first, second], routes), second


class TestResidualURL:
    def test_removes_parent(self) -> None:
        assert residual_url(f"{HOST}/inbox/message/1", "/inbox") == f"{HOST}/message/1"

    def test_only_first_occurrence(self) -> None:
        assert residual_url("/a/b/a/c", "/a") == "/b/a/c"

    def test_keeps_query(self) -> None:
        assert residual_url(f"{HOST}/inbox/message/1?ref=mail", "/inbox") == f"{HOST}/message/1?ref=mail"

    def test_empty_parent(self) -> None:
        assert residual_url(f"{HOST}/inbox", "") == f"{HOST}/inbox"

    def test_nothing_left_returns_url(self) -> None:
        assert residual_url("/inbox", "/inbox") == "/inbox"


class TestDeeplinkCreate:
    def test_none_for_missing_url(self) -> None:
        assert Deeplink.create(None) is None
        assert Deeplink.create("") is None

    def test_defaults_to_public(self) -> None:
        link = Deeplink.create(f"{HOST}/promo")
        assert link is not None
        assert link.access is AccessLevel.PUBLIC
        assert link.path == "/promo"


class TestAttribution:
    def test_model_route_claims_link(self) -> None:
        state, second = _setup(Route("/route/<int:whatever>"), (Route("/route/<int:whatever>"),))
        owner = Deeplink(f"{HOST}/navigationModel2/route/2").find_navigation_model(state)
        assert owner is not None
        model, route = owner
        assert model.id == second.id
        assert route.parent_path == "/navigationModel2"

    def test_access_too_low(self) -> None:
        state, _ = _setup(Route("/route/<int:whatever>"), (Route("/route/<int:whatever>"),))
        state = State.initial(
            [
                Model.create(Path.create("/home2"), routes=[Route("/private").append(Route("/x"))]),
            ],
            state.available_routes,
        )
        assert Deeplink(f"{HOST}/private/x").find_navigation_model(state) is None
        assert Deeplink(f"{HOST}/private/x", AccessLevel.PRIVATE).find_navigation_model(state) is not None

    def test_unclaimed(self) -> None:
        state, _ = _setup(Route("/route/<int:whatever>"), (Route("/route/<int:whatever>"),))
        assert Deeplink(f"{HOST}/elsewhere").find_navigation_model(state) is None


class TestAttributedAction:
    def test_exact_selects_existing(self) -> None:
        state, second = _setup(Route("/route/<int:whatever>"), (Route("/route/<int:whatever>"),))
        state = reduce(Open(Path.create("/route/2"), ModelTarget(second)), state)
        presented = state.model(second.id).selected_path

        action = Deeplink(f"{HOST}/navigationModel2/route/2").action(state)
        assert isinstance(action, SetSelectedPath)
        assert action.path.id == presented.id
        assert action.model.id == second.id

    def test_exact_pops_above(self) -> None:
        state, second = _setup(Route("/route/<int:whatever>"), (Route("/route/<int:whatever>"),))
        state = reduce(Open(Path.create("/route/2"), ModelTarget(second)), state)
        state = reduce(Open(Path.create("/route/3"), ModelTarget(second)), state)

        state = reduce(Deeplink(f"{HOST}/navigationModel2/route/2").action(state), state)
        assert_stack(state.model(second.id), ["/home2", "/route/2"])
        assert state.selected_model_id == second.id

    def test_similar_updates_in_place(self) -> None:
        param = Route("/<string:param>", rules={"param": Rule.one_of(["foo", "bar"])}, allows_duplicates=False)
        state, second = _setup(param, (param,))
        state = reduce(Open(Path.create("/foo"), ModelTarget(second)), state)
        original = state.model(second.id).selected_path

        action = Deeplink(f"{HOST}/navigationModel2/bar").action(state)
        assert isinstance(action, Update)
        assert action.path.id == original.id
        assert action.url == f"{HOST}/bar"

        state = reduce(action, state)
        model = state.model(second.id)
        assert_stack(model, ["/home2", "/bar"])
        assert model.selected_path.id == original.id

    def test_similar_skipped_when_duplicates_allowed(self) -> None:
        param = Route("/<string:param>", rules={"param": Rule.one_of(["foo", "bar"])})
        state, second = _setup(param, (param,))
        state = reduce(Open(Path.create("/foo"), ModelTarget(second)), state)

        action = Deeplink(f"{HOST}/navigationModel2/bar").action(state)
        assert isinstance(action, Open)

    def test_fallback_opens_in_model(self) -> None:
        state, second = _setup(Route("/route/<int:whatever>"), (Route("/route/<int:whatever>"),))
        state = reduce(Open(Path.create("/route/2"), ModelTarget(second)), state)

        action = Deeplink(f"{HOST}/navigationModel2/route/3").action(state)
        assert isinstance(action, Open)
        assert isinstance(action.target, ModelTarget)
        assert action.target.model.id == second.id
        assert action.path is not None
        assert action.path.url == f"{HOST}/route/3"
        assert action.path.params == {"whatever": 3}

        state = reduce(action, state)
        assert_stack(state.model(second.id), ["/home2", "/route/2", "/route/3"])

    def test_fallback_with_pre_action(self) -> None:
        state, second = _setup(
            Route("/route/<int:whatever>"),
            (Route("/route/<int:whatever>"),),
            pre_action=True,
        )
        action = Deeplink(f"{HOST}/navigationModel2/route/3").action(state)
        assert isinstance(action, MultiAction)
        pre, opened = action.actions
        assert pre == SelectTab(second.id)
        assert isinstance(opened, Open)

        state = reduce(action, state)
        assert state.root_selected_model_id == second.id
        assert_stack(state.model(second.id), ["/home2", "/route/3"])

    def test_claimed_but_unroutable(self) -> None:
        state, _ = _setup(Route("/route/<int:whatever>"), ())
        assert Deeplink(f"{HOST}/navigationModel2/route/3").action(state) is None


class TestUnattributedAction:
    def _state(self) -> State:
        home = Model.create(Path.create("/home"))
        routes = (
            Route("/home"),
            Route("/promo/<int:id>", access=AccessLevel.PUBLIC),
            Route("/settings", access=AccessLevel.INTERNAL),
        )
        return State.initial([home], routes)

    def test_presents_in_new_model(self) -> None:
        action = Deeplink(f"{HOST}/promo/7").action(self._state())
        assert isinstance(action, Open)
        assert isinstance(action.target, NewTarget)
        assert action.path is not None
        assert action.path.url == f"{HOST}/promo/7"

        state = reduce(action, self._state())
        assert len(state.presented_models) == 1
        assert_stack(state.presented_models[0], ["/promo/7"])

    def test_preferred_target(self) -> None:
        action = Deeplink(f"{HOST}/promo/7").action(self._state(), CurrentTarget())
        assert isinstance(action, Open)
        assert isinstance(action.target, CurrentTarget)

    @pytest.mark.parametrize(
        ("access", "allowed"),
        [(AccessLevel.PUBLIC, False), (AccessLevel.INTERNAL, True), (AccessLevel.PRIVATE, True)],
    )
    def test_access_filter(self, access: AccessLevel, allowed: bool) -> None:
        action = Deeplink(f"{HOST}/settings", access).action(self._state())
        assert (action is not None) is allowed

    def test_unknown(self) -> None:
        assert Deeplink(f"{HOST}/nowhere").action(self._state()) is None

    def test_with_pre_action(self) -> None:
        home = Model.create(Path.create("/home"))
        route = Route("/promo", access=AccessLevel.PUBLIC, pre_action=SelectTab(home.id))
        state = State.initial([home], (Route("/home"), route))
        action = Deeplink(f"{HOST}/promo").action(state)
        assert isinstance(action, MultiAction)
        assert action.actions[0] == SelectTab(home.id)

    def test_preferred_target_skips_attribution(self) -> None:
        state, _ = _setup(Route("/route/<int:whatever>"), (Route("/route/<int:whatever>"),))
        assert Deeplink(f"{HOST}/navigationModel2/route/2").action(state, CurrentTarget()) is None
