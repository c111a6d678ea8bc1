"""Tests for wayfinder.navigation.models and state — identity and lookups."""

import uuid
from dataclasses import replace

from wayfinder.navigation.models import (
    Completion,
    Detent,
    DetentOptions,
    Icon,
    IconKind,
    Model,
    Path,
    PresentationKind,
    PresentationType,
    Tab,
    TransitionOptions,
)
from wayfinder.navigation.state import State
from wayfinder.routing.matcher import MatchResult
from wayfinder.routing.route import Route


class TestPath:
    def test_create(self) -> None:
        path = Path.create("app://example.com/inbox?ref=mail", name="inbox")
        assert path is not None
        assert path.path == "/inbox"
        assert path.name == "inbox"
        assert path.has_been_shown is False

    def test_create_without_url(self) -> None:
        assert Path.create(None) is None
        assert Path.create("") is None

    def test_equality_by_id(self) -> None:
        path = Path.create("/a")
        assert path == replace(path, url="/b")
        assert path != Path.create("/a")
        assert len({path, replace(path, url="/b")}) == 1

    def test_repr(self) -> None:
        assert repr(Path.create("/a")) == "Path(/a)"
        assert repr(Path()) == "Path(unknown)"

    def test_params(self) -> None:
        path = Path(url="/item/3", match_result=MatchResult("/item/<int:id>", {"id": 3}))
        assert path.params == {"id": 3}
        assert Path(url="/item/3").params is None

    def test_match_against(self) -> None:
        result = Path.create("/item/3").match_against([Route("/item/<int:id>")])
        assert result is not None
        assert result.values == {"id": 3}
        assert Path().match_against([Route("/item/<int:id>")]) is None

    def test_with_match_result_if_missing(self) -> None:
        result = MatchResult("/a")
        path = Path.create("/a")
        assert path.with_match_result_if_missing(result).match_result == result
        assert path.with_match_result_if_missing(None) is path
        resolved = path.with_match_result_if_missing(result)
        assert resolved.with_match_result_if_missing(MatchResult("/b")) is resolved


class TestTab:
    def test_icons(self) -> None:
        assert Icon.system("house").kind is IconKind.SYSTEM
        assert Icon.image("logo").kind is IconKind.IMAGE
        assert Icon.local("file").kind is IconKind.LOCAL

    def test_repr(self) -> None:
        assert repr(Tab("Home", Icon.system("house"))) == "Tab(Home)"


class TestPresentationType:
    def test_default_is_page_sheet(self) -> None:
        assert PresentationType().kind is PresentationKind.PAGE_SHEET
        assert PresentationType.page_sheet().options == TransitionOptions()

    def test_detent_accessors(self) -> None:
        options = DetentOptions((Detent.medium(), Detent.large()), selected=Detent.large())
        presentation = PresentationType.detents(options)
        assert presentation.detent_items == (Detent.medium(), Detent.large())
        assert presentation.selected_detent == Detent.large()

    def test_non_detent_accessors(self) -> None:
        presentation = PresentationType.fullscreen(TransitionOptions(animated=False))
        assert presentation.detent_items is None
        assert presentation.selected_detent is None
        assert presentation.options.animated is False

    def test_custom_detent(self) -> None:
        assert Detent.custom("tall", 640.0).height == 640.0


class TestCompletion:
    def test_equality_by_id(self) -> None:
        completion = Completion(callback=lambda: None)
        assert completion == Completion(id=completion.id)
        assert completion != Completion()

    def test_call(self) -> None:
        calls: list[int] = []
        Completion(callback=lambda: calls.append(1))()
        Completion()()
        assert calls == [1]


class TestModel:
    def test_create_is_root(self) -> None:
        path = Path.create("/home")
        model = Model.create(path, tab=Tab("Home", Icon.system("house")))
        assert model.is_presented is False
        assert model.presented_paths == (path,)
        assert model.selected_path == path

    def test_string_identifier(self) -> None:
        tab_model = Model.create(Path.create("/home"), tab=Tab("Home", Icon.system("house")))
        plain = Model.create(Path.create("/home"))
        assert tab_model.string_identifier == "Home"
        assert plain.string_identifier == str(plain.id)

    def test_lookups(self) -> None:
        first, second = Path.create("/a"), Path.create("/b")
        model = replace(Model.create(first), presented_paths=(first, second))
        assert model.index_of(second.id) == 1
        assert model.index_of(uuid.uuid4()) is None
        assert model.find_path(first.id) == first
        assert model.path_ids == [first.id, second.id]

    def test_clone(self) -> None:
        model = Model.create(Path.create("/home"), routes=[Route("/x")])
        new_id = uuid.uuid4()
        clone = model.clone(new_id, [Route("/y")])
        assert clone.id == new_id
        assert [route.pattern for route in clone.routes] == ["/y"]
        assert clone.presented_paths == model.presented_paths
        assert model.clone(new_id, None).routes is None

    def test_equality_by_id(self) -> None:
        model = Model.create(Path.create("/home"))
        assert model == replace(model, animate=False)
        assert model != Model.create(Path.create("/home"))


class TestState:
    def test_initial_selects_first(self) -> None:
        first = Model.create(Path.create("/a"))
        second = Model.create(Path.create("/b"))
        state = State.initial([first, second])
        assert state.selected_model_id == first.id
        assert state.root_selected_model_id == first.id
        assert state.last_modified.tzinfo is not None

    def test_initial_explicit_selection(self) -> None:
        first = Model.create(Path.create("/a"))
        second = Model.create(Path.create("/b"))
        state = State.initial([first, second], selected_model_id=second.id, root_selected_model_id=second.id)
        assert state.selected_model == second
        assert state.root_selected_model == second

    def test_empty(self) -> None:
        state = State.initial()
        assert state.selected_model is None
        assert state.presented_models == []

    def test_lookups(self) -> None:
        tab = Model.create(Path.create("/a"), tab=Tab("A", Icon.system("a")))
        sheet = replace(Model.create(Path.create("/b")), is_presented=True)
        state = State.initial([tab, sheet])
        assert state.tabs == [tab]
        assert state.presented_models == [sheet]
        assert state.model_presenting(sheet.selected_path.id) == sheet
        assert state.model_presenting(uuid.uuid4()) is None
        assert state.index_of_model(sheet.id) == 1
        assert state.model(None) is None

    def test_copy_helpers(self) -> None:
        first = Model.create(Path.create("/a"))
        second = Model.create(Path.create("/b"))
        state = State.initial([first])
        assert state.appending_model(second).navigation_models == (first, second)
        assert state.appending_model(second).without_model(0).navigation_models == (second,)
        swapped = state.with_model(0, second)
        assert swapped.navigation_models == (second,)
        assert state.navigation_models == (first,)
