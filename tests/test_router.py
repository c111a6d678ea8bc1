"""Tests for wayfinder.router — the single-writer dispatch loop."""

import logging
import threading
import time
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import anyio
import anyio.to_thread
import pytest

from wayfinder.config import RouterConfig
from wayfinder.errors import ConfigurationError, RouterClosed
from wayfinder.navigation.actions import (
    Dismiss,
    DismissAllPresented,
    DismissCurrentModel,
    MultiAction,
    NewTarget,
    Open,
    SetNavigationDismissed,
    UntrackedViewsRemoved,
)
from wayfinder.navigation.models import Completion, Icon, Model, Path, Tab
from wayfinder.navigation.state import State
from wayfinder.persistence.store import StateStore
from wayfinder.router import Router, StateChange
from wayfinder.routing.route import AccessLevel, Route
from wayfinder.testing import RecordingStore, assert_stack

ROUTES = (
    Route("/home"),
    Route("/a"),
    Route("/b"),
    Route("/c"),
    Route("/promo", access=AccessLevel.PUBLIC),
)


def _state() -> State:
    home = Model.create(Path.create("/home"), tab=Tab("Home", Icon.system("house")))
    return State.initial([home], ROUTES)


def _home(router: Router) -> Model:
    return router.state.navigation_models[0]


class SlowFirstWriteStore(RecordingStore):
    """Its first write is slow enough for later commits to overtake it."""

    __slots__ = ("writes",)

    def __init__(self) -> None:
        super().__init__()
        self.writes = 0

    def set(self, key: str, value: str) -> None:
        self.writes += 1
        if self.writes == 1:
            time.sleep(0.2)
        super().set(key, value)


@asynccontextmanager
async def running(router: Router) -> AsyncIterator[Router]:
    """Run *router* in a task group for the duration of the block."""
    async with anyio.create_task_group() as tg:
        tg.start_soon(router.run)
        await anyio.sleep(0)
        try:
            yield router
        finally:
            router.close()


class TestConfig:
    def test_invalid_config_rejected(self) -> None:
        with pytest.raises(ConfigurationError, match="queue_size"):
            Router(_state(), config=RouterConfig(queue_size=0))


class TestDispatch:
    @pytest.mark.anyio
    async def test_returns_new_state(self) -> None:
        router = Router(_state())
        async with running(router):
            state = await router.dispatch(Open(Path.create("/a")))
            assert state is router.state
        assert_stack(_home(router), ["/home", "/a"])

    @pytest.mark.anyio
    async def test_send_then_dispatch_keeps_order(self) -> None:
        router = Router(_state())
        async with running(router):
            router.send(Open(Path.create("/a")))
            router.send(Open(Path.create("/b")))
            await router.dispatch(Open(Path.create("/c")))
        assert_stack(_home(router), ["/home", "/a", "/b", "/c"])

    @pytest.mark.anyio
    async def test_many(self) -> None:
        router = Router(_state())
        async with running(router):
            router.send_many([Open(Path.create("/a"))])
            await router.dispatch_many([Open(Path.create("/b")), Open(Path.create("/c"))])
        assert_stack(_home(router), ["/home", "/a", "/b", "/c"])

    @pytest.mark.anyio
    async def test_concurrent_dispatchers_serialize(self) -> None:
        router = Router(_state())
        async with running(router):
            async with anyio.create_task_group() as tg:
                for url in ("/a", "/b", "/c"):
                    tg.start_soon(router.dispatch, Open(Path.create(url)))
        assert len(_home(router).presented_paths) == 4

    @pytest.mark.anyio
    async def test_send_from_worker_thread(self) -> None:
        router = Router(_state())
        async with running(router):
            await anyio.to_thread.run_sync(router.send, Open(Path.create("/a")))
            await router.dispatch(Open(Path.create("/b")))
        assert_stack(_home(router), ["/home", "/a", "/b"])

    @pytest.mark.anyio
    async def test_send_from_plain_thread(self) -> None:
        router = Router(_state())
        errors: list[BaseException] = []

        def send() -> None:
            try:
                router.send(Open(Path.create("/a")))
            except Exception as exc:
                errors.append(exc)

        async with running(router):
            thread = threading.Thread(target=send)
            thread.start()
            await anyio.to_thread.run_sync(thread.join)
            await router.dispatch(Open(Path.create("/b")))
        assert errors == []
        assert_stack(_home(router), ["/home", "/a", "/b"])

    @pytest.mark.anyio
    async def test_rejected_action_keeps_state(self) -> None:
        router = Router(_state())
        async with running(router):
            state = await router.dispatch(Open(Path.create("/nowhere")))
        assert_stack(state.navigation_models[0], ["/home"])

    @pytest.mark.anyio
    async def test_strict_errors_reach_the_waiter(self) -> None:
        router = Router(State.initial((), ROUTES), config=RouterConfig(debug=True))
        async with running(router):
            with pytest.raises(AssertionError):
                await router.dispatch(Open(Path.create("/a")))
            assert router.state.navigation_models == ()


class TestDirectDispatch:
    @pytest.mark.anyio
    async def test_applies_without_loop(self) -> None:
        router = Router(_state())
        router.send(Open(Path.create("/a")))
        state = await router.dispatch(Open(Path.create("/b")))
        assert not router.running
        assert_stack(state.navigation_models[0], ["/home", "/a", "/b"])

    def test_send_outside_any_event_loop_buffers(self) -> None:
        router = Router(_state())
        router.send(Open(Path.create("/a")))
        assert_stack(_home(router), ["/home"])
        anyio.run(router.dispatch, MultiAction())
        assert_stack(_home(router), ["/home", "/a"])

    @pytest.mark.anyio
    async def test_buffered_actions_applied_by_run(self) -> None:
        router = Router(_state())
        router.send(Open(Path.create("/a")))
        async with running(router):
            pass
        assert_stack(_home(router), ["/home", "/a"])


class TestLifecycle:
    @pytest.mark.anyio
    async def test_closed_router_rejects_actions(self) -> None:
        router = Router(_state())
        async with running(router):
            pass
        assert router.closed
        with pytest.raises(RouterClosed):
            await router.dispatch(Open(Path.create("/a")))
        with pytest.raises(RouterClosed):
            router.send(Open(Path.create("/a")))

    @pytest.mark.anyio
    async def test_close_from_plain_thread(self) -> None:
        router = Router(_state())
        async with anyio.create_task_group() as tg:
            tg.start_soon(router.run)
            await router.dispatch(Open(Path.create("/a")))
            thread = threading.Thread(target=router.close)
            thread.start()
            await anyio.to_thread.run_sync(thread.join)
        assert router.closed
        assert not router.running
        assert_stack(_home(router), ["/home", "/a"])

    @pytest.mark.anyio
    async def test_run_only_once(self) -> None:
        router = Router(_state())
        async with running(router):
            pass
        with pytest.raises(RuntimeError, match="only be started once"):
            await router.run()

    @pytest.mark.anyio
    async def test_queued_actions_drain_on_close(self) -> None:
        router = Router(_state())
        async with running(router):
            router.send(Open(Path.create("/a")))
            router.send(Open(Path.create("/b")))
            router.close()
        assert_stack(_home(router), ["/home", "/a", "/b"])
        assert not router.running


class TestSubscribe:
    @pytest.mark.anyio
    async def test_one_change_per_action(self) -> None:
        router = Router(_state())
        action = Open(Path.create("/a"))
        with router.subscribe() as changes:
            async with running(router):
                await router.dispatch(action)
                change = changes.receive_nowait()
        assert isinstance(change, StateChange)
        assert change.action == action
        assert_stack(change.old.navigation_models[0], ["/home"])
        assert_stack(change.new.navigation_models[0], ["/home", "/a"])

    @pytest.mark.anyio
    async def test_rejected_action_still_published(self) -> None:
        router = Router(_state())
        with router.subscribe() as changes:
            await router.dispatch(Open(Path.create("/nowhere")))
            change = changes.receive_nowait()
        assert change.old.navigation_models == change.new.navigation_models

    @pytest.mark.anyio
    async def test_iteration_ends_with_router(self) -> None:
        router = Router(_state())
        subscription = router.subscribe()
        async with running(router):
            await router.dispatch(Open(Path.create("/a")))
            await router.dispatch(Open(Path.create("/b")))

        seen = [change async for change in subscription]
        assert [change.new.navigation_models[0].selected_path.path for change in seen] == ["/a", "/b"]

    @pytest.mark.anyio
    async def test_closed_subscription_stops_receiving(self) -> None:
        router = Router(_state())
        subscription = router.subscribe()
        subscription.close()
        await router.dispatch(Open(Path.create("/a")))
        assert [change async for change in subscription] == []

    @pytest.mark.anyio
    async def test_slow_subscriber_drops_events(self) -> None:
        router = Router(_state(), config=RouterConfig(subscriber_queue_size=1))
        with router.subscribe() as changes:
            await router.dispatch(Open(Path.create("/a")))
            await router.dispatch(Open(Path.create("/b")))
            first = changes.receive_nowait()
            with pytest.raises(anyio.WouldBlock):
                changes.receive_nowait()
        assert first.new.navigation_models[0].selected_path.path == "/a"


class TestEffects:
    @pytest.mark.anyio
    async def test_haptics(self) -> None:
        calls: list[str] = []
        router = Router(_state(), haptics=lambda: calls.append("buzz"))
        await router.dispatch(Open(Path.create("/a"), haptic_feedback=True))
        await router.dispatch(Open(Path.create("/b")))
        assert calls == ["buzz"]

    @pytest.mark.anyio
    async def test_no_haptics_for_rejected_action(self) -> None:
        calls: list[str] = []
        router = Router(_state(), haptics=lambda: calls.append("buzz"))
        await router.dispatch(Open(Path.create("/nowhere"), haptic_feedback=True))
        assert calls == []

    @pytest.mark.anyio
    async def test_haptics_in_loop(self) -> None:
        calls: list[str] = []

        async def buzz() -> None:
            calls.append("buzz")

        router = Router(_state(), haptics=buzz)
        async with running(router):
            await router.dispatch(Open(Path.create("/a"), haptic_feedback=True))
        assert calls == ["buzz"]

    @pytest.mark.anyio
    async def test_dismiss_completion_after_removal(self) -> None:
        calls: list[str] = []
        router = Router(_state())
        await router.dispatch(Open(Path.create("/a"), NewTarget()))
        await router.dispatch(Dismiss(DismissCurrentModel(completion=Completion(callback=lambda: calls.append("done")))))
        assert calls == []

        presented = router.state.presented_models[0]
        await router.dispatch(SetNavigationDismissed(presented))
        assert calls == ["done"]
        assert router.state.presented_models == []

        await router.dispatch(SetNavigationDismissed(presented))
        assert calls == ["done"]

    @pytest.mark.anyio
    async def test_dismiss_all_completion(self) -> None:
        calls: list[str] = []
        router = Router(_state())
        await router.dispatch(Open(Path.create("/a"), NewTarget()))
        await router.dispatch(Dismiss(DismissAllPresented(completion=Completion(callback=lambda: calls.append("all")))))
        assert calls == []
        await router.dispatch(UntrackedViewsRemoved())
        assert calls == ["all"]
        assert router.state.dismiss_all_completion is None

    @pytest.mark.anyio
    async def test_autosave(self) -> None:
        backend = RecordingStore()
        store = StateStore(backend, bundle_id="com.example", version="1", build="1")
        router = Router(_state(), config=RouterConfig(autosave=True), store=store)
        await router.dispatch(Open(Path.create("/a")))
        assert backend.operations == [("set", store.key)]
        assert_stack(store.load().navigation_models[0], ["/home", "/a"])

    @pytest.mark.anyio
    async def test_autosave_keeps_commit_order(self) -> None:
        backend = SlowFirstWriteStore()
        store = StateStore(backend, version="1")
        router = Router(_state(), config=RouterConfig(autosave=True), store=store)
        async with running(router):
            await router.dispatch(Open(Path.create("/a")))
            await router.dispatch(Open(Path.create("/b")))
        assert 1 <= backend.writes <= 2
        assert_stack(store.load().navigation_models[0], ["/home", "/a", "/b"])

    @pytest.mark.anyio
    async def test_no_autosave_by_default(self) -> None:
        backend = RecordingStore()
        router = Router(_state(), store=StateStore(backend, version="1"))
        await router.dispatch(Open(Path.create("/a")))
        assert backend.operations == []

    @pytest.mark.anyio
    async def test_failing_effect_is_logged(self, caplog: pytest.LogCaptureFixture) -> None:
        def broken() -> None:
            msg = "no motor"
            raise OSError(msg)

        router = Router(_state(), haptics=broken)
        with caplog.at_level(logging.ERROR, logger="wayfinder.router"):
            state = await router.dispatch(Open(Path.create("/a"), haptic_feedback=True))
        assert_stack(state.navigation_models[0], ["/home", "/a"])
        assert "haptic feedback" in caplog.text


class TestOpenDeeplink:
    @pytest.mark.anyio
    async def test_resolved_link_is_sent(self) -> None:
        router = Router(_state())
        assert router.open_deeplink("app://example.com/promo")
        await router.dispatch(MultiAction())
        assert len(router.state.presented_models) == 1
        assert_stack(router.state.presented_models[0], ["/promo"])

    @pytest.mark.anyio
    async def test_private_route_needs_private_access(self) -> None:
        router = Router(_state())
        assert not router.open_deeplink("app://example.com/a")
        assert router.open_deeplink("app://example.com/a", AccessLevel.PRIVATE)

    def test_missing_url(self) -> None:
        assert not Router(_state()).open_deeplink(None)
