"""Router — the single writer of navigation State.

Every state change goes through one serialized queue (an anyio memory
object stream) and is applied one action at a time, in submission order.
Two ways in:

- ``send(action)`` is synchronous and non-blocking. It enqueues and
  returns; use it from UI callbacks and from any thread.
- ``await dispatch(action)`` enqueues and waits until that action has been
  applied, then returns the resulting State.

Usage::

    router = Router(State.initial(models, routes))

    async with anyio.create_task_group() as tg:
        tg.start_soon(router.run)
        state = await router.dispatch(Open(Path.create("/inbox")))
        router.send(Dismiss(DismissCurrentPath()))
        ...
        router.close()

Without a running loop ``dispatch`` applies directly: first whatever
``send`` buffered, then its own action. Either way writes never overlap.

Side effects (haptics, dismissal completions, autosave) run after the
transition commits, as fire-and-forget tasks. Their failures are logged
and never touch the committed state.
"""

import contextlib
import inspect
import logging
import threading
from collections.abc import Callable, Iterable
from dataclasses import dataclass, fields

import anyio
import anyio.from_thread
import anyio.lowlevel
import anyio.to_thread
from anyio.abc import TaskGroup
from anyio.streams.memory import MemoryObjectReceiveStream, MemoryObjectSendStream

from wayfinder._internal.trace import describe_state
from wayfinder._internal.types import Callback, Clock
from wayfinder.config import RouterConfig
from wayfinder.errors import RouterClosed
from wayfinder.navigation.actions import (
    Action,
    MultiAction,
    SetNavigationDismissed,
    Target,
    UntrackedViewsRemoved,
    flatten,
    wants_haptic_feedback,
)
from wayfinder.navigation.deeplink import Deeplink
from wayfinder.navigation.reducer import reduce
from wayfinder.navigation.state import State
from wayfinder.persistence.store import StateStore
from wayfinder.routing.route import AccessLevel

logger = logging.getLogger("wayfinder.router")


# ---------------------------------------------------------------------------
# Change events
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class StateChange:
    """Published to subscribers after every committed action.

    Attributes:
        old: The state before the action.
        new: The state after the action. Equal to ``old`` apart from
            ``last_modified`` when the reducer rejected the action.
        action: The action that was applied.
    """

    old: State
    new: State
    action: Action


class Subscription:
    """Async iterator over ``StateChange`` events for one subscriber.

    Registered as soon as it is created, so no change committed after
    ``Router.subscribe()`` returns is missed. The buffer is bounded; when
    the subscriber falls behind, new events for it are dropped.

    Usage::

        with router.subscribe() as changes:
            async for change in changes:
                ...
    """

    __slots__ = ("_receive", "_router", "_send")

    def __init__(self, router: "Router", size: int) -> None:
        send, receive = anyio.create_memory_object_stream[StateChange](size)
        self._send: MemoryObjectSendStream[StateChange] = send
        self._receive: MemoryObjectReceiveStream[StateChange] = receive
        self._router = router

    def __aiter__(self) -> "Subscription":
        return self

    async def __anext__(self) -> StateChange:
        try:
            return await self._receive.receive()
        except (anyio.EndOfStream, anyio.ClosedResourceError):
            raise StopAsyncIteration from None

    def receive_nowait(self) -> StateChange:
        """Return a buffered event; raises ``anyio.WouldBlock`` if none."""
        return self._receive.receive_nowait()

    def offer(self, change: StateChange) -> None:
        with contextlib.suppress(anyio.WouldBlock, anyio.BrokenResourceError, anyio.ClosedResourceError):
            self._send.send_nowait(change)

    def end(self) -> None:
        """Stop the stream after the buffered events."""
        self._send.close()

    def close(self) -> None:
        self._router._unsubscribe(self)
        self._send.close()
        self._receive.close()

    def __enter__(self) -> "Subscription":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()


class _Pending:
    """An action waiting in the queue, plus the waiter's completion slot."""

    __slots__ = ("action", "done", "error", "state")

    def __init__(self, action: Action, done: anyio.Event | None = None) -> None:
        self.action = action
        self.done = done
        self.state: State | None = None
        self.error: BaseException | None = None

    def resolve(self, state: State | None = None, error: BaseException | None = None) -> None:
        self.state = state
        self.error = error
        if self.done is not None:
            self.done.set()


def _changed(old: State, new: State) -> bool:
    """Whether the reducer did more than stamp ``last_modified``."""
    return any(
        getattr(old, field.name) is not getattr(new, field.name) for field in fields(State) if field.name != "last_modified"
    )


# ---------------------------------------------------------------------------
# Router
# ---------------------------------------------------------------------------


class Router:
    """Owns the State and serializes every write to it.

    Reads through ``state`` are always a complete, immutable snapshot.
    A router runs its loop once; after ``close()`` every entry point
    raises ``RouterClosed``.
    """

    __slots__ = (
        "_clock",
        "_closed",
        "_config",
        "_haptics",
        "_lock",
        "_loop_thread",
        "_loop_token",
        "_receive",
        "_running",
        "_saving",
        "_send",
        "_state",
        "_store",
        "_subscribers",
        "_subscribers_lock",
        "_task_group",
        "_unsaved",
    )

    def __init__(
        self,
        state: State,
        *,
        config: RouterConfig | None = None,
        store: StateStore | None = None,
        haptics: Callback | None = None,
        clock: Clock | None = None,
    ) -> None:
        self._config = config or RouterConfig()
        self._config.validate()
        self._state = state
        self._store = store
        self._haptics = haptics
        self._clock = clock

        send, receive = anyio.create_memory_object_stream[_Pending](self._config.queue_size)
        self._send: MemoryObjectSendStream[_Pending] = send
        self._receive: MemoryObjectReceiveStream[_Pending] = receive
        self._lock: anyio.Lock | None = None  # Created lazily inside the event loop
        self._running = False
        self._closed = False
        self._task_group: TaskGroup | None = None
        self._loop_token: anyio.lowlevel.EventLoopToken | None = None
        self._loop_thread: int | None = None

        # Newest committed state not yet handed to the store
        self._unsaved: State | None = None
        self._saving = False

        self._subscribers: set[Subscription] = set()
        self._subscribers_lock = threading.Lock()

    @property
    def state(self) -> State:
        """The latest committed snapshot."""
        return self._state

    @property
    def config(self) -> RouterConfig:
        return self._config

    @property
    def running(self) -> bool:
        return self._running

    @property
    def closed(self) -> bool:
        return self._closed

    # -- Dispatch loop --

    async def run(self) -> None:
        """Consume the queue until ``close()`` is called.

        Actions sent before ``run()`` starts are applied first. Side-effect
        tasks belong to this loop and finish before it returns. Waiters
        whose actions were never applied get ``RouterClosed``.
        """
        if self._running or self._closed:
            msg = "Router.run() can only be started once"
            raise RuntimeError(msg)
        self._running = True
        self._loop_token = anyio.lowlevel.current_token()
        self._loop_thread = threading.get_ident()
        logger.debug("Router loop started")
        try:
            async with anyio.create_task_group() as tg:
                self._task_group = tg
                async for pending in self._receive:
                    await self._apply(pending)
        finally:
            self._closed = True
            self._send.close()
            self._task_group = None
            self._loop_token = None
            self._loop_thread = None
            self._running = False
            self._fail_pending()
            self._receive.close()
            self._end_subscriptions()
            logger.debug("Router loop stopped")

    def close(self) -> None:
        """Stop accepting actions. Queued actions are still applied."""
        self._closed = True
        with contextlib.suppress(anyio.RunFinishedError):
            self._call_on_loop(self._send.close)

    # -- Entry points --

    def send(self, action: Action) -> None:
        """Enqueue *action* without waiting for it to apply.

        Safe from any thread. While ``run()`` is live, calls from other
        threads hop onto the loop thread. Before that the action is
        buffered for ``run()`` or the next direct ``dispatch()``.
        Raises ``RouterClosed`` after ``close()`` and ``anyio.WouldBlock``
        when the queue is full.
        """
        try:
            self._call_on_loop(self._enqueue, _Pending(action))
        except anyio.RunFinishedError as exc:
            msg = "Router is closed"
            raise RouterClosed(msg) from exc

    def send_many(self, actions: Iterable[Action]) -> None:
        self.send(MultiAction(tuple(actions)))

    async def dispatch(self, action: Action) -> State:
        """Apply *action* and return the resulting state."""
        if self._closed:
            msg = "Router is closed"
            raise RouterClosed(msg)

        pending = _Pending(action, anyio.Event())
        if not self._running:
            for buffered in self._take_buffered():
                await self._apply(buffered)
            await self._apply(pending)
        else:
            try:
                await self._send.send(pending)
            except (anyio.ClosedResourceError, anyio.BrokenResourceError) as exc:
                msg = "Router is closed"
                raise RouterClosed(msg) from exc
            await pending.done.wait()

        if pending.error is not None:
            raise pending.error
        return pending.state

    async def dispatch_many(self, actions: Iterable[Action]) -> State:
        return await self.dispatch(MultiAction(tuple(actions)))

    def open_deeplink(
        self,
        url: str | None,
        access: AccessLevel = AccessLevel.PUBLIC,
        preferred_target: Target | None = None,
    ) -> bool:
        """Resolve *url* against the current state and send the result.

        Returns False when no route accepts the link.
        """
        link = Deeplink.create(url, access)
        action = link.action(self._state, preferred_target) if link is not None else None
        if action is None:
            logger.info("Deep link %s could not be resolved", url)
            return False
        self.send(action)
        return True

    # -- Subscriptions --

    def subscribe(self) -> Subscription:
        """Receive a ``StateChange`` for every action committed from now on."""
        subscription = Subscription(self, self._config.subscriber_queue_size)
        with self._subscribers_lock:
            self._subscribers.add(subscription)
        if self._closed and not self._running:
            subscription.end()
        return subscription

    def _unsubscribe(self, subscription: Subscription) -> None:
        with self._subscribers_lock:
            self._subscribers.discard(subscription)

    def _publish(self, change: StateChange) -> None:
        with self._subscribers_lock:
            subscribers = set(self._subscribers)
        for subscription in subscribers:
            subscription.offer(change)

    def _end_subscriptions(self) -> None:
        with self._subscribers_lock:
            subscribers = set(self._subscribers)
            self._subscribers.clear()
        for subscription in subscribers:
            subscription.end()

    # -- Internals --

    def _call_on_loop(self, func: Callable[..., object], *args: object) -> None:
        """Run *func* on the loop thread, or right here when no loop owns the queue."""
        token = self._loop_token
        if token is None or threading.get_ident() == self._loop_thread:
            func(*args)
        else:
            anyio.from_thread.run_sync(func, *args, token=token)

    def _enqueue(self, pending: _Pending) -> None:
        try:
            self._send.send_nowait(pending)
        except (anyio.ClosedResourceError, anyio.BrokenResourceError) as exc:
            msg = "Router is closed"
            raise RouterClosed(msg) from exc

    def _take_buffered(self) -> list[_Pending]:
        buffered: list[_Pending] = []
        while True:
            try:
                buffered.append(self._receive.receive_nowait())
            except (anyio.WouldBlock, anyio.EndOfStream, anyio.ClosedResourceError):
                return buffered

    def _fail_pending(self) -> None:
        for pending in self._take_buffered():
            pending.resolve(error=RouterClosed("Router stopped before the action was applied"))

    async def _apply(self, pending: _Pending) -> None:
        if self._lock is None:
            self._lock = anyio.Lock()
        try:
            async with self._lock:
                old, new = self._commit(pending.action)
        except Exception as exc:
            if pending.done is None:
                logger.exception("Failed to apply %s", type(pending.action).__name__)
            pending.resolve(error=exc)
            return
        pending.resolve(new)

        for name, callback in self._effects(pending.action, old, new):
            if self._task_group is not None:
                self._task_group.start_soon(self._run_effect, name, callback)
            else:
                await self._run_effect(name, callback)

    def _commit(self, action: Action) -> tuple[State, State]:
        old = self._state
        now = self._clock() if self._clock is not None else None
        new = reduce(action, old, now=now, strict=self._config.debug)
        self._state = new
        logger.debug("Applied %s", type(action).__name__)
        if self._config.log_state_changes and logger.isEnabledFor(logging.DEBUG):
            logger.debug("%s", describe_state(new))
        self._publish(StateChange(old, new, action))
        return old, new

    def _effects(self, action: Action, old: State, new: State) -> list[tuple[str, Callback]]:
        """Follow-up work owed by a committed transition."""
        effects: list[tuple[str, Callback]] = []
        # Rejected actions give no feedback
        if self._haptics is not None and wants_haptic_feedback(action) and _changed(old, new):
            effects.append(("haptic feedback", self._haptics))

        for leaf in flatten(action):
            if isinstance(leaf, UntrackedViewsRemoved):
                completion = old.dismiss_all_completion
                if completion is not None and completion.callback is not None:
                    effects.append(("dismiss-all completion", completion.callback))
            elif isinstance(leaf, SetNavigationDismissed):
                model = old.model(leaf.model.id)
                completion = model.dismiss_completion_action if model is not None else None
                # A superseded dismissal has nothing left to complete
                if completion is not None and completion.callback is not None and new.model(leaf.model.id) is None:
                    effects.append(("dismiss completion", completion.callback))

        if self._store is not None and self._config.autosave:
            self._unsaved = new
            effects.append(("autosave", self._autosave))
        return effects

    async def _autosave(self) -> None:
        """Write committed states in commit order, one write at a time.

        Only the newest unsaved state is kept, so a slow store skips
        intermediate snapshots instead of writing them out of order.
        """
        if self._saving or self._store is None:
            return
        self._saving = True
        try:
            while self._unsaved is not None:
                state, self._unsaved = self._unsaved, None
                await anyio.to_thread.run_sync(self._store.save, state)
        finally:
            self._saving = False

    async def _run_effect(self, name: str, callback: Callback) -> None:
        # Callbacks may be plain functions or coroutine functions
        try:
            result = callback()
            if inspect.isawaitable(result):
                await result
        except Exception:
            logger.exception("Side effect %r failed", name)
