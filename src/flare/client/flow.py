"""Flow engine: client-side navigation with the server's guard.

Every navigation, including back and forward, becomes an intent on a
single-consumer queue. Each intent is matched against the view table,
checked with the same guard the server uses, then committed through
the history bridge. The engine owns its NavigationState; nothing else
writes it.

Lifecycle of one intent::

    IDLE -> EVALUATING -> COMMITTING -> SETTLED -> IDLE
                       \\-> BLOCKED ------------> IDLE

Queueing:
    One intent runs at a time. A new click or programmatic intent
    supersedes queued clicks and programmatic intents that have not
    started, but never a queued back/forward: those report moves the
    browser already made. A new back/forward supersedes everything
    queued, since the browser has left the entries those intents were
    aimed at.

Mirroring:
    Back/forward intents carry the browser entry index they landed on.
    The engine places its ``position`` by that index, never by
    stepping from its own position, so its history stack stays aligned
    with the browser's entries.

Concurrency:
    Single-threaded asyncio. ``submit()`` never blocks. Drive the queue
    either with ``process_pending()`` (deterministic, for tests and
    simple apps) or with the long-running ``run()`` loop.
"""

import asyncio
import logging
from collections import deque
from collections.abc import Callable
from dataclasses import dataclass, replace
from typing import Any, Protocol, TypeAlias

from flare.auth.clock import Clock, SystemClock
from flare.auth.guard import AuthOutcome, check
from flare.auth.levels import AuthLevel
from flare.auth.session import Session
from flare.client.history import HistoryBridge
from flare.client.state import (
    Blocked,
    Failed,
    FlowEvent,
    FlowState,
    NavigationIntent,
    NavigationState,
    Settled,
    Superseded,
    Trigger,
    ViewLoaded,
    ViewLoadFailed,
)
from flare.errors import HistoryWriteError, NavigationError
from flare.routing.route import Matched
from flare.routing.router import RouteTable

logger = logging.getLogger("flare.client")

FlowListener: TypeAlias = Callable[[FlowEvent], None]
Guard: TypeAlias = Callable[..., AuthOutcome]


class CredentialSource(Protocol):
    """Where the engine reads the current session from."""

    def current(self) -> Session | None: ...


class ViewLoader(Protocol):
    """Fetches the data a settled view needs."""

    async def load(self, view_id: str, params: dict[str, str], path: str) -> Any: ...


@dataclass(slots=True)
class _Pending:
    intent: NavigationIntent
    future: asyncio.Future[FlowEvent]


class FlowEngine:
    """Navigation state machine.

    Usage::

        views = RouteTable()
        views.add("GET", "/", "home")
        views.add("GET", "/items/:id", "item", AuthLevel.AUTHENTICATED)
        views.freeze()

        engine = FlowEngine(views, MemoryHistory("/"), credentials)
        engine.start()
        engine.subscribe(render)
        event = await engine.navigate("/items/42", Trigger.USER_CLICK)
    """

    __slots__ = (
        "_clock",
        "_credentials",
        "_flow_state",
        "_generation",
        "_guard",
        "_history",
        "_listeners",
        "_load_generation",
        "_load_task",
        "_loader",
        "_offset",
        "_queue",
        "_running",
        "_state",
        "_unsubscribe",
        "_views",
        "_wakeup",
    )

    def __init__(
        self,
        views: RouteTable,
        history: HistoryBridge,
        credentials: CredentialSource,
        *,
        guard: Guard = check,
        clock: Clock | None = None,
        loader: ViewLoader | None = None,
    ) -> None:
        self._views = views
        self._history = history
        self._credentials = credentials
        self._guard = guard
        self._clock: Clock = clock if clock is not None else SystemClock()
        self._loader = loader

        self._state = NavigationState.initial(history.current_path)
        # Browser entry index of history_stack[0]
        self._offset = history.index
        self._flow_state = FlowState.IDLE
        self._queue: deque[_Pending] = deque()
        self._generation = 0
        self._listeners: list[FlowListener] = []
        self._unsubscribe: Callable[[], None] | None = None
        self._wakeup = asyncio.Event()
        self._running = False

        self._load_task: asyncio.Task[None] | None = None
        self._load_generation = 0

    # -- Inspection --

    @property
    def state(self) -> NavigationState:
        return self._state

    @property
    def flow_state(self) -> FlowState:
        return self._flow_state

    @property
    def pending(self) -> tuple[NavigationIntent, ...]:
        """Queued intents that have not started, oldest first."""
        return tuple(p.intent for p in self._queue)

    # -- Lifecycle --

    def start(self) -> None:
        """Seed state from the bridge and start hearing back/forward."""
        if self._unsubscribe is not None:
            return
        self._state = NavigationState.initial(self._history.current_path)
        self._offset = self._history.index
        self._unsubscribe = self._history.subscribe(self._on_history)

    def close(self) -> None:
        """Stop listening to the bridge and cancel any view load."""
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None
        if self._load_task is not None and not self._load_task.done():
            self._load_task.cancel()
        self.stop()

    def subscribe(self, listener: FlowListener) -> Callable[[], None]:
        """Register a view-layer listener. Returns an unsubscribe callable."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    # -- Submitting intents --

    def submit(
        self,
        path: str,
        trigger: Trigger = Trigger.PROGRAMMATIC,
        *,
        replace: bool = False,
        history_index: int | None = None,
    ) -> asyncio.Future[FlowEvent]:
        """Queue a navigation intent. Never blocks.

        For back/forward, *history_index* is the browser entry the move
        landed on; it defaults to the bridge's current index.

        The returned future resolves with the intent's final event:
        ``Settled``, ``Blocked``, ``Failed`` or ``Superseded``.
        """
        future: asyncio.Future[FlowEvent] = asyncio.get_running_loop().create_future()
        if not trigger.external:
            history_index = None
        elif history_index is None:
            history_index = self._history.index

        self._generation += 1
        intent = NavigationIntent(
            target_path=path,
            trigger=trigger,
            replace=replace,
            generation=self._generation,
            history_index=history_index,
        )

        self._supersede_queued(intent)
        self._queue.append(_Pending(intent, future))
        self._state = _with_pending(self._state, intent)
        self._wakeup.set()
        return future

    async def navigate(
        self,
        path: str,
        trigger: Trigger = Trigger.PROGRAMMATIC,
        *,
        replace: bool = False,
    ) -> FlowEvent:
        """Submit an intent and wait for its final event."""
        future = self.submit(path, trigger, replace=replace)
        if not self._running:
            await self.process_pending()
        return await future

    # -- Driving the queue --

    async def process_pending(self) -> int:
        """Handle queued intents until the queue is empty.

        Returns how many intents were handled.
        """
        handled = 0
        while self._queue:
            pending = self._queue.popleft()
            event = self._process(pending.intent)
            if not pending.future.done():
                pending.future.set_result(event)
            handled += 1
        self._wakeup.clear()
        return handled

    async def run(self) -> None:
        """Consume intents as they arrive until ``stop()`` is called."""
        self._running = True
        try:
            while self._running:
                await self._wakeup.wait()
                self._wakeup.clear()
                await self.process_pending()
        finally:
            self._running = False

    def stop(self) -> None:
        self._running = False
        self._wakeup.set()

    async def settle_views(self) -> None:
        """Wait for the current view load, if any, to finish."""
        task = self._load_task
        if task is None or task.done():
            return
        try:
            await task
        except asyncio.CancelledError:
            if not task.cancelled():
                raise

    # -- Transitions --

    def _process(self, intent: NavigationIntent) -> FlowEvent:
        self._flow_state = FlowState.EVALUATING
        try:
            outcome = self._views.match("GET", intent.target_path)
            if not isinstance(outcome, Matched):
                error = NavigationError(f"No view matches {intent.target_path!r}")
                return self._fail_unknown(intent, error)

            decision = self._guard(
                outcome.entry.required_level,
                self._credentials.current(),
                now=self._clock.now(),
            )
            if decision is not AuthOutcome.ALLOWED:
                self._flow_state = FlowState.BLOCKED
                return self._block(intent, decision, outcome.entry.required_level)

            self._flow_state = FlowState.COMMITTING
            try:
                self._write_history(intent)
            except HistoryWriteError as exc:
                logger.warning("History write failed for %s: %s", intent.target_path, exc)
                return self._finish(Failed(intent, exc))

            if intent.trigger.external:
                self._state = replace(
                    self._mirror_move(intent, intent.target_path),
                    current_path=intent.target_path,
                )
            else:
                self._state = _committed(self._state, intent)
            self._flow_state = FlowState.SETTLED
            event = self._finish(Settled(intent, outcome.handler_id, outcome.bound_params))
            self._start_load(intent, outcome.handler_id, outcome.bound_params)
            return event
        finally:
            self._flow_state = FlowState.IDLE

    def _block(
        self,
        intent: NavigationIntent,
        reason: AuthOutcome,
        required: AuthLevel,
    ) -> FlowEvent:
        logger.info(
            "Navigation to %s blocked (%s, needs %s)",
            intent.target_path,
            reason.value,
            required.name.lower(),
        )
        if not intent.trigger.external:
            return self._finish(Blocked(intent, reason))

        try:
            corrected = self._compensate(intent)
        except HistoryWriteError as exc:
            logger.warning("Could not correct the URL for %s: %s", intent.target_path, exc)
            return self._finish(Failed(intent, exc))
        return self._finish(Blocked(intent, reason, corrected_path=corrected))

    def _fail_unknown(self, intent: NavigationIntent, error: NavigationError) -> FlowEvent:
        logger.debug("No view for %s", intent.target_path)
        if intent.trigger.external:
            try:
                self._compensate(intent)
            except HistoryWriteError as exc:
                logger.warning("Could not correct the URL for %s: %s", intent.target_path, exc)
                return self._finish(Failed(intent, exc))
        return self._finish(Failed(intent, error))

    def _compensate(self, intent: NavigationIntent) -> str:
        """Undo a refused back/forward in the browser.

        The browser already sits on the entry the intent was stamped
        with. The engine replaces that entry with the still-current
        path and mirrors the move onto the same slot.

        Raises ``HistoryWriteError`` if the browser is no longer on the
        stamped entry, since a replace would then hit another one.
        """
        if self._history.index != intent.history_index:
            msg = (
                f"Browser left entry {intent.history_index} "
                f"(now at {self._history.index}); not correcting the URL"
            )
            raise HistoryWriteError(msg)
        current = self._state.current_path
        self._history.replace(current)
        self._state = self._mirror_move(intent, current)
        return current

    def _mirror_move(self, intent: NavigationIntent, path: str) -> NavigationState:
        """State with the engine's position on the intent's browser entry."""
        assert intent.history_index is not None
        state, self._offset = _moved(self._state, self._offset, intent.history_index, path)
        return state

    def _write_history(self, intent: NavigationIntent) -> None:
        if intent.trigger.external:
            return
        if intent.replace:
            self._history.replace(intent.target_path)
        else:
            self._history.push(intent.target_path)

    def _supersede_queued(self, by: NavigationIntent) -> None:
        kept: deque[_Pending] = deque()
        superseded: list[_Pending] = []
        for pending in self._queue:
            if by.trigger.external or not pending.intent.trigger.external:
                superseded.append(pending)
            else:
                kept.append(pending)
        self._queue = kept

        for pending in superseded:
            event = Superseded(pending.intent, by)
            if not pending.future.done():
                pending.future.set_result(event)
            self._emit(event)

    def _finish(self, event: FlowEvent) -> FlowEvent:
        next_pending = self._queue[-1].intent if self._queue else None
        self._state = _with_pending(self._state, next_pending)
        self._emit(event)
        return event

    def _emit(self, event: FlowEvent) -> None:
        for listener in tuple(self._listeners):
            try:
                listener(event)
            except Exception:
                logger.exception("Flow listener failed on %s", type(event).__name__)

    # -- View data --

    def _start_load(self, intent: NavigationIntent, view_id: str, params: dict[str, str]) -> None:
        if self._loader is None:
            return
        if self._load_task is not None and not self._load_task.done():
            self._load_task.cancel()
        self._load_generation = intent.generation
        self._load_task = asyncio.create_task(self._load(intent, view_id, params))

    async def _load(self, intent: NavigationIntent, view_id: str, params: dict[str, str]) -> None:
        assert self._loader is not None
        try:
            data = await self._loader.load(view_id, params, intent.target_path)
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            if intent.generation != self._load_generation:
                logger.debug("Ignoring stale view load failure for %s", intent.target_path)
                return
            logger.warning("View data for %s failed to load: %s", intent.target_path, exc)
            self._emit(ViewLoadFailed(intent, exc))
            return

        if intent.generation != self._load_generation:
            logger.debug(
                "Discarding stale view data for %s (generation %d, latest %d)",
                intent.target_path,
                intent.generation,
                self._load_generation,
            )
            return
        self._emit(ViewLoaded(intent, data))

    # -- History callback --

    def _on_history(self, path: str, trigger: Trigger, index: int) -> None:
        self.submit(path, trigger, history_index=index)


# -- State transitions (pure) --


def _with_pending(state: NavigationState, intent: NavigationIntent | None) -> NavigationState:
    return replace(state, pending_intent=intent)


def _committed(state: NavigationState, intent: NavigationIntent) -> NavigationState:
    """State after a click or programmatic *intent* settles."""
    path = intent.target_path
    if intent.replace:
        stack = list(state.history_stack)
        stack[state.position] = path
        return replace(state, current_path=path, history_stack=tuple(stack))
    stack = (*state.history_stack[: state.position + 1], path)
    return replace(state, current_path=path, history_stack=stack, position=state.position + 1)


def _moved(
    state: NavigationState, offset: int, index: int, path: str
) -> tuple[NavigationState, int]:
    """Put ``position`` on browser entry *index* and record *path* there.

    *offset* is the browser index of ``history_stack[0]``; the new
    offset is returned with the new state. Entries the engine never
    saw (before its first entry or after its last) are filled in with
    *path*.
    """
    stack = list(state.history_stack)
    position = index - offset
    if position < 0:
        stack[:0] = [path] * -position
        offset, position = index, 0
    elif position >= len(stack):
        stack.extend([path] * (position - len(stack) + 1))
    stack[position] = path
    return replace(state, history_stack=tuple(stack), position=position), offset
