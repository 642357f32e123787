"""Navigation intents, engine state, and the events the engine emits."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, TypeAlias

from flare.auth.guard import AuthOutcome


class Trigger(Enum):
    """What caused a navigation intent."""

    USER_CLICK = "user_click"
    BACK = "back"
    FORWARD = "forward"
    PROGRAMMATIC = "programmatic"

    @property
    def external(self) -> bool:
        """True for back/forward: the browser already moved."""
        return self in (Trigger.BACK, Trigger.FORWARD)


class FlowState(Enum):
    """Where the engine is in handling the current intent."""

    IDLE = "idle"
    EVALUATING = "evaluating"
    BLOCKED = "blocked"
    COMMITTING = "committing"
    SETTLED = "settled"


@dataclass(frozen=True, slots=True)
class NavigationIntent:
    """A request to change the current view.

    ``generation`` is stamped by the engine on submit and grows by one
    for every intent. ``history_index`` is the browser entry a back or
    forward landed on; it is ``None`` for clicks and programmatic intents.
    """

    target_path: str
    trigger: Trigger = Trigger.PROGRAMMATIC
    replace: bool = False
    generation: int = 0
    history_index: int | None = None


@dataclass(frozen=True, slots=True)
class NavigationState:
    """Snapshot of the engine's view of history.

    ``position`` indexes ``current_path`` in ``history_stack``. The
    engine swaps in a new snapshot on every transition, so readers
    never see a half-applied update.
    """

    current_path: str
    history_stack: tuple[str, ...]
    position: int = 0
    pending_intent: NavigationIntent | None = None

    @classmethod
    def initial(cls, path: str) -> NavigationState:
        return cls(current_path=path, history_stack=(path,), position=0)


# -- Events --


@dataclass(frozen=True, slots=True)
class Settled:
    """The intent committed; ``view_id`` is now showing."""

    intent: NavigationIntent
    view_id: str
    params: dict[str, str] = field(default_factory=dict)


@dataclass(frozen=True, slots=True)
class Blocked:
    """The guard refused the intent.

    ``corrected_path`` is set when a back/forward had to be undone in
    the browser.
    """

    intent: NavigationIntent
    reason: AuthOutcome
    corrected_path: str | None = None


@dataclass(frozen=True, slots=True)
class Failed:
    """The intent could not be carried out (unknown path or history error)."""

    intent: NavigationIntent
    error: Exception


@dataclass(frozen=True, slots=True)
class Superseded:
    """A newer intent replaced this one before it started."""

    intent: NavigationIntent
    by: NavigationIntent


@dataclass(frozen=True, slots=True)
class ViewLoaded:
    """View data arrived for the latest settled intent."""

    intent: NavigationIntent
    data: Any


@dataclass(frozen=True, slots=True)
class ViewLoadFailed:
    """Loading view data for the latest settled intent failed."""

    intent: NavigationIntent
    error: Exception


FlowEvent: TypeAlias = Settled | Blocked | Failed | Superseded | ViewLoaded | ViewLoadFailed
