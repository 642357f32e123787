"""History bridge: the only writer of the visible URL.

``HistoryBridge`` is what the flow engine needs from a browser history
object. ``MemoryHistory`` models one in process: an entry list and an
index, with back/forward notifying subscribers the way ``popstate``
does.
"""

from collections.abc import Callable
from typing import Protocol, TypeAlias

from flare.client.state import Trigger

HistoryListener: TypeAlias = Callable[[str, Trigger, int], None]


class HistoryBridge(Protocol):
    """Browser navigation primitives.

    ``push`` and ``replace`` raise ``HistoryWriteError`` when the URL
    cannot be written. Subscribers hear only externally triggered moves
    (back and forward), never the bridge's own writes. Listeners also
    get the entry index the browser moved to, as a popstate handler
    reads it from the history state.
    """

    @property
    def current_path(self) -> str: ...

    @property
    def index(self) -> int: ...

    def push(self, path: str) -> None: ...

    def replace(self, path: str) -> None: ...

    def subscribe(self, callback: HistoryListener) -> Callable[[], None]: ...


class MemoryHistory:
    """In-process browser history.

    Usage::

        history = MemoryHistory("/")
        history.push("/items")
        history.back()          # notifies subscribers with ("/", Trigger.BACK, 0)
        history.length          # 2
    """

    __slots__ = ("_entries", "_index", "_listeners")

    def __init__(self, initial: str = "/") -> None:
        self._entries: list[str] = [initial]
        self._index = 0
        self._listeners: list[HistoryListener] = []

    @property
    def current_path(self) -> str:
        return self._entries[self._index]

    @property
    def index(self) -> int:
        return self._index

    @property
    def length(self) -> int:
        return len(self._entries)

    @property
    def entries(self) -> tuple[str, ...]:
        return tuple(self._entries)

    def push(self, path: str) -> None:
        """Drop forward entries and append *path*."""
        del self._entries[self._index + 1 :]
        self._entries.append(path)
        self._index += 1

    def replace(self, path: str) -> None:
        self._entries[self._index] = path

    def back(self) -> bool:
        """Move one entry back. Returns ``False`` at the first entry."""
        if self._index == 0:
            return False
        self._index -= 1
        self._notify(Trigger.BACK)
        return True

    def forward(self) -> bool:
        """Move one entry forward. Returns ``False`` at the last entry."""
        if self._index >= len(self._entries) - 1:
            return False
        self._index += 1
        self._notify(Trigger.FORWARD)
        return True

    def subscribe(self, callback: HistoryListener) -> Callable[[], None]:
        self._listeners.append(callback)

        def unsubscribe() -> None:
            if callback in self._listeners:
                self._listeners.remove(callback)

        return unsubscribe

    def _notify(self, trigger: Trigger) -> None:
        path = self.current_path
        for listener in tuple(self._listeners):
            listener(path, trigger, self._index)
