"""Client-side navigation: history bridge, flow engine, credentials.

Shares the route table and the guard with the server, so a view the
server would refuse is refused before any request is made.
"""

from flare.client.authentication import CredentialCache
from flare.client.cookies import Cookie, DocumentCookies, Lifetime, parse_cookie
from flare.client.fetch import HttpViewLoader, extract_json
from flare.client.flow import CredentialSource, FlowEngine, ViewLoader
from flare.client.history import HistoryBridge, MemoryHistory
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

__all__ = [
    "Blocked",
    "Cookie",
    "CredentialCache",
    "CredentialSource",
    "DocumentCookies",
    "Failed",
    "FlowEngine",
    "FlowEvent",
    "FlowState",
    "HistoryBridge",
    "HttpViewLoader",
    "Lifetime",
    "MemoryHistory",
    "NavigationIntent",
    "NavigationState",
    "Settled",
    "Superseded",
    "Trigger",
    "ViewLoadFailed",
    "ViewLoaded",
    "ViewLoader",
    "extract_json",
    "parse_cookie",
]
