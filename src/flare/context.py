"""Request-scoped context via ContextVar.

Provides:
- ``request_var``: The current ``Request`` for this task.
- ``session_var``: The credential the dispatcher resolved for it.

Both are set by the server pipeline and reset after each request.

Thread safety:
    ``ContextVar`` is task-local under asyncio and thread-local under
    free-threading. No locks needed.
"""

from contextvars import ContextVar

from flare.auth.session import Session
from flare.http.request import Request

request_var: ContextVar[Request] = ContextVar("flare_request")
"""The current request. Set by the ASGI handler before dispatch."""

session_var: ContextVar[Session | None] = ContextVar("flare_session", default=None)
"""The resolved credential, or ``None`` for anonymous requests."""


def get_request() -> Request:
    """Return the current request.

    Raises ``LookupError`` if called outside a request context.
    """
    return request_var.get()


def get_session() -> Session | None:
    """Return the credential resolved for the current request, if any."""
    return session_var.get()
