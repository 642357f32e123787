"""Request dispatcher: route match, guard, handler call.

Match and guard are synchronous and never block; only the handler call
is awaited. Every outcome becomes a Response: routing misses become
404/405, guard denials become 401/403, handler failures become a
generic 500.
"""

import logging
from collections.abc import Callable
from contextvars import Token
from typing import Any

from flare._internal.invoke import invoke
from flare._internal.types import Handler
from flare.auth.clock import Clock
from flare.auth.credentials import CredentialResolver
from flare.auth.guard import AuthOutcome, check
from flare.auth.levels import AuthLevel
from flare.auth.session import Session, SessionStore
from flare.context import session_var
from flare.errors import (
    ConfigurationError,
    Forbidden,
    HTTPError,
    MethodNotAllowed,
    NotFound,
    Unauthorized,
)
from flare.http.request import Request
from flare.http.response import Response
from flare.routing.route import Matched, MethodNotAllowedForPath, NoRouteForPath
from flare.routing.router import RouteTable
from flare.security.audit import emit_security_event
from flare.server.errors import handle_http_error, handle_internal_error
from flare.server.negotiation import negotiate

logger = logging.getLogger("flare.server")


class HandlerRegistry:
    """Handler functions keyed by handler id.

    Routes refer to handlers by id only, so the route table stays plain
    data and handlers can be registered separately from their routes.
    """

    __slots__ = ("_handlers",)

    def __init__(self) -> None:
        self._handlers: dict[str, Handler] = {}

    def register(self, handler_id: str, fn: Handler) -> Handler:
        """Register *fn* under *handler_id*. Returns *fn* for decorator use.

        Raises ``ConfigurationError`` if the id is taken.
        """
        if handler_id in self._handlers:
            msg = f"Handler id {handler_id!r} is already registered."
            raise ConfigurationError(msg)
        self._handlers[handler_id] = fn
        return fn

    def get(self, handler_id: str) -> Handler | None:
        return self._handlers.get(handler_id)

    @property
    def ids(self) -> frozenset[str]:
        return frozenset(self._handlers)

    def __contains__(self, handler_id: object) -> bool:
        return handler_id in self._handlers

    def __len__(self) -> int:
        return len(self._handlers)


class Dispatcher:
    """Turns a Request into a Response using a frozen route table.

    Usage::

        dispatcher = Dispatcher(table, handlers, store)
        response = await dispatcher.handle(request)

    ``dispatch()`` is the raising variant used inside the app's
    middleware chain; ``handle()`` maps every error to a Response.
    """

    __slots__ = ("_clock", "_credentials", "_debug", "_error_handlers", "_handlers", "_table")

    def __init__(
        self,
        table: RouteTable,
        handlers: HandlerRegistry,
        sessions: SessionStore,
        *,
        credentials: CredentialResolver | None = None,
        clock: Clock | None = None,
        error_handlers: dict[int | type, Callable[..., Any]] | None = None,
        debug: bool = False,
    ) -> None:
        self._table = table
        self._handlers = handlers
        self._credentials = credentials if credentials is not None else CredentialResolver(sessions)
        self._clock = clock if clock is not None else sessions.clock
        self._error_handlers = error_handlers if error_handlers is not None else {}
        self._debug = debug

    @property
    def table(self) -> RouteTable:
        return self._table

    @property
    def credentials(self) -> CredentialResolver:
        return self._credentials

    async def handle(self, request: Request) -> Response:
        """Dispatch *request*, mapping every failure to a Response."""
        try:
            return await self.dispatch(request)
        except HTTPError as exc:
            return await handle_http_error(exc, request, self._error_handlers, self._debug)
        except Exception as exc:
            return await handle_internal_error(exc, request, self._error_handlers)

    async def dispatch(self, request: Request) -> Response:
        """Dispatch *request*. Raises ``HTTPError`` for 4xx outcomes.

        Handler exceptions propagate unchanged.
        """
        match self._table.match(request.method, request.path):
            case NoRouteForPath():
                raise NotFound()
            case MethodNotAllowedForPath(allowed_methods=allowed):
                raise MethodNotAllowed(allowed)
            case Matched(entry=entry, bound_params=params):
                pass

        credential = self._credentials.resolve(request)
        self._authorize(entry.required_level, credential, request)

        handler = self._handlers.get(entry.handler_id)
        if handler is None:
            msg = f"No handler registered for {entry.handler_id!r}"
            raise LookupError(msg)

        token: Token[Session | None] = session_var.set(credential)
        try:
            result = await invoke(handler, params, request.with_path_params(params))
        finally:
            session_var.reset(token)
        return negotiate(result)

    def _authorize(
        self,
        required: AuthLevel,
        credential: Session | None,
        request: Request,
    ) -> None:
        outcome = check(required, credential, now=self._clock.now())
        if outcome is AuthOutcome.ALLOWED:
            return

        user_id = credential.user_id if credential is not None else None
        details = {"required": required.name.lower()}
        if outcome is AuthOutcome.UNAUTHENTICATED:
            emit_security_event(
                "auth.denied.unauthenticated", request=request, user_id=user_id, details=details
            )
            raise Unauthorized()

        emit_security_event(
            "auth.denied.insufficient_level", request=request, user_id=user_id, details=details
        )
        raise Forbidden()
