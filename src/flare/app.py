"""Flare application class.

Mutable during setup (routes, handlers, middleware, error handlers).
Frozen when the first request or lifespan startup arrives, or when
``app.freeze()`` is called.
"""

import inspect
import logging
import threading
from collections.abc import Callable
from typing import Any

from flare._internal.asgi import Receive, Scope, Send
from flare._internal.types import ErrorHandler, Handler
from flare.auth.clock import Clock
from flare.auth.credentials import CredentialResolver
from flare.auth.levels import AuthLevel
from flare.auth.session import SessionStore
from flare.auth.tokens import TokenSigner
from flare.config import AppConfig
from flare.errors import ConfigurationError
from flare.middleware.protocol import Middleware
from flare.routing.route import RouteEntry
from flare.routing.router import RouteTable, parse_pattern
from flare.server.dispatcher import Dispatcher, HandlerRegistry
from flare.server.handler import handle_request

logger = logging.getLogger("flare.server")


class App:
    """The flare application.

    Usage::

        app = App(AppConfig(secret_key="s3cr3t"))

        @app.route("/items/:id", level=AuthLevel.AUTHENTICATED, label="item")
        async def show_item(params, request):
            return {"id": params["id"]}

    Thread safety:
        The setup phase is single-threaded (decorators at import time).
        The freeze transition uses a Lock + double-check so exactly one
        thread freezes the app, even when several ASGI workers call
        ``__call__()`` concurrently on first request. After the freeze
        the route table is read-only and shared without locks.
    """

    __slots__ = (
        "_credentials",
        "_dispatcher",
        "_error_handlers",
        "_freeze_lock",
        "_frozen",
        "_handlers",
        "_middleware",
        "_middleware_list",
        "_sessions",
        "_shutdown_hooks",
        "_startup_hooks",
        "_table",
        "config",
    )

    def __init__(self, config: AppConfig | None = None, *, clock: Clock | None = None) -> None:
        self.config: AppConfig = config or AppConfig()
        self._table = RouteTable()
        self._handlers = HandlerRegistry()
        self._middleware_list: list[Middleware] = []
        self._error_handlers: dict[int | type, ErrorHandler] = {}
        self._startup_hooks: list[Callable[..., Any]] = []
        self._shutdown_hooks: list[Callable[..., Any]] = []
        self._frozen: bool = False
        self._freeze_lock: threading.Lock = threading.Lock()

        self._sessions = SessionStore(ttl=self.config.session_ttl, clock=clock)
        signer = TokenSigner(self.config.secret_key) if self.config.secret_key else None
        self._credentials = CredentialResolver(
            self._sessions,
            token_header=self.config.token_header,
            cookie_name=self.config.session_cookie,
            signer=signer,
        )

        # Compiled state, set during _freeze()
        self._dispatcher: Dispatcher | None = None
        self._middleware: tuple[Callable[..., Any], ...] = ()

        logging.getLogger("flare").setLevel(self.config.log_level.upper())

    # -- Route registration --

    def route(
        self,
        path: str,
        *,
        methods: list[str] | None = None,
        level: AuthLevel = AuthLevel.ANONYMOUS,
        handler_id: str | None = None,
        label: str | None = None,
    ) -> Callable[[Handler], Handler]:
        """Register a route handler via decorator.

        Args:
            path: URL pattern. ``:name`` binds one segment, ``*name``
                binds the rest of the path.
            methods: HTTP methods. Defaults to ``["GET"]``.
            level: Minimum AuthLevel a caller needs.
            handler_id: Registry id. Defaults to ``module.qualname``.
            label: Optional unique name for ``url_for()``. Attached to
                the first method's entry.
        """

        def decorator(func: Handler) -> Handler:
            self._check_not_frozen()
            hid = handler_id or f"{func.__module__}.{func.__qualname__}"
            if hid in self._handlers:
                msg = f"Handler id {hid!r} is already registered."
                raise ConfigurationError(msg)

            pattern = parse_pattern(path)
            entries = [
                RouteEntry(
                    method=method.upper(),
                    pattern=pattern,
                    handler_id=hid,
                    required_level=level,
                    label=label if index == 0 else None,
                )
                for index, method in enumerate(methods or ["GET"])
            ]
            # Routes first: a rejected route must not leave the handler behind
            self._table.register_all(entries)
            return self._handlers.register(hid, func)

        return decorator

    def handler(self, handler_id: str) -> Callable[[Handler], Handler]:
        """Register a handler under *handler_id* without a route.

        Pair with ``add_route()`` when routes are declared separately
        from the code that serves them.
        """

        def decorator(func: Handler) -> Handler:
            self._check_not_frozen()
            return self._handlers.register(handler_id, func)

        return decorator

    def add_route(
        self,
        method: str,
        path: str,
        handler_id: str,
        *,
        level: AuthLevel = AuthLevel.ANONYMOUS,
        label: str | None = None,
    ) -> RouteEntry:
        """Register a route for a handler id registered elsewhere.

        The id is checked when the app freezes.
        """
        self._check_not_frozen()
        return self._table.add(method, path, handler_id, level, label=label)

    def url_for(self, label: str, **params: object) -> str:
        """Build the path of the route registered under *label*."""
        return self._table.url_for(label, **params)

    # -- Error handlers --

    def error(
        self,
        code_or_exception: int | type[Exception],
    ) -> Callable[[ErrorHandler], ErrorHandler]:
        """Register an error handler via decorator."""

        def decorator(func: ErrorHandler) -> ErrorHandler:
            self._check_not_frozen()
            self._error_handlers[code_or_exception] = func
            return func

        return decorator

    # -- Middleware --

    def add_middleware(self, middleware: Middleware) -> None:
        """Add a middleware to the pipeline. First added runs outermost."""
        self._check_not_frozen()
        self._middleware_list.append(middleware)

    # -- Lifecycle hooks --

    def on_startup(self, func: Callable[..., Any]) -> Callable[..., Any]:
        """Register an async or sync startup hook via decorator.

        Hooks run in registration order during ASGI lifespan startup,
        before the server begins accepting HTTP requests.
        """
        self._check_not_frozen()
        self._startup_hooks.append(func)
        return func

    def on_shutdown(self, func: Callable[..., Any]) -> Callable[..., Any]:
        """Register an async or sync shutdown hook via decorator."""
        self._check_not_frozen()
        self._shutdown_hooks.append(func)
        return func

    # -- Runtime collaborators --

    @property
    def sessions(self) -> SessionStore:
        """The session store. Login handlers issue sessions here."""
        return self._sessions

    @property
    def credentials(self) -> CredentialResolver:
        """Resolves request credentials and builds session cookies."""
        return self._credentials

    @property
    def routes(self) -> tuple[RouteEntry, ...]:
        return self._table.entries

    @property
    def frozen(self) -> bool:
        return self._frozen

    def freeze(self) -> None:
        """Freeze the app now instead of on the first request.

        Raises ``ConfigurationError`` if a route names an unknown
        handler id.
        """
        self._ensure_frozen()

    # -- ASGI interface --

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        """ASGI 3.0 entry point.

        Handles lifespan scopes directly, then delegates HTTP scopes to
        the request handler pipeline.
        """
        if scope["type"] == "lifespan":
            await self._handle_lifespan(scope, receive, send)
            return

        self._ensure_frozen()

        assert self._dispatcher is not None

        await handle_request(
            scope,
            receive,
            send,
            dispatcher=self._dispatcher,
            middleware=self._middleware,
            error_handlers=self._error_handlers,
            debug=self.config.debug,
        )

    async def _handle_lifespan(
        self,
        scope: Scope,
        receive: Receive,
        send: Send,
    ) -> None:
        """Run the ASGI lifespan protocol.

        Freezes the app at startup (before first HTTP request), then
        runs registered startup/shutdown hooks and signals completion
        back to the server.
        """
        self._ensure_frozen()

        while True:
            message = await receive()
            msg_type = message["type"]

            if msg_type == "lifespan.startup":
                try:
                    await self.run_startup_hooks()
                    await send({"type": "lifespan.startup.complete"})
                except Exception as exc:
                    logger.exception("Startup hook failed")
                    await send(
                        {
                            "type": "lifespan.startup.failed",
                            "message": str(exc),
                        }
                    )
                    return

            elif msg_type == "lifespan.shutdown":
                await self.run_shutdown_hooks()
                await send({"type": "lifespan.shutdown.complete"})
                return

    async def run_startup_hooks(self) -> None:
        for hook in self._startup_hooks:
            result = hook()
            if inspect.isawaitable(result):
                await result

    async def run_shutdown_hooks(self) -> None:
        for hook in self._shutdown_hooks:
            result = hook()
            if inspect.isawaitable(result):
                await result

    # -- Internal --

    def _ensure_frozen(self) -> None:
        """Thread-safe freeze with double-check locking."""
        if self._frozen:
            return
        with self._freeze_lock:
            if self._frozen:
                return
            self._freeze()

    def _freeze(self) -> None:
        """Compile the app into its frozen runtime state.

        MUST only be called while holding _freeze_lock.
        """
        missing = sorted(
            {entry.handler_id for entry in self._table.entries} - self._handlers.ids
        )
        if missing:
            msg = f"Routes refer to unregistered handler ids: {', '.join(missing)}"
            raise ConfigurationError(msg)

        self._table.freeze()
        self._middleware = tuple(self._middleware_list)
        self._dispatcher = Dispatcher(
            self._table,
            self._handlers,
            self._sessions,
            credentials=self._credentials,
            error_handlers=self._error_handlers,
            debug=self.config.debug,
        )
        self._frozen = True
        logger.debug(
            "App frozen: %d route(s), %d handler(s), %d middleware",
            len(self._table),
            len(self._handlers),
            len(self._middleware),
        )

    def _check_not_frozen(self) -> None:
        if self._frozen:
            msg = (
                "Cannot modify the app after it has started serving requests. "
                "Register routes, handlers, and middleware before the first request."
            )
            raise RuntimeError(msg)
