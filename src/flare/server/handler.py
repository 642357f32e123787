"""ASGI handler: translates ASGI scope/messages to flare types.

The only component that touches raw ASGI directly. Converts scope dicts
to typed Request objects, runs them through middleware and the
dispatcher, and sends the Response back through ASGI send().
"""

from collections.abc import Callable
from contextvars import Token
from typing import Any

from flare._internal.asgi import Receive, Scope, Send
from flare.context import request_var
from flare.errors import HTTPError
from flare.http.request import Request
from flare.http.response import Response
from flare.middleware.protocol import Next
from flare.server.dispatcher import Dispatcher
from flare.server.errors import handle_http_error, handle_internal_error
from flare.server.sender import send_response


async def handle_request(
    scope: Scope,
    receive: Receive,
    send: Send,
    *,
    dispatcher: Dispatcher,
    middleware: tuple[Callable[..., Any], ...],
    error_handlers: dict[int | type, Callable[..., Any]],
    debug: bool,
) -> None:
    """Process a single HTTP request through the full pipeline."""
    if scope["type"] != "http":
        return

    request = Request.from_asgi(scope, receive)
    token: Token[Request] = request_var.set(request)

    try:
        handler: Next = dispatcher.dispatch
        for mw in reversed(middleware):
            outer = handler

            async def make_next(req: Request, _mw: Any = mw, _next: Next = outer) -> Response:
                return await _mw(req, _next)

            handler = make_next

        response = await handler(request)

    except HTTPError as exc:
        response = await handle_http_error(exc, request, error_handlers, debug)
    except Exception as exc:
        response = await handle_internal_error(exc, request, error_handlers)
    finally:
        request_var.reset(token)

    await send_response(response, send, head=request.method == "HEAD")
