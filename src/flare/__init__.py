"""Flare: routing, authorization and navigation for split web apps.

The server side maps ``(method, path)`` to handlers and guards each
route with an access level. The client side drives navigation through
the same route table and the same guard, keeping the visible URL in
step with what the user is allowed to see.

Basic usage::

    from flare import App, AuthLevel

    app = App()

    @app.route("/items/:id", level=AuthLevel.AUTHENTICATED)
    def show_item(params, request):
        return {"id": params["id"]}

Client-side navigation::

    from flare.client import FlowEngine, MemoryHistory

    engine = FlowEngine(views, MemoryHistory("/"), credentials)
    engine.start()
    event = await engine.navigate("/items/42")
"""

# Declare free-threading support (PEP 703)
_Py_mod_gil = 0

__version__ = "0.1.0"
__all__ = [
    "App",
    "AppConfig",
    "AuthLevel",
    "ConfigurationError",
    "FlareError",
    "Forbidden",
    "HTTPError",
    "MethodNotAllowed",
    "Middleware",
    "Next",
    "NotFound",
    "Request",
    "Response",
    "RouteTable",
    "Session",
    "SessionStore",
    "Unauthorized",
    "get_request",
    "get_session",
]


def __getattr__(name: str) -> object:
    """Lazy imports for public API.

    Keeps ``import flare`` fast while providing a clean top-level API.
    """
    if name == "App":
        from flare.app import App

        return App

    if name == "AppConfig":
        from flare.config import AppConfig

        return AppConfig

    if name == "Request":
        from flare.http.request import Request

        return Request

    if name == "Response":
        from flare.http.response import Response

        return Response

    if name == "RouteTable":
        from flare.routing.router import RouteTable

        return RouteTable

    if name in ("AuthLevel", "Session", "SessionStore"):
        from flare import auth as _auth

        return getattr(_auth, name)

    if name in ("Middleware", "Next"):
        from flare.middleware import protocol as _mw

        return getattr(_mw, name)

    if name in ("get_request", "get_session"):
        from flare import context as _ctx

        return getattr(_ctx, name)

    if name in (
        "ConfigurationError",
        "FlareError",
        "Forbidden",
        "HTTPError",
        "MethodNotAllowed",
        "NotFound",
        "Unauthorized",
    ):
        from flare import errors as _errors

        return getattr(_errors, name)

    msg = f"module {__name__!r} has no attribute {name!r}"
    raise AttributeError(msg)
