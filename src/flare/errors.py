"""Flare exception hierarchy.

Shared across the route table, dispatcher, app, and the client-side
navigation engine so every module raises and catches the same types.
"""

from dataclasses import dataclass


class FlareError(Exception):
    """Base for all flare-specific errors."""


class ConfigurationError(FlareError):
    """Raised when app configuration is invalid.

    Typically raised while the app freezes at startup.
    """


# -- Route registration --


class RegistrationError(ConfigurationError):
    """A route could not be registered. Fatal at startup."""


class InvalidPattern(RegistrationError):  # noqa: N818
    """The route pattern (or its method) is malformed."""

    def __init__(self, pattern: str, reason: str) -> None:
        self.pattern = pattern
        self.reason = reason
        super().__init__(f"Invalid route pattern {pattern!r}: {reason}")


class AmbiguousRoute(RegistrationError):  # noqa: N818
    """Two patterns for the same method could match the same concrete path."""

    def __init__(self, method: str, pattern: str, existing: str) -> None:
        self.method = method
        self.pattern = pattern
        self.existing = existing
        super().__init__(
            f"{method} {pattern!r} is ambiguous with already registered {method} {existing!r}"
        )


class DuplicateLabel(RegistrationError):  # noqa: N818
    """A route label is already taken by another route."""

    def __init__(self, label: str) -> None:
        self.label = label
        super().__init__(f"Route label {label!r} is already registered")


# -- HTTP-shaped outcomes --


@dataclass(frozen=True, slots=True)
class HTTPError(FlareError):
    """An error that maps directly to an HTTP status code.

    Raised by the dispatcher, middleware, or handlers. The ASGI handler
    catches these and dispatches to the matching ``@app.error()`` handler.
    """

    status: int
    detail: str = ""
    headers: tuple[tuple[str, str], ...] = ()

    def __str__(self) -> str:
        if self.detail:
            return f"{self.status}: {self.detail}"
        return str(self.status)


class NotFound(HTTPError):  # noqa: N818
    """404: no route matched the request path."""

    def __init__(self, detail: str = "Not Found") -> None:
        super().__init__(status=404, detail=detail)


class MethodNotAllowed(HTTPError):  # noqa: N818
    """405: route exists but not for this HTTP method.

    Includes an ``Allow`` header listing the valid methods and embeds
    the allowed methods in the detail string for developer visibility.
    """

    def __init__(self, allowed: frozenset[str], detail: str = "") -> None:
        allow_value = ", ".join(sorted(allowed))
        default_detail = f"Method not allowed. Allowed methods: {allow_value}"
        super().__init__(
            status=405,
            detail=detail or default_detail,
            headers=(("Allow", allow_value),),
        )


class Unauthorized(HTTPError):  # noqa: N818
    """401: the route needs a credential and none (or an expired one) was sent."""

    def __init__(self, detail: str = "Authentication required") -> None:
        super().__init__(status=401, detail=detail)


class Forbidden(HTTPError):  # noqa: N818
    """403: the credential's level is below the route's required level."""

    def __init__(self, detail: str = "Forbidden") -> None:
        super().__init__(status=403, detail=detail)


class HandlerError(FlareError):
    """A typed failure raised by a route handler.

    Logged in full by the dispatcher; the client only ever sees a
    generic 500.
    """


# -- Client-side navigation --


class NavigationError(FlareError):
    """A navigation intent could not be carried out."""


class HistoryWriteError(NavigationError):
    """The history bridge failed to push or replace the visible URL."""


class ViewDataError(NavigationError):
    """View data for a committed navigation could not be loaded."""
